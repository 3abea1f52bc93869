"""Tests for the Redis role cache."""

import json
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.communities.models import CommunityRole
from src.communities.roles import RoleCache, role_cache_key


@pytest.fixture
def mock_redis():
    redis = Mock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock()
    redis.delete = AsyncMock()
    return redis


class TestRoleCache:
    @pytest.mark.asyncio
    async def test_reads_store_without_redis(self, membership, community) -> None:
        cache = RoleCache(membership)

        role = await cache.role_in("mod1", community.community_id)

        assert role == CommunityRole.MODERATOR

    @pytest.mark.asyncio
    async def test_non_member_has_no_role(self, membership, community) -> None:
        cache = RoleCache(membership)

        assert await cache.role_in("stranger", community.community_id) is None

    @pytest.mark.asyncio
    async def test_cache_hit_skips_store(self, mock_redis) -> None:
        community_id = uuid4()
        store = Mock()
        store.communities_for_member = AsyncMock()
        mock_redis.get.return_value = json.dumps({str(community_id): "admin"})
        cache = RoleCache(store, mock_redis)

        role = await cache.role_in("admin", community_id)

        assert role == CommunityRole.ADMIN
        store.communities_for_member.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_miss_populates_with_ttl(
        self, membership, community, mock_redis
    ) -> None:
        cache = RoleCache(membership, mock_redis, ttl_seconds=60)

        roles = await cache.get_roles("alice")

        assert roles == {str(community.community_id): CommunityRole.PARTICIPANT}
        key, ttl, payload = mock_redis.setex.await_args.args
        assert key == role_cache_key("alice")
        assert ttl == 60
        assert json.loads(payload) == {str(community.community_id): "participant"}

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_store(
        self, membership, community, mock_redis
    ) -> None:
        mock_redis.get.side_effect = RedisConnectionError("down")
        mock_redis.setex.side_effect = RedisConnectionError("down")
        cache = RoleCache(membership, mock_redis)

        role = await cache.role_in("admin", community.community_id)

        assert role == CommunityRole.ADMIN

    @pytest.mark.asyncio
    async def test_invalidate_deletes_keys(self, membership, mock_redis) -> None:
        cache = RoleCache(membership, mock_redis)

        await cache.invalidate("alice", "bob")

        mock_redis.delete.assert_awaited_once_with("roles:alice", "roles:bob")

    @pytest.mark.asyncio
    async def test_invalidate_without_redis_is_noop(self, membership) -> None:
        await RoleCache(membership).invalidate("alice")
