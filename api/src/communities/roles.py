"""Read-through Redis cache of a user's community roles.

Key ``roles:{username}`` holds a JSON object mapping community ID to role.
Entries expire after ``role_cache_ttl_seconds`` and are invalidated whenever a
moderation action changes the user's role.
"""

import json
from typing import TYPE_CHECKING
from uuid import UUID

from redis.exceptions import RedisError

from src.core.logging import get_logger

from .models import CommunityRole
from .store import MembershipStore


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = get_logger(__name__)


def role_cache_key(username: str) -> str:
    return f"roles:{username}"


class RoleCache:
    """Cache of community roles per user backed by the membership store."""

    def __init__(
        self,
        store: MembershipStore,
        redis: "Redis | None" = None,
        ttl_seconds: int = 3600,
    ):
        self.store = store
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    async def get_roles(self, username: str) -> dict[str, CommunityRole]:
        """Roles of ``username`` keyed by community ID string."""
        if self.redis:
            try:
                cached = await self.redis.get(role_cache_key(username))
            except RedisError as e:
                logger.warning("role_cache_read_failed", error=str(e))
                cached = None
            if cached:
                return {
                    community_id: CommunityRole(role)
                    for community_id, role in json.loads(cached).items()
                }

        roles: dict[str, CommunityRole] = {}
        for community in await self.store.communities_for_member(username):
            role = community.role_of(username)
            if role is not None:
                roles[str(community.community_id)] = role

        if self.redis:
            try:
                await self.redis.setex(
                    role_cache_key(username),
                    self.ttl_seconds,
                    json.dumps({k: v.value for k, v in roles.items()}),
                )
            except RedisError as e:
                logger.warning("role_cache_write_failed", error=str(e))

        return roles

    async def role_in(
        self, username: str, community_id: UUID
    ) -> CommunityRole | None:
        roles = await self.get_roles(username)
        return roles.get(str(community_id))

    async def invalidate(self, *usernames: str) -> None:
        """Drop cached roles for the given users."""
        if not self.redis or not usernames:
            return
        await self.redis.delete(*(role_cache_key(u) for u in usernames))
        logger.debug("role_cache_invalidated", usernames=list(usernames))
