# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Role & membership store.

Single source of truth for who belongs to a community and in what capacity.
Every membership mutation is one conditional CQL update that adds to or
removes from the role sets, so concurrent moderation actions on the same
community are serialized by Cassandra instead of racing through a
read-modify-write in application code.

Conditional updates use ``IF EXISTS`` so a deleted community is never
recreated by a late toggle. A mutation that was not applied returns None.

Appending an appeal reference is the one unconditional write (it rides in a
logged batch, which cannot carry conditions across tables). When it lands
after a delete it upserts a row holding only ``appeals``; rows without an
admin are treated as absent by every read.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from src.core.logging import get_logger

from .models import Community


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.core.transaction import Transaction


logger = get_logger(__name__)


def is_live(row: Any) -> bool:
    """False for missing rows and for appeal-only rows left behind by a delete."""
    if row is None:
        return False
    if row.admin is None:
        logger.warning(
            "community_orphan_row_skipped", community_id=str(row.community_id)
        )
        return False
    return True


class MembershipStore:
    """Cassandra-backed store for community rows."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_community = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.communities
            (community_id, name, description, visibility, admin, participants,
             moderators, banned, muted, appeals, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._reserve_name = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.community_names (name, community_id)
            VALUES (?, ?)
            IF NOT EXISTS
        """)

        self._release_name = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.community_names WHERE name = ?
        """)

        self._get_community = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.communities WHERE community_id = ?
        """)

        self._list_communities = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.communities
        """)

        self._get_by_participant = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.communities
            WHERE participants CONTAINS ?
        """)

        self._delete_community = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.communities
            WHERE community_id = ?
            IF EXISTS
        """)

        # Membership
        self._add_participant = self._conditional_update(
            "participants = participants + ?"
        )
        self._remove_participant = self._conditional_update(
            "participants = participants - ?, moderators = moderators - ?"
        )

        # Moderators
        self._add_moderator = self._conditional_update("moderators = moderators + ?")
        self._remove_moderator = self._conditional_update(
            "moderators = moderators - ?"
        )

        # Ban removes membership and moderation rights in the same write
        self._ban = self._conditional_update(
            "banned = banned + ?, participants = participants - ?, "
            "moderators = moderators - ?"
        )
        self._unban = self._conditional_update("banned = banned - ?")

        # Mute
        self._mute = self._conditional_update("muted = muted + ?")
        self._unmute = self._conditional_update("muted = muted - ?")

        # Appeals
        self._lift_ban = self._conditional_update(
            "banned = banned - ?, muted = muted - ?, appeals = appeals - ?"
        )
        self._remove_appeal = self._conditional_update("appeals = appeals - ?")
        self._append_appeal = self.session.prepare(f"""
            UPDATE {self.keyspace}.communities
            SET appeals = appeals + ?, updated_at = ?
            WHERE community_id = ?
        """)

    def _conditional_update(self, assignments: str) -> Any:
        return self.session.prepare(f"""
            UPDATE {self.keyspace}.communities
            SET {assignments}, updated_at = ?
            WHERE community_id = ?
            IF EXISTS
        """)

    async def _apply(
        self, statement: Any, community_id: UUID, *values: Any
    ) -> Community | None:
        """Run a conditional update and return the fresh row when applied."""
        result = await self.session.aexecute(
            statement, [*values, datetime.now(UTC), community_id]
        )
        if not result.was_applied:
            logger.info("community_update_not_applied", community_id=str(community_id))
            return None
        return await self.get(community_id)

    # ==========================================================================
    # Community Lifecycle
    # ==========================================================================

    async def insert(self, community: Community) -> Community | None:
        """Insert a community. Returns None when the name is already taken."""
        reserved = await self.session.aexecute(
            self._reserve_name, [community.name, community.community_id]
        )
        if not reserved.was_applied:
            return None

        try:
            await self.session.aexecute(
                self._insert_community,
                [
                    community.community_id,
                    community.name,
                    community.description,
                    community.visibility.value,
                    community.admin,
                    community.participants,
                    community.moderators,
                    community.banned,
                    community.muted,
                    community.appeals,
                    community.created_at,
                    community.updated_at,
                ],
            )
        except Exception:
            await self.session.aexecute(self._release_name, [community.name])
            raise

        return community

    async def get(self, community_id: UUID) -> Community | None:
        """Get community by ID."""
        result = await self.session.aexecute(self._get_community, [community_id])
        row = result.one()
        return Community.from_row(row) if is_live(row) else None

    async def list_all(self) -> list[Community]:
        """List every community."""
        rows = await self.session.aexecute(self._list_communities)
        return [Community.from_row(row) for row in rows if is_live(row)]

    async def communities_for_member(self, username: str) -> list[Community]:
        """Communities in which ``username`` is a participant."""
        rows = await self.session.aexecute(self._get_by_participant, [username])
        return [Community.from_row(row) for row in rows if is_live(row)]

    async def delete(self, community: Community) -> bool:
        """Hard delete. Returns False when the row was already gone."""
        result = await self.session.aexecute(
            self._delete_community, [community.community_id]
        )
        if not result.was_applied:
            return False
        await self.session.aexecute(self._release_name, [community.name])
        return True

    # ==========================================================================
    # Atomic Role Mutations
    # ==========================================================================

    async def add_participant(
        self, community_id: UUID, username: str
    ) -> Community | None:
        return await self._apply(self._add_participant, community_id, {username})

    async def remove_participant(
        self, community_id: UUID, username: str
    ) -> Community | None:
        """Remove membership. Moderator rights go with it."""
        return await self._apply(
            self._remove_participant, community_id, {username}, {username}
        )

    async def add_moderator(
        self, community_id: UUID, username: str
    ) -> Community | None:
        return await self._apply(self._add_moderator, community_id, {username})

    async def remove_moderator(
        self, community_id: UUID, username: str
    ) -> Community | None:
        return await self._apply(self._remove_moderator, community_id, {username})

    async def ban(self, community_id: UUID, username: str) -> Community | None:
        """Add to banned and drop from participants and moderators at once."""
        return await self._apply(
            self._ban, community_id, {username}, {username}, {username}
        )

    async def unban(self, community_id: UUID, username: str) -> Community | None:
        return await self._apply(self._unban, community_id, {username})

    async def mute(self, community_id: UUID, username: str) -> Community | None:
        return await self._apply(self._mute, community_id, {username})

    async def unmute(self, community_id: UUID, username: str) -> Community | None:
        return await self._apply(self._unmute, community_id, {username})

    async def lift_ban(
        self, community_id: UUID, username: str, appeal_id: UUID
    ) -> Community | None:
        """Clear ban and mute for an approved appeal and drop its reference."""
        return await self._apply(
            self._lift_ban, community_id, {username}, {username}, [appeal_id]
        )

    async def remove_appeal(
        self, community_id: UUID, appeal_id: UUID
    ) -> Community | None:
        return await self._apply(self._remove_appeal, community_id, [appeal_id])

    def stage_append_appeal(
        self, tx: "Transaction", community_id: UUID, appeal_id: UUID
    ) -> None:
        """Add the appeal reference to a caller's transaction."""
        params = [[appeal_id], datetime.now(UTC), community_id]
        tx.add(self._append_appeal, params, undo=(self._remove_appeal, params))
