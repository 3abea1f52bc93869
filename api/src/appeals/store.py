# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Appeal store.

Appeals are claimed with a conditional delete, so when several moderators
respond to the same appeal at once exactly one of them gets it.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from .models import Appeal


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.core.transaction import Transaction


class AppealStore:
    """Cassandra-backed appeal store."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._reserve_guard = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.appeal_guards
                (community_id, username, appeal_id)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)

        self._release_guard = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.appeal_guards
            WHERE community_id = ? AND username = ?
        """)

        self._insert_appeal = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.appeals
            (appeal_id, community_id, username, description, appeal_date_time, reviewed)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._delete_appeal = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.appeals WHERE appeal_id = ?
        """)

        self._get_appeal = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.appeals WHERE appeal_id = ?
        """)

        self._get_appeals = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.appeals WHERE appeal_id IN ?
        """)

        self._claim_appeal = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.appeals
            WHERE appeal_id = ?
            IF EXISTS
        """)

    # ==========================================================================
    # Pending-appeal Guard
    # ==========================================================================

    async def reserve(self, community_id: UUID, username: str, appeal_id: UUID) -> bool:
        """Take the pending-appeal slot. False when one is already pending."""
        result = await self.session.aexecute(
            self._reserve_guard, [community_id, username, appeal_id]
        )
        return bool(result.was_applied)

    async def release(self, community_id: UUID, username: str) -> None:
        await self.session.aexecute(self._release_guard, [community_id, username])

    def release_on_abort(
        self, tx: "Transaction", community_id: UUID, username: str
    ) -> None:
        tx.on_abort(self._release_guard, [community_id, username])

    # ==========================================================================
    # Appeals
    # ==========================================================================

    def stage_insert(self, tx: "Transaction", appeal: Appeal) -> None:
        tx.add(
            self._insert_appeal,
            [
                appeal.appeal_id,
                appeal.community_id,
                appeal.username,
                appeal.description,
                appeal.appeal_date_time,
                appeal.reviewed,
            ],
            undo=(self._delete_appeal, [appeal.appeal_id]),
        )

    async def get(self, appeal_id: UUID) -> Appeal | None:
        result = await self.session.aexecute(self._get_appeal, [appeal_id])
        row = result.one()
        return Appeal.from_row(row) if row else None

    async def get_many(self, appeal_ids: list[UUID]) -> list[Appeal]:
        """Appeals that still exist, in the order of ``appeal_ids``."""
        if not appeal_ids:
            return []
        rows = await self.session.aexecute(self._get_appeals, [appeal_ids])
        found = {row.appeal_id: Appeal.from_row(row) for row in rows}
        return [found[a] for a in appeal_ids if a in found]

    async def claim(self, community_id: UUID, appeal_id: UUID) -> Appeal | None:
        """Remove an appeal for processing. None if missing or already claimed."""
        appeal = await self.get(appeal_id)
        if appeal is None or appeal.community_id != community_id:
            return None

        result = await self.session.aexecute(self._claim_appeal, [appeal_id])
        if not result.was_applied:
            return None

        await self.release(community_id, appeal.username)
        return appeal
