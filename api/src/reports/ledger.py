# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Report ledger.

Append-only store of reports. Each report is written to three tables in
one logged batch. A report is never deleted; only its status changes.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from src.core.transaction import TransactionFactory

from .models import Report, ReportStatus


if TYPE_CHECKING:
    from cassandra.cluster import Session


REPORT_TABLES = ("reports", "reports_by_target", "reports_by_community")


class ReportLedger:
    """Cassandra-backed report ledger."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        transaction_factory: TransactionFactory,
    ):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self.transaction_factory = transaction_factory
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._reserve_guard = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.report_guards
            (community_id, reported_user, reporter_user, report_id)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._release_guard = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.report_guards
            WHERE community_id = ? AND reported_user = ? AND reporter_user = ?
        """)

        self._insert = {
            table: self.session.prepare(f"""
                INSERT INTO {self.keyspace}.{table}
                (report_id, community_id, reported_user, reporter_user, reason,
                 category, status, created_at, reviewed_by, reviewed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """)
            for table in REPORT_TABLES
        }

        self._update_status = {
            "reports": self.session.prepare(f"""
                UPDATE {self.keyspace}.reports
                SET status = ?, reviewed_by = ?, reviewed_at = ?
                WHERE report_id = ?
            """),
            "reports_by_target": self.session.prepare(f"""
                UPDATE {self.keyspace}.reports_by_target
                SET status = ?, reviewed_by = ?, reviewed_at = ?
                WHERE community_id = ? AND reported_user = ?
                AND created_at = ? AND report_id = ?
            """),
            "reports_by_community": self.session.prepare(f"""
                UPDATE {self.keyspace}.reports_by_community
                SET status = ?, reviewed_by = ?, reviewed_at = ?
                WHERE community_id = ? AND created_at = ? AND report_id = ?
            """),
        }

        self._get_report = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports WHERE report_id = ?
        """)

        self._get_for_target = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports_by_target
            WHERE community_id = ? AND reported_user = ?
        """)

        self._get_for_target_since = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports_by_target
            WHERE community_id = ? AND reported_user = ? AND created_at >= ?
        """)

        self._get_for_community = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports_by_community
            WHERE community_id = ?
        """)

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def create(self, report: Report) -> Report | None:
        """Append a report. Returns None when the triple was already reported."""
        guard_key = [report.community_id, report.reported_user, report.reporter_user]
        reserved = await self.session.aexecute(
            self._reserve_guard, [*guard_key, report.report_id]
        )
        if not reserved.was_applied:
            return None

        params = [
            report.report_id,
            report.community_id,
            report.reported_user,
            report.reporter_user,
            report.reason,
            report.category.value,
            report.status.value,
            report.created_at,
            report.reviewed_by,
            report.reviewed_at,
        ]
        async with self.transaction_factory() as tx:
            tx.on_abort(self._release_guard, guard_key)
            for table in REPORT_TABLES:
                tx.add(self._insert[table], params)

        return report

    async def update_status(
        self, report: Report, status: ReportStatus, reviewed_by: str
    ) -> Report:
        """Stamp a review on every copy of the report."""
        reviewed_at = datetime.now(UTC)
        values = [status.value, reviewed_by, reviewed_at]

        async with self.transaction_factory() as tx:
            tx.add(self._update_status["reports"], [*values, report.report_id])
            tx.add(
                self._update_status["reports_by_target"],
                [
                    *values,
                    report.community_id,
                    report.reported_user,
                    report.created_at,
                    report.report_id,
                ],
            )
            tx.add(
                self._update_status["reports_by_community"],
                [*values, report.community_id, report.created_at, report.report_id],
            )

        report.status = status
        report.reviewed_by = reviewed_by
        report.reviewed_at = reviewed_at
        return report

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get(self, report_id: UUID) -> Report | None:
        result = await self.session.aexecute(self._get_report, [report_id])
        row = result.one()
        return Report.from_row(row) if row else None

    async def for_target(
        self,
        community_id: UUID,
        reported_user: str,
        since: datetime | None = None,
    ) -> list[Report]:
        """Reports against a user in a community, newest first."""
        if since is None:
            rows = await self.session.aexecute(
                self._get_for_target, [community_id, reported_user]
            )
        else:
            rows = await self.session.aexecute(
                self._get_for_target_since, [community_id, reported_user, since]
            )
        return [Report.from_row(row) for row in rows]

    async def pending_for_community(self, community_id: UUID) -> list[Report]:
        """Pending reports of a community, newest first."""
        rows = await self.session.aexecute(self._get_for_community, [community_id])
        reports = [Report.from_row(row) for row in rows]
        return [r for r in reports if r.status == ReportStatus.PENDING]
