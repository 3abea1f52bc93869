"""Database models for the report ledger.

Cassandra table definitions for:
- Reports: one row per report, looked up by ID
- Report guards: one row per (community, reported, reporter) triple, taken
  with IF NOT EXISTS so a reporter can accuse a user only once per community
- Reports by target: partitioned by (community, reported user), newest first,
  serving the sliding-window query of the auto-ban evaluator
- Reports by community: newest first, serving the moderator queue
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class ReportCategory(str, Enum):
    """Category of the reported violation."""

    SPAM = "spam"
    HARASSMENT = "harassment"
    INAPPROPRIATE = "inappropriate"
    MISLEADING = "misleading"
    OTHER = "other"


class ReportStatus(str, Enum):
    """Report lifecycle: pending, then reviewed or dismissed."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

_REPORT_COLUMNS = """
    report_id UUID,
    community_id UUID,
    reported_user TEXT,
    reporter_user TEXT,
    reason TEXT,
    category TEXT,
    status TEXT,
    created_at TIMESTAMP,
    reviewed_by TEXT,
    reviewed_at TIMESTAMP,"""

REPORTS_TABLE_CQL = (
    "CREATE TABLE IF NOT EXISTS {keyspace}.reports ("
    + _REPORT_COLUMNS
    + "\n    PRIMARY KEY (report_id)\n)"
)

REPORT_GUARDS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.report_guards (
    community_id UUID,
    reported_user TEXT,
    reporter_user TEXT,
    report_id UUID,
    PRIMARY KEY ((community_id, reported_user), reporter_user)
)
"""

REPORTS_BY_TARGET_TABLE_CQL = (
    "CREATE TABLE IF NOT EXISTS {keyspace}.reports_by_target ("
    + _REPORT_COLUMNS
    + "\n    PRIMARY KEY ((community_id, reported_user), created_at, report_id)\n)"
    + " WITH CLUSTERING ORDER BY (created_at DESC, report_id ASC)"
)

REPORTS_BY_COMMUNITY_TABLE_CQL = (
    "CREATE TABLE IF NOT EXISTS {keyspace}.reports_by_community ("
    + _REPORT_COLUMNS
    + "\n    PRIMARY KEY ((community_id), created_at, report_id)\n)"
    + " WITH CLUSTERING ORDER BY (created_at DESC, report_id ASC)"
)

REPORTS_TABLES_CQL = [
    REPORTS_TABLE_CQL,
    REPORT_GUARDS_TABLE_CQL,
    REPORTS_BY_TARGET_TABLE_CQL,
    REPORTS_BY_COMMUNITY_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


def as_utc(value: datetime | None) -> datetime | None:
    """Cassandra returns naive UTC timestamps."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


@dataclass
class Report:
    """One user's accusation against another within a community."""

    report_id: UUID
    community_id: UUID
    reported_user: str
    reporter_user: str
    reason: str
    category: ReportCategory
    status: ReportStatus
    created_at: datetime
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Report":
        """Create Report from a row of any of the report tables."""
        return cls(
            report_id=row.report_id,
            community_id=row.community_id,
            reported_user=row.reported_user,
            reporter_user=row.reporter_user,
            reason=row.reason,
            category=ReportCategory(row.category),
            status=ReportStatus(row.status),
            created_at=as_utc(row.created_at),
            reviewed_by=row.reviewed_by,
            reviewed_at=as_utc(row.reviewed_at),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "report_id": str(self.report_id),
            "community_id": str(self.community_id),
            "reported_user": self.reported_user,
            "reporter_user": self.reporter_user,
            "reason": self.reason,
            "category": self.category.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
        }


def create_report(
    community_id: UUID,
    reported_user: str,
    reporter_user: str,
    reason: str,
    category: ReportCategory,
    created_at: datetime | None = None,
) -> Report:
    """Create a new pending report."""
    return Report(
        report_id=uuid4(),
        community_id=community_id,
        reported_user=reported_user,
        reporter_user=reporter_user,
        reason=reason,
        category=category,
        status=ReportStatus.PENDING,
        created_at=created_at or datetime.now(UTC),
    )
