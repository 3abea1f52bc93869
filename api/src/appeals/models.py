"""Database models for appeals.

Cassandra table definitions for:
- Appeals: a banned user's request for reinstatement
- Appeal guards: one pending appeal per (community, user)
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class AppealDecision(str, Enum):
    """Moderator response to an appeal."""

    APPROVE = "approve"
    DENY = "deny"


APPEALS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.appeals (
    appeal_id UUID PRIMARY KEY,
    community_id UUID,
    username TEXT,
    description TEXT,
    appeal_date_time TIMESTAMP,
    reviewed BOOLEAN
)
"""

APPEAL_GUARDS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.appeal_guards (
    community_id UUID,
    username TEXT,
    appeal_id UUID,
    PRIMARY KEY ((community_id), username)
)
"""

APPEALS_TABLES_CQL = [
    APPEALS_TABLE_CQL,
    APPEAL_GUARDS_TABLE_CQL,
]


@dataclass
class Appeal:
    """Appeal entity."""

    appeal_id: UUID
    community_id: UUID
    username: str
    description: str
    appeal_date_time: datetime
    reviewed: bool = False

    @classmethod
    def from_row(cls, row: Any) -> "Appeal":
        """Create Appeal from Cassandra row."""
        return cls(
            appeal_id=row.appeal_id,
            community_id=row.community_id,
            username=row.username,
            description=row.description,
            appeal_date_time=row.appeal_date_time,
            reviewed=row.reviewed or False,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "appeal_id": str(self.appeal_id),
            "community_id": str(self.community_id),
            "username": self.username,
            "description": self.description,
            "appeal_date_time": self.appeal_date_time.isoformat(),
            "reviewed": self.reviewed,
        }


def create_appeal(community_id: UUID, username: str, description: str) -> Appeal:
    """Create a new, unreviewed appeal."""
    return Appeal(
        appeal_id=uuid4(),
        community_id=community_id,
        username=username,
        description=description,
        appeal_date_time=datetime.now(UTC),
    )
