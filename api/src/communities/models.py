"""Database models for communities.

Cassandra table definitions for:
- Communities: one row per community holding every role set
- Community names: uniqueness guard for community names

Role sets on a community row:
- participants: members (the admin is always one of them)
- moderators: subset of participants
- banned: never intersects participants
- muted: members that cannot post, kept across leave and ban
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class Visibility(str, Enum):
    """Community visibility."""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class CommunityRole(str, Enum):
    """Role of a user inside a community."""

    ADMIN = "admin"
    MODERATOR = "moderator"
    PARTICIPANT = "participant"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMUNITIES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.communities (
    community_id UUID PRIMARY KEY,
    name TEXT,
    description TEXT,
    visibility TEXT,
    admin TEXT,
    participants SET<TEXT>,
    moderators SET<TEXT>,
    banned SET<TEXT>,
    muted SET<TEXT>,
    appeals LIST<UUID>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Lightweight-transaction guard for unique names
COMMUNITY_NAMES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.community_names (
    name TEXT PRIMARY KEY,
    community_id UUID
)
"""

# Lets the directory find every community a user belongs to
COMMUNITY_PARTICIPANTS_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS communities_participants_idx
ON {keyspace}.communities (participants)
"""

COMMUNITIES_TABLES_CQL = [
    COMMUNITIES_TABLE_CQL,
    COMMUNITY_NAMES_TABLE_CQL,
    COMMUNITY_PARTICIPANTS_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Community:
    """Community entity with its role sets."""

    community_id: UUID
    name: str
    description: str
    visibility: Visibility
    admin: str
    participants: set[str] = field(default_factory=set)
    moderators: set[str] = field(default_factory=set)
    banned: set[str] = field(default_factory=set)
    muted: set[str] = field(default_factory=set)
    appeals: list[UUID] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Community":
        """Create Community from Cassandra row.

        Empty collections come back as None from Cassandra.
        """
        return cls(
            community_id=row.community_id,
            name=row.name,
            description=row.description or "",
            visibility=Visibility(row.visibility or Visibility.PUBLIC.value),
            admin=row.admin,
            participants=set(row.participants or ()),
            moderators=set(row.moderators or ()),
            banned=set(row.banned or ()),
            muted=set(row.muted or ()),
            appeals=list(row.appeals or ()),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def is_member(self, username: str) -> bool:
        return username in self.participants

    def is_banned(self, username: str) -> bool:
        return username in self.banned

    def is_muted(self, username: str) -> bool:
        return username in self.muted

    def is_moderator(self, username: str) -> bool:
        return username in self.moderators

    def can_moderate(self, username: str) -> bool:
        """Admin and moderators may ban, mute and review."""
        return username == self.admin or username in self.moderators

    def role_of(self, username: str) -> CommunityRole | None:
        """Highest role of ``username`` or None when not a member."""
        if username == self.admin:
            return CommunityRole.ADMIN
        if username in self.moderators:
            return CommunityRole.MODERATOR
        if username in self.participants:
            return CommunityRole.PARTICIPANT
        return None

    def moderation_team(self) -> list[str]:
        """Admin followed by moderators, without duplicates."""
        return [self.admin, *sorted(self.moderators - {self.admin})]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "community_id": str(self.community_id),
            "name": self.name,
            "description": self.description,
            "visibility": self.visibility.value,
            "admin": self.admin,
            "participants": sorted(self.participants),
            "moderators": sorted(self.moderators),
            "banned": sorted(self.banned),
            "muted": sorted(self.muted),
            "appeals": [str(a) for a in self.appeals],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_community(
    name: str,
    admin: str,
    description: str = "",
    visibility: Visibility = Visibility.PUBLIC,
    participants: list[str] | None = None,
    moderators: list[str] | None = None,
) -> Community:
    """Create a new community. The admin is always a participant."""
    now = datetime.now(UTC)
    members = {admin, *(participants or [])}
    return Community(
        community_id=uuid4(),
        name=name,
        description=description,
        visibility=visibility,
        admin=admin,
        participants=members,
        moderators={m for m in (moderators or []) if m in members},
        created_at=now,
        updated_at=now,
    )
