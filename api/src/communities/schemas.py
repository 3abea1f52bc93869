"""Pydantic schemas for communities.

Request/Response models with validation for:
- Community lifecycle
- Moderation toggles
- Announcements and role lookups
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .models import Community, CommunityRole, Visibility


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommunityRequest(BaseModel):
    """Request to create a community. The caller becomes its admin."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=2000)
    visibility: Visibility = Visibility.PUBLIC
    participants: list[str] = Field(default_factory=list)
    moderators: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Strip whitespace and validate name."""
        v = v.strip()
        if not v:
            msg = "Name cannot be empty"
            raise ValueError(msg)
        return v


class TargetUserRequest(BaseModel):
    """Request naming the user a moderation action applies to."""

    username: str = Field(..., min_length=1, max_length=100)


class AnnouncementRequest(BaseModel):
    """Request to notify every participant of a community."""

    title: str = Field(..., min_length=1, max_length=200)
    msg: str = Field(..., min_length=1, max_length=2000)


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommunityResponse(BaseModel):
    """Community with its role sets."""

    id: UUID
    name: str
    description: str
    visibility: Visibility
    admin: str
    participants: list[str]
    moderators: list[str]
    banned: list[str]
    muted: list[str]
    appeals: list[UUID]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_community(cls, community: Community) -> "CommunityResponse":
        """Create response from community entity."""
        return cls(
            id=community.community_id,
            name=community.name,
            description=community.description,
            visibility=community.visibility,
            admin=community.admin,
            participants=sorted(community.participants),
            moderators=sorted(community.moderators),
            banned=sorted(community.banned),
            muted=sorted(community.muted),
            appeals=list(community.appeals),
            created_at=community.created_at,
            updated_at=community.updated_at,
        )


class CommunityListResponse(BaseModel):
    """List of communities."""

    items: list[CommunityResponse]


class RoleResponse(BaseModel):
    """Role of a user in a community."""

    community_id: UUID
    username: str
    role: CommunityRole


class PostingPermissionResponse(BaseModel):
    """Whether a user may post in a community."""

    community_id: UUID
    username: str
    allowed: bool


class AnnouncementResponse(BaseModel):
    """Announcement that was sent."""

    notification_id: UUID
    title: str
    msg: str


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
