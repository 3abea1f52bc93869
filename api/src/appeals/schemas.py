"""Pydantic schemas for appeals."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import Appeal, AppealDecision


class SubmitAppealRequest(BaseModel):
    """Request from a banned user to be reinstated."""

    description: str = Field(..., min_length=1)


class RespondAppealRequest(BaseModel):
    """Moderator decision on an appeal."""

    decision: AppealDecision


class AppealResponse(BaseModel):
    """Appeal details."""

    id: UUID
    community_id: UUID
    username: str
    description: str
    appeal_date_time: datetime
    reviewed: bool

    @classmethod
    def from_appeal(cls, appeal: Appeal) -> "AppealResponse":
        """Create response from appeal entity."""
        return cls(
            id=appeal.appeal_id,
            community_id=appeal.community_id,
            username=appeal.username,
            description=appeal.description,
            appeal_date_time=appeal.appeal_date_time,
            reviewed=appeal.reviewed,
        )


class AppealListResponse(BaseModel):
    """Pending appeals of a community."""

    items: list[AppealResponse]
    total: int
