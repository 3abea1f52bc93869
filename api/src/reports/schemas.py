"""Pydantic schemas for reports.

Request/Response models for:
- Filing a report
- Moderator report queues
- Reviewing a report
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import Report, ReportCategory, ReportStatus
from .service import ReportOutcome


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateReportRequest(BaseModel):
    """Request to report a member of a community.

    The length limit on ``reason`` is configurable and enforced by the service.
    """

    reported_user: str = Field(..., min_length=1, max_length=100)
    reason: str = Field(..., min_length=1)
    category: ReportCategory


class ReviewReportRequest(BaseModel):
    """Request to review or dismiss a report."""

    status: ReportStatus = Field(description="'reviewed' or 'dismissed'")


# ==============================================================================
# Response Schemas
# ==============================================================================


class ReportResponse(BaseModel):
    """Report details."""

    id: UUID
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
    def from_report(cls, report: Report) -> "ReportResponse":
        """Create response from report entity."""
        return cls(
            id=report.report_id,
            community_id=report.community_id,
            reported_user=report.reported_user,
            reporter_user=report.reporter_user,
            reason=report.reason,
            category=report.category,
            status=report.status,
            created_at=report.created_at,
            reviewed_by=report.reviewed_by,
            reviewed_at=report.reviewed_at,
        )


class ReportCreatedResponse(BaseModel):
    """Created report plus the outcome of the auto-ban check."""

    report: ReportResponse
    ban_applied: bool = Field(description="Whether the report triggered a ban")
    report_count: int = Field(description="Distinct reporters in the window")

    @classmethod
    def from_outcome(cls, outcome: ReportOutcome) -> "ReportCreatedResponse":
        return cls(
            report=ReportResponse.from_report(outcome.report),
            ban_applied=outcome.ban_applied,
            report_count=outcome.auto_ban.report_count,
        )


class ReportListResponse(BaseModel):
    """List of reports."""

    items: list[ReportResponse]
    total: int
