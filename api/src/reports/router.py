"""Report API endpoints.

Provides routes for:
- Filing a report (runs the auto-ban check before responding)
- Pending report queue and per-user history for moderators
- Reviewing or dismissing a report
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import CurrentUser
from src.communities.dependencies import CommunityModerator
from src.core.errors import unwrap

from .dependencies import ReportServiceDep
from .schemas import (
    CreateReportRequest,
    ReportCreatedResponse,
    ReportListResponse,
    ReportResponse,
    ReviewReportRequest,
)


router = APIRouter(prefix="/v1", tags=["reports"])


@router.post(
    "/communities/{community_id}/reports",
    response_model=ReportCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report a member",
)
async def create_report(
    community_id: UUID,
    data: CreateReportRequest,
    service: ReportServiceDep,
    user: CurrentUser,
) -> ReportCreatedResponse:
    """Report a member of the community.

    One report per reporter and reported user. Reaching the configured number
    of distinct reporters within the window bans the reported user.
    """
    outcome = unwrap(
        await service.create_report(
            community_id=community_id,
            reported_user=data.reported_user,
            reporter_user=user.username,
            reason=data.reason,
            category=data.category,
        )
    )
    return ReportCreatedResponse.from_outcome(outcome)


@router.get(
    "/communities/{community_id}/reports",
    response_model=ReportListResponse,
    summary="List pending reports",
)
async def list_pending_reports(
    community_id: UUID,
    service: ReportServiceDep,
    _moderator: CommunityModerator,
) -> ReportListResponse:
    reports = unwrap(await service.get_pending_reports(community_id))
    return ReportListResponse(
        items=[ReportResponse.from_report(r) for r in reports],
        total=len(reports),
    )


@router.get(
    "/communities/{community_id}/reports/users/{username}",
    response_model=ReportListResponse,
    summary="List reports against a user",
)
async def list_reports_by_user(
    community_id: UUID,
    username: str,
    service: ReportServiceDep,
    _moderator: CommunityModerator,
) -> ReportListResponse:
    reports = unwrap(await service.get_reports_by_user(community_id, username))
    return ReportListResponse(
        items=[ReportResponse.from_report(r) for r in reports],
        total=len(reports),
    )


@router.patch(
    "/reports/{report_id}",
    response_model=ReportResponse,
    summary="Review or dismiss a report",
)
async def review_report(
    report_id: UUID,
    data: ReviewReportRequest,
    service: ReportServiceDep,
    user: CurrentUser,
) -> ReportResponse:
    report = unwrap(
        await service.update_report_status(report_id, data.status, user.username)
    )
    return ReportResponse.from_report(report)
