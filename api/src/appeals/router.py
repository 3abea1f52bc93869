"""Appeal API endpoints.

Provides routes for:
- Submitting an appeal against a ban
- Listing pending appeals (moderators)
- Approving or denying an appeal
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import CurrentUser
from src.communities.dependencies import CommunityModerator
from src.communities.schemas import CommunityResponse
from src.core.errors import unwrap

from .dependencies import AppealServiceDep
from .schemas import (
    AppealListResponse,
    AppealResponse,
    RespondAppealRequest,
    SubmitAppealRequest,
)


router = APIRouter(prefix="/v1/communities/{community_id}/appeals", tags=["appeals"])


@router.post(
    "",
    response_model=AppealResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit appeal",
)
async def submit_appeal(
    community_id: UUID,
    data: SubmitAppealRequest,
    service: AppealServiceDep,
    user: CurrentUser,
) -> AppealResponse:
    """Appeal a ban. Only one appeal may be pending per community."""
    appeal = unwrap(
        await service.submit_appeal(community_id, user.username, data.description)
    )
    return AppealResponse.from_appeal(appeal)


@router.get(
    "",
    response_model=AppealListResponse,
    summary="List pending appeals",
)
async def list_appeals(
    community_id: UUID,
    service: AppealServiceDep,
    _moderator: CommunityModerator,
) -> AppealListResponse:
    appeals = unwrap(await service.list_appeals(community_id))
    return AppealListResponse(
        items=[AppealResponse.from_appeal(a) for a in appeals],
        total=len(appeals),
    )


@router.post(
    "/{appeal_id}/response",
    response_model=CommunityResponse,
    summary="Approve or deny appeal",
)
async def respond_to_appeal(
    community_id: UUID,
    appeal_id: UUID,
    data: RespondAppealRequest,
    service: AppealServiceDep,
    user: CurrentUser,
) -> CommunityResponse:
    """Approve (lifting ban and mute) or deny an appeal. Processed at most once."""
    community = unwrap(
        await service.respond_to_appeal(
            community_id, appeal_id, data.decision, user.username
        )
    )
    return CommunityResponse.from_community(community)
