"""Community API endpoints.

Provides routes for:
- Community lifecycle (create, list, get, delete)
- Moderation toggles (membership, moderators, bans, mutes)
- Announcements
- Role and posting-permission lookups
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import CurrentUser, OptionalUser
from src.core.errors import unwrap

from .dependencies import CommunityServiceDep
from .schemas import (
    AnnouncementRequest,
    AnnouncementResponse,
    CommunityListResponse,
    CommunityResponse,
    CreateCommunityRequest,
    MessageResponse,
    PostingPermissionResponse,
    RoleResponse,
    TargetUserRequest,
)


router = APIRouter(prefix="/v1/communities", tags=["communities"])


# ==============================================================================
# Community Lifecycle
# ==============================================================================


@router.post(
    "",
    response_model=CommunityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create community",
)
async def create_community(
    data: CreateCommunityRequest,
    service: CommunityServiceDep,
    user: CurrentUser,
) -> CommunityResponse:
    """Create a community with the caller as admin."""
    community = unwrap(
        await service.create_community(
            name=data.name,
            admin=user.username,
            description=data.description,
            visibility=data.visibility,
            participants=data.participants,
            moderators=data.moderators,
        )
    )
    return CommunityResponse.from_community(community)


@router.get(
    "",
    response_model=CommunityListResponse,
    summary="List communities",
)
async def list_communities(
    service: CommunityServiceDep,
    user: OptionalUser,
) -> CommunityListResponse:
    """List communities. Those that banned the caller are hidden."""
    communities = unwrap(
        await service.list_communities(viewer=user.username if user else None)
    )
    return CommunityListResponse(
        items=[CommunityResponse.from_community(c) for c in communities]
    )


@router.get(
    "/{community_id}",
    response_model=CommunityResponse,
    summary="Get community",
)
async def get_community(
    community_id: UUID,
    service: CommunityServiceDep,
    user: OptionalUser,
) -> CommunityResponse:
    community = unwrap(
        await service.get_community(
            community_id, viewer=user.username if user else None
        )
    )
    return CommunityResponse.from_community(community)


@router.delete(
    "/{community_id}",
    response_model=MessageResponse,
    summary="Delete community",
)
async def delete_community(
    community_id: UUID,
    service: CommunityServiceDep,
    user: CurrentUser,
) -> MessageResponse:
    """Delete a community. Admin only."""
    community = unwrap(await service.delete_community(community_id, user.username))
    return MessageResponse(message=f"Community {community.name} deleted")


# ==============================================================================
# Moderation Toggles
# ==============================================================================


@router.post(
    "/{community_id}/membership",
    response_model=CommunityResponse,
    summary="Join or leave community",
)
async def toggle_membership(
    community_id: UUID,
    service: CommunityServiceDep,
    user: CurrentUser,
) -> CommunityResponse:
    community = unwrap(await service.toggle_membership(community_id, user.username))
    return CommunityResponse.from_community(community)


@router.post(
    "/{community_id}/moderators",
    response_model=CommunityResponse,
    summary="Grant or revoke moderator rights",
)
async def toggle_moderator(
    community_id: UUID,
    data: TargetUserRequest,
    service: CommunityServiceDep,
    user: CurrentUser,
) -> CommunityResponse:
    community = unwrap(
        await service.toggle_moderator(community_id, user.username, data.username)
    )
    return CommunityResponse.from_community(community)


@router.post(
    "/{community_id}/bans",
    response_model=CommunityResponse,
    summary="Ban or unban a user",
)
async def toggle_ban(
    community_id: UUID,
    data: TargetUserRequest,
    service: CommunityServiceDep,
    user: CurrentUser,
) -> CommunityResponse:
    community = unwrap(
        await service.toggle_ban_user(community_id, user.username, data.username)
    )
    return CommunityResponse.from_community(community)


@router.post(
    "/{community_id}/mutes",
    response_model=CommunityResponse,
    summary="Mute or unmute a user",
)
async def toggle_mute(
    community_id: UUID,
    data: TargetUserRequest,
    service: CommunityServiceDep,
    user: CurrentUser,
) -> CommunityResponse:
    community = unwrap(
        await service.toggle_mute_user(community_id, user.username, data.username)
    )
    return CommunityResponse.from_community(community)


@router.post(
    "/{community_id}/announcements",
    response_model=AnnouncementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send announcement to all participants",
)
async def send_announcement(
    community_id: UUID,
    data: AnnouncementRequest,
    service: CommunityServiceDep,
    user: CurrentUser,
) -> AnnouncementResponse:
    notification = unwrap(
        await service.send_announcement(
            community_id, user.username, data.title, data.msg
        )
    )
    return AnnouncementResponse(
        notification_id=notification.notification_id,
        title=notification.title,
        msg=notification.msg,
    )


# ==============================================================================
# Lookups
# ==============================================================================


@router.get(
    "/{community_id}/roles/{username}",
    response_model=RoleResponse,
    summary="Get role of a user",
)
async def get_community_role(
    community_id: UUID,
    username: str,
    service: CommunityServiceDep,
    _user: CurrentUser,
) -> RoleResponse:
    role = unwrap(await service.get_community_role(community_id, username))
    return RoleResponse(community_id=community_id, username=username, role=role)


@router.get(
    "/{community_id}/can-post",
    response_model=PostingPermissionResponse,
    summary="Check posting permission of the caller",
)
async def can_post(
    community_id: UUID,
    service: CommunityServiceDep,
    user: CurrentUser,
) -> PostingPermissionResponse:
    allowed = unwrap(await service.is_allowed_to_post(community_id, user.username))
    return PostingPermissionResponse(
        community_id=community_id, username=user.username, allowed=allowed
    )
