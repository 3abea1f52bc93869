"""FastAPI dependencies for communities and moderation.

Provides dependency injection for:
- Community service and role cache from app state
- Moderator-only route guard
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from src.auth.dependencies import AuthenticatedUser, get_current_user
from src.core.middleware import set_community_context

from .models import CommunityRole
from .roles import RoleCache
from .service import CommunityService


MODERATION_ROLES = frozenset({CommunityRole.ADMIN, CommunityRole.MODERATOR})


def _from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not available",
        )
    return service


async def get_community_service(request: Request) -> CommunityService:
    """Get community service from app state."""
    return _from_state(request, "community_service", "Community service")


async def get_role_cache(request: Request) -> RoleCache:
    """Get role cache from app state."""
    return _from_state(request, "role_cache", "Role cache")


CommunityServiceDep = Annotated[CommunityService, Depends(get_community_service)]
RoleCacheDep = Annotated[RoleCache, Depends(get_role_cache)]


async def require_community_moderator(
    community_id: UUID,
    roles: RoleCacheDep,
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> AuthenticatedUser:
    """Allow only the admin or a moderator of ``community_id``.

    Reads the cached role map, so a freshly demoted moderator may pass until
    the entry is invalidated. Writes re-check authority in the service.
    """
    set_community_context(community_id)
    role = await roles.role_in(user.username, community_id)
    if role not in MODERATION_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized: user does not have proper permissions",
        )
    return user


CommunityModerator = Annotated[
    AuthenticatedUser, Depends(require_community_moderator)
]
