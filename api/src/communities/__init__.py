"""Community membership and moderation module.

Provides:
- Community role sets (participants, moderators, banned, muted)
- Moderation actions (membership, moderator, ban and mute toggles)
- Announcements to every participant
- Cached role lookups for route guards

Note: Router is not exported here to avoid circular imports.
Import directly from src.communities.router when needed.
"""

from .models import (
    COMMUNITIES_TABLES_CQL,
    Community,
    CommunityRole,
    Visibility,
)
from .service import CommunityService
from .store import MembershipStore


__all__ = [
    "COMMUNITIES_TABLES_CQL",
    "Community",
    "CommunityRole",
    "CommunityService",
    "MembershipStore",
    "Visibility",
]
