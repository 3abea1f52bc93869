"""Community service layer.

Business logic for:
- Community lifecycle (create, get, list, delete)
- Moderation actions (membership, moderator, ban and mute toggles)
- Community announcements
- Posting permission and role lookups

Every public operation returns a tagged ``Result``. Expected conditions
(missing community, missing role) come back as ``Err`` values and storage
exceptions are converted by ``returns_result``.
"""

from collections.abc import Iterable
from uuid import UUID

from src.core.best_effort import best_effort
from src.core.decorators import returns_result
from src.core.logging import get_logger
from src.core.results import (
    Err,
    Ok,
    Result,
    community_not_found,
    conflict,
    not_found,
    unauthorized,
    update_failed,
)
from src.core.transaction import TransactionFactory
from src.notifications.fanout import NotificationFanout
from src.notifications.models import (
    Notification,
    NotificationType,
    create_ban_notification,
    create_mute_notification,
    create_notification,
)

from .models import Community, CommunityRole, Visibility, create_community
from .roles import RoleCache
from .store import MembershipStore


logger = get_logger(__name__)


# ==============================================================================
# Error Codes
# ==============================================================================

ADMIN_CANNOT_LEAVE = "admin_cannot_leave"
BANNED_FROM_COMMUNITY = "banned_from_community"
NOT_A_MEMBER = "not_a_member"
NOT_COMMUNITY_ADMIN = "not_community_admin"
NOT_COMMUNITY_MODERATOR = "not_community_moderator"
ADMIN_OR_MOD_CANNOT_BE_BANNED = "admin_or_mod_cannot_be_banned"
MOD_CANNOT_BAN_MOD = "mod_cannot_ban_mod"
ADMIN_OR_MOD_CANNOT_BE_MUTED = "admin_or_mod_cannot_be_muted"
MOD_CANNOT_MUTE_MOD = "mod_cannot_mute_mod"
COMMUNITY_NAME_TAKEN = "community_name_taken"
NO_COMMUNITY_ROLE = "no_community_role"


def authorize_moderation(
    community: Community, acting_user: str, username: str, action: str
) -> Err | None:
    """Check that ``acting_user`` may ban or mute ``username``.

    Admin and moderators may act. Nobody acts on the admin, and only the
    admin acts on moderators.
    """
    if not community.can_moderate(acting_user):
        return unauthorized(
            NOT_COMMUNITY_MODERATOR,
            "Unauthorized: user does not have proper permissions",
        )
    banning = action == "ban"
    if username == community.admin:
        return unauthorized(
            ADMIN_OR_MOD_CANNOT_BE_BANNED if banning else ADMIN_OR_MOD_CANNOT_BE_MUTED,
            f"The community admin cannot be {'banned' if banning else 'muted'}",
        )
    if acting_user != community.admin and community.is_moderator(username):
        return unauthorized(
            MOD_CANNOT_BAN_MOD if banning else MOD_CANNOT_MUTE_MOD,
            f"Moderators cannot {action} other moderators",
        )
    return None


class CommunityService:
    """Service for communities and moderation actions."""

    def __init__(
        self,
        store: MembershipStore,
        fanout: NotificationFanout,
        transaction_factory: TransactionFactory,
        role_cache: RoleCache | None = None,
    ):
        self.store = store
        self.fanout = fanout
        self.transaction_factory = transaction_factory
        self.role_cache = role_cache

    async def _load(self, community_id: UUID) -> Result[Community]:
        community = await self.store.get(community_id)
        if community is None:
            return community_not_found()
        return Ok(community)

    async def _invalidate_roles(self, *usernames: str) -> None:
        """Best-effort: a stale cache entry expires on its own."""
        if self.role_cache is None:
            return
        await best_effort(
            self.role_cache.invalidate(*usernames),
            event="role_cache_invalidation_failed",
            usernames=list(usernames),
        )

    async def _notify(
        self, recipients: Iterable[str], notification: Notification
    ) -> None:
        """Best-effort: a failed notification never undoes the action."""
        await best_effort(
            self.fanout.send_notification(recipients, notification),
            event="moderation_notification_failed",
            type=notification.type.value,
            context_id=str(notification.context_id),
        )

    # ==========================================================================
    # Community Lifecycle
    # ==========================================================================

    @returns_result("community_get_failed")
    async def get_community(
        self, community_id: UUID, viewer: str | None = None
    ) -> Result[Community]:
        """Get a community. A viewer banned from it is refused."""
        loaded = await self._load(community_id)
        if isinstance(loaded, Err):
            return loaded
        if viewer is not None and loaded.value.is_banned(viewer):
            return unauthorized(
                BANNED_FROM_COMMUNITY, "You are banned from this community"
            )
        return loaded

    @returns_result("community_list_failed")
    async def list_communities(
        self, viewer: str | None = None
    ) -> Result[list[Community]]:
        """List communities, hiding those that banned the viewer."""
        communities = await self.store.list_all()
        if viewer is not None:
            communities = [c for c in communities if not c.is_banned(viewer)]
        return Ok(sorted(communities, key=lambda c: c.name.lower()))

    @returns_result("community_create_failed")
    async def create_community(
        self,
        name: str,
        admin: str,
        description: str = "",
        visibility: Visibility = Visibility.PUBLIC,
        participants: list[str] | None = None,
        moderators: list[str] | None = None,
    ) -> Result[Community]:
        """Create a community. The admin is always a participant."""
        community = create_community(
            name=name,
            admin=admin,
            description=description,
            visibility=visibility,
            participants=participants,
            moderators=moderators,
        )
        inserted = await self.store.insert(community)
        if inserted is None:
            return conflict(
                COMMUNITY_NAME_TAKEN, f"A community named {name!r} already exists"
            )

        await self._invalidate_roles(*community.participants)
        logger.info(
            "community_created",
            community_id=str(community.community_id),
            admin=admin,
            participants=len(community.participants),
        )
        return Ok(inserted)

    @returns_result("community_delete_failed")
    async def delete_community(
        self, community_id: UUID, username: str
    ) -> Result[Community]:
        """Hard delete. Reports and appeals referencing it become orphans."""
        loaded = await self._load(community_id)
        if isinstance(loaded, Err):
            return loaded
        community = loaded.value

        if community.admin != username:
            return unauthorized(
                NOT_COMMUNITY_ADMIN, "Only the community admin can delete it"
            )

        if not await self.store.delete(community):
            return community_not_found()

        await self._invalidate_roles(*community.participants)
        logger.info("community_deleted", community_id=str(community_id))
        return Ok(community)

    # ==========================================================================
    # Moderation Actions
    # ==========================================================================

    @returns_result("toggle_membership_failed")
    async def toggle_membership(
        self, community_id: UUID, username: str
    ) -> Result[Community]:
        """Join when not a member, leave when a member."""
        loaded = await self._load(community_id)
        if isinstance(loaded, Err):
            return loaded
        community = loaded.value

        if community.is_member(username):
            if username == community.admin:
                return conflict(
                    ADMIN_CANNOT_LEAVE, "The community admin cannot leave the community"
                )
            updated = await self.store.remove_participant(community_id, username)
            event = "community_member_left"
        else:
            if community.is_banned(username):
                return unauthorized(
                    BANNED_FROM_COMMUNITY, "You are banned from this community"
                )
            updated = await self.store.add_participant(community_id, username)
            event = "community_member_joined"

        if updated is None:
            return update_failed()

        await self._invalidate_roles(username)
        logger.info(event, community_id=str(community_id), member=username)
        return Ok(updated)

    @returns_result("toggle_moderator_failed")
    async def toggle_moderator(
        self, community_id: UUID, acting_admin: str, username: str
    ) -> Result[Community]:
        """Grant or revoke moderator rights. Admin only."""
        loaded = await self._load(community_id)
        if isinstance(loaded, Err):
            return loaded
        community = loaded.value

        if community.admin != acting_admin:
            return unauthorized(
                NOT_COMMUNITY_ADMIN, "Only the community admin can manage moderators"
            )
        if not community.is_member(username):
            return conflict(NOT_A_MEMBER, f"{username} is not a member")

        if community.is_moderator(username):
            updated = await self.store.remove_moderator(community_id, username)
            event = "community_moderator_removed"
        else:
            updated = await self.store.add_moderator(community_id, username)
            event = "community_moderator_added"

        if updated is None:
            return update_failed()

        await self._invalidate_roles(username)
        logger.info(event, community_id=str(community_id), moderator=username)
        return Ok(updated)

    @returns_result("toggle_ban_failed")
    async def toggle_ban_user(
        self, community_id: UUID, acting_user: str, username: str
    ) -> Result[Community]:
        """Ban (dropping membership and moderator rights) or unban."""
        loaded = await self._load(community_id)
        if isinstance(loaded, Err):
            return loaded
        community = loaded.value

        denied = authorize_moderation(community, acting_user, username, "ban")
        if denied is not None:
            return denied

        if community.is_banned(username):
            updated = await self.store.unban(community_id, username)
            if updated is None:
                return update_failed()
            logger.info(
                "community_member_unbanned",
                community_id=str(community_id),
                member=username,
                by=acting_user,
            )
        else:
            updated = await self.store.ban(community_id, username)
            if updated is None:
                return update_failed()
            logger.info(
                "community_member_banned",
                community_id=str(community_id),
                member=username,
                by=acting_user,
            )
            notification = create_ban_notification(updated, acting_user)
            await self._notify([username], notification)

        await self._invalidate_roles(username)
        return Ok(updated)

    @returns_result("toggle_mute_failed")
    async def toggle_mute_user(
        self, community_id: UUID, acting_user: str, username: str
    ) -> Result[Community]:
        """Mute or unmute. Notifies on mute only."""
        loaded = await self._load(community_id)
        if isinstance(loaded, Err):
            return loaded
        community = loaded.value

        denied = authorize_moderation(community, acting_user, username, "mute")
        if denied is not None:
            return denied

        if community.is_muted(username):
            updated = await self.store.unmute(community_id, username)
            if updated is None:
                return update_failed()
            logger.info(
                "community_member_unmuted",
                community_id=str(community_id),
                member=username,
                by=acting_user,
            )
        else:
            updated = await self.store.mute(community_id, username)
            if updated is None:
                return update_failed()
            logger.info(
                "community_member_muted",
                community_id=str(community_id),
                member=username,
                by=acting_user,
            )
            await self._notify(
                [username], create_mute_notification(updated, acting_user)
            )

        return Ok(updated)

    # ==========================================================================
    # Announcements and Permissions
    # ==========================================================================

    @returns_result("community_announcement_failed")
    async def send_announcement(
        self, community_id: UUID, acting_user: str, title: str, msg: str
    ) -> Result[Notification]:
        """Notify every participant. Persisted in one transaction."""
        loaded = await self._load(community_id)
        if isinstance(loaded, Err):
            return loaded
        community = loaded.value

        if not community.can_moderate(acting_user):
            return unauthorized(
                NOT_COMMUNITY_MODERATOR,
                "Only the admin or moderators can send announcements",
            )

        notification = create_notification(
            title=title,
            msg=msg,
            notification_type=NotificationType.COMMUNITY,
            sender=acting_user,
            context_id=community_id,
        )
        # The sender keeps a copy in their own inbox
        recipients = sorted(community.participants)

        async with self.transaction_factory() as tx:
            recipients = self.fanout.stage(tx, recipients, notification)

        await best_effort(
            self.fanout.after_commit(recipients, notification),
            event="announcement_live_delivery_failed",
            community_id=str(community_id),
        )
        logger.info(
            "community_announcement_sent",
            community_id=str(community_id),
            recipients=len(recipients),
        )
        return Ok(notification)

    @returns_result("community_role_lookup_failed")
    async def get_community_role(
        self, community_id: UUID, username: str
    ) -> Result[CommunityRole]:
        loaded = await self._load(community_id)
        if isinstance(loaded, Err):
            return loaded

        role = loaded.value.role_of(username)
        if role is None:
            return not_found(NO_COMMUNITY_ROLE, f"{username} has no role here")
        return Ok(role)

    @returns_result("posting_check_failed")
    async def is_allowed_to_post(
        self, community_id: UUID, username: str
    ) -> Result[bool]:
        """Members may post unless muted or banned."""
        loaded = await self._load(community_id)
        if isinstance(loaded, Err):
            return loaded

        community = loaded.value
        return Ok(
            community.is_member(username)
            and not community.is_muted(username)
            and not community.is_banned(username)
        )
