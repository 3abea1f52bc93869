"""Appeal service layer.

Business logic for:
- Submitting an appeal (banned users, one pending appeal per community)
- Responding to an appeal (approve lifts ban and mute, deny dismisses it)
- Listing pending appeals of a community
"""

from uuid import UUID

from src.communities.models import Community
from src.communities.directory import MemberDirectory
from src.communities.roles import RoleCache
from src.communities.store import MembershipStore
from src.core.best_effort import best_effort
from src.core.decorators import returns_result
from src.core.logging import get_logger
from src.core.results import (
    Ok,
    Result,
    community_not_found,
    conflict,
    not_found,
    unauthorized,
    update_failed,
    validation_failed,
)
from src.core.transaction import TransactionFactory
from src.notifications.fanout import NotificationFanout
from src.notifications.models import (
    create_appeal_notification,
    create_unban_notification,
)

from .models import Appeal, AppealDecision, create_appeal
from .store import AppealStore


logger = get_logger(__name__)


# ==============================================================================
# Error Codes
# ==============================================================================

NOT_BANNED = "not_banned"
APPEAL_ALREADY_PENDING = "appeal_already_pending"
APPEAL_NOT_FOUND = "appeal_not_found"
INVALID_DESCRIPTION = "invalid_description"
INVALID_DECISION = "invalid_decision"
NOT_COMMUNITY_MODERATOR = "not_community_moderator"


class AppealService:
    """Service for the appeal workflow."""

    def __init__(
        self,
        appeals: AppealStore,
        store: MembershipStore,
        fanout: NotificationFanout,
        transaction_factory: TransactionFactory,
        role_cache: RoleCache | None = None,
        description_max_length: int = 1000,
        directory: MemberDirectory | None = None,
    ):
        self.appeals = appeals
        self.store = store
        self.directory = directory or MemberDirectory(store)
        self.fanout = fanout
        self.transaction_factory = transaction_factory
        self.role_cache = role_cache
        self.description_max_length = description_max_length

    @returns_result("appeal_submit_failed")
    async def submit_appeal(
        self, community_id: UUID, username: str, description: str
    ) -> Result[Appeal]:
        """Record an appeal and notify the moderation team atomically."""
        description = description.strip()
        if not description or len(description) > self.description_max_length:
            return validation_failed(
                INVALID_DESCRIPTION,
                "Description must be between 1 and "
                f"{self.description_max_length} characters",
            )

        community = await self.store.get(community_id)
        if community is None:
            return community_not_found()
        if not community.is_banned(username):
            return conflict(NOT_BANNED, "Only banned users can submit an appeal")

        team = await self.directory.find_moderation_team(community_id)
        appeal = create_appeal(community_id, username, description)
        if not await self.appeals.reserve(community_id, username, appeal.appeal_id):
            return conflict(
                APPEAL_ALREADY_PENDING,
                "You already have a pending appeal in this community",
            )

        notification = create_appeal_notification(
            community, username, appeal.appeal_id
        )
        async with self.transaction_factory() as tx:
            self.appeals.release_on_abort(tx, community_id, username)
            self.appeals.stage_insert(tx, appeal)
            self.store.stage_append_appeal(tx, community_id, appeal.appeal_id)
            recipients = self.fanout.stage(tx, team, notification)

        await best_effort(
            self.fanout.after_commit(recipients, notification),
            event="appeal_live_delivery_failed",
            community_id=str(community_id),
        )
        logger.info(
            "appeal_submitted",
            appeal_id=str(appeal.appeal_id),
            community_id=str(community_id),
            appellant=username,
        )
        return Ok(appeal)

    @returns_result("appeal_response_failed")
    async def respond_to_appeal(
        self,
        community_id: UUID,
        appeal_id: UUID,
        decision: AppealDecision | str,
        acting_user: str,
    ) -> Result[Community]:
        """Approve or deny an appeal. Each appeal is processed at most once."""
        try:
            decision = AppealDecision(decision)
        except ValueError:
            return validation_failed(INVALID_DECISION, f"Unknown decision {decision!r}")

        community = await self.store.get(community_id)
        if community is None:
            return community_not_found()
        if not community.can_moderate(acting_user):
            return unauthorized(
                NOT_COMMUNITY_MODERATOR,
                "Unauthorized: user does not have proper permissions",
            )

        appeal = await self.appeals.claim(community_id, appeal_id)
        if appeal is None:
            return not_found(
                APPEAL_NOT_FOUND,
                "Appeal not found or does not belong to this community",
            )

        if decision == AppealDecision.APPROVE:
            updated = await self.store.lift_ban(
                community_id, appeal.username, appeal_id
            )
        else:
            updated = await self.store.remove_appeal(community_id, appeal_id)

        if updated is None:
            return update_failed()

        logger.info(
            "appeal_resolved",
            appeal_id=str(appeal_id),
            community_id=str(community_id),
            appellant=appeal.username,
            decision=decision.value,
            by=acting_user,
        )

        if decision == AppealDecision.APPROVE:
            await best_effort(
                self.fanout.send_notification(
                    [appeal.username], create_unban_notification(updated, acting_user)
                ),
                event="appeal_decision_notification_failed",
                appeal_id=str(appeal_id),
            )
            if self.role_cache is not None:
                await best_effort(
                    self.role_cache.invalidate(appeal.username),
                    event="role_cache_invalidation_failed",
                )

        return Ok(updated)

    @returns_result("appeal_list_failed")
    async def list_appeals(self, community_id: UUID) -> Result[list[Appeal]]:
        """Pending appeals of a community. Dangling references are skipped."""
        community = await self.store.get(community_id)
        if community is None:
            return community_not_found()
        return Ok(await self.appeals.get_many(community.appeals))
