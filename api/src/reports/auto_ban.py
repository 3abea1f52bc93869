"""Auto-ban evaluator.

Counts the distinct users who reported someone in a community during a
sliding window and bans the reported user once the count reaches the
threshold. Repeat reports from one reporter count once, so a single hostile
user cannot force a ban. Admins and moderators are never auto-banned.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from src.communities.directory import MemberDirectory
from src.communities.models import Community
from src.communities.roles import RoleCache
from src.communities.store import MembershipStore
from src.core.best_effort import best_effort
from src.core.logging import get_logger
from src.notifications.fanout import NotificationFanout
from src.notifications.models import (
    create_auto_ban_notification,
    create_auto_ban_report_notification,
)

from .ledger import ReportLedger
from .models import Report, ReportStatus


logger = get_logger(__name__)


# Outcome reasons when no ban is applied
BELOW_THRESHOLD = "below_threshold"
ALREADY_BANNED = "already_banned"
PROTECTED_ROLE = "protected_role"
COMMUNITY_MISSING = "community_not_found"


@dataclass(frozen=True)
class AutoBanOutcome:
    """Result of an auto-ban check. Never an exception."""

    banned: bool
    report_count: int = 0
    reason: str | None = None
    error: str | None = None


def count_distinct_reporters(reports: Iterable[Report], cutoff: datetime) -> int:
    """Distinct reporters of non-dismissed reports created at or after cutoff."""
    return len(
        {
            report.reporter_user
            for report in reports
            if report.created_at >= cutoff and report.status != ReportStatus.DISMISSED
        }
    )


class AutoBanEvaluator:
    """Apply automatic bans driven by report volume."""

    def __init__(
        self,
        store: MembershipStore,
        ledger: ReportLedger,
        fanout: NotificationFanout,
        threshold: int = 5,
        window_days: int = 7,
        role_cache: RoleCache | None = None,
        directory: MemberDirectory | None = None,
    ):
        self.store = store
        self.directory = directory or MemberDirectory(store)
        self.ledger = ledger
        self.fanout = fanout
        self.threshold = threshold
        self.window_days = window_days
        self.role_cache = role_cache

    async def check_and_apply(
        self,
        community_id: UUID,
        username: str,
        now: datetime | None = None,
    ) -> AutoBanOutcome:
        """Ban ``username`` if enough distinct users reported them recently."""
        try:
            return await self._evaluate(
                community_id, username, now or datetime.now(UTC)
            )
        except Exception as e:
            logger.exception(
                "auto_ban_check_failed",
                community_id=str(community_id),
                reported_user=username,
                error=str(e),
            )
            return AutoBanOutcome(banned=False, error=str(e))

    async def _evaluate(
        self, community_id: UUID, username: str, now: datetime
    ) -> AutoBanOutcome:
        cutoff = now - timedelta(days=self.window_days)
        reports = await self.ledger.for_target(community_id, username, since=cutoff)
        report_count = count_distinct_reporters(reports, cutoff)

        if report_count < self.threshold:
            return AutoBanOutcome(
                banned=False, report_count=report_count, reason=BELOW_THRESHOLD
            )

        community = await self.store.get(community_id)
        if community is None:
            return AutoBanOutcome(
                banned=False, report_count=report_count, reason=COMMUNITY_MISSING
            )
        if community.is_banned(username):
            return AutoBanOutcome(
                banned=False, report_count=report_count, reason=ALREADY_BANNED
            )
        if username == community.admin or community.is_moderator(username):
            logger.info(
                "auto_ban_skipped_protected_role",
                community_id=str(community_id),
                reported_user=username,
                report_count=report_count,
            )
            return AutoBanOutcome(
                banned=False, report_count=report_count, reason=PROTECTED_ROLE
            )

        updated = await self.store.ban(community_id, username)
        if updated is None:
            return AutoBanOutcome(
                banned=False,
                report_count=report_count,
                error="Community update returned no document",
            )

        logger.warning(
            "auto_ban_applied",
            community_id=str(community_id),
            reported_user=username,
            report_count=report_count,
            threshold=self.threshold,
        )

        await best_effort(
            self.fanout.send_notification(
                [username], create_auto_ban_notification(updated, report_count)
            ),
            event="auto_ban_user_notification_failed",
            community_id=str(community_id),
        )
        await best_effort(
            self._notify_team(updated, username, report_count),
            event="auto_ban_team_notification_failed",
            community_id=str(community_id),
        )
        if self.role_cache is not None:
            await best_effort(
                self.role_cache.invalidate(username),
                event="role_cache_invalidation_failed",
            )

        return AutoBanOutcome(banned=True, report_count=report_count)

    async def _notify_team(
        self, community: Community, username: str, report_count: int
    ):
        team = await self.directory.find_moderation_team(community.community_id)
        return await self.fanout.send_notification(
            team,
            create_auto_ban_report_notification(
                community, username, report_count, self.window_days
            ),
        )
