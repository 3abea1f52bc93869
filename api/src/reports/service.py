"""Report service layer.

Business logic for:
- Filing a report against another member (then running the auto-ban check)
- Moderator projections of reports
- Reviewing or dismissing reports
"""

from dataclasses import dataclass
from uuid import UUID

from src.communities.store import MembershipStore
from src.core.decorators import returns_result
from src.core.logging import get_logger
from src.core.results import (
    Ok,
    Result,
    community_not_found,
    conflict,
    not_found,
    unauthorized,
    validation_failed,
)

from .auto_ban import AutoBanEvaluator, AutoBanOutcome
from .ledger import ReportLedger
from .models import Report, ReportCategory, ReportStatus, create_report


logger = get_logger(__name__)


# ==============================================================================
# Error Codes
# ==============================================================================

CANNOT_REPORT_SELF = "cannot_report_self"
MUST_BE_MEMBER = "must_be_member"
CAN_ONLY_REPORT_MEMBERS = "can_only_report_members"
ALREADY_REPORTED = "already_reported"
INVALID_REASON = "invalid_reason"
INVALID_CATEGORY = "invalid_category"
INVALID_STATUS = "invalid_status"
REPORT_NOT_FOUND = "report_not_found"
NOT_COMMUNITY_MODERATOR = "not_community_moderator"


@dataclass(frozen=True)
class ReportOutcome:
    """A created report and the auto-ban check it triggered."""

    report: Report
    auto_ban: AutoBanOutcome

    @property
    def ban_applied(self) -> bool:
        return self.auto_ban.banned


class ReportService:
    """Service for the report ledger."""

    def __init__(
        self,
        ledger: ReportLedger,
        store: MembershipStore,
        evaluator: AutoBanEvaluator,
        reason_max_length: int = 500,
    ):
        self.ledger = ledger
        self.store = store
        self.evaluator = evaluator
        self.reason_max_length = reason_max_length

    @returns_result("report_create_failed")
    async def create_report(
        self,
        community_id: UUID,
        reported_user: str,
        reporter_user: str,
        reason: str,
        category: ReportCategory | str,
    ) -> Result[ReportOutcome]:
        """File a report and run the auto-ban check synchronously."""
        if reported_user == reporter_user:
            return validation_failed(CANNOT_REPORT_SELF, "You cannot report yourself")

        reason = reason.strip()
        if not reason or len(reason) > self.reason_max_length:
            return validation_failed(
                INVALID_REASON,
                f"Reason must be between 1 and {self.reason_max_length} characters",
            )
        try:
            category = ReportCategory(category)
        except ValueError:
            return validation_failed(INVALID_CATEGORY, f"Unknown category {category!r}")

        community = await self.store.get(community_id)
        if community is None:
            return community_not_found()
        if not community.is_member(reporter_user):
            return unauthorized(
                MUST_BE_MEMBER,
                "You must be a member of this community to report users",
            )
        if not community.is_member(reported_user):
            return validation_failed(
                CAN_ONLY_REPORT_MEMBERS,
                "You can only report members of this community",
            )

        report = await self.ledger.create(
            create_report(
                community_id=community_id,
                reported_user=reported_user,
                reporter_user=reporter_user,
                reason=reason,
                category=category,
            )
        )
        if report is None:
            return conflict(
                ALREADY_REPORTED,
                "You have already reported this user in this community",
            )

        logger.info(
            "report_created",
            report_id=str(report.report_id),
            community_id=str(community_id),
            reported_user=reported_user,
            category=category.value,
        )

        outcome = await self.evaluator.check_and_apply(community_id, reported_user)
        return Ok(ReportOutcome(report=report, auto_ban=outcome))

    @returns_result("report_list_failed")
    async def get_reports_by_user(
        self, community_id: UUID, username: str
    ) -> Result[list[Report]]:
        """All reports against ``username`` in a community, newest first."""
        reports = await self.ledger.for_target(community_id, username)
        return Ok(sorted(reports, key=lambda r: r.created_at, reverse=True))

    @returns_result("report_list_failed")
    async def get_pending_reports(self, community_id: UUID) -> Result[list[Report]]:
        """Pending reports of a community, newest first."""
        reports = await self.ledger.pending_for_community(community_id)
        return Ok(sorted(reports, key=lambda r: r.created_at, reverse=True))

    @returns_result("report_update_failed")
    async def update_report_status(
        self,
        report_id: UUID,
        status: ReportStatus | str,
        reviewed_by: str,
    ) -> Result[Report]:
        """Mark a report reviewed or dismissed."""
        try:
            status = ReportStatus(status)
        except ValueError:
            return validation_failed(INVALID_STATUS, f"Unknown status {status!r}")
        if status == ReportStatus.PENDING:
            return validation_failed(
                INVALID_STATUS, "Status must be 'reviewed' or 'dismissed'"
            )

        report = await self.ledger.get(report_id)
        if report is None:
            return not_found(REPORT_NOT_FOUND, "Report not found")

        community = await self.store.get(report.community_id)
        if community is None:
            return community_not_found()
        if not community.can_moderate(reviewed_by):
            return unauthorized(
                NOT_COMMUNITY_MODERATOR,
                "Only the admin or moderators can review reports",
            )

        updated = await self.ledger.update_status(report, status, reviewed_by)
        logger.info(
            "report_reviewed",
            report_id=str(report_id),
            status=status.value,
            reviewed_by=reviewed_by,
        )
        return Ok(updated)
