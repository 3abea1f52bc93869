"""Tests for the auto-ban evaluator."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.reports.auto_ban import (
    ALREADY_BANNED,
    BELOW_THRESHOLD,
    PROTECTED_ROLE,
    count_distinct_reporters,
)
from src.reports.models import ReportCategory, ReportStatus, create_report


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


async def file_reports(ledger, community, reported, reporters, age=timedelta(0)):
    for reporter in reporters:
        await ledger.create(
            create_report(
                community_id=community.community_id,
                reported_user=reported,
                reporter_user=reporter,
                reason="Spamming links",
                category=ReportCategory.SPAM,
                created_at=NOW - age,
            )
        )


class TestCountDistinctReporters:
    def test_counts_each_reporter_once(self, community) -> None:
        reports = [
            create_report(
                community.community_id, "bob", r, "x", ReportCategory.SPAM, NOW
            )
            for r in ["alice", "alice", "carol"]
        ]

        assert count_distinct_reporters(reports, NOW - timedelta(days=7)) == 2

    def test_ignores_dismissed_and_expired(self, community) -> None:
        expired = create_report(
            community.community_id,
            "bob",
            "alice",
            "x",
            ReportCategory.SPAM,
            NOW - timedelta(days=8),
        )
        dismissed = create_report(
            community.community_id, "bob", "carol", "x", ReportCategory.SPAM, NOW
        )
        dismissed.status = ReportStatus.DISMISSED

        cutoff = NOW - timedelta(days=7)
        assert count_distinct_reporters([expired, dismissed], cutoff) == 0


class TestAutoBan:
    @pytest.mark.asyncio
    async def test_five_distinct_reporters_ban(
        self, evaluator, ledger, membership, notification_store, community
    ) -> None:
        # Arrange
        await file_reports(
            ledger, community, "bob", ["alice", "carol", "u1", "u2", "mod1"]
        )

        # Act
        outcome = await evaluator.check_and_apply(
            community.community_id, "bob", now=NOW
        )

        # Assert
        assert outcome.banned is True
        assert outcome.report_count == 5
        row = membership.rows[community.community_id]
        assert "bob" in row.banned
        assert "bob" not in row.participants
        assert notification_store.types_for("bob") == ["ban"]
        for member in ["admin", "mod1", "mod2"]:
            assert notification_store.types_for(member) == ["report"]

    @pytest.mark.asyncio
    async def test_four_distinct_reporters_do_not_ban(
        self, evaluator, ledger, membership, community
    ) -> None:
        await file_reports(ledger, community, "bob", ["alice", "carol", "u1", "u2"])

        outcome = await evaluator.check_and_apply(
            community.community_id, "bob", now=NOW
        )

        assert outcome.banned is False
        assert outcome.report_count == 4
        assert outcome.reason == BELOW_THRESHOLD
        assert "bob" in membership.rows[community.community_id].participants

    @pytest.mark.asyncio
    async def test_report_outside_window_is_ignored(
        self, evaluator, ledger, community
    ) -> None:
        await file_reports(ledger, community, "bob", ["alice", "carol", "u1", "u2"])
        await file_reports(ledger, community, "bob", ["u3"], age=timedelta(days=8))

        outcome = await evaluator.check_and_apply(
            community.community_id, "bob", now=NOW
        )

        assert outcome.banned is False
        assert outcome.report_count == 4

    @pytest.mark.asyncio
    async def test_dismissed_reports_do_not_count(
        self, evaluator, ledger, community
    ) -> None:
        await file_reports(
            ledger, community, "bob", ["alice", "carol", "u1", "u2", "u3"]
        )
        dismissed = next(iter(ledger.reports.values()))
        dismissed.status = ReportStatus.DISMISSED

        outcome = await evaluator.check_and_apply(
            community.community_id, "bob", now=NOW
        )

        assert outcome.banned is False
        assert outcome.report_count == 4

    @pytest.mark.asyncio
    async def test_moderator_is_protected(
        self, evaluator, ledger, membership, community
    ) -> None:
        await file_reports(
            ledger, community, "mod2", ["alice", "bob", "carol", "u1", "u2"]
        )

        outcome = await evaluator.check_and_apply(
            community.community_id, "mod2", now=NOW
        )

        assert outcome.banned is False
        assert outcome.reason == PROTECTED_ROLE
        assert "mod2" not in membership.rows[community.community_id].banned

    @pytest.mark.asyncio
    async def test_already_banned_is_noop(
        self, evaluator, ledger, membership, notification_store, community
    ) -> None:
        await file_reports(
            ledger, community, "bob", ["alice", "carol", "u1", "u2", "u3"]
        )
        await membership.ban(community.community_id, "bob")

        outcome = await evaluator.check_and_apply(
            community.community_id, "bob", now=NOW
        )

        assert outcome.banned is False
        assert outcome.reason == ALREADY_BANNED
        assert notification_store.types_for("bob") == []

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self, evaluator, ledger) -> None:
        ledger.for_target = AsyncMock(side_effect=TimeoutError("read timeout"))

        outcome = await evaluator.check_and_apply(uuid4(), "bob", now=NOW)

        assert outcome.banned is False
        assert outcome.error == "read timeout"

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_ban(
        self, evaluator, ledger, membership, notification_store, community
    ) -> None:
        notification_store.fail_with = RuntimeError("notifications down")
        await file_reports(
            ledger, community, "bob", ["alice", "carol", "u1", "u2", "u3"]
        )

        outcome = await evaluator.check_and_apply(
            community.community_id, "bob", now=NOW
        )

        assert outcome.banned is True
        assert "bob" in membership.rows[community.community_id].banned
