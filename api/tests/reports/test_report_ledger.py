"""Tests for the Cassandra-backed report ledger."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock, patch
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from src.core.transaction import transaction_factory
from src.reports.ledger import ReportLedger
from src.reports.models import ReportCategory, ReportStatus, create_report


def prepared(cql: str) -> Mock:
    statement = Mock()
    statement.query_string = cql
    return statement


@pytest.fixture
def mock_session():
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=prepared)
    session.aexecute = AsyncMock()
    return session


@pytest.fixture
def mock_batch():
    with patch("src.core.transaction.BatchStatement") as batch_cls:
        yield batch_cls


@pytest.fixture
def ledger(mock_session) -> ReportLedger:
    return ReportLedger(mock_session, "agora_test", transaction_factory(mock_session))


@pytest.fixture
def report():
    return create_report(
        community_id=uuid4(),
        reported_user="bob",
        reporter_user="alice",
        reason="Spam",
        category=ReportCategory.SPAM,
    )


class TestCreate:
    @pytest.mark.asyncio
    async def test_writes_every_table_in_one_batch(
        self, ledger, mock_session, mock_batch, report
    ) -> None:
        mock_session.aexecute.side_effect = [Mock(was_applied=True), Mock()]

        result = await ledger.create(report)

        assert result is report
        batch = mock_batch.return_value
        tables = [c.args[0].query_string for c in batch.add.call_args_list]
        assert len(tables) == 3
        assert any(".reports_by_target" in cql for cql in tables)
        assert any(".reports_by_community" in cql for cql in tables)

    @pytest.mark.asyncio
    async def test_duplicate_triple_returns_none(
        self, ledger, mock_session, mock_batch, report
    ) -> None:
        mock_session.aexecute.return_value = Mock(was_applied=False)

        assert await ledger.create(report) is None
        mock_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_batch_releases_guard(
        self, ledger, mock_session, mock_batch, report
    ) -> None:
        mock_session.aexecute.side_effect = [
            Mock(was_applied=True),
            RuntimeError("batch failed"),
            Mock(),
        ]

        with pytest.raises(RuntimeError, match="batch failed"):
            await ledger.create(report)

        release = mock_session.aexecute.await_args_list[-1]
        assert "DELETE FROM agora_test.report_guards" in release.args[0].query_string
        assert release.args[1] == [report.community_id, "bob", "alice"]


class TestReads:
    @pytest.mark.asyncio
    async def test_window_query_passes_cutoff(self, ledger, mock_session) -> None:
        since = datetime.now(UTC) - timedelta(days=7)
        community_id = uuid4()
        mock_session.aexecute.return_value = []

        await ledger.for_target(community_id, "bob", since=since)

        statement, params = mock_session.aexecute.await_args.args
        assert "created_at >= ?" in statement.query_string
        assert params == [community_id, "bob", since]

    @pytest.mark.asyncio
    async def test_rows_become_utc_reports(self, ledger, mock_session, report) -> None:
        naive = datetime(2024, 6, 1, 12, 0)
        row = Mock(**{**report.to_dict(), "created_at": naive, "reviewed_at": None})
        row.report_id = report.report_id
        row.community_id = report.community_id
        mock_session.aexecute.return_value = [row]

        reports = await ledger.pending_for_community(report.community_id)

        assert reports[0].created_at.tzinfo is UTC
        assert reports[0].status == ReportStatus.PENDING


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_stamps_every_copy(
        self, ledger, mock_session, mock_batch, report
    ) -> None:
        updated = await ledger.update_status(report, ReportStatus.REVIEWED, "mod1")

        assert mock_batch.return_value.add.call_count == 3
        assert updated.status == ReportStatus.REVIEWED
        assert updated.reviewed_by == "mod1"
        assert updated.reviewed_at is not None
