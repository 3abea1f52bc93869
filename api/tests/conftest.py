"""Shared fixtures and in-memory stores for the test suite.

The fakes implement the same public methods as the Cassandra-backed stores.
Staged transaction writes are callables applied on commit, and compensations
are callables run on abort, so service tests observe all-or-nothing behavior
without a database.
"""

import asyncio
import copy
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.appeals.models import Appeal
from src.appeals.service import AppealService
from src.auth.security import issue_access_token
from src.communities.models import Community, create_community
from src.communities.roles import RoleCache
from src.communities.service import CommunityService
from src.main import create_app
from src.notifications.connections import ConnectionRegistry
from src.notifications.fanout import NotificationFanout
from src.notifications.models import Notification
from src.reports.auto_ban import AutoBanEvaluator
from src.reports.models import Report, ReportStatus
from src.reports.service import ReportService


# ==============================================================================
# Transactions
# ==============================================================================


class FakeTransaction:
    """Transaction whose staged statements are zero-argument callables."""

    def __init__(self) -> None:
        self.staged: list = []
        self.compensations: list = []

    def add(self, statement, params=(), undo=None) -> None:
        self.staged.append(statement)

    def on_abort(self, statement, params=()) -> None:
        self.compensations.append(statement)

    @property
    def size(self) -> int:
        return len(self.staged)


class FakeTransactions:
    """Transaction factory recording what was committed and aborted."""

    def __init__(self) -> None:
        self.committed: list[FakeTransaction] = []
        self.aborted: list[FakeTransaction] = []
        self.fail_on_commit = False

    @asynccontextmanager
    async def __call__(self):
        tx = FakeTransaction()
        try:
            yield tx
            if self.fail_on_commit:
                msg = "batch write timed out"
                raise RuntimeError(msg)
            for apply in tx.staged:
                apply()
            self.committed.append(tx)
        except Exception:
            for compensate in reversed(tx.compensations):
                compensate()
            self.aborted.append(tx)
            raise


# ==============================================================================
# Stores
# ==============================================================================


class FakeMembershipStore:
    """In-memory community rows with set-based atomic mutations."""

    def __init__(self) -> None:
        self.rows: dict[UUID, Community] = {}
        self.names: dict[str, UUID] = {}
        self.fail_with: Exception | None = None
        self.drop_updates = False

    def put(self, community: Community) -> Community:
        """Seed a community without going through the service."""
        self.rows[community.community_id] = copy.deepcopy(community)
        self.names[community.name] = community.community_id
        return community

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _mutate(self, community_id: UUID, change) -> Community | None:
        self._check()
        row = self.rows.get(community_id)
        if row is None or self.drop_updates:
            return None
        change(row)
        row.updated_at = datetime.now(UTC)
        return copy.deepcopy(row)

    async def insert(self, community: Community) -> Community | None:
        self._check()
        if community.name in self.names:
            return None
        return self.put(community)

    async def get(self, community_id: UUID) -> Community | None:
        self._check()
        row = self.rows.get(community_id)
        return copy.deepcopy(row) if row else None

    async def list_all(self) -> list[Community]:
        self._check()
        return [copy.deepcopy(c) for c in self.rows.values()]

    async def communities_for_member(self, username: str) -> list[Community]:
        self._check()
        return [
            copy.deepcopy(c) for c in self.rows.values() if username in c.participants
        ]

    async def delete(self, community: Community) -> bool:
        self._check()
        if self.rows.pop(community.community_id, None) is None:
            return False
        self.names.pop(community.name, None)
        return True

    async def add_participant(self, community_id, username):
        return self._mutate(community_id, lambda c: c.participants.add(username))

    async def remove_participant(self, community_id, username):
        def change(c: Community) -> None:
            c.participants.discard(username)
            c.moderators.discard(username)

        return self._mutate(community_id, change)

    async def add_moderator(self, community_id, username):
        return self._mutate(community_id, lambda c: c.moderators.add(username))

    async def remove_moderator(self, community_id, username):
        return self._mutate(community_id, lambda c: c.moderators.discard(username))

    async def ban(self, community_id, username):
        def change(c: Community) -> None:
            c.banned.add(username)
            c.participants.discard(username)
            c.moderators.discard(username)

        return self._mutate(community_id, change)

    async def unban(self, community_id, username):
        return self._mutate(community_id, lambda c: c.banned.discard(username))

    async def mute(self, community_id, username):
        return self._mutate(community_id, lambda c: c.muted.add(username))

    async def unmute(self, community_id, username):
        return self._mutate(community_id, lambda c: c.muted.discard(username))

    async def lift_ban(self, community_id, username, appeal_id):
        def change(c: Community) -> None:
            c.banned.discard(username)
            c.muted.discard(username)
            c.appeals = [a for a in c.appeals if a != appeal_id]

        return self._mutate(community_id, change)

    async def remove_appeal(self, community_id, appeal_id):
        def change(c: Community) -> None:
            c.appeals = [a for a in c.appeals if a != appeal_id]

        return self._mutate(community_id, change)

    def stage_append_appeal(self, tx, community_id, appeal_id) -> None:
        def apply() -> None:
            row = self.rows.get(community_id)
            if row is not None:
                row.appeals.append(appeal_id)

        tx.add(apply)


class FakeReportLedger:
    """In-memory report ledger with the per-triple uniqueness guard."""

    def __init__(self) -> None:
        self.reports: dict[UUID, Report] = {}
        self.guards: set[tuple[UUID, str, str]] = set()

    async def create(self, report: Report) -> Report | None:
        key = (report.community_id, report.reported_user, report.reporter_user)
        if key in self.guards:
            return None
        self.guards.add(key)
        self.reports[report.report_id] = copy.deepcopy(report)
        return report

    async def update_status(self, report, status, reviewed_by):
        stored = self.reports[report.report_id]
        stored.status = status
        stored.reviewed_by = reviewed_by
        stored.reviewed_at = datetime.now(UTC)
        return copy.deepcopy(stored)

    async def get(self, report_id: UUID) -> Report | None:
        report = self.reports.get(report_id)
        return copy.deepcopy(report) if report else None

    async def for_target(self, community_id, reported_user, since=None):
        found = [
            copy.deepcopy(r)
            for r in self.reports.values()
            if r.community_id == community_id
            and r.reported_user == reported_user
            and (since is None or r.created_at >= since)
        ]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    async def pending_for_community(self, community_id):
        return [
            copy.deepcopy(r)
            for r in self.reports.values()
            if r.community_id == community_id and r.status == ReportStatus.PENDING
        ]


class FakeAppealStore:
    """In-memory appeals with a conditional-delete claim."""

    def __init__(self) -> None:
        self.appeals: dict[UUID, Appeal] = {}
        self.guards: dict[tuple[UUID, str], UUID] = {}

    async def reserve(self, community_id, username, appeal_id) -> bool:
        key = (community_id, username)
        if key in self.guards:
            return False
        self.guards[key] = appeal_id
        return True

    async def release(self, community_id, username) -> None:
        self.guards.pop((community_id, username), None)

    def release_on_abort(self, tx, community_id, username) -> None:
        tx.on_abort(lambda: self.guards.pop((community_id, username), None))

    def stage_insert(self, tx, appeal: Appeal) -> None:
        tx.add(lambda: self.appeals.__setitem__(appeal.appeal_id, appeal))

    async def get(self, appeal_id):
        return self.appeals.get(appeal_id)

    async def get_many(self, appeal_ids):
        return [self.appeals[a] for a in appeal_ids if a in self.appeals]

    async def claim(self, community_id, appeal_id):
        appeal = self.appeals.get(appeal_id)
        if appeal is None or appeal.community_id != community_id:
            return None
        # Yield so concurrent responders interleave between read and delete
        await asyncio.sleep(0)
        if self.appeals.pop(appeal_id, None) is None:
            return None
        await self.release(community_id, appeal.username)
        return appeal


class FakeNotificationStore:
    """In-memory notifications and inboxes."""

    def __init__(self) -> None:
        self.notifications: dict[UUID, Notification] = {}
        self.inboxes: dict[str, list[Notification]] = defaultdict(list)
        self.invalidated: list[str] = []
        self.fail_with: Exception | None = None

    async def create(self, notification: Notification) -> Notification:
        if self.fail_with is not None:
            raise self.fail_with
        self.notifications[notification.notification_id] = notification
        return notification

    async def attach_to_user(self, username, notification) -> None:
        self.inboxes[username].append(notification)

    def stage_create(self, tx, notification) -> None:
        tx.add(
            lambda: self.notifications.__setitem__(
                notification.notification_id, notification
            )
        )

    def stage_attach(self, tx, username, notification) -> None:
        tx.add(lambda: self.inboxes[username].append(notification))

    async def invalidate_unread(self, username) -> None:
        self.invalidated.append(username)

    def types_for(self, username: str) -> list[str]:
        return [n.type.value for n in self.inboxes[username]]


class FakeSocket:
    """WebSocket stand-in recording what was pushed."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict] = []
        self.fail = fail

    async def send_json(self, data, mode: str = "text") -> None:
        if self.fail:
            msg = "socket closed"
            raise ConnectionError(msg)
        self.sent.append(data)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def transactions() -> FakeTransactions:
    return FakeTransactions()


@pytest.fixture
def membership() -> FakeMembershipStore:
    return FakeMembershipStore()


@pytest.fixture
def ledger() -> FakeReportLedger:
    return FakeReportLedger()


@pytest.fixture
def appeal_store() -> FakeAppealStore:
    return FakeAppealStore()


@pytest.fixture
def notification_store() -> FakeNotificationStore:
    return FakeNotificationStore()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def fanout(notification_store, registry) -> NotificationFanout:
    return NotificationFanout(notification_store, registry)


@pytest.fixture
def role_cache(membership) -> RoleCache:
    return RoleCache(membership)


@pytest.fixture
def community_service(membership, fanout, transactions) -> CommunityService:
    return CommunityService(membership, fanout, transactions)


@pytest.fixture
def evaluator(membership, ledger, fanout) -> AutoBanEvaluator:
    return AutoBanEvaluator(membership, ledger, fanout, threshold=5, window_days=7)


@pytest.fixture
def report_service(ledger, membership, evaluator) -> ReportService:
    return ReportService(ledger, membership, evaluator)


@pytest.fixture
def appeal_service(appeal_store, membership, fanout, transactions) -> AppealService:
    return AppealService(appeal_store, membership, fanout, transactions)


@pytest.fixture
def community(membership) -> Community:
    """Community 'c1': admin, mod1 and mod2 moderate, alice/bob/carol join."""
    return membership.put(
        create_community(
            name="c1",
            admin="admin",
            participants=["mod1", "mod2", "alice", "bob", "carol"],
            moderators=["mod1", "mod2"],
        )
    )


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def client() -> TestClient:
    """Client for an app whose lifespan (database bootstrap) is not run."""
    return TestClient(create_app())


@pytest.fixture
def api_app(
    membership,
    role_cache,
    community_service,
    report_service,
    appeal_service,
    registry,
) -> FastAPI:
    """App with in-memory services installed on its state."""
    app = create_app()
    app.state.connection_registry = registry
    app.state.role_cache = role_cache
    app.state.community_service = community_service
    app.state.report_service = report_service
    app.state.appeal_service = appeal_service
    return app


@pytest.fixture
def api_client(api_app) -> TestClient:
    return TestClient(api_app)


@pytest.fixture
def auth_headers():
    """Build a Bearer header for a username."""

    def build(username: str) -> dict[str, str]:
        token = issue_access_token(username)
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def live_socket() -> FakeSocket:
    return FakeSocket()


@pytest.fixture
def dead_socket() -> FakeSocket:
    return FakeSocket(fail=True)
