# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Notification store.

Persistence for:
- Creating a notification once and attaching it to recipients' inboxes
- Staging the same writes inside a caller's transaction
- Listing a user's inbox with cursor pagination
- Marking inbox entries as read and tracking unread counts
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from .models import InboxEntry, Notification
from .schemas import decode_cursor, encode_cursor


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from src.core.transaction import Transaction


# Upper bound of inbox rows scanned by read-marking operations
INBOX_SCAN_LIMIT = 1000
UNREAD_CACHE_TTL_SECONDS = 300


def unread_cache_key(username: str) -> str:
    return f"notifications:unread:{username}"


class NotificationService:
    """Service for notification persistence."""

    def __init__(self, session: "Session", keyspace: str, redis: "Redis | None" = None):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (notification_id, title, msg, date_time, sender, context_id, type)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._attach_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.user_notifications
            (username, date_time, notification_id, is_read, read_at)
            VALUES (?, ?, ?, false, null)
        """)

        self._delete_notification = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.notifications WHERE notification_id = ?
        """)

        self._detach_notification = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.user_notifications
            WHERE username = ? AND date_time = ? AND notification_id = ?
        """)

        self._get_notifications_by_ids = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE notification_id IN ?
        """)

        self._get_inbox = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.user_notifications
            WHERE username = ?
            LIMIT ?
        """)

        self._get_inbox_cursor = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.user_notifications
            WHERE username = ? AND (date_time, notification_id) < (?, ?)
            LIMIT ?
        """)

        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.user_notifications
            SET is_read = true, read_at = ?
            WHERE username = ? AND date_time = ? AND notification_id = ?
        """)

    # ==========================================================================
    # Creation
    # ==========================================================================

    def _insert_params(self, notification: Notification) -> list:
        return [
            notification.notification_id,
            notification.title,
            notification.msg,
            notification.date_time,
            notification.sender,
            notification.context_id,
            notification.type.value,
        ]

    def _attach_params(self, username: str, notification: Notification) -> list:
        return [username, notification.date_time, notification.notification_id]

    async def create(self, notification: Notification) -> Notification:
        """Persist a notification row."""
        await self.session.aexecute(
            self._insert_notification, self._insert_params(notification)
        )
        return notification

    async def attach_to_user(self, username: str, notification: Notification) -> None:
        """Reference an existing notification from a user's inbox."""
        await self.session.aexecute(
            self._attach_notification, self._attach_params(username, notification)
        )
        await self.invalidate_unread(username)

    def stage_create(self, tx: "Transaction", notification: Notification) -> None:
        tx.add(
            self._insert_notification,
            self._insert_params(notification),
            undo=(self._delete_notification, [notification.notification_id]),
        )

    def stage_attach(
        self, tx: "Transaction", username: str, notification: Notification
    ) -> None:
        params = self._attach_params(username, notification)
        tx.add(
            self._attach_notification,
            params,
            undo=(self._detach_notification, params),
        )

    # ==========================================================================
    # Inbox
    # ==========================================================================

    async def list_for_user(
        self,
        username: str,
        limit: int = 20,
        cursor: str | None = None,
        unread_only: bool = False,
    ) -> tuple[list[InboxEntry], str | None]:
        """Inbox entries newest first, plus the cursor of the next page."""
        if cursor:
            # Resume strictly after the last row, ties on date_time included
            date_time, notification_id = decode_cursor(cursor)
            rows = await self.session.aexecute(
                self._get_inbox_cursor,
                [username, date_time, notification_id, limit + 1],
            )
        else:
            rows = await self.session.aexecute(self._get_inbox, [username, limit + 1])

        inbox_rows = list(rows)
        has_more = len(inbox_rows) > limit
        inbox_rows = inbox_rows[:limit]

        notifications = await self._get_notifications(
            [row.notification_id for row in inbox_rows]
        )

        entries = []
        for row in inbox_rows:
            if unread_only and row.is_read:
                continue
            notification = notifications.get(row.notification_id)
            if notification is None:
                continue
            entries.append(
                InboxEntry(
                    notification=notification,
                    is_read=bool(row.is_read),
                    read_at=row.read_at,
                )
            )

        next_cursor = None
        if has_more and inbox_rows:
            last = inbox_rows[-1]
            next_cursor = encode_cursor(last.date_time, last.notification_id)

        return entries, next_cursor

    async def _get_notifications(
        self, notification_ids: list[UUID]
    ) -> dict[UUID, Notification]:
        if not notification_ids:
            return {}
        rows = await self.session.aexecute(
            self._get_notifications_by_ids, [notification_ids]
        )
        return {row.notification_id: Notification.from_row(row) for row in rows}

    async def get_unread_count(self, username: str) -> int:
        """Get unread notification count for user."""
        if self.redis:
            cached = await self.redis.get(unread_cache_key(username))
            if cached:
                return int(cached)

        rows = await self.session.aexecute(
            self._get_inbox, [username, INBOX_SCAN_LIMIT]
        )
        count = sum(1 for row in rows if not row.is_read)

        if self.redis:
            await self.redis.setex(
                unread_cache_key(username), UNREAD_CACHE_TTL_SECONDS, str(count)
            )

        return count

    async def mark_as_read(self, username: str, notification_ids: list[UUID]) -> int:
        """Mark specific inbox entries as read. Returns how many changed."""
        wanted = set(notification_ids)
        return await self._mark(username, lambda row: row.notification_id in wanted)

    async def mark_all_as_read(self, username: str) -> int:
        """Mark every inbox entry as read. Returns how many changed."""
        return await self._mark(username, lambda row: True)

    async def _mark(self, username: str, predicate) -> int:
        now = datetime.now(UTC)
        marked = 0

        # Clustering key includes date_time, so entries are located by scanning
        rows = await self.session.aexecute(
            self._get_inbox, [username, INBOX_SCAN_LIMIT]
        )
        for row in rows:
            if row.is_read or not predicate(row):
                continue
            await self.session.aexecute(
                self._mark_read, [now, username, row.date_time, row.notification_id]
            )
            marked += 1

        if marked > 0:
            await self.invalidate_unread(username)

        return marked

    async def invalidate_unread(self, username: str) -> None:
        """Drop the cached unread count of ``username``."""
        if not self.redis:
            return
        await self.redis.delete(unread_cache_key(username))
