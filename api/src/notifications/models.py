"""Database models for notifications.

Cassandra table definitions for:
- Notifications: one row per notification, shared by every recipient
- User notifications: each recipient's inbox, referencing a notification by ID

A notification is written once and attached to each recipient, so all
recipients point at the same underlying row.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4


if TYPE_CHECKING:
    from src.communities.models import Community


# ==============================================================================
# Constants
# ==============================================================================

SYSTEM_SENDER = "System"

# Event name pushed to live sessions
NOTIFICATION_UPDATE_EVENT = "notificationUpdate"


class NotificationType(str, Enum):
    """Types of notifications."""

    COMMENT = "comment"
    ANSWER = "answer"
    COMMUNITY = "community"
    MESSAGE = "message"
    SITEWIDE = "sitewide"
    REPORT = "report"
    APPEAL = "appeal"
    BAN = "ban"
    MUTE = "mute"
    UNBAN = "unban"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    notification_id UUID PRIMARY KEY,
    title TEXT,
    msg TEXT,
    date_time TIMESTAMP,
    sender TEXT,
    context_id UUID,
    type TEXT
)
"""

# Inbox per recipient, newest first
USER_NOTIFICATIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.user_notifications (
    username TEXT,
    date_time TIMESTAMP,
    notification_id UUID,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    PRIMARY KEY ((username), date_time, notification_id)
) WITH CLUSTERING ORDER BY (date_time DESC, notification_id DESC)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    USER_NOTIFICATIONS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification shared by all of its recipients."""

    notification_id: UUID
    title: str
    msg: str
    date_time: datetime
    sender: str
    context_id: UUID | None
    type: NotificationType

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            notification_id=row.notification_id,
            title=row.title,
            msg=row.msg,
            date_time=row.date_time,
            sender=row.sender,
            context_id=row.context_id,
            type=NotificationType(row.type),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "notification_id": str(self.notification_id),
            "title": self.title,
            "msg": self.msg,
            "date_time": self.date_time.isoformat(),
            "sender": self.sender,
            "context_id": str(self.context_id) if self.context_id else None,
            "type": self.type.value,
        }


@dataclass
class InboxEntry:
    """A notification as seen by one recipient."""

    notification: Notification
    is_read: bool
    read_at: datetime | None = None


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_notification(
    title: str,
    msg: str,
    notification_type: NotificationType,
    sender: str = SYSTEM_SENDER,
    context_id: UUID | None = None,
) -> Notification:
    """Create a new notification with default values."""
    return Notification(
        notification_id=uuid4(),
        title=title,
        msg=msg,
        date_time=datetime.now(UTC),
        sender=sender,
        context_id=context_id,
        type=notification_type,
    )


def create_ban_notification(community: "Community", sender: str) -> Notification:
    return create_notification(
        title=f"Banned from {community.name}",
        msg=f"You have been banned from the community {community.name}.",
        notification_type=NotificationType.BAN,
        sender=sender,
        context_id=community.community_id,
    )


def create_mute_notification(community: "Community", sender: str) -> Notification:
    return create_notification(
        title=f"Muted in {community.name}",
        msg=f"You have been muted in the community {community.name}.",
        notification_type=NotificationType.MUTE,
        sender=sender,
        context_id=community.community_id,
    )


def create_auto_ban_notification(
    community: "Community", report_count: int
) -> Notification:
    """Notification for the user removed by an auto-ban."""
    return create_notification(
        title=f"Auto-banned from {community.name}",
        msg=(
            f"You have been automatically banned from {community.name} due to "
            f"multiple user reports ({report_count} reports). You can submit an "
            "appeal to request reinstatement."
        ),
        notification_type=NotificationType.BAN,
        context_id=community.community_id,
    )


def create_auto_ban_report_notification(
    community: "Community", username: str, report_count: int, window_days: int
) -> Notification:
    """Notification for the admin and moderators after an auto-ban."""
    return create_notification(
        title=f"Auto-ban Applied in {community.name}",
        msg=(
            f'User "{username}" has been automatically banned after receiving '
            f"{report_count} unique reports within {window_days} days."
        ),
        notification_type=NotificationType.REPORT,
        context_id=community.community_id,
    )


def create_appeal_notification(
    community: "Community", username: str, appeal_id: UUID
) -> Notification:
    return create_notification(
        title=f"New Appeal in {community.name}",
        msg=f"User {username} has submitted an appeal request.",
        notification_type=NotificationType.APPEAL,
        sender=username,
        context_id=appeal_id,
    )


def create_unban_notification(community: "Community", sender: str) -> Notification:
    """Notification sent when an appeal is approved."""
    return create_notification(
        title=f"Appeal Decision: {community.name}",
        msg=f"Your appeal in {community.name} has been approved.",
        notification_type=NotificationType.UNBAN,
        sender=sender,
        context_id=community.community_id,
    )
