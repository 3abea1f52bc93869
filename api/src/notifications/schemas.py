"""Pydantic schemas for notifications.

Request and response models for notification operations.
"""

import base64
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.notifications.models import InboxEntry, Notification, NotificationType


# ==============================================================================
# Response Schemas
# ==============================================================================


class NotificationResponse(BaseModel):
    """Single notification."""

    id: UUID = Field(description="Notification ID")
    type: NotificationType = Field(description="Notification type")
    title: str = Field(description="Notification title")
    msg: str = Field(description="Notification message")
    sender: str = Field(description="Username of the sender or 'System'")
    context_id: UUID | None = Field(None, description="Triggering entity")
    date_time: datetime = Field(description="When notification was created")

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        """Create response from notification entity."""
        return cls(
            id=notification.notification_id,
            type=notification.type,
            title=notification.title,
            msg=notification.msg,
            sender=notification.sender,
            context_id=notification.context_id,
            date_time=notification.date_time,
        )


class InboxEntryResponse(BaseModel):
    """Notification together with the recipient's read state."""

    notification: NotificationResponse
    read: bool = Field(description="Whether the recipient has read it")
    read_at: datetime | None = Field(None, description="When it was read")

    @classmethod
    def from_entry(cls, entry: InboxEntry) -> "InboxEntryResponse":
        return cls(
            notification=NotificationResponse.from_notification(entry.notification),
            read=entry.is_read,
            read_at=entry.read_at,
        )


class NotificationListResponse(BaseModel):
    """Paginated inbox response."""

    items: list[InboxEntryResponse] = Field(description="Inbox entries")
    unread_count: int = Field(description="Unread notification count")
    has_more: bool = Field(description="Whether more notifications exist")
    next_cursor: str | None = Field(None, description="Cursor for next page")


class UnreadCountResponse(BaseModel):
    """Unread notification count response."""

    count: int = Field(description="Number of unread notifications")


class MarkReadResponse(BaseModel):
    """Response after marking notifications as read."""

    marked_count: int = Field(description="Number of notifications marked as read")
    unread_count: int = Field(description="Remaining unread count")


# ==============================================================================
# Request Schemas
# ==============================================================================


class MarkReadRequest(BaseModel):
    """Request to mark specific notifications as read."""

    notification_ids: list[UUID] = Field(
        description="List of notification IDs to mark as read"
    )


# ==============================================================================
# Cursor Encoding/Decoding
# ==============================================================================


def encode_cursor(date_time: datetime, notification_id: UUID) -> str:
    """Encode pagination cursor."""
    cursor_str = f"{date_time.isoformat()}|{notification_id}"
    return base64.urlsafe_b64encode(cursor_str.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Decode pagination cursor."""
    try:
        cursor_str = base64.urlsafe_b64decode(cursor.encode()).decode()
        parts = cursor_str.split("|")
        return datetime.fromisoformat(parts[0]), UUID(parts[1])
    except (ValueError, IndexError) as e:
        msg = f"Invalid cursor format: {e}"
        raise ValueError(msg) from e
