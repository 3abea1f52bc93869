"""Notifications module for user notifications.

Provides:
- Notification storage and per-user inbox
- Fan-out to many recipients with live delivery
- Registry of live WebSocket sessions
- Unread count tracking

Note: Routers are imported directly in main.py to avoid circular imports.
"""

from src.notifications.connections import ConnectionRegistry
from src.notifications.fanout import NotificationFanout
from src.notifications.models import (
    NOTIFICATIONS_TABLES_CQL,
    Notification,
    NotificationType,
)
from src.notifications.service import NotificationService


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "ConnectionRegistry",
    "Notification",
    "NotificationFanout",
    "NotificationService",
    "NotificationType",
]
