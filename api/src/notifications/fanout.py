"""Notification fan-out.

Persists a notification once, attaches it to every recipient's inbox and
pushes a ``notificationUpdate`` event to recipients with a live session.
An offline recipient is not an error: the notification is still in their
inbox for the next poll.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING

from src.core.logging import get_logger
from src.core.results import Ok, Result, storage_failure

from .connections import ConnectionRegistry
from .models import NOTIFICATION_UPDATE_EVENT, Notification
from .service import NotificationService


if TYPE_CHECKING:
    from src.core.transaction import Transaction


logger = get_logger(__name__)


def unique_recipients(recipients: Iterable[str]) -> list[str]:
    """Drop empty and repeated usernames, keeping first-seen order."""
    return list(dict.fromkeys(r for r in recipients if r))


def live_payload(notification: Notification) -> dict:
    return {
        "notificationStatus": {"notification": notification.to_dict(), "read": False}
    }


class NotificationFanout:
    """Send notifications to many recipients."""

    def __init__(self, store: NotificationService, registry: ConnectionRegistry):
        self.store = store
        self.registry = registry

    async def send_notification(
        self, recipients: Iterable[str], notification: Notification
    ) -> Result[Notification]:
        """Persist, attach to each recipient, then deliver live.

        Not transactional: an attach failure leaves earlier attachments in
        place and returns a storage failure.
        """
        usernames = unique_recipients(recipients)
        try:
            await self.store.create(notification)
            for username in usernames:
                await self.store.attach_to_user(username, notification)
        except Exception as e:
            logger.error(
                "notification_send_failed",
                notification_id=str(notification.notification_id),
                type=notification.type.value,
                error=str(e),
            )
            return storage_failure(e)

        delivered = await self.deliver_live(usernames, notification)
        logger.info(
            "notification_sent",
            notification_id=str(notification.notification_id),
            type=notification.type.value,
            recipients=len(usernames),
            delivered_live=delivered,
        )
        return Ok(notification)

    def stage(
        self,
        tx: "Transaction",
        recipients: Iterable[str],
        notification: Notification,
    ) -> list[str]:
        """Add the notification writes to a caller's transaction.

        Returns the recipients to pass to ``after_commit`` once committed.
        """
        usernames = unique_recipients(recipients)
        self.store.stage_create(tx, notification)
        for username in usernames:
            self.store.stage_attach(tx, username, notification)
        return usernames

    async def after_commit(
        self, recipients: Iterable[str], notification: Notification
    ) -> int:
        """Refresh unread counters and deliver a committed notification."""
        usernames = unique_recipients(recipients)
        for username in usernames:
            await self.store.invalidate_unread(username)
        return await self.deliver_live(usernames, notification)

    async def deliver_live(
        self, recipients: Iterable[str], notification: Notification
    ) -> int:
        """Push to every recipient with a live session. Returns how many got it."""
        payload = live_payload(notification)
        delivered = 0
        for username in recipients:
            session_id = self.registry.get(username)
            if session_id is None:
                continue
            if await self.registry.emit(session_id, NOTIFICATION_UPDATE_EVENT, payload):
                delivered += 1
        return delivered
