"""Tests for the notification HTTP and WebSocket endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from src.auth.security import issue_access_token
from src.notifications.models import InboxEntry, NotificationType, create_notification
from src.notifications.service import NotificationService


@pytest.fixture
def notification_service(api_app):
    service = Mock(spec=NotificationService)
    service.list_for_user = AsyncMock(return_value=([], None))
    service.get_unread_count = AsyncMock(return_value=0)
    service.mark_as_read = AsyncMock(return_value=1)
    service.mark_all_as_read = AsyncMock(return_value=4)
    api_app.state.notification_service = service
    return service


class TestInboxEndpoints:
    def test_requires_token(self, api_client, notification_service) -> None:
        response = api_client.get("/v1/notifications")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_lists_inbox(self, api_client, auth_headers, notification_service) -> None:
        notification = create_notification("Hi", "Welcome", NotificationType.COMMUNITY)
        notification_service.list_for_user.return_value = (
            [InboxEntry(notification=notification, is_read=False)],
            "next",
        )
        notification_service.get_unread_count.return_value = 1

        response = api_client.get("/v1/notifications", headers=auth_headers("bob"))

        body = response.json()
        assert body["unread_count"] == 1
        assert body["has_more"] is True
        assert body["items"][0]["notification"]["type"] == "community"
        assert body["items"][0]["read"] is False
        notification_service.list_for_user.assert_awaited_once_with(
            "bob", limit=20, cursor=None, unread_only=False
        )

    def test_bad_cursor_is_bad_request(
        self, api_client, auth_headers, notification_service
    ) -> None:
        notification_service.list_for_user.side_effect = ValueError("Invalid cursor")

        response = api_client.get(
            "/v1/notifications?cursor=zzz", headers=auth_headers("bob")
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_mark_read(self, api_client, auth_headers, notification_service) -> None:
        notification_id = uuid4()

        response = api_client.post(
            "/v1/notifications/mark-read",
            json={"notification_ids": [str(notification_id)]},
            headers=auth_headers("bob"),
        )

        assert response.json() == {"marked_count": 1, "unread_count": 0}
        notification_service.mark_as_read.assert_awaited_once_with(
            "bob", [notification_id]
        )

    def test_mark_all_read(
        self, api_client, auth_headers, notification_service
    ) -> None:
        response = api_client.post(
            "/v1/notifications/mark-all-read", headers=auth_headers("bob")
        )

        assert response.json()["marked_count"] == 4


class TestNotificationsWebSocket:
    def test_rejects_invalid_token(self, api_client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info:  # noqa: SIM117
            with api_client.websocket_connect("/ws/notifications?token=bad"):
                pass

        assert exc_info.value.code == 4001

    def test_registers_session_and_answers_ping(
        self, api_client: TestClient, registry
    ) -> None:
        token = issue_access_token("bob")

        with api_client.websocket_connect(f"/ws/notifications?token={token}") as ws:
            connected = ws.receive_json()
            ws.send_json({"type": "ping"})
            pong = ws.receive_json()

            assert connected["type"] == "connected"
            assert connected["username"] == "bob"
            assert pong == {"type": "pong"}
            assert registry.get("bob") is not None
