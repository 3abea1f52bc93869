"""Registry of live notification sessions.

Maps each connected username to a session ID and each session ID to its
WebSocket. The registry is created by the application lifespan and injected
into the notification fan-out, so nothing reaches it as global state.
"""

from typing import Any, Protocol
from uuid import uuid4

from src.core.logging import get_logger


logger = get_logger(__name__)


class LiveSocket(Protocol):
    """The part of a WebSocket the registry needs."""

    async def send_json(self, data: Any, mode: str = "text") -> None: ...


class ConnectionRegistry:
    """Track live sessions by username and push events to them."""

    def __init__(self) -> None:
        self._sessions: dict[str, tuple[str, LiveSocket]] = {}
        self._by_username: dict[str, str] = {}

    def connect(self, username: str, websocket: LiveSocket) -> str:
        """Register an accepted connection. The newest session wins."""
        session_id = str(uuid4())
        self._sessions[session_id] = (username, websocket)
        self._by_username[username] = session_id
        logger.info("websocket_connected", username=username, session_id=session_id)
        return session_id

    def disconnect(self, session_id: str) -> None:
        """Forget a session, falling back to another one of the same user."""
        entry = self._sessions.pop(session_id, None)
        if entry is None:
            return

        username = entry[0]
        if self._by_username.get(username) == session_id:
            remaining = [sid for sid, (u, _) in self._sessions.items() if u == username]
            if remaining:
                self._by_username[username] = remaining[-1]
            else:
                del self._by_username[username]

        logger.info("websocket_disconnected", username=username, session_id=session_id)

    def get(self, username: str) -> str | None:
        """Session ID of ``username`` or None when offline."""
        return self._by_username.get(username)

    async def emit(self, session_id: str, event: str, payload: dict[str, Any]) -> bool:
        """Push an event to a session. Returns False when it could not be sent."""
        entry = self._sessions.get(session_id)
        if entry is None:
            return False

        try:
            await entry[1].send_json({"type": event, "data": payload})
        except Exception as e:
            logger.warning("websocket_emit_failed", session_id=session_id, error=str(e))
            self.disconnect(session_id)
            return False

        return True

    def connected_users(self) -> list[str]:
        return list(self._by_username)
