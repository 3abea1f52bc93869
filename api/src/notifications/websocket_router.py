"""Live notification stream.

A client opens ``/ws/notifications?token=<jwt>`` and stays registered in the
``ConnectionRegistry`` until it goes away. Notification fan-out pushes
``notificationUpdate`` events to the registered session; this module only
owns the handshake and the keep-alive loop.
"""

import asyncio

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from jose import JWTError

from src.auth.security import verify_access_token
from src.core.context import RequestContext
from src.core.logging import get_logger

from .connections import ConnectionRegistry


logger = get_logger(__name__)

router = APIRouter(tags=["notifications-ws"])

PING_INTERVAL_SECONDS = 30
AUTH_FAILED_CLOSE_CODE = 4001


def authenticate_websocket(token: str) -> str | None:
    """Username of a valid token, None otherwise."""
    try:
        return verify_access_token(token)
    except JWTError as e:
        logger.warning("websocket_auth_failed", error=str(e))
        return None


def get_registry(websocket: WebSocket) -> ConnectionRegistry | None:
    return getattr(websocket.app.state, "connection_registry", None)


async def keep_alive(websocket: WebSocket) -> None:
    """Answer client pings and ping idle clients until the socket closes."""
    while True:
        try:
            message = await asyncio.wait_for(
                websocket.receive_json(), timeout=PING_INTERVAL_SECONDS
            )
        except TimeoutError:
            await websocket.send_json({"type": "ping"})
            continue

        # pongs need no answer
        if message.get("type") == "ping":
            await websocket.send_json({"type": "pong"})


@router.websocket("/ws/notifications")
async def notifications_websocket(
    websocket: WebSocket,
    token: str = Query(..., description="JWT access token"),
) -> None:
    """Register the caller for live notifications.

    Server messages: ``connected`` once, then ``notificationUpdate`` events
    and a ``ping`` after every idle interval. Clients may send ``ping``
    (answered with ``pong``) or ``pong``.
    """
    username = authenticate_websocket(token)
    registry = get_registry(websocket)
    if username is None or registry is None:
        await websocket.close(
            code=AUTH_FAILED_CLOSE_CODE, reason="Authentication failed"
        )
        return

    await websocket.accept()
    with RequestContext(username=username):
        await serve_session(websocket, registry, username)


async def serve_session(
    websocket: WebSocket, registry: ConnectionRegistry, username: str
) -> None:
    session_id = registry.connect(username, websocket)

    try:
        await websocket.send_json(
            {
                "type": "connected",
                "username": username,
                "sessionId": session_id,
            }
        )
        await keep_alive(websocket)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning("websocket_error", username=username, error=str(e))
    finally:
        registry.disconnect(session_id)
