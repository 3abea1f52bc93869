"""Per-request logging context.

Context variables hold the request ID, the acting username and, on
community-scoped routes, the community being moderated. ``add_request_context``
in ``src.core.logging`` copies whatever is set into every log event.
"""

from contextvars import ContextVar, Token
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
username_var: ContextVar[str | None] = ContextVar("username", default=None)
community_id_var: ContextVar[str | None] = ContextVar("community_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)

_CONTEXT_VARS: dict[str, ContextVar] = {
    "request_id": request_id_var,
    "username": username_var,
    "community_id": community_id_var,
    "trace_id": trace_id_var,
}


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Use the caller's request ID or mint one. Returns the ID in effect."""
    rid = request_id or str(uuid4())
    request_id_var.set(rid)
    return rid


def get_username() -> str | None:
    return username_var.get()


def set_username(username: str | None) -> None:
    username_var.set(username)


def set_community_id(community_id: UUID | str | None) -> None:
    community_id_var.set(str(community_id) if community_id else None)


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Every context value that is currently set."""
    values = {name: var.get() for name, var in _CONTEXT_VARS.items()}
    return {name: value for name, value in values.items() if value}


def clear_context() -> None:
    """Reset all values at the end of a request."""
    request_id_var.set("")
    for var in (username_var, community_id_var, trace_id_var):
        var.set(None)


class RequestContext:
    """Logging scope for work that is not an HTTP request.

    The notification WebSocket opens one per session so its log lines carry
    the username and a session-long request ID.
    """

    def __init__(self, request_id: str | None = None, username: str | None = None):
        self.request_id = request_id
        self.username = username
        self._tokens: list[tuple[ContextVar, Token]] = []

    def __enter__(self) -> "RequestContext":
        self.request_id = self.request_id or str(uuid4())
        self._tokens.append((request_id_var, request_id_var.set(self.request_id)))
        if self.username is not None:
            self._tokens.append((username_var, username_var.set(self.username)))
        return self

    def __exit__(self, *_: object) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
