"""HTTP middleware that scopes logging context to one request.

Each request gets a request ID (taken from ``X-Request-ID`` when the caller
sends one) and, when the caller is traced, a trace ID. Both are echoed or
logged so a moderation action can be followed from the gateway to Cassandra.
"""

import time
from collections.abc import Awaitable, Callable, Mapping
from uuid import UUID

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.context import (
    clear_context,
    set_community_id,
    set_request_id,
    set_trace_id,
    set_username,
)
from src.core.logging import get_logger


logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
TRACE_ID_HEADER = "X-Trace-ID"
TRACEPARENT_HEADER = "traceparent"


def trace_id_from_headers(headers: Mapping[str, str]) -> str | None:
    """``X-Trace-ID``, else the trace-id field of a W3C ``traceparent``."""
    if trace_id := headers.get(TRACE_ID_HEADER):
        return trace_id

    # {version}-{trace-id}-{parent-id}-{flags}
    parts = (headers.get(TRACEPARENT_HEADER) or "").split("-")
    if len(parts) == 4 and parts[1]:
        return parts[1]
    return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request context, log start and finish, set ``X-Request-ID``."""

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or ["/health"])

    def should_log(self, path: str) -> bool:
        return self.log_requests and not path.startswith(self.exclude_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        path = request.url.path
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        set_trace_id(trace_id_from_headers(request.headers))
        request.state.request_id = request_id

        logged = self.should_log(path)
        if logged:
            logger.info(
                "request_started",
                method=request.method,
                path=path,
                client_ip=request.client.host if request.client else None,
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=path,
                error_type=type(e).__name__,
                duration_ms=elapsed_ms(started),
            )
            raise
        else:
            if logged:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "request_completed",
                    method=request.method,
                    path=path,
                    status_code=response.status_code,
                    duration_ms=elapsed_ms(started),
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()


def elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def set_user_context(username: str | None) -> None:
    """Tag later log lines with the acting username."""
    set_username(username)


def set_community_context(community_id: UUID | None) -> None:
    """Tag later log lines with the community being acted on."""
    set_community_id(community_id)


__all__ = [
    "RequestContextMiddleware",
    "set_community_context",
    "set_user_context",
    "trace_id_from_headers",
]
