# Core infrastructure
from src.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_username,
    set_request_id,
    set_username,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import (
    RequestContextMiddleware,
    set_community_context,
    set_user_context,
)
from src.core.results import Err, ErrorKind, Ok, Result


__all__ = [
    "Err",
    "ErrorKind",
    "Ok",
    "RequestContext",
    "RequestContextMiddleware",
    "Result",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_username",
    "set_community_context",
    "set_request_id",
    "set_user_context",
    "set_username",
]
