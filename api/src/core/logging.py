"""Structlog setup for Agora.

Every event goes to stdout (console renderer in development, JSON otherwise)
and to two rotating JSON files under ``log_dir``: ``<app>.log`` with
everything at ``log_level`` and ``<app>.error.log`` with errors only.

Events carry the request context from ``src.core.context`` (request ID,
acting username, community being moderated) and never carry raw tokens.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor


if TYPE_CHECKING:
    from src.config.settings import Settings

from src.core.context import get_context


# Keys whose values are masked, matched as substrings of the lowercased key
SENSITIVE_KEYS = frozenset(
    {"password", "secret", "token", "api_key", "authorization", "credentials"}
)

# Show the first and last two characters of longer secrets
_MASK_KEEP = 2

NOISY_LOGGERS = ("uvicorn.access", "uvicorn.error", "cassandra", "httpx", "httpcore")


def add_request_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.update(get_context())
    return event_dict


def mask_value(key: str, value: Any) -> Any:
    if isinstance(value, dict):
        return {k: mask_value(k, v) for k, v in value.items()}
    if not isinstance(value, str) or not any(s in key.lower() for s in SENSITIVE_KEYS):
        return value
    if len(value) <= _MASK_KEEP * 2:
        return "***"
    hidden = len(value) - _MASK_KEEP * 2
    return value[:_MASK_KEEP] + "*" * hidden + value[-_MASK_KEEP:]


def mask_sensitive_data(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    return {key: mask_value(key, value) for key, value in event_dict.items()}


def shared_processors(settings: "Settings") -> list[Processor]:
    """Processors run for structlog events and foreign stdlib records alike."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_context,
        mask_sensitive_data,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.log_include_caller_info:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            )
        )
    return processors


def _handler_with(
    handler: logging.Handler,
    level: str,
    renderer: Processor,
    pre_chain: list[Processor],
) -> logging.Handler:
    handler.setLevel(getattr(logging, level))
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer, foreign_pre_chain=pre_chain
        )
    )
    return handler


def rotating_file_handler(
    log_dir: Path, file_name: str, settings: "Settings"
) -> RotatingFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(log_dir / file_name),
        maxBytes=settings.log_file_max_bytes,
        backupCount=settings.log_file_backup_count,
        encoding="utf-8",
    )


def configure_structlog(
    settings: "Settings", log_dir: Path | str | None = None
) -> None:
    """Route structlog and stdlib logging through the same processors.

    Args:
        settings: Application settings.
        log_dir: Directory for log files. Defaults to ./logs.
    """
    log_dir = Path(log_dir) if log_dir is not None else Path("logs")
    level = settings.log_level.upper()
    pre_chain = shared_processors(settings)

    if settings.log_format == "json":
        console_renderer: Processor = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )
    json_renderer = structlog.processors.JSONRenderer()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level))
    root_logger.addHandler(
        _handler_with(
            logging.StreamHandler(sys.stdout), level, console_renderer, pre_chain
        )
    )
    root_logger.addHandler(
        _handler_with(
            rotating_file_handler(log_dir, f"{settings.app_name}.log", settings),
            level,
            json_renderer,
            pre_chain,
        )
    )
    root_logger.addHandler(
        _handler_with(
            rotating_file_handler(log_dir, f"{settings.app_name}.error.log", settings),
            "ERROR",
            json_renderer,
            pre_chain,
        )
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    return structlog.get_logger(name)
