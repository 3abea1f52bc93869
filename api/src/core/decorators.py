"""Decorators for service operations that return tagged results.

Provides @returns_result, which converts any exception escaping a service
operation into a ``storage_failure`` error so callers always receive a
``Result`` instead of an exception.
"""

import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from src.core.logging import get_logger
from src.core.results import Err, storage_failure


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def returns_result(
    event: str,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T | Err]]]:
    """Convert escaping exceptions into ``storage_failure`` errors.

    Args:
        event: Log event name emitted when the operation fails

    Example:
        @returns_result("toggle_ban_failed")
        async def toggle_ban_user(self, community_id, acting_user, username):
            ...
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T | Err]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T | Err:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.exception(
                    event,
                    operation=func.__qualname__,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return storage_failure(e)

        return wrapper

    return decorator
