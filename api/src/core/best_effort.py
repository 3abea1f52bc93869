"""Helper for fire-and-forget sub-steps.

Some steps (notifying a banned user, invalidating a role cache entry) must not
turn a successful moderation action into a failure. Each such call site wraps
the awaitable in ``best_effort`` so the swallowing is explicit and logged.
"""

from collections.abc import Awaitable
from typing import Any, TypeVar

from src.core.logging import get_logger
from src.core.results import Err


T = TypeVar("T")

logger = get_logger(__name__)


async def best_effort(
    awaitable: Awaitable[T],
    *,
    event: str,
    **fields: Any,
) -> T | None:
    """Await ``awaitable``, logging and discarding any failure.

    Both raised exceptions and returned ``Err`` values count as failures.

    Args:
        awaitable: The sub-step to run
        event: Log event name used when the sub-step fails
        **fields: Extra fields attached to the warning

    Returns:
        The awaited value, or None when the sub-step failed
    """
    try:
        result = await awaitable
    except Exception as e:
        logger.warning(event, error=str(e), error_type=type(e).__name__, **fields)
        return None

    if isinstance(result, Err):
        logger.warning(event, error=result.message, error_code=result.code, **fields)
        return None

    return result
