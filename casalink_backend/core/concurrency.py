"""
Optimistic concurrency helpers.

Stores raise ConflictError when a compare-and-write loses a race; the
read-check-write cycle is re-run from scratch up to a fixed bound.
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from .exceptions import ConflictError
from .logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    attempts: int,
    description: str,
) -> T:
    """Run an operation, re-running it when the store reports a conflict.

    Args:
        operation: Zero-argument coroutine factory performing one full
            read-check-write cycle
        attempts: Maximum number of cycles
        description: Operation name for log records

    Returns:
        The operation's result

    Raises:
        ConflictError: If every attempt lost its race
    """
    last_error: ConflictError | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ConflictError as e:
            last_error = e
            logger.warning(
                f"Concurrent write detected during {description}",
                extra={"attempt": attempt, "max_attempts": attempts},
            )

    raise ConflictError(
        f"{description} could not be applied after {attempts} attempts "
        "due to concurrent modifications; retry the operation",
        {"attempts": attempts, "last_error": last_error.message if last_error else None},
    )
