"""Bounded retry for store write conflicts"""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from hotel_scheduler.domain.exceptions import BusinessRuleError, ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
    backoff_seconds: float = 0.05,
    exhausted_message: str = "Room is not available for the selected dates"
) -> T:
    """Run ``operation``, retrying ConflictError with exponential backoff.

    Other errors propagate on the first occurrence. Once attempts run out the
    conflict is reported as a BusinessRuleError.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ConflictError as e:
            if attempt == attempts:
                logger.warning("Giving up after %d conflicting attempt(s): %s", attempts, e.message)
                raise BusinessRuleError(exhausted_message) from e
            delay = backoff_seconds * (2 ** (attempt - 1))
            logger.info("Write conflict (attempt %d/%d), retrying in %.3fs", attempt, attempts, delay)
            await asyncio.sleep(delay)
    raise ValueError("attempts must be at least 1")
