from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryLimitExceededError(RuntimeError):
    def __init__(self, attempts: int, last_error: Exception | None = None):
        message = f"Retry count limit exceeded after {attempts} attempts"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


async def retry_until_complete(
    max_attempts: int,
    interval_seconds: float,
    action: Callable[[], Awaitable[T | None]],
) -> T:
    """Await ``action`` until it returns something other than None.

    Exceptions raised by ``action`` count as failed attempts; the last one is
    attached to the ``RetryLimitExceededError`` raised when the budget runs
    out. The interval between attempts is constant.
    """

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            result = await action()
            if result is not None:
                return result
            logger.debug("Retry: attempt %d/%d not satisfied", attempt, max_attempts)
        except Exception as exc:
            last_error = exc
            logger.debug("Retry: attempt %d/%d raised %s", attempt, max_attempts, exc)
        if interval_seconds and attempt < max_attempts:
            await asyncio.sleep(interval_seconds)

    raise RetryLimitExceededError(max_attempts, last_error) from last_error
