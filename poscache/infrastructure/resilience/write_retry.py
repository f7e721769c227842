"""Retries for Durable Tier writes.

Implements exponential backoff for transient durable store failures. With
``max_retries=0`` (the default) a write is attempted once: best effort.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional, Tuple, Type

from poscache.domain.exceptions import DurableStoreError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 0
DEFAULT_INITIAL_BACKOFF_SECONDS = 0.05
DEFAULT_BACKOFF_FACTOR = 2.0

# Programming errors are not retried.
NON_RETRYABLE_EXCEPTIONS: Tuple[Type[BaseException], ...] = (TypeError, ValueError, NotImplementedError)


# --- Custom Exceptions ---
class MaxRetryError(DurableStoreError):
    """Exception raised when max retries are exceeded."""
    def __init__(self, original_exception: Exception, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(f"Durable write failed after {attempts} attempt(s). Last error: {original_exception}")


class DurableWriteRetry:
    """Runs a durable store coroutine with retries and exponential backoff."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff_s: float = DEFAULT_INITIAL_BACKOFF_SECONDS,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        sleep: Optional[Callable[[float], Coroutine[Any, Any, None]]] = None,
    ):
        """Initializes the retry policy.

        Args:
            max_retries: Extra attempts after the first failure.
            initial_backoff_s: Delay before the first retry.
            backoff_factor: Multiplier applied to the delay after each retry.
            sleep: Awaitable sleep, injectable for tests.
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.max_retries = max_retries
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self._sleep = sleep or asyncio.sleep

    async def execute(
        self,
        func: Callable[..., Coroutine[Any, Any, Any]],
        *args: Any,
        operation: str = "put",
        **kwargs: Any,
    ) -> Any:
        """Awaits ``func(*args, **kwargs)``, retrying failures.

        Raises:
            MaxRetryError: When every attempt failed.
            TypeError/ValueError/NotImplementedError: Immediately, unretried.
        """
        current_backoff = self.initial_backoff_s
        last_exception: Optional[Exception] = None
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            try:
                return await func(*args, **kwargs)
            except NON_RETRYABLE_EXCEPTIONS:
                raise
            except Exception as e:
                last_exception = e
                if attempt < self.max_retries:
                    logger.warning(
                        f"Durable {operation} failed on attempt {attempt + 1}/{attempts}: {type(e).__name__}. "
                        f"Retrying in {current_backoff:.2f}s..."
                    )
                    await self._sleep(current_backoff)
                    current_backoff *= self.backoff_factor
                elif self.max_retries:
                    logger.error(f"Max retries ({self.max_retries}) reached for durable {operation}. Last error: {e}")

        raise MaxRetryError(last_exception, attempts)
