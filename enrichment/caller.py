"""
Rate-limited caller for external services.

Wraps a transport (`async (request) -> response`) with:
- A minimum interval between successive attempts of the same instance
- Fixed-delay retries for transient failures
- A hard timeout per attempt (a timeout counts as transient)

Non-retryable errors propagate on the first occurrence. When the retry
budget runs out the caller raises RetriesExhaustedError, which is terminal.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional
import logging

from core.config import settings
from core.exceptions import (
    CallTimeoutError,
    RateLimitError,
    RetriesExhaustedError,
    RetryableError,
)

logger = logging.getLogger(__name__)

Transport = Callable[[Any], Awaitable[Any]]


class RateLimitedCaller:
    """
    Attributes:
        transport: Async callable performing one attempt
        min_interval: Minimum seconds between two attempts (default: 2.0)
        max_retries: Retries after the first attempt (default: 3)
        retry_delay: Fixed delay before a retry in seconds (default: 10.0)
        timeout: Hard limit for a single attempt in seconds (default: 300.0)
    """

    def __init__(
        self,
        transport: Transport,
        min_interval: float = 2.0,
        max_retries: int = 3,
        retry_delay: float = 10.0,
        timeout: float = 300.0,
        name: Optional[str] = None
    ):
        self.transport = transport
        self.min_interval = min_interval
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.name = name or type(transport).__name__
        self._last_attempt_at: Optional[float] = None

    @classmethod
    def from_settings(cls, transport: Transport, name: Optional[str] = None) -> "RateLimitedCaller":
        return cls(
            transport,
            min_interval=settings.CALL_MIN_INTERVAL_SECONDS,
            max_retries=settings.CALL_MAX_RETRIES,
            retry_delay=settings.CALL_RETRY_DELAY_SECONDS,
            timeout=settings.CALL_TIMEOUT_SECONDS,
            name=name,
        )

    async def _respect_interval(self):
        if self._last_attempt_at is None or self.min_interval <= 0:
            return
        elapsed = time.monotonic() - self._last_attempt_at
        remaining = self.min_interval - elapsed
        if remaining > 0:
            await asyncio.sleep(remaining)

    async def call(self, request: Any) -> Any:
        """
        Perform the request with pacing, retries and a per-attempt timeout.

        Returns:
            Whatever the transport returns

        Raises:
            NonRetryableError: Immediately, without retry
            RetriesExhaustedError: After max_retries + 1 transient failures
        """
        attempts = self.max_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            await self._respect_interval()
            self._last_attempt_at = time.monotonic()

            try:
                logger.debug(f"{self.name}: attempt {attempt}/{attempts}")
                return await asyncio.wait_for(self.transport(request), timeout=self.timeout)

            except asyncio.TimeoutError as e:
                last_error = CallTimeoutError(
                    f"Call exceeded {self.timeout}s",
                    context={"caller": self.name, "attempt": attempt},
                    original_exception=e
                )

            except RetryableError as e:
                last_error = e

            if attempt < attempts:
                delay = self.retry_delay
                if isinstance(last_error, RateLimitError) and last_error.retry_after:
                    delay = max(delay, last_error.retry_after)
                logger.warning(
                    f"{self.name}: transient failure ({type(last_error).__name__}). "
                    f"Retrying in {delay} seconds (attempt {attempt}/{attempts})"
                )
                await asyncio.sleep(delay)

        logger.error(f"{self.name}: giving up after {attempts} attempts")
        raise RetriesExhaustedError(
            f"Call failed after {attempts} attempts",
            attempts=attempts,
            context={"caller": self.name},
            last_error=last_error
        )

    __call__ = call
