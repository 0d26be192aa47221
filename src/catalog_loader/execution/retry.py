"""Retry strategies with exponential backoff for external calls.

Every gateway call that may fail transiently goes through a ``RetryContext``.
The default policy waits 2s, 4s, 8s between attempts (three retries beyond
the first attempt, no jitter) and re-raises the last error unchanged once the
retries are exhausted.

Example:
    >>> from catalog_loader.execution.retry import ExponentialBackoff, RetryContext
    >>>
    >>> ctx = RetryContext(ExponentialBackoff())  # retries errors flagged retryable
    >>> database = ctx.run(glue.get_database, Name="caq_sales")
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, TypeVar

from catalog_loader.core.errors import is_retryable
from catalog_loader.core.logging import get_logger
from catalog_loader.execution.timeout import deadline_sleep

T = TypeVar("T")

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, retry: int) -> float:
        """Calculate delay before the next attempt.

        Args:
            retry: Zero-based retry number (0 = first retry)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, retry: int, error: Exception | None = None) -> bool:
        """Determine if another retry should be attempted.

        Args:
            retry: Number of retries already performed
            error: The exception that caused the failure
        """
        ...


@dataclass
class ExponentialBackoff(RetryStrategy):
    """Exponential backoff.

    Delay = min(base_delay * (multiplier ** retry), max_delay)

    Attributes:
        max_retries: Maximum number of retries beyond the first attempt
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
        multiplier: Exponential multiplier
    """

    max_retries: int = 3
    base_delay: float = 2.0
    max_delay: float = 300.0
    multiplier: float = 2.0

    def next_delay(self, retry: int) -> float:
        return min(self.base_delay * (self.multiplier ** retry), self.max_delay)

    def should_retry(self, retry: int, error: Exception | None = None) -> bool:
        return retry < self.max_retries


@dataclass
class ConstantBackoff(RetryStrategy):
    """Constant delay between attempts. ``max_retries=None`` never gives up."""

    max_retries: int | None = 3
    delay: float = 1.0

    def next_delay(self, retry: int) -> float:
        return self.delay

    def should_retry(self, retry: int, error: Exception | None = None) -> bool:
        return self.max_retries is None or retry < self.max_retries


@dataclass
class NoRetry(RetryStrategy):
    """No retry - fail immediately."""

    def next_delay(self, retry: int) -> float:
        return 0.0

    def should_retry(self, retry: int, error: Exception | None = None) -> bool:
        return False


@dataclass
class RetryContext:
    """Runs a callable under a retry strategy and tracks the attempts.

    Attributes:
        strategy: Delay and give-up policy
        retry_on: Exception types that are retried; anything else propagates
            immediately. ``None`` retries errors that declare themselves
            retryable (``is_retryable``)
        sleep: Suspension primitive, deadline-aware by default
        operation: Name used in retry log events
    """

    strategy: RetryStrategy
    retry_on: tuple[type[BaseException], ...] | None = None
    sleep: Callable[[float], None] = deadline_sleep
    operation: str = "operation"
    attempt: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)
    errors: list[tuple[int, Exception, datetime]] = field(default_factory=list, init=False)

    @property
    def attempts(self) -> int:
        """Number of attempts made."""
        return self.attempt

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute ``func`` with retry logic.

        Raises:
            The last exception, unchanged, once retries are exhausted or when
            the exception is not retried.
        """
        while True:
            self.attempt += 1
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not self._retries(e):
                    raise
                self.last_error = e
                self.errors.append((self.attempt, e, utcnow()))

                retry = self.attempt - 1
                if not self.strategy.should_retry(retry, e):
                    logger.warning(
                        "retry.exhausted",
                        operation=self.operation,
                        attempts=self.attempt,
                        error=str(e),
                    )
                    raise

                delay = self.strategy.next_delay(retry)
                logger.info(
                    "retry.attempt",
                    operation=self.operation,
                    attempt=self.attempt,
                    delay_seconds=delay,
                    error=str(e),
                )

                self.sleep(delay)


    def _retries(self, error: Exception) -> bool:
        if self.retry_on is None:
            return is_retryable(error)
        return isinstance(error, self.retry_on)
