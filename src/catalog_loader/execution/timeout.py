"""Deadline tracking for workflow executions.

A workflow execution runs inside ``deadline_context(seconds)``. Nothing is
interrupted preemptively: the state machine calls ``check_deadline()`` before
every state, and every wait (poll interval, retry backoff) goes through
``deadline_sleep`` which never sleeps past the deadline and raises
``TimeoutExpired`` once it has passed. Blocking network calls are bounded
separately by the client read timeout.

Deadlines are kept on a per-thread stack, so executions running concurrently
on a thread pool each see only their own. Nested deadlines: the shortest wins.

Examples:
    >>> with deadline_context(3600.0) as ctx:
    ...     while not ready():
    ...         deadline_sleep(10.0)   # raises TimeoutExpired after 1 hour
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator


class TimeoutExpired(TimeoutError):
    """Raised when an execution exceeds its deadline.

    Attributes:
        timeout: The timeout value that was exceeded
        elapsed: How long the operation ran before the check fired
        operation: Name/description of the operation
    """

    def __init__(
        self,
        timeout: float,
        elapsed: float | None = None,
        operation: str = "operation",
    ):
        self.timeout = timeout
        self.elapsed = elapsed
        self.operation = operation

        msg = f"Operation '{operation}' timed out after {timeout}s"

        if elapsed is not None:
            msg += f" (ran for {elapsed:.2f}s)"

        super().__init__(msg)


@dataclass
class DeadlineContext:
    """Deadline state for one ``deadline_context`` block.

    Attributes:
        deadline: Absolute deadline timestamp (monotonic clock)
        timeout_seconds: Original timeout value in seconds
        operation: Name/description of the operation
        start_time: When the deadline context started
    """

    deadline: float
    timeout_seconds: float
    operation: str = "operation"
    start_time: float = field(default_factory=time.monotonic)

    def remaining(self) -> float:
        """Remaining time until deadline in seconds (negative if expired)."""
        return self.deadline - time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def is_expired(self) -> bool:
        return time.monotonic() >= self.deadline

    def check(self, op_name: str | None = None) -> None:
        """Raise ``TimeoutExpired`` if the deadline has passed."""
        if self.is_expired():
            raise TimeoutExpired(
                timeout=self.timeout_seconds,
                elapsed=self.elapsed,
                operation=op_name or self.operation,
            )


_deadline_stack: threading.local = threading.local()


def _get_deadline_stack() -> list[DeadlineContext]:
    if not hasattr(_deadline_stack, "stack"):
        _deadline_stack.stack = []
    return _deadline_stack.stack


def get_current_deadline() -> DeadlineContext | None:
    """Get the innermost active deadline of this thread, if any."""
    stack = _get_deadline_stack()
    return stack[-1] if stack else None


def get_effective_timeout(requested: float) -> float:
    """Minimum of the requested timeout and the outer deadline's remaining time."""
    current = get_current_deadline()
    if current is None:
        return requested
    return min(requested, current.remaining())


def check_deadline(op_name: str | None = None) -> None:
    """Raise ``TimeoutExpired`` if the current deadline has expired.

    Does nothing outside a deadline context.
    """
    ctx = get_current_deadline()
    if ctx is not None:
        ctx.check(op_name)


@contextmanager
def deadline_context(seconds: float, operation: str | None = None) -> Iterator[DeadlineContext]:
    """Track a deadline for the enclosed block without preemption.

    Raises:
        ValueError: If seconds <= 0
    """
    if seconds <= 0:
        raise ValueError(f"Timeout must be positive, got {seconds}")

    effective = get_effective_timeout(seconds)
    now = time.monotonic()
    ctx = DeadlineContext(
        deadline=now + effective,
        timeout_seconds=effective,
        operation=operation or "operation",
        start_time=now,
    )

    stack = _get_deadline_stack()
    stack.append(ctx)

    try:
        yield ctx
    finally:
        stack.pop()


def deadline_sleep(seconds: float, sleep: Callable[[float], None] = time.sleep) -> None:
    """Sleep for ``seconds`` but never past the current deadline.

    Raises:
        TimeoutExpired: If the deadline has passed after the wait
    """
    ctx = get_current_deadline()
    if ctx is not None:
        seconds = max(0.0, min(seconds, ctx.remaining()))
    sleep(seconds)
    check_deadline()
