"""Execution resilience: retry strategies and deadlines.

::

    RetryContext ── ExponentialBackoff (2s, 4s, 8s)
                 ├─ ConstantBackoff   (fixed interval, crawler polling)
                 └─ NoRetry
    deadline_context / deadline_sleep / check_deadline ── TimeoutExpired
"""

from catalog_loader.execution.retry import (
    ConstantBackoff,
    ExponentialBackoff,
    NoRetry,
    RetryContext,
    RetryStrategy,
)
from catalog_loader.execution.timeout import (
    DeadlineContext,
    TimeoutExpired,
    check_deadline,
    deadline_context,
    deadline_sleep,
)

__all__ = [
    "ConstantBackoff",
    "DeadlineContext",
    "ExponentialBackoff",
    "NoRetry",
    "RetryContext",
    "RetryStrategy",
    "TimeoutExpired",
    "check_deadline",
    "deadline_context",
    "deadline_sleep",
]
