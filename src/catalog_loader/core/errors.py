"""
Structured error types for the catalog loader.

Every failure the loader raises carries a category, an explicit retry flag,
structured context and the chained cause, so that the retry layer, the state
machine and the logs can all make decisions from the same object.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        LoaderError                            │
        │            (category, retryable, context, cause)              │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  InvalidInputError      NotFoundError          ConfigError    │
        │  (VALIDATION)           (NOT_FOUND)            (CONFIG)       │
        │                              │                                │
        │                         DatabaseNotFoundError                 │
        │                         TableNotFoundError                    │
        │                         CrawlerNotFoundError                  │
        │                         QueryResultNotFoundError              │
        │                                                               │
        │  TransientServiceError  TransitionError                       │
        │  (TRANSIENT, retryable) (ORCHESTRATION)                       │
        └──────────────────────────────────────────────────────────────┘

Propagation:
    - ``InvalidInputError`` is local to one event: the collector drops the
      event, the workflow fails the single execution.
    - ``NotFoundError`` is a branch, not a failure. Gateways either return a
      ``NotFound`` lookup variant or raise the subclass so a retry loop can
      wait for a resource to become visible.
    - ``TransientServiceError`` is retried by the RetryPolicy and then
      propagated; the state machine fails the execution.

Usage:
    from catalog_loader.core.errors import CrawlerNotFoundError

    try:
        glue.get_crawler(Name=name)
    except ClientError as e:
        raise CrawlerNotFoundError(name, cause=e) from e
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    VALIDATION = "VALIDATION"  # Malformed or unsupported event
    NOT_FOUND = "NOT_FOUND"  # Catalog entity or query result absent
    TRANSIENT = "TRANSIENT"  # Any other external service failure
    CONFIG = "CONFIG"  # Missing/invalid settings
    ORCHESTRATION = "ORCHESTRATION"  # State machine wiring errors
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        workflow: Workflow name
        state: State the workflow was in when the error occurred
        run_id: Workflow run identifier
        path: Logical path the execution is working on
        resource: Catalog/crawler/query resource name
        operation: External operation name (e.g. ``glue.get_crawler``)
        metadata: Additional key-value pairs
    """

    workflow: str | None = None
    state: str | None = None
    run_id: str | None = None
    path: str | None = None
    resource: str | None = None
    operation: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["workflow", "state", "run_id", "path", "resource", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class LoaderError(Exception):
    """
    Base exception for all catalog loader errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers may
    override both per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> LoaderError:
        """
        Add context to this error (fluent API).

        Usage:
            raise TransientServiceError("Call failed").with_context(
                operation="glue.get_database", resource="caq_sales"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# INPUT ERRORS
# =============================================================================


class InvalidInputError(LoaderError):
    """Malformed or unsupported event shape. Fatal for that single item only."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


# =============================================================================
# NOT FOUND (branch, not failure)
# =============================================================================


class NotFoundError(LoaderError):
    """A catalog entity, crawler or query result does not exist (yet)."""

    default_category = ErrorCategory.NOT_FOUND
    default_retryable = False
    kind = "resource"

    def __init__(self, name: str, message: str | None = None, **kwargs: Any):
        self.name = name
        super().__init__(message or f"{self.kind.capitalize()} [{name}] not found", **kwargs)
        self.context.resource = name


class DatabaseNotFoundError(NotFoundError):
    kind = "database"


class TableNotFoundError(NotFoundError):
    kind = "table"


class CrawlerNotFoundError(NotFoundError):
    kind = "crawler"


class QueryResultNotFoundError(NotFoundError):
    """The result of a submitted statement is not available yet."""

    kind = "query result"


# =============================================================================
# SERVICE / CONFIG / ORCHESTRATION
# =============================================================================


class TransientServiceError(LoaderError):
    """Any other failure from an external call. Retried, then propagated."""

    default_category = ErrorCategory.TRANSIENT
    default_retryable = True


class ConfigError(LoaderError):
    """A setting required by a component is missing or invalid."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required setting: {key}")


class TransitionError(LoaderError):
    """The state machine has no transition for a (state, outcome) pair."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False

    def __init__(self, state: str, outcome: str):
        self.state = state
        self.outcome = outcome
        super().__init__(f"No transition from state [{state}] on outcome [{outcome}]")


def is_retryable(error: Exception) -> bool:
    """Return True if the error declares itself retryable."""
    if isinstance(error, LoaderError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "LoaderError",
    "InvalidInputError",
    "NotFoundError",
    "DatabaseNotFoundError",
    "TableNotFoundError",
    "CrawlerNotFoundError",
    "QueryResultNotFoundError",
    "TransientServiceError",
    "ConfigError",
    "TransitionError",
    "is_retryable",
]
