"""Core primitives: identity, errors, lookups, settings and logging."""

from catalog_loader.core.errors import (
    ConfigError,
    CrawlerNotFoundError,
    DatabaseNotFoundError,
    ErrorCategory,
    ErrorContext,
    InvalidInputError,
    LoaderError,
    NotFoundError,
    QueryResultNotFoundError,
    TableNotFoundError,
    TransientServiceError,
    TransitionError,
    is_retryable,
)
from catalog_loader.core.identity import PathIdentity, parse_event
from catalog_loader.core.lookup import Found, Lookup, NotFound, lookup

__all__ = [
    "ConfigError",
    "CrawlerNotFoundError",
    "DatabaseNotFoundError",
    "ErrorCategory",
    "ErrorContext",
    "Found",
    "InvalidInputError",
    "LoaderError",
    "Lookup",
    "NotFound",
    "NotFoundError",
    "PathIdentity",
    "QueryResultNotFoundError",
    "TableNotFoundError",
    "TransientServiceError",
    "TransitionError",
    "is_retryable",
    "lookup",
    "parse_event",
]
