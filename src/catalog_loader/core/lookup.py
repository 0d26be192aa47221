"""
Lookup envelope: ``Found[T] | NotFound``.

Catalog reads return a tagged variant instead of raising, so the state
machine branches on the value rather than on exception control flow. Absence
of a resource is an expected outcome of every existence check.

Examples:
    >>> from catalog_loader.core.lookup import Found, NotFound
    >>> result = catalog.get_database("caq_sales")
    >>> match result:
    ...     case Found(database):
    ...         print(database["Name"])
    ...     case NotFound(name):
    ...         print(f"{name} missing")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

from catalog_loader.core.errors import NotFoundError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Found(Generic[T]):
    """The resource exists; ``value`` is the service's description of it."""

    value: T

    def is_found(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Found({self.value!r})"


@dataclass(frozen=True, slots=True)
class NotFound:
    """The resource does not exist."""

    name: str
    error: NotFoundError | None = None

    def is_found(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"NotFound({self.name!r})"


Lookup = Union[Found[T], NotFound]


def lookup(func: Callable[[], T]) -> Lookup[T]:
    """
    Run ``func`` and convert a ``NotFoundError`` into the ``NotFound`` variant.

    Any other exception propagates unchanged.
    """
    try:
        return Found(func())
    except NotFoundError as e:
        return NotFound(e.name, e)


__all__ = ["Found", "NotFound", "Lookup", "lookup"]
