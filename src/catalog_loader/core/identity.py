"""
Path identity: the schema/table/crawler names derived from an object key.

The landing bucket is organised as ``root/schema-folder/table-folder/...``:
the second segment defines the schema, the third the table. Anything deeper
is either a data file of that table or a partition folder; only leaf folders
contain files. Keys with fewer than three segments are rejected.

::

    landing/sales-2024/orders/part-0001.csv
    └──┬──┘ └───┬────┘ └─┬──┘
       │        │        └── table   caq_orders
       │        └─────────── schema  caq_sales_2024
       └──────────────────── path    landing/sales-2024/orders/
                             crawler caq-landing/sales-2024/orders/

The logical path (first three segments) is the unit of deduplication and the
unit the workflow operates on. The crawler name folds the whole path in, so
one string carries the identity through transports that only pass flat
names.

Identities are immutable and never stored: they are rebuilt from the raw event
or from the execution input (``to_dict`` / ``from_dict``) at every hop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote_plus

from catalog_loader.core.errors import InvalidInputError

NOTIFICATION_SOURCE = "aws:s3"
EVENT_BUS_SOURCE = "aws.s3"
MIN_SEGMENTS = 3


@dataclass(frozen=True)
class PathIdentity:
    """Structured identity of one logical path in the landing bucket."""

    key: str
    path: str
    schema: str
    table: str
    crawler: str
    is_created: bool
    is_removed: bool

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def derive(cls, event_name: str, key: str, *, prefix: str) -> PathIdentity:
        """Derive an identity from an event name and a validated object key."""
        words = _segments(key)
        path = f"{words[0]}/{words[1]}/{words[2]}/"

        return cls(
            key=key,
            path=path,
            schema=f"{prefix}_{words[1].replace('-', '_')}",
            table=f"{prefix}_{words[2]}",
            crawler=f"{prefix}-{path}",
            is_created="Created" in event_name,
            is_removed="Removed" in event_name or "Deleted" in event_name,
        )

    @classmethod
    def from_notification(
        cls, event: dict[str, Any], *, bucket: str, prefix: str
    ) -> PathIdentity:
        """Build an identity from a direct object-store notification.

        The notification carries ``Records[0]`` with ``eventName``,
        ``eventSource``, ``s3.bucket.name`` and the URL-encoded
        ``s3.object.key``.
        """
        records = _get(event, "Records")
        if not isinstance(records, list) or not records:
            raise InvalidInputError("No record found.")

        record = records[0]
        if _get(record, "eventSource") != NOTIFICATION_SOURCE or not _get(record, "s3"):
            raise InvalidInputError("Not an S3 event.")

        s3 = record["s3"]
        if _dig(s3, "bucket", "name") != bucket:
            raise InvalidInputError("The bucket is not supported.")

        key = unquote_plus(_require_str(_dig(s3, "object", "key"), "s3.object.key"))
        event_name = _require_str(_get(record, "eventName"), "eventName")
        return cls.derive(event_name, key, prefix=prefix)

    @classmethod
    def from_event_bus_record(
        cls, event: dict[str, Any], *, bucket: str, prefix: str
    ) -> PathIdentity:
        """Build an identity from an event-bus record.

        The record carries ``source``, ``detail-type``, ``detail.bucket.name``
        and ``detail.object.key`` (not URL-encoded).
        """
        if _get(event, "source") != EVENT_BUS_SOURCE:
            raise InvalidInputError("Not an S3 event.")

        detail = _get(event, "detail")
        if _dig(detail, "bucket", "name") != bucket:
            raise InvalidInputError("The bucket is not supported.")

        key = _require_str(_dig(detail, "object", "key"), "detail.object.key")
        event_name = _require_str(_get(event, "detail-type"), "detail-type")
        return cls.derive(event_name, key, prefix=prefix)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PathIdentity:
        """Rebuild an identity from an execution input produced by ``to_dict``."""
        try:
            identity = cls(
                key=str(data["key"]),
                path=str(data["path"]),
                schema=str(data["schema"]),
                table=str(data["table"]),
                crawler=str(data["crawler"]),
                is_created=bool(data["isCreated"]),
                is_removed=bool(data["isRemoved"]),
            )
        except (KeyError, TypeError) as e:
            raise InvalidInputError(f"Malformed execution input: missing {e}", cause=e) from e

        if not identity.path.endswith("/") or len(_segments(identity.path)) < MIN_SEGMENTS:
            raise InvalidInputError(f"Malformed execution input path [{identity.path}].")
        return identity

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable execution input."""
        return {
            "key": self.key,
            "path": self.path,
            "schema": self.schema,
            "table": self.table,
            "crawler": self.crawler,
            "isCreated": self.is_created,
            "isRemoved": self.is_removed,
        }


def parse_event(event: Any, *, bucket: str, prefix: str) -> PathIdentity:
    """Accept any inbound shape and return its identity.

    - a ``PathIdentity`` is returned as-is
    - an execution input (carries ``path``) comes from the dispatcher
    - a direct notification carries ``Records``
    - anything else is treated as an event-bus record
    """
    if isinstance(event, PathIdentity):
        return event
    if not isinstance(event, dict):
        raise InvalidInputError(f"Unsupported event type: {type(event).__name__}")
    if "path" in event:
        return PathIdentity.from_dict(event)
    if "Records" in event:
        return PathIdentity.from_notification(event, bucket=bucket, prefix=prefix)
    return PathIdentity.from_event_bus_record(event, bucket=bucket, prefix=prefix)


# =============================================================================
# Helpers
# =============================================================================


def _segments(key: str) -> list[str]:
    words = key.split("/")
    if len(words) < MIN_SEGMENTS or not all(words[:MIN_SEGMENTS]):
        raise InvalidInputError(
            f"The key [{key}] should be in a folder at the third level or deeper."
        )
    return words


def _get(obj: Any, name: str) -> Any:
    if not isinstance(obj, dict):
        return None
    return obj.get(name)


def _dig(obj: Any, *names: str) -> Any:
    for name in names:
        obj = _get(obj, name)
    return obj


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidInputError(f"Missing or invalid field [{field_name}].")
    return value
