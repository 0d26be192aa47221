"""Batch deduplication and dispatch.

A batch of notifications (event-bus records or direct notifications carrying
``Records``) is reduced to one identity per logical path
(last event wins) and one workflow execution is started per path. An event
that cannot be parsed is rejected on its own; the rest of the batch still
goes through.

There is no deduplication across batches: two batches may start overlapping
executions for the same path, which the workflow tolerates because every
step is idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from catalog_loader.core.errors import InvalidInputError
from catalog_loader.core.identity import PathIdentity
from catalog_loader.core.logging import get_logger
from catalog_loader.dispatch.backends import ExecutionBackend

logger = get_logger(__name__)


@dataclass
class StartedExecution:
    path: str
    execution_id: str
    is_created: bool
    is_removed: bool


@dataclass
class RejectedEvent:
    index: int
    reason: str


@dataclass
class DispatchReport:
    """Outcome of one batch.

    ``completed`` holds the results of executions that ran in-process and
    were waited for; it stays empty when executions run remotely.
    """

    started: list[StartedExecution] = field(default_factory=list)
    rejected: list[RejectedEvent] = field(default_factory=list)
    completed: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "started": [vars(s) for s in self.started],
            "rejected": [vars(r) for r in self.rejected],
            "completed": list(self.completed),
        }


class EventCollector:
    """Turns a batch of events into at most one execution per logical path."""

    def __init__(self, backend: ExecutionBackend, *, bucket: str, prefix: str):
        self.backend = backend
        self.bucket = bucket
        self.prefix = prefix

    def identify(self, event: Any) -> PathIdentity:
        """Derive the identity of one notification of either inbound shape."""
        if isinstance(event, dict) and "Records" in event:
            return PathIdentity.from_notification(event, bucket=self.bucket, prefix=self.prefix)
        return PathIdentity.from_event_bus_record(event, bucket=self.bucket, prefix=self.prefix)

    def group_by_path(
        self, events: Iterable[Any], report: DispatchReport | None = None
    ) -> dict[str, PathIdentity]:
        """Map each logical path to the identity of its last event in the batch."""
        identities: dict[str, PathIdentity] = {}
        for index, event in enumerate(events):
            try:
                identity = self.identify(event)
            except InvalidInputError as e:
                logger.warning("collector.rejected", index=index, reason=e.message)
                if report is not None:
                    report.rejected.append(RejectedEvent(index=index, reason=e.message))
                continue
            identities[identity.path] = identity
        return identities

    def collect(self, events: Iterable[Any]) -> DispatchReport:
        """Deduplicate ``events`` and start one execution per surviving path.

        A backend failure (after its retries) propagates, so the whole batch
        is redelivered; re-running already started paths is harmless.
        """
        report = DispatchReport()
        for path, identity in self.group_by_path(events, report).items():
            execution_id = self.backend.start(identity)
            report.started.append(
                StartedExecution(
                    path=path,
                    execution_id=execution_id,
                    is_created=identity.is_created,
                    is_removed=identity.is_removed,
                )
            )
            logger.info("collector.dispatched", path=path, execution_id=execution_id)

        logger.info("collector.batch_done", started=len(report.started), rejected=len(report.rejected))
        return report
