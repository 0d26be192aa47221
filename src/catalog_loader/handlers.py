"""Process entry points.

``collect_handler`` receives a queue batch of notifications and starts
one execution per logical path. ``load_handler`` runs a single workflow
execution. Both build their collaborators from ``LoaderSettings`` once per
process and reuse them across invocations.
"""

from __future__ import annotations

import json
from typing import Any

from catalog_loader.core.errors import ConfigError
from catalog_loader.core.logging import configure_logging, get_logger
from catalog_loader.core.settings import LoaderSettings, get_settings
from catalog_loader.dispatch.backends import ExecutionBackend, LocalBackend, StepFunctionsBackend
from catalog_loader.dispatch.collector import DispatchReport, EventCollector, RejectedEvent
from catalog_loader.execution.retry import ExponentialBackoff, NoRetry, RetryStrategy
from catalog_loader.gateways.aws import AwsClients
from catalog_loader.gateways.catalog import CatalogGateway
from catalog_loader.gateways.crawler import CrawlerGateway
from catalog_loader.gateways.schema import SchemaGateway
from catalog_loader.gateways.storage import ObjectStore
from catalog_loader.orchestration.workflow import OnboardingWorkflow

logger = get_logger(__name__)

_clients: AwsClients | None = None
_backend: ExecutionBackend | None = None
_workflow: OnboardingWorkflow | None = None
_logging_configured = False


def _setup(settings: LoaderSettings) -> None:
    global _logging_configured
    if not _logging_configured:
        configure_logging(level=settings.log_level, json_format=settings.log_format == "json")
        _logging_configured = True


def _get_clients(settings: LoaderSettings) -> AwsClients:
    global _clients
    if _clients is None:
        _clients = AwsClients(region=settings.region, call_timeout=settings.call_timeout_seconds)
    return _clients


def _get_backend(settings: LoaderSettings) -> ExecutionBackend:
    global _backend
    if _backend is None:
        _backend = build_backend(settings)
    return _backend


def _get_workflow(settings: LoaderSettings) -> OnboardingWorkflow:
    global _workflow
    if _workflow is None:
        _workflow = build_workflow(settings)
    return _workflow


def build_backoff(settings: LoaderSettings) -> RetryStrategy:
    """Gateway retry policy. ``retry_max_retries=0`` disables retries."""
    if settings.retry_max_retries == 0:
        return NoRetry()
    return ExponentialBackoff(
        max_retries=settings.retry_max_retries,
        base_delay=settings.retry_base_delay_seconds,
    )


def build_workflow(settings: LoaderSettings, clients: AwsClients | None = None) -> OnboardingWorkflow:
    """Wire the gateways and the workflow from settings."""
    clients = clients or _get_clients(settings)
    backoff = build_backoff(settings)
    return OnboardingWorkflow(
        schema=SchemaGateway(settings, clients, retry=backoff),
        crawler=CrawlerGateway(settings, clients, retry=backoff),
        catalog=CatalogGateway(clients, retry=backoff),
        store=ObjectStore(settings.bucket_name, clients.client("s3"), retry=backoff),
        bucket=settings.bucket_name,
        prefix=settings.prefix,
        poll_interval=settings.poll_interval_seconds,
        timeout_seconds=settings.workflow_timeout_seconds,
    )


def build_backend(settings: LoaderSettings, clients: AwsClients | None = None) -> ExecutionBackend:
    """Pick the execution backend named by ``dispatch_backend``."""
    clients = clients or _get_clients(settings)
    if settings.dispatch_backend == "local":
        return LocalBackend(
            lambda: build_workflow(settings, clients),
            max_concurrent=settings.local_max_concurrent,
        )
    if not settings.machine_arn:
        raise ConfigError("machine_arn")
    return StepFunctionsBackend(
        clients.client("stepfunctions"),
        settings.machine_arn,
        retry=build_backoff(settings),
    )


def parse_queue_batch(event: dict[str, Any]) -> tuple[list[Any], list[int], list[RejectedEvent]]:
    """Decode the JSON body of each queue record.

    Returns:
        The decoded bodies, the record index of each body, and the records
        whose body is not JSON
    """
    bodies: list[Any] = []
    positions: list[int] = []
    rejected: list[RejectedEvent] = []
    for index, record in enumerate(event.get("Records") or []):
        body = record.get("body") if isinstance(record, dict) else None
        try:
            bodies.append(json.loads(body))
        except (TypeError, ValueError) as e:
            logger.warning("collector.rejected", index=index, reason=f"Invalid message body: {e}")
            rejected.append(RejectedEvent(index=index, reason=f"Invalid message body: {e}"))
            continue
        positions.append(index)
    return bodies, positions, rejected


def collect_handler(
    event: dict[str, Any],
    context: Any = None,
    *,
    settings: LoaderSettings | None = None,
    backend: ExecutionBackend | None = None,
) -> dict[str, Any]:
    """Deduplicate a queue batch and start one execution per logical path.

    With the local backend the executions run in this process and the
    handler returns once they have all finished, with their results under
    ``completed``.
    """
    settings = settings or get_settings()
    _setup(settings)
    backend = backend or _get_backend(settings)

    bodies, positions, rejected = parse_queue_batch(event)
    collector = EventCollector(backend, bucket=settings.bucket_name, prefix=settings.prefix)
    report = collector.collect(bodies)
    if isinstance(backend, LocalBackend):
        report.completed = [result.to_dict() for result in backend.wait().values()]

    merged = DispatchReport(started=report.started, completed=report.completed)
    merged.rejected = rejected + [
        RejectedEvent(index=positions[r.index], reason=r.reason) for r in report.rejected
    ]
    merged.rejected.sort(key=lambda r: r.index)
    return merged.to_dict()


def load_handler(
    event: dict[str, Any],
    context: Any = None,
    *,
    settings: LoaderSettings | None = None,
    workflow: OnboardingWorkflow | None = None,
) -> dict[str, Any]:
    """Run one workflow execution for an execution input or a raw event."""
    settings = settings or get_settings()
    _setup(settings)
    workflow = workflow or _get_workflow(settings)
    run_id = getattr(context, "aws_request_id", None)
    return workflow.run(event, run_id=run_id).to_dict()
