"""Execution backends: where a started workflow execution actually runs.

ARCHITECTURE
────────────
::

    ExecutionBackend (protocol)
      ├── StepFunctionsBackend  ─ start_execution on a deployed state machine
      └── LocalBackend          ─ OnboardingWorkflow.run on a thread pool
            ├── .start(identity) ─ submit, returns execution id
            ├── .wait()          ─ results by execution id
            └── .shutdown()      ─ drain pool

Both backends receive the identity as the JSON execution input
(``PathIdentity.to_dict()``), so a local execution parses exactly what a
remote one would.
"""

from __future__ import annotations

import json
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Protocol

from catalog_loader.core.identity import PathIdentity
from catalog_loader.core.logging import get_logger
from catalog_loader.execution.retry import RetryStrategy
from catalog_loader.gateways.aws import AwsGateway
from catalog_loader.orchestration.workflow import OnboardingWorkflow, WorkflowResult

logger = get_logger(__name__)


class ExecutionBackend(Protocol):
    def start(self, identity: PathIdentity) -> str:
        """Start one workflow execution and return its execution id."""
        ...


class StepFunctionsBackend(AwsGateway):
    """Starts executions of an externally deployed state machine."""

    def __init__(
        self,
        client: Any,
        machine_arn: str,
        retry: RetryStrategy | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        super().__init__(retry=retry, sleep=sleep)
        self._sfn = client
        self.machine_arn = machine_arn

    def start(self, identity: PathIdentity) -> str:
        payload = json.dumps(identity.to_dict())
        response = self._call(
            "stepfunctions.start_execution",
            lambda: self._sfn.start_execution(stateMachineArn=self.machine_arn, input=payload),
            resource=identity.path,
        )
        return response["executionArn"]


class LocalBackend:
    """Runs executions in-process on a thread pool.

    Example:
        >>> with LocalBackend(lambda: build_workflow(settings), max_concurrent=4) as backend:
        ...     EventCollector(backend, bucket=bucket, prefix="caq").collect(events)
        ...     results = backend.wait()
    """

    def __init__(self, workflow_factory: Callable[[], OnboardingWorkflow], max_concurrent: int = 4):
        self._factory = workflow_factory
        self.pool = ThreadPoolExecutor(max_workers=max_concurrent, thread_name_prefix="catalog-loader")
        self._futures: dict[str, Future[WorkflowResult]] = {}

    def start(self, identity: PathIdentity) -> str:
        execution_id = f"local-{uuid.uuid4().hex[:8]}"
        payload = identity.to_dict()
        self._futures[execution_id] = self.pool.submit(self._run, execution_id, payload)
        return execution_id

    def _run(self, execution_id: str, payload: dict[str, Any]) -> WorkflowResult:
        # One workflow per execution: nothing mutable is shared between threads
        return self._factory().run(payload, run_id=execution_id)

    def wait(self, timeout: float | None = None) -> dict[str, WorkflowResult]:
        """Block until every execution started so far has finished.

        Finished executions are forgotten, so each result is returned once.

        Raises:
            The exception of an execution that did not produce a result
        """
        results: dict[str, WorkflowResult] = {}
        for execution_id in list(self._futures):
            future = self._futures.pop(execution_id)
            results[execution_id] = future.result(timeout=timeout)
        return results

    def shutdown(self, wait: bool = True) -> None:
        self.pool.shutdown(wait=wait)

    def __enter__(self) -> LocalBackend:
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()
