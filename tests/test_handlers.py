"""Tests for the process entry points."""

import json
import threading
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from catalog_loader import handlers
from catalog_loader.core.errors import ConfigError
from catalog_loader.core.identity import PathIdentity
from catalog_loader.dispatch.backends import LocalBackend, StepFunctionsBackend
from catalog_loader.execution.retry import NoRetry
from catalog_loader.gateways.aws import AwsClients
from catalog_loader.gateways.catalog import CatalogGateway
from catalog_loader.gateways.schema import SchemaGateway
from catalog_loader.orchestration.states import State
from catalog_loader.orchestration.workflow import OnboardingWorkflow, WorkflowResult
from catalog_loader.orchestration.workflow_context import WorkflowExecutionContext


@pytest.fixture(autouse=True)
def fresh_process(monkeypatch):
    monkeypatch.setattr(handlers, "_logging_configured", True)
    monkeypatch.setattr(handlers, "_clients", None)
    monkeypatch.setattr(handlers, "_backend", None)
    monkeypatch.setattr(handlers, "_workflow", None)
    yield
    if isinstance(handlers._backend, LocalBackend):
        handlers._backend.shutdown()


class RecordingBackend:
    def __init__(self):
        self.started = []

    def start(self, identity):
        self.started.append(identity)
        return f"exec-{len(self.started)}"


def queue_batch(*bodies):
    return {"Records": [{"messageId": str(i), "body": body} for i, body in enumerate(bodies)]}


class FakeWorkflow:
    def __init__(self, error: Exception | None = None):
        self.error = error

    def run(self, event, run_id=None):
        if self.error is not None:
            raise self.error
        ctx = WorkflowExecutionContext(run_id=run_id, identity=PathIdentity.from_dict(event))
        now = datetime.now(UTC)
        return WorkflowResult(status=State.SUCCEEDED, context=ctx, started_at=now, completed_at=now)


class TestCollectHandler:
    def test_deduplicates_batch(self, settings, make_record):
        backend = RecordingBackend()
        event = queue_batch(
            json.dumps(make_record("landing/sales/orders/1.csv")),
            json.dumps(make_record("landing/sales/orders/2.csv")),
            json.dumps(make_record("landing/sales/customers/1.csv")),
        )

        result = handlers.collect_handler(event, settings=settings, backend=backend)

        assert len(result["started"]) == 2
        assert result["rejected"] == []

    def test_non_json_body_rejected_alone(self, settings, make_record):
        backend = RecordingBackend()
        event = queue_batch(
            "not json",
            json.dumps(make_record("a/b")),
            json.dumps(make_record("landing/sales/orders/1.csv")),
        )

        result = handlers.collect_handler(event, settings=settings, backend=backend)

        assert len(backend.started) == 1
        assert [r["index"] for r in result["rejected"]] == [0, 1]
        assert "Invalid message body" in result["rejected"][0]["reason"]

    def test_empty_event(self, settings):
        result = handlers.collect_handler({}, settings=settings, backend=RecordingBackend())
        assert result == {"started": [], "rejected": [], "completed": []}


class TestLocalDispatch:
    @pytest.fixture
    def local_settings(self, settings):
        return settings.model_copy(update={"dispatch_backend": "local", "local_max_concurrent": 2})

    def test_waits_for_executions_and_reuses_pool(self, local_settings, make_record, monkeypatch):
        monkeypatch.setattr(handlers, "build_workflow", lambda settings, clients=None: FakeWorkflow())
        event = queue_batch(
            json.dumps(make_record("landing/sales/orders/1.csv")),
            json.dumps(make_record("landing/sales/customers/1.csv")),
        )

        results = [handlers.collect_handler(event, settings=local_settings) for _ in range(3)]

        backend = handlers._backend
        assert isinstance(backend, LocalBackend)
        assert backend._futures == {}
        for result in results:
            assert [c["status"] for c in result["completed"]] == ["SUCCEEDED", "SUCCEEDED"]
            assert {c["run_id"] for c in result["completed"]} == {s["execution_id"] for s in result["started"]}
        pool_threads = [t for t in threading.enumerate() if t.name.startswith("catalog-loader")]
        assert len(pool_threads) <= 2

    def test_execution_error_reaches_caller(self, local_settings, make_record, monkeypatch):
        monkeypatch.setattr(
            handlers, "build_workflow", lambda settings, clients=None: FakeWorkflow(RuntimeError("boom"))
        )
        event = queue_batch(json.dumps(make_record("landing/sales/orders/1.csv")))

        with pytest.raises(RuntimeError, match="boom"):
            handlers.collect_handler(event, settings=local_settings)
        assert handlers._backend._futures == {}


class TestLoadHandler:
    def test_runs_workflow_with_request_id(self, settings, created_event):
        class Workflow:
            def run(self, event, run_id=None):
                self.seen = (event, run_id)
                return SimpleNamespace(to_dict=lambda: {"status": "SUCCEEDED", "run_id": run_id})

        workflow = Workflow()
        context = SimpleNamespace(aws_request_id="req-1")

        result = handlers.load_handler(created_event, context, settings=settings, workflow=workflow)

        assert result == {"status": "SUCCEEDED", "run_id": "req-1"}
        assert workflow.seen == (created_event, "req-1")

    def test_workflow_built_once_per_process(self, settings, created_event, monkeypatch):
        built = []

        def build(settings, clients=None):
            built.append(FakeWorkflow())
            return built[-1]

        monkeypatch.setattr(handlers, "build_workflow", build)
        event = PathIdentity.from_event_bus_record(created_event, bucket="landing-bucket", prefix="ns").to_dict()

        first = handlers.load_handler(event, settings=settings)
        second = handlers.load_handler(event, settings=settings)

        assert len(built) == 1
        assert first["status"] == second["status"] == "SUCCEEDED"


class TestBuilders:
    def test_build_workflow(self, settings):
        workflow = handlers.build_workflow(settings, AwsClients(region="us-east-1"))

        assert isinstance(workflow, OnboardingWorkflow)
        assert isinstance(workflow.schema, SchemaGateway)
        assert isinstance(workflow.catalog, CatalogGateway)
        assert workflow.prefix == "ns"
        assert workflow.poll_interval == 10.0
        assert workflow.timeout_seconds == 3600.0

    def test_build_stepfunctions_backend(self, settings):
        backend = handlers.build_backend(settings, AwsClients(region="us-east-1"))
        assert isinstance(backend, StepFunctionsBackend)
        assert backend.machine_arn == settings.machine_arn

    def test_stepfunctions_backend_needs_machine_arn(self, settings):
        settings = settings.model_copy(update={"machine_arn": None})
        with pytest.raises(ConfigError, match="machine_arn"):
            handlers.build_backend(settings, AwsClients(region="us-east-1"))

    def test_build_local_backend(self, settings):
        settings = settings.model_copy(update={"dispatch_backend": "local"})
        backend = handlers.build_backend(settings, AwsClients(region="us-east-1"))
        assert isinstance(backend, LocalBackend)
        backend.shutdown()

    def test_backoff_from_settings(self, settings):
        backoff = handlers.build_backoff(settings.model_copy(update={"retry_max_retries": 5}))
        assert backoff.max_retries == 5
        assert backoff.base_delay == 2.0

    def test_zero_retries_disables_retry(self, settings):
        backoff = handlers.build_backoff(settings.model_copy(update={"retry_max_retries": 0}))
        assert isinstance(backoff, NoRetry)
