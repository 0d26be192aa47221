"""Onboarding workflow: the state machine that provisions and tears down a path.

One ``OnboardingWorkflow.run`` call is one execution. It parses the input
into a ``PathIdentity``, then walks the transition table in
``orchestration.states`` until it reaches a terminal state. Each state is a
method returning an ``Outcome``; the table decides what comes next.

"Not found" from the catalog is never a failure here: gateways return a
``NotFound`` variant (or ``False`` from deletes) and the state maps it to
its own outcome. Anything else a gateway raises, after its own retries, ends
the execution in ``FAILED``. Resources created before the failure are left
in place.

Example::

    workflow = OnboardingWorkflow(schema, crawler, catalog, store,
                                  bucket="landing-bucket", prefix="caq")
    result = workflow.run(event)
    if result.status is State.SUCCEEDED:
        print(result.context.row_count)
    else:
        print(f"Failed at {result.error_state}: {result.error}")
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Callable

from catalog_loader.core.errors import (
    DatabaseNotFoundError,
    ErrorCategory,
    InvalidInputError,
    LoaderError,
)
from catalog_loader.core.identity import PathIdentity, parse_event
from catalog_loader.core.logging import LogContext, bind_context, get_logger
from catalog_loader.core.lookup import Found
from catalog_loader.execution.retry import ConstantBackoff, RetryStrategy
from catalog_loader.execution.timeout import TimeoutExpired, check_deadline, deadline_context, deadline_sleep
from catalog_loader.gateways.crawler import READY
from catalog_loader.orchestration.states import Outcome, State, next_state
from catalog_loader.orchestration.workflow_context import WorkflowExecutionContext

logger = get_logger(__name__)

WORKFLOW_NAME = "catalog-onboarding"


@dataclass
class WorkflowResult:
    """Terminal state of one execution."""

    status: State
    context: WorkflowExecutionContext
    started_at: datetime
    completed_at: datetime | None = None
    error: str | None = None
    error_type: str | None = None
    error_state: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is State.SUCCEEDED

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "run_id": self.context.run_id,
            "path": self.context.path,
            "row_count": self.context.row_count,
            "error": self.error,
            "error_type": self.error_type,
            "error_state": self.error_state,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "context": self.context.to_dict(),
        }


class OnboardingWorkflow:
    """Runs the create or delete sequence for one logical path.

    Args:
        schema: ``SchemaGateway``-like object (DDL and count query)
        crawler: ``CrawlerGateway``-like object
        catalog: ``CatalogGateway``-like object
        store: ``ObjectStore``-like object
        bucket: The only accepted bucket
        prefix: Namespace prefix for derived names
        poll_interval: Seconds between crawler status reads
        poll_policy: Wait policy of the crawler polling loops; defaults to a
            fixed ``poll_interval`` that never gives up before the deadline
        timeout_seconds: Overall deadline of one execution
        sleep: Suspension primitive used by the polling loops
    """

    def __init__(
        self,
        schema: Any,
        crawler: Any,
        catalog: Any,
        store: Any,
        *,
        bucket: str,
        prefix: str,
        poll_interval: float = 10.0,
        timeout_seconds: float = 3600.0,
        sleep: Callable[[float], None] = time.sleep,
        workflow_name: str = WORKFLOW_NAME,
        poll_policy: RetryStrategy | None = None,
    ):
        self.schema = schema
        self.crawler = crawler
        self.catalog = catalog
        self.store = store
        self.bucket = bucket
        self.prefix = prefix
        self.poll_interval = poll_interval
        self.timeout_seconds = timeout_seconds
        self.workflow_name = workflow_name
        self.poll_policy = poll_policy or ConstantBackoff(max_retries=None, delay=poll_interval)
        self._sleep = sleep

        self._handlers: dict[State, Callable[[WorkflowExecutionContext], Outcome]] = {
            State.CREATE_SCHEMA: self._create_schema,
            State.ENSURE_DATABASE: self._ensure_database,
            State.CREATE_DATABASE: self._create_database,
            State.ENSURE_CRAWLER: self._ensure_crawler,
            State.CREATE_CRAWLER: self._create_crawler,
            State.PRECHECK_CRAWLER: self._wait_for_crawler,
            State.START_CRAWLER: self._start_crawler,
            State.POSTCHECK_CRAWLER: self._wait_for_crawler,
            State.VERIFY_QUERY: self._verify_query,
            State.READ_QUERY_RESULT: self._read_query_result,
            State.LIST_FOLDER: self._list_folder,
            State.DELETE_TABLE: self._delete_table,
            State.DELETE_CRAWLER: self._delete_crawler,
            State.CHECK_DATABASE_EMPTY: self._check_database_empty,
            State.DELETE_DATABASE: self._delete_database,
            State.DROP_SCHEMA: self._drop_schema,
        }

    def run(self, event: Any, run_id: str | None = None) -> WorkflowResult:
        """Execute the workflow for one inbound event or execution input."""
        ctx = WorkflowExecutionContext(run_id=run_id) if run_id else WorkflowExecutionContext()
        started_at = datetime.now(UTC)
        state = State.CHECK_INPUT

        with LogContext(workflow=self.workflow_name, run_id=ctx.run_id, path=None):
            logger.info("workflow.started")
            try:
                with deadline_context(self.timeout_seconds, operation=self.workflow_name):
                    while not state.is_terminal:
                        check_deadline(state.value)
                        outcome = self._execute(state, event, ctx)
                        if state is State.CHECK_INPUT:
                            bind_context(path=ctx.path)
                        target = next_state(state, outcome)
                        ctx.record(state.value, outcome.value, target.value)
                        logger.info(
                            "workflow.transition",
                            state=state.value,
                            outcome=outcome.value,
                            next_state=target.value,
                        )
                        state = target
            except TimeoutExpired as e:
                logger.error("workflow.timed_out", state=state.value, error=str(e))
                return self._finish(ctx, State.TIMED_OUT, started_at, e, state)
            except InvalidInputError as e:
                logger.warning("workflow.invalid_input", state=state.value, error=e.message)
                return self._finish(ctx, State.FAILED, started_at, e, state)
            except LoaderError as e:
                e.with_context(workflow=self.workflow_name, state=state.value, run_id=ctx.run_id, path=ctx.path)
                logger.error("workflow.failed", state=state.value, **e.to_dict())
                return self._finish(ctx, State.FAILED, started_at, e, state)
            except Exception as e:
                logger.exception("workflow.failed", state=state.value)
                return self._finish(ctx, State.FAILED, started_at, e, state)

            logger.info("workflow.completed", status=state.value, row_count=ctx.row_count)
            return self._finish(ctx, state, started_at)

    def _execute(self, state: State, event: Any, ctx: WorkflowExecutionContext) -> Outcome:
        if state is State.CHECK_INPUT:
            return self._check_input(event, ctx)
        return self._handlers[state](ctx)

    def _finish(
        self,
        ctx: WorkflowExecutionContext,
        status: State,
        started_at: datetime,
        error: BaseException | None = None,
        error_state: State | None = None,
    ) -> WorkflowResult:
        return WorkflowResult(
            status=status,
            context=ctx,
            started_at=started_at,
            completed_at=datetime.now(UTC),
            error=str(error) if error else None,
            error_type=type(error).__name__ if error else None,
            error_state=error_state.value if error and error_state else None,
        )

    # =========================================================================
    # Input
    # =========================================================================

    def _check_input(self, event: Any, ctx: WorkflowExecutionContext) -> Outcome:
        identity = parse_event(event, bucket=self.bucket, prefix=self.prefix)
        ctx.identity = identity
        if identity.is_created:
            return Outcome.CREATED
        if identity.is_removed:
            return Outcome.REMOVED
        logger.info("workflow.event_ignored", key=identity.key)
        return Outcome.IGNORED

    # =========================================================================
    # Create branch
    # =========================================================================

    def _create_schema(self, ctx: WorkflowExecutionContext) -> Outcome:
        self.schema.create_if_not_exists(_identity(ctx).schema)
        return Outcome.DONE

    def _ensure_database(self, ctx: WorkflowExecutionContext) -> Outcome:
        name = _identity(ctx).schema
        if isinstance(self.catalog.wait_for_database(name), Found):
            return Outcome.FOUND
        if ctx.database_created:
            raise DatabaseNotFoundError(name, f"Database [{name}] still not found after creating it")
        return Outcome.NOT_FOUND

    def _create_database(self, ctx: WorkflowExecutionContext) -> Outcome:
        self.catalog.create_database(_identity(ctx).schema)
        ctx.database_created = True
        return Outcome.DONE

    def _ensure_crawler(self, ctx: WorkflowExecutionContext) -> Outcome:
        if isinstance(self.crawler.exists(_identity(ctx).crawler), Found):
            return Outcome.FOUND
        return Outcome.NOT_FOUND

    def _create_crawler(self, ctx: WorkflowExecutionContext) -> Outcome:
        identity = _identity(ctx)
        self.crawler.create(identity.crawler, identity.schema, identity.path)
        return Outcome.DONE

    def _wait_for_crawler(self, ctx: WorkflowExecutionContext) -> Outcome:
        """Read the crawler state until it is READY, waiting per ``poll_policy`` between reads."""
        name = _identity(ctx).crawler
        polls = 0
        while True:
            ctx.crawler_state = self.crawler.get_status(name)
            polls += 1
            if ctx.crawler_state == READY:
                logger.debug("workflow.crawler_ready", crawler=name, polls=polls)
                return Outcome.READY
            if not self.poll_policy.should_retry(polls - 1):
                raise LoaderError(
                    f"Crawler [{name}] not ready after {polls} polls (state {ctx.crawler_state})"
                )
            logger.debug("workflow.crawler_waiting", crawler=name, crawler_state=ctx.crawler_state)
            deadline_sleep(self.poll_policy.next_delay(polls - 1), sleep=self._sleep)

    def _start_crawler(self, ctx: WorkflowExecutionContext) -> Outcome:
        self.crawler.start(_identity(ctx).crawler)
        return Outcome.DONE

    def _verify_query(self, ctx: WorkflowExecutionContext) -> Outcome:
        identity = _identity(ctx)
        ctx.query_id = self.schema.select_count(identity.schema, identity.table)
        return Outcome.DONE

    def _read_query_result(self, ctx: WorkflowExecutionContext) -> Outcome:
        records = self.schema.get_query_result(ctx.query_id)
        try:
            ctx.row_count = int(records[0][0]["longValue"])
        except (IndexError, KeyError, TypeError, ValueError) as e:
            raise LoaderError(f"Unexpected count result for query [{ctx.query_id}]", cause=e) from e
        return Outcome.DONE

    # =========================================================================
    # Delete branch
    # =========================================================================

    def _list_folder(self, ctx: WorkflowExecutionContext) -> Outcome:
        ctx.object_count = self.store.count_objects(_identity(ctx).path)
        if ctx.object_count > 0:
            logger.info("workflow.folder_not_empty", object_count=ctx.object_count)
            return Outcome.NOT_EMPTY
        return Outcome.EMPTY

    def _delete_table(self, ctx: WorkflowExecutionContext) -> Outcome:
        identity = _identity(ctx)
        return Outcome.DONE if self.catalog.delete_table(identity.schema, identity.table) else Outcome.NOT_FOUND

    def _delete_crawler(self, ctx: WorkflowExecutionContext) -> Outcome:
        return Outcome.DONE if self.crawler.delete(_identity(ctx).crawler) else Outcome.NOT_FOUND

    def _check_database_empty(self, ctx: WorkflowExecutionContext) -> Outcome:
        tables = self.catalog.get_tables(_identity(ctx).schema)
        if not isinstance(tables, Found):
            return Outcome.NOT_FOUND
        ctx.table_names = [t.get("Name", "") for t in tables.value]
        return Outcome.NOT_EMPTY if ctx.table_names else Outcome.EMPTY

    def _delete_database(self, ctx: WorkflowExecutionContext) -> Outcome:
        return Outcome.DONE if self.catalog.delete_database(_identity(ctx).schema) else Outcome.NOT_FOUND

    def _drop_schema(self, ctx: WorkflowExecutionContext) -> Outcome:
        self.schema.drop_cascade(_identity(ctx).schema)
        return Outcome.DONE


def _identity(ctx: WorkflowExecutionContext) -> PathIdentity:
    if ctx.identity is None:
        raise LoaderError("No path identity: CHECK_INPUT has not run", category=ErrorCategory.ORCHESTRATION)
    return ctx.identity
