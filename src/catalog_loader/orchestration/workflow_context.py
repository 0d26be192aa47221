"""
Execution context: the mutable record of one workflow execution.

One context is created per execution and owned by it alone; nothing is
shared between executions. Each state reads the fields earlier states
filled in (the crawler state, the verification query id...) and appends to
the transition history.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from catalog_loader.core.identity import PathIdentity


@dataclass
class Transition:
    state: str
    outcome: str
    next_state: str
    at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "outcome": self.outcome,
            "next_state": self.next_state,
            "at": self.at.isoformat(),
        }


@dataclass
class WorkflowExecutionContext:
    """
    State carried through one onboarding/offboarding execution.

    Attributes:
        run_id: Unique identifier of this execution
        identity: Path identity, set once CHECK_INPUT has parsed the input
        crawler_state: Last crawler state read by a poll
        query_id: Id of the verification query
        row_count: Row count returned by the verification query
        database_created: Whether this execution created the catalog database
        object_count: Objects still present under the logical path
        table_names: Tables left in the catalog database
        history: Transitions taken so far
        started_at: When the execution began
    """

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    identity: PathIdentity | None = None
    crawler_state: str | None = None
    query_id: str | None = None
    row_count: int | None = None
    database_created: bool = False
    object_count: int | None = None
    table_names: list[str] = field(default_factory=list)
    history: list[Transition] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def path(self) -> str | None:
        return self.identity.path if self.identity else None

    @property
    def visited_states(self) -> list[str]:
        """States in the order they were executed."""
        return [t.state for t in self.history]

    def record(self, state: str, outcome: str, next_state: str) -> Transition:
        transition = Transition(state=state, outcome=outcome, next_state=next_state)
        self.history.append(transition)
        return transition

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and for the execution output."""
        return {
            "run_id": self.run_id,
            "identity": self.identity.to_dict() if self.identity else None,
            "crawler_state": self.crawler_state,
            "query_id": self.query_id,
            "row_count": self.row_count,
            "database_created": self.database_created,
            "object_count": self.object_count,
            "table_names": list(self.table_names),
            "history": [t.to_dict() for t in self.history],
            "started_at": self.started_at.isoformat(),
        }
