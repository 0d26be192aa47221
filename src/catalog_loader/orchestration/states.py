"""States, outcomes and the transition table of the onboarding workflow.

::

    CHECK_INPUT ─┬─ CREATED ─▶ CREATE_SCHEMA ─▶ ENSURE_DATABASE ─┬─ FOUND ─────▶ ENSURE_CRAWLER
                 │                                  ▲            └─ NOT_FOUND ─▶ CREATE_DATABASE
                 │                                  └──────────────────────────────────┘
                 │             ENSURE_CRAWLER ─┬─ FOUND ─────▶ PRECHECK_CRAWLER
                 │                             └─ NOT_FOUND ─▶ CREATE_CRAWLER ─▶ PRECHECK_CRAWLER
                 │             PRECHECK_CRAWLER ─▶ START_CRAWLER ─▶ POSTCHECK_CRAWLER
                 │             ─▶ VERIFY_QUERY ─▶ READ_QUERY_RESULT ─▶ SUCCEEDED
                 │
                 ├─ REMOVED ─▶ LIST_FOLDER ─┬─ NOT_EMPTY ─▶ SUCCEEDED
                 │                          └─ EMPTY ─▶ DELETE_TABLE ─▶ DELETE_CRAWLER
                 │             ─▶ CHECK_DATABASE_EMPTY ─┬─ NOT_EMPTY ─▶ SUCCEEDED
                 │                                      ├─ EMPTY ─────▶ DELETE_DATABASE ─▶ DROP_SCHEMA
                 │                                      └─ NOT_FOUND ─▶ DROP_SCHEMA
                 │             DROP_SCHEMA ─▶ SUCCEEDED
                 │
                 └─ IGNORED ─▶ SUCCEEDED
"""

from __future__ import annotations

from enum import Enum

from catalog_loader.core.errors import TransitionError


class State(str, Enum):
    CHECK_INPUT = "CHECK_INPUT"

    # Create branch
    CREATE_SCHEMA = "CREATE_SCHEMA"
    ENSURE_DATABASE = "ENSURE_DATABASE"
    CREATE_DATABASE = "CREATE_DATABASE"
    ENSURE_CRAWLER = "ENSURE_CRAWLER"
    CREATE_CRAWLER = "CREATE_CRAWLER"
    PRECHECK_CRAWLER = "PRECHECK_CRAWLER"
    START_CRAWLER = "START_CRAWLER"
    POSTCHECK_CRAWLER = "POSTCHECK_CRAWLER"
    VERIFY_QUERY = "VERIFY_QUERY"
    READ_QUERY_RESULT = "READ_QUERY_RESULT"

    # Delete branch
    LIST_FOLDER = "LIST_FOLDER"
    DELETE_TABLE = "DELETE_TABLE"
    DELETE_CRAWLER = "DELETE_CRAWLER"
    CHECK_DATABASE_EMPTY = "CHECK_DATABASE_EMPTY"
    DELETE_DATABASE = "DELETE_DATABASE"
    DROP_SCHEMA = "DROP_SCHEMA"

    # Terminal
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


class Outcome(str, Enum):
    CREATED = "CREATED"
    REMOVED = "REMOVED"
    IGNORED = "IGNORED"
    DONE = "DONE"
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    READY = "READY"
    EMPTY = "EMPTY"
    NOT_EMPTY = "NOT_EMPTY"


TERMINAL_STATES = frozenset({State.SUCCEEDED, State.FAILED, State.TIMED_OUT})

TRANSITIONS: dict[tuple[State, Outcome], State] = {
    (State.CHECK_INPUT, Outcome.CREATED): State.CREATE_SCHEMA,
    (State.CHECK_INPUT, Outcome.REMOVED): State.LIST_FOLDER,
    (State.CHECK_INPUT, Outcome.IGNORED): State.SUCCEEDED,
    # Create
    (State.CREATE_SCHEMA, Outcome.DONE): State.ENSURE_DATABASE,
    (State.ENSURE_DATABASE, Outcome.FOUND): State.ENSURE_CRAWLER,
    (State.ENSURE_DATABASE, Outcome.NOT_FOUND): State.CREATE_DATABASE,
    (State.CREATE_DATABASE, Outcome.DONE): State.ENSURE_DATABASE,
    (State.ENSURE_CRAWLER, Outcome.FOUND): State.PRECHECK_CRAWLER,
    (State.ENSURE_CRAWLER, Outcome.NOT_FOUND): State.CREATE_CRAWLER,
    (State.CREATE_CRAWLER, Outcome.DONE): State.PRECHECK_CRAWLER,
    (State.PRECHECK_CRAWLER, Outcome.READY): State.START_CRAWLER,
    (State.START_CRAWLER, Outcome.DONE): State.POSTCHECK_CRAWLER,
    (State.POSTCHECK_CRAWLER, Outcome.READY): State.VERIFY_QUERY,
    (State.VERIFY_QUERY, Outcome.DONE): State.READ_QUERY_RESULT,
    (State.READ_QUERY_RESULT, Outcome.DONE): State.SUCCEEDED,
    # Delete
    (State.LIST_FOLDER, Outcome.NOT_EMPTY): State.SUCCEEDED,
    (State.LIST_FOLDER, Outcome.EMPTY): State.DELETE_TABLE,
    (State.DELETE_TABLE, Outcome.DONE): State.DELETE_CRAWLER,
    (State.DELETE_TABLE, Outcome.NOT_FOUND): State.DELETE_CRAWLER,
    (State.DELETE_CRAWLER, Outcome.DONE): State.CHECK_DATABASE_EMPTY,
    (State.DELETE_CRAWLER, Outcome.NOT_FOUND): State.CHECK_DATABASE_EMPTY,
    (State.CHECK_DATABASE_EMPTY, Outcome.NOT_EMPTY): State.SUCCEEDED,
    (State.CHECK_DATABASE_EMPTY, Outcome.EMPTY): State.DELETE_DATABASE,
    (State.CHECK_DATABASE_EMPTY, Outcome.NOT_FOUND): State.DROP_SCHEMA,
    (State.DELETE_DATABASE, Outcome.DONE): State.DROP_SCHEMA,
    (State.DELETE_DATABASE, Outcome.NOT_FOUND): State.DROP_SCHEMA,
    (State.DROP_SCHEMA, Outcome.DONE): State.SUCCEEDED,
}


def next_state(state: State, outcome: Outcome) -> State:
    """Look up the successor of ``state`` on ``outcome``.

    Raises:
        TransitionError: The pair is not in the table
    """
    try:
        return TRANSITIONS[(state, outcome)]
    except KeyError:
        raise TransitionError(state.value, outcome.value) from None
