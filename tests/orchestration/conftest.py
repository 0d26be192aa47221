"""In-memory gateways for workflow tests.

Each fake records the calls it receives in ``calls`` so tests can assert on
exactly which external operations an execution performed.
"""

from typing import Any

import pytest

from catalog_loader.core.errors import TransientServiceError
from catalog_loader.core.lookup import Found, NotFound
from catalog_loader.orchestration.workflow import OnboardingWorkflow


class FakeSchema:
    def __init__(self, row_count: int = 7):
        self.calls: list[tuple] = []
        self.row_count = row_count
        self.fail_on: str | None = None

    def _record(self, *call):
        self.calls.append(call)
        if self.fail_on == call[0]:
            raise TransientServiceError(f"{call[0]} failed")

    def create_if_not_exists(self, schema):
        self._record("create_if_not_exists", schema)
        return "s-create"

    def drop_cascade(self, schema):
        self._record("drop_cascade", schema)
        return "s-drop"

    def select_count(self, schema, table):
        self._record("select_count", schema, table)
        return "q-1"

    def get_query_result(self, query_id):
        self._record("get_query_result", query_id)
        return [[{"longValue": self.row_count}]]


class FakeCrawler:
    def __init__(self, exists: bool = True, states: list[str] | None = None):
        self.calls: list[tuple] = []
        self.present = exists
        self.states = list(states or [])

    def exists(self, name):
        self.calls.append(("exists", name))
        return Found({"Name": name}) if self.present else NotFound(name)

    def create(self, name, database, path):
        self.calls.append(("create", name, database, path))
        self.present = True
        return {"Name": name}

    def get_status(self, name):
        self.calls.append(("get_status", name))
        return self.states.pop(0) if self.states else "READY"

    def start(self, name):
        self.calls.append(("start", name))

    def delete(self, name):
        self.calls.append(("delete", name))
        existed, self.present = self.present, False
        return existed


class FakeCatalog:
    def __init__(self, database: bool = True, tables: list[str] | None = None, table: bool = True):
        self.calls: list[tuple] = []
        self.database = database
        self.tables = list(tables or [])
        self.table = table

    def wait_for_database(self, name):
        self.calls.append(("wait_for_database", name))
        return Found({"Name": name}) if self.database else NotFound(name)

    def create_database(self, name):
        self.calls.append(("create_database", name))
        self.database = True

    def delete_table(self, database, table):
        self.calls.append(("delete_table", database, table))
        existed, self.table = self.table, False
        return existed

    def get_tables(self, database):
        self.calls.append(("get_tables", database))
        if not self.database:
            return NotFound(database)
        return Found([{"Name": t} for t in self.tables])

    def delete_database(self, name):
        self.calls.append(("delete_database", name))
        existed, self.database = self.database, False
        return existed


class FakeStore:
    def __init__(self, count: int = 0):
        self.calls: list[tuple] = []
        self.count = count

    def count_objects(self, prefix):
        self.calls.append(("count_objects", prefix))
        return self.count


class Gateways:
    def __init__(self):
        self.schema = FakeSchema()
        self.crawler = FakeCrawler()
        self.catalog = FakeCatalog()
        self.store = FakeStore()

    def operations(self) -> list[str]:
        """Names of every call made, across all fakes."""
        calls: list[Any] = []
        for fake in (self.schema, self.crawler, self.catalog, self.store):
            calls.extend(c[0] for c in fake.calls)
        return calls


@pytest.fixture
def gateways() -> Gateways:
    return Gateways()


@pytest.fixture
def make_workflow(gateways, sleep):
    def factory(**kwargs) -> OnboardingWorkflow:
        options = {
            "bucket": "landing-bucket",
            "prefix": "ns",
            "poll_interval": 10.0,
            "timeout_seconds": 3600.0,
            "sleep": sleep,
        }
        options.update(kwargs)
        return OnboardingWorkflow(
            gateways.schema, gateways.crawler, gateways.catalog, gateways.store, **options
        )

    return factory
