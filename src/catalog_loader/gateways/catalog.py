"""Metadata catalog gateway: databases and tables."""

from __future__ import annotations

from typing import Any, Callable

from botocore.exceptions import ClientError

from catalog_loader.core.errors import DatabaseNotFoundError, TableNotFoundError
from catalog_loader.core.logging import get_logger
from catalog_loader.core.lookup import Lookup, lookup
from catalog_loader.execution.retry import RetryStrategy
from catalog_loader.gateways.aws import AwsClients, AwsGateway, error_code

logger = get_logger(__name__)


class CatalogGateway(AwsGateway):
    def __init__(
        self,
        clients: AwsClients,
        retry: RetryStrategy | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        super().__init__(retry=retry, sleep=sleep)
        self._glue = clients.client("glue")

    def get_database(self, name: str) -> Lookup[dict[str, Any]]:
        return lookup(lambda: self._get_database(name))

    def wait_for_database(self, name: str) -> Lookup[dict[str, Any]]:
        """Read a database that may still be being created.

        "Not found" is retried with backoff before it is reported as the
        ``NotFound`` variant.
        """
        ctx = self._retrying("glue.get_database", retry_on=(DatabaseNotFoundError,))
        return lookup(lambda: ctx.run(self._get_database, name))

    def create_database(self, name: str) -> None:
        """Create the database. An existing one is accepted."""

        def create() -> None:
            try:
                self._glue.create_database(DatabaseInput={"Name": name})
            except ClientError as e:
                if error_code(e) != "AlreadyExistsException":
                    raise
                logger.info("catalog.database_exists", database=name)

        self._call("glue.create_database", create, resource=name)
        logger.info("catalog.database_created", database=name)

    def delete_database(self, name: str) -> bool:
        """Returns False if the database did not exist."""
        return lookup(
            lambda: self._call(
                "glue.delete_database",
                lambda: self._glue.delete_database(Name=name),
                resource=name,
                not_found=DatabaseNotFoundError,
            )
        ).is_found()

    def get_tables(self, database: str) -> Lookup[list[dict[str, Any]]]:
        """List every table of ``database``, following pagination."""

        def list_tables() -> list[dict[str, Any]]:
            tables: list[dict[str, Any]] = []
            params: dict[str, Any] = {"DatabaseName": database}
            while True:
                response = self._call(
                    "glue.get_tables",
                    lambda: self._glue.get_tables(**params),
                    resource=database,
                    not_found=DatabaseNotFoundError,
                )
                tables.extend(response.get("TableList", []))
                token = response.get("NextToken")
                if not token:
                    return tables
                params["NextToken"] = token

        return lookup(list_tables)

    def delete_table(self, database: str, table: str) -> bool:
        """Returns False if the table (or its database) did not exist."""
        return lookup(
            lambda: self._call(
                "glue.delete_table",
                lambda: self._glue.delete_table(DatabaseName=database, Name=table),
                resource=f"{database}.{table}",
                not_found=TableNotFoundError,
            )
        ).is_found()

    def _get_database(self, name: str) -> dict[str, Any]:
        response = self._call(
            "glue.get_database",
            lambda: self._glue.get_database(Name=name),
            resource=name,
            not_found=DatabaseNotFoundError,
        )
        return response["Database"]
