"""Query engine gateway: external schema DDL and verification queries.

Statements go through the Redshift Data API, which is asynchronous: every
call returns a statement id immediately and results are fetched later.
"""

from __future__ import annotations

from typing import Any, Callable

from botocore.exceptions import ClientError

from catalog_loader.core.errors import ConfigError, QueryResultNotFoundError, TransientServiceError
from catalog_loader.core.logging import get_logger
from catalog_loader.core.settings import LoaderSettings
from catalog_loader.execution.retry import RetryStrategy
from catalog_loader.gateways import sqls
from catalog_loader.gateways.aws import AssumedRoleClient, AwsClients, AwsGateway, error_code

logger = get_logger(__name__)

SESSION_NAME = "serverless-loader"

# ValidationException messages meaning "result not there yet"
_NOT_READY_MARKERS = ("not finished", "does not have result")


class SchemaGateway(AwsGateway):
    """Runs schema DDL and row-count queries against the query engine."""

    def __init__(
        self,
        settings: LoaderSettings,
        clients: AwsClients,
        retry: RetryStrategy | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        super().__init__(retry=retry, sleep=sleep)
        for key in ("cluster_name", "secret_arn"):
            if not getattr(settings, key):
                raise ConfigError(key)
        self._settings = settings
        self._client = AssumedRoleClient(
            clients, "redshift-data", settings.loader_role_arn, SESSION_NAME
        )

    def create_if_not_exists(self, schema: str) -> str:
        """Create the external schema and its catalog database. Returns the statement id."""
        sql = sqls.create_external_schema(
            schema, self._settings.iam_role, self._settings.catalog_role
        )
        return self._execute("schema.create", sql, schema)

    def drop_cascade(self, schema: str) -> str:
        """Drop the external schema and its catalog database. Returns the statement id."""
        return self._execute("schema.drop", sqls.drop_schema(schema), schema)

    def select_count(self, schema: str, table: str) -> str:
        """Submit ``select count(*)`` for the table. Returns the query id."""
        return self._execute("schema.select_count", sqls.select_count(schema, table), f"{schema}.{table}")

    def get_query_result(self, query_id: str) -> list[list[dict[str, Any]]]:
        """Fetch the records of a finished query.

        The result is retried while the engine reports it missing or not yet
        finished.

        Raises:
            QueryResultNotFoundError: The result never became available
        """

        def fetch() -> list[list[dict[str, Any]]]:
            try:
                response = self._client.get().get_statement_result(Id=query_id)
            except ClientError as e:
                message = e.response.get("Error", {}).get("Message", "").lower()
                if error_code(e) == "ValidationException" and any(
                    marker in message for marker in _NOT_READY_MARKERS
                ):
                    raise QueryResultNotFoundError(query_id, cause=e) from e
                raise
            return response.get("Records", [])

        return self._call(
            "redshift_data.get_statement_result",
            fetch,
            resource=query_id,
            not_found=QueryResultNotFoundError,
            retry_on=(QueryResultNotFoundError, TransientServiceError),
        )

    def _execute(self, operation: str, sql: str, resource: str) -> str:
        def submit() -> str:
            response = self._client.get().execute_statement(
                ClusterIdentifier=self._settings.cluster_name,
                Database=self._settings.database_name,
                SecretArn=self._settings.secret_arn,
                Sql=sql,
            )
            return response["Id"]

        statement_id = self._call(operation, submit, resource=resource)
        logger.info("schema.statement_submitted", operation=operation, resource=resource, statement_id=statement_id)
        return statement_id
