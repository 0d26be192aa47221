"""AWS client wiring and error translation shared by all gateways.

Every external call goes through ``AwsGateway._call``:

::

    RetryContext (retryable errors, 2s/4s/8s)
      └── translate_errors(operation, not_found=...)
            ├── ClientError, not-found code  → NotFoundError subclass
            ├── ClientError, any other code  → TransientServiceError
            └── BotoCoreError                → TransientServiceError
                  └── boto3 client call

botocore's own retries are disabled so the RetryPolicy is the only retry
layer and its waits stay within the workflow deadline.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from typing import Any, Callable, Iterator, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from catalog_loader.core.errors import NotFoundError, TransientServiceError
from catalog_loader.core.logging import get_logger
from catalog_loader.execution.retry import ExponentialBackoff, RetryContext, RetryStrategy
from catalog_loader.execution.timeout import deadline_sleep

T = TypeVar("T")

logger = get_logger(__name__)

NOT_FOUND_CODES = frozenset({"EntityNotFoundException", "ResourceNotFoundException"})

# Refresh assumed-role credentials this long before they expire
_CREDENTIAL_MARGIN = timedelta(minutes=5)


def error_code(error: ClientError) -> str:
    """Return the service error code of a botocore ``ClientError``."""
    return error.response.get("Error", {}).get("Code", "Unknown")


@contextmanager
def translate_errors(
    operation: str,
    *,
    resource: str | None = None,
    not_found: type[NotFoundError] | None = None,
) -> Iterator[None]:
    """Map botocore failures onto the loader's error taxonomy."""
    try:
        yield
    except ClientError as e:
        code = error_code(e)
        if not_found is not None and code in NOT_FOUND_CODES:
            raise not_found(resource or "", cause=e).with_context(operation=operation) from e
        raise TransientServiceError(
            f"{operation} failed with {code}: {e}", cause=e
        ).with_context(operation=operation, resource=resource) from e
    except BotoCoreError as e:
        raise TransientServiceError(
            f"{operation} failed: {e}", cause=e
        ).with_context(operation=operation, resource=resource) from e


class AwsClients:
    """Creates and caches boto3 clients for one process.

    Clients share one session and one botocore ``Config``: a read timeout equal
    to the per-call timeout and no botocore-level retries.
    """

    def __init__(
        self,
        region: str | None = None,
        call_timeout: float = 60.0,
        session: boto3.session.Session | None = None,
    ):
        self._session = session or boto3.session.Session(region_name=region)
        self._config = Config(
            connect_timeout=min(10.0, call_timeout),
            read_timeout=call_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        self._clients: dict[str, Any] = {}
        self._lock = threading.Lock()

    def client(self, service: str) -> Any:
        """Return the cached client for ``service``."""
        with self._lock:
            if service not in self._clients:
                self._clients[service] = self._session.client(service, config=self._config)
            return self._clients[service]

    def assumed_client(self, service: str, role_arn: str, session_name: str) -> tuple[Any, datetime]:
        """Assume ``role_arn`` and build a ``service`` client from the temporary credentials.

        Returns:
            The client and the credentials' expiration time
        """
        with translate_errors("sts.assume_role", resource=role_arn):
            response = self.client("sts").assume_role(
                RoleArn=role_arn,
                RoleSessionName=session_name,
            )
        credentials = response["Credentials"]
        client = self._session.client(
            service,
            config=self._config,
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
        )
        logger.debug("aws.role_assumed", role_arn=role_arn, service=service)
        return client, credentials["Expiration"]


class AwsGateway:
    """Base class for gateways: retry + error translation around client calls."""

    def __init__(
        self,
        retry: RetryStrategy | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self._retry = retry or ExponentialBackoff()
        self._sleep = sleep or deadline_sleep

    def _retrying(
        self,
        operation: str,
        retry_on: tuple[type[BaseException], ...] | None = None,
    ) -> RetryContext:
        return RetryContext(
            strategy=self._retry,
            retry_on=retry_on,
            sleep=self._sleep,
            operation=operation,
        )

    def _call(
        self,
        operation: str,
        func: Callable[[], T],
        *,
        resource: str | None = None,
        not_found: type[NotFoundError] | None = None,
        retry_on: tuple[type[BaseException], ...] | None = None,
    ) -> T:
        """Run ``func`` with error translation.

        Retries errors flagged retryable (``TransientServiceError``) unless
        ``retry_on`` names the exception types to retry instead.
        """

        def attempt() -> T:
            with translate_errors(operation, resource=resource, not_found=not_found):
                return func()

        return self._retrying(operation, retry_on).run(attempt)


class AssumedRoleClient:
    """A client built from assumed-role credentials, rebuilt before they expire."""

    def __init__(self, clients: AwsClients, service: str, role_arn: str | None, session_name: str):
        self._clients = clients
        self._service = service
        self._role_arn = role_arn
        self._session_name = session_name
        self._client: Any = None
        self._expires_at: datetime | None = None
        self._lock = threading.Lock()

    def get(self) -> Any:
        if self._role_arn is None:
            return self._clients.client(self._service)

        with self._lock:
            now = datetime.now(UTC)
            if self._client is None or (
                self._expires_at is not None and now + _CREDENTIAL_MARGIN >= self._expires_at
            ):
                self._client, self._expires_at = self._clients.assumed_client(
                    self._service, self._role_arn, self._session_name
                )
            return self._client
