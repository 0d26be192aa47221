"""Crawler gateway: create, start, poll and delete catalog crawlers."""

from __future__ import annotations

from typing import Any, Callable

from botocore.exceptions import ClientError

from catalog_loader.core.errors import ConfigError, CrawlerNotFoundError
from catalog_loader.core.logging import get_logger
from catalog_loader.core.lookup import Lookup, lookup
from catalog_loader.core.settings import LoaderSettings
from catalog_loader.execution.retry import RetryStrategy
from catalog_loader.gateways.aws import AwsClients, AwsGateway, error_code

logger = get_logger(__name__)

READY = "READY"


class CrawlerGateway(AwsGateway):
    """Crawler operations. Every mutating call is safe to repeat."""

    def __init__(
        self,
        settings: LoaderSettings,
        clients: AwsClients,
        retry: RetryStrategy | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        super().__init__(retry=retry, sleep=sleep)
        if not settings.glue_role:
            raise ConfigError("glue_role")
        self._settings = settings
        self._glue = clients.client("glue")

    def exists(self, name: str) -> Lookup[dict[str, Any]]:
        return lookup(lambda: self._get_crawler(name))

    def create(self, name: str, database: str, path: str) -> dict[str, Any]:
        """Create a crawler over ``s3://{bucket}/{path}`` writing into ``database``.

        An existing crawler of the same name is accepted. Creation is
        confirmed by reading the crawler back, retrying while it is not yet
        visible.
        """
        target: dict[str, Any] = {"Path": f"s3://{self._settings.bucket_name}/{path}"}
        if self._settings.glue_s3_connection:
            target["ConnectionName"] = self._settings.glue_s3_connection

        params: dict[str, Any] = {
            "Name": name,
            "Role": self._settings.glue_role,
            "DatabaseName": database,
            "TablePrefix": f"{self._settings.prefix}_",
            "Targets": {"S3Targets": [target]},
        }
        if self._settings.glue_security_config:
            params["CrawlerSecurityConfiguration"] = self._settings.glue_security_config

        def create_crawler() -> None:
            try:
                self._glue.create_crawler(**params)
            except ClientError as e:
                if error_code(e) != "AlreadyExistsException":
                    raise
                logger.info("crawler.already_exists", crawler=name)

        self._call("glue.create_crawler", create_crawler, resource=name)
        logger.info("crawler.created", crawler=name, database=database, path=path)

        return self._retrying("glue.get_crawler", retry_on=(CrawlerNotFoundError,)).run(
            self._get_crawler, name
        )

    def start(self, name: str) -> None:
        """Start the crawler. A crawler that is already running is accepted."""

        def start_crawler() -> None:
            try:
                self._glue.start_crawler(Name=name)
            except ClientError as e:
                if error_code(e) != "CrawlerRunningException":
                    raise
                logger.info("crawler.already_running", crawler=name)

        self._call("glue.start_crawler", start_crawler, resource=name, not_found=CrawlerNotFoundError)

    def get_status(self, name: str) -> str:
        """Return the crawler state (``READY``, ``RUNNING``, ``STOPPING``...).

        Raises:
            CrawlerNotFoundError: The crawler does not exist
        """
        return self._get_crawler(name).get("State", "")

    def delete(self, name: str) -> bool:
        """Delete the crawler. Returns False if it did not exist."""
        result = lookup(
            lambda: self._call(
                "glue.delete_crawler",
                lambda: self._glue.delete_crawler(Name=name),
                resource=name,
                not_found=CrawlerNotFoundError,
            )
        )
        return result.is_found()

    def _get_crawler(self, name: str) -> dict[str, Any]:
        response = self._call(
            "glue.get_crawler",
            lambda: self._glue.get_crawler(Name=name),
            resource=name,
            not_found=CrawlerNotFoundError,
        )
        return response["Crawler"]
