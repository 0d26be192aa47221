"""Object listing for the landing bucket."""

from __future__ import annotations

from typing import Any, Callable

from catalog_loader.core.logging import get_logger
from catalog_loader.execution.retry import RetryStrategy
from catalog_loader.gateways.aws import AwsGateway

logger = get_logger(__name__)


class ObjectStore(AwsGateway):
    """Read-only view of one bucket."""

    def __init__(
        self,
        bucket: str,
        client: Any,
        retry: RetryStrategy | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        super().__init__(retry=retry, sleep=sleep)
        self.bucket = bucket
        self._s3 = client

    def count_objects(self, prefix: str) -> int:
        """Number of objects under ``prefix`` on the first listing page.

        Only emptiness matters to callers, so one page is enough.
        """
        response = self._call(
            "s3.list_objects_v2",
            lambda: self._s3.list_objects_v2(Bucket=self.bucket, Prefix=prefix),
            resource=f"s3://{self.bucket}/{prefix}",
        )
        return int(response.get("KeyCount", 0))
