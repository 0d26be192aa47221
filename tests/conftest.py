"""
Shared pytest fixtures for catalog-loader tests.

This module provides:
- Settings isolation (no LOADER_* variables leak in from the environment)
- Log context cleanup between tests
- A recording sleep so no test waits on real backoff or poll intervals
- Sample raw events in both inbound shapes
"""

import os
from typing import Any

import pytest
import structlog

from catalog_loader.core.settings import LoaderSettings, reset_settings

BUCKET = "landing-bucket"
PREFIX = "ns"
KEY = "landing/sales-2024/orders/part-0001.csv"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Remove LOADER_* variables and reset cached settings around each test."""
    for name in list(os.environ):
        if name.startswith("LOADER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    reset_settings()
    structlog.contextvars.clear_contextvars()
    yield
    reset_settings()
    structlog.contextvars.clear_contextvars()


class RecordingSleep:
    """Stand-in for ``time.sleep`` that records the requested waits."""

    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def settings() -> LoaderSettings:
    return LoaderSettings(
        _env_file=None,
        prefix=PREFIX,
        bucket_name=BUCKET,
        region="us-east-1",
        cluster_name="analytics",
        database_name="dev",
        secret_arn="arn:aws:secretsmanager:us-east-1:123456789012:secret:loader",
        iam_role="arn:aws:iam::123456789012:role/spectrum",
        catalog_role="arn:aws:iam::123456789012:role/catalog",
        glue_role="arn:aws:iam::123456789012:role/glue",
        machine_arn="arn:aws:states:us-east-1:123456789012:stateMachine:loader",
    )


def event_bus_record(
    key: str = KEY, detail_type: str = "Object Created", bucket: str = BUCKET
) -> dict[str, Any]:
    return {
        "source": "aws.s3",
        "detail-type": detail_type,
        "detail": {"bucket": {"name": bucket}, "object": {"key": key}},
    }


def notification(
    key: str = KEY, event_name: str = "ObjectCreated:Put", bucket: str = BUCKET
) -> dict[str, Any]:
    return {
        "Records": [
            {
                "eventSource": "aws:s3",
                "eventName": event_name,
                "s3": {"bucket": {"name": bucket}, "object": {"key": key}},
            }
        ]
    }


@pytest.fixture
def created_event() -> dict[str, Any]:
    return event_bus_record()


@pytest.fixture
def removed_event() -> dict[str, Any]:
    return event_bus_record(detail_type="Object Deleted")


@pytest.fixture
def make_record():
    """Factory for event-bus records."""
    return event_bus_record


@pytest.fixture
def make_notification():
    """Factory for direct notifications."""
    return notification
