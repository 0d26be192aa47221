"""Fixtures for gateway tests: real botocore clients with stubbed responses."""

import pytest
from botocore.stub import Stubber

from catalog_loader.gateways.aws import AwsClients


@pytest.fixture
def clients() -> AwsClients:
    return AwsClients(region="us-east-1", call_timeout=5.0)


def _stub(client):
    stubber = Stubber(client)
    stubber.activate()
    return stubber


@pytest.fixture
def glue_stub(clients):
    stubber = _stub(clients.client("glue"))
    yield stubber
    stubber.deactivate()


@pytest.fixture
def redshift_stub(clients):
    stubber = _stub(clients.client("redshift-data"))
    yield stubber
    stubber.deactivate()


@pytest.fixture
def s3_stub(clients):
    stubber = _stub(clients.client("s3"))
    yield stubber
    stubber.deactivate()


@pytest.fixture
def sfn_stub(clients):
    stubber = _stub(clients.client("stepfunctions"))
    yield stubber
    stubber.deactivate()
