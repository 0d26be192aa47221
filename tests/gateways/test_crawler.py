"""Tests for CrawlerGateway against stubbed glue responses."""

import pytest

from catalog_loader.core.errors import ConfigError, CrawlerNotFoundError, TransientServiceError
from catalog_loader.core.lookup import Found, NotFound
from catalog_loader.gateways.crawler import CrawlerGateway

NAME = "ns-landing/sales-2024/orders/"


@pytest.fixture
def crawler(settings, clients, sleep):
    return CrawlerGateway(settings, clients, sleep=sleep)


def crawler_response(state="READY"):
    return {"Crawler": {"Name": NAME, "State": state}}


class TestExists:
    def test_found(self, crawler, glue_stub):
        glue_stub.add_response("get_crawler", crawler_response(), {"Name": NAME})
        assert isinstance(crawler.exists(NAME), Found)

    def test_not_found(self, crawler, glue_stub):
        glue_stub.add_client_error("get_crawler", service_error_code="EntityNotFoundException")
        assert isinstance(crawler.exists(NAME), NotFound)


class TestCreate:
    def expected_params(self, settings):
        return {
            "Name": NAME,
            "Role": settings.glue_role,
            "DatabaseName": "ns_sales_2024",
            "TablePrefix": "ns_",
            "Targets": {"S3Targets": [{"Path": "s3://landing-bucket/landing/sales-2024/orders/"}]},
        }

    def test_creates_and_confirms(self, crawler, glue_stub, settings, sleep):
        glue_stub.add_response("create_crawler", {}, self.expected_params(settings))
        glue_stub.add_client_error("get_crawler", service_error_code="EntityNotFoundException")
        glue_stub.add_response("get_crawler", crawler_response())

        result = crawler.create(NAME, "ns_sales_2024", "landing/sales-2024/orders/")

        assert result["State"] == "READY"
        assert sleep.calls == [2.0]
        glue_stub.assert_no_pending_responses()

    def test_already_exists_is_accepted(self, crawler, glue_stub, sleep):
        glue_stub.add_client_error("create_crawler", service_error_code="AlreadyExistsException")
        glue_stub.add_response("get_crawler", crawler_response("RUNNING"))

        result = crawler.create(NAME, "ns_sales_2024", "landing/sales-2024/orders/")

        assert result["State"] == "RUNNING"
        assert sleep.calls == []

    def test_optional_connection_and_security(self, settings, clients, glue_stub, sleep):
        settings = settings.model_copy(
            update={"glue_s3_connection": "s3-endpoint", "glue_security_config": "kms"}
        )
        params = self.expected_params(settings)
        params["Targets"]["S3Targets"][0]["ConnectionName"] = "s3-endpoint"
        params["CrawlerSecurityConfiguration"] = "kms"
        glue_stub.add_response("create_crawler", {}, params)
        glue_stub.add_response("get_crawler", crawler_response())

        CrawlerGateway(settings, clients, sleep=sleep).create(
            NAME, "ns_sales_2024", "landing/sales-2024/orders/"
        )
        glue_stub.assert_no_pending_responses()

    def test_requires_glue_role(self, settings, clients):
        with pytest.raises(ConfigError):
            CrawlerGateway(settings.model_copy(update={"glue_role": ""}), clients)


class TestLifecycle:
    def test_start(self, crawler, glue_stub):
        glue_stub.add_response("start_crawler", {}, {"Name": NAME})
        crawler.start(NAME)
        glue_stub.assert_no_pending_responses()

    def test_start_already_running(self, crawler, glue_stub, sleep):
        glue_stub.add_client_error("start_crawler", service_error_code="CrawlerRunningException")
        crawler.start(NAME)
        assert sleep.calls == []

    def test_start_failure(self, crawler, glue_stub):
        for _ in range(4):
            glue_stub.add_client_error("start_crawler", service_error_code="OperationTimeoutException")
        with pytest.raises(TransientServiceError):
            crawler.start(NAME)

    def test_get_status(self, crawler, glue_stub):
        glue_stub.add_response("get_crawler", crawler_response("STOPPING"))
        assert crawler.get_status(NAME) == "STOPPING"

    def test_get_status_missing(self, crawler, glue_stub):
        glue_stub.add_client_error("get_crawler", service_error_code="EntityNotFoundException")
        with pytest.raises(CrawlerNotFoundError):
            crawler.get_status(NAME)

    def test_delete(self, crawler, glue_stub):
        glue_stub.add_response("delete_crawler", {}, {"Name": NAME})
        assert crawler.delete(NAME) is True

    def test_delete_missing(self, crawler, glue_stub):
        glue_stub.add_client_error("delete_crawler", service_error_code="EntityNotFoundException")
        assert crawler.delete(NAME) is False
