"""Gateways to the external services.

::

    SchemaGateway   ── redshift-data (assumed role)  external schema DDL, count query
    CrawlerGateway  ── glue                          crawlers
    CatalogGateway  ── glue                          databases, tables
    ObjectStore     ── s3                            listing

All of them share ``AwsGateway``: retry with backoff plus translation of
botocore errors into ``NotFoundError`` / ``TransientServiceError``.
"""

from catalog_loader.gateways.aws import AwsClients, AwsGateway, translate_errors
from catalog_loader.gateways.catalog import CatalogGateway
from catalog_loader.gateways.crawler import CrawlerGateway
from catalog_loader.gateways.schema import SchemaGateway
from catalog_loader.gateways.storage import ObjectStore

__all__ = [
    "AwsClients",
    "AwsGateway",
    "CatalogGateway",
    "CrawlerGateway",
    "ObjectStore",
    "SchemaGateway",
    "translate_errors",
]
