"""SQL text for the query engine.

Schema and table names are derived from object keys, so they are always
quoted as identifiers. A name that itself contains a double quote is refused
instead of escaped.
"""

from __future__ import annotations

from catalog_loader.core.errors import InvalidInputError


def quote_identifier(name: str) -> str:
    if not name or '"' in name:
        raise InvalidInputError(f"Invalid SQL identifier [{name}].")
    return f'"{name}"'


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def create_external_schema(schema: str, iam_role: str, catalog_role: str) -> str:
    """External schema backed by the catalog database of the same name."""
    return (
        f"create external schema if not exists {quote_identifier(schema)} "
        f"from data catalog database {quote_literal(schema)} "
        f"iam_role {quote_literal(iam_role)} "
        f"catalog_role {quote_literal(catalog_role)} "
        f"create external database if not exists;"
    )


def drop_schema(schema: str) -> str:
    return f"drop schema if exists {quote_identifier(schema)} drop external database cascade;"


def select_count(schema: str, table: str) -> str:
    return f"select count(*) from {quote_identifier(schema)}.{quote_identifier(table)};"
