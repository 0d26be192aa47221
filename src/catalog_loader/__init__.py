"""
catalog-loader: onboard landed data files into a queryable catalog and schema.

Object-store events become a path identity (schema, table, crawler),
are deduplicated per logical path, and drive one idempotent workflow
execution per path against the metadata catalog and the query engine.
"""

__version__ = "0.1.0"
