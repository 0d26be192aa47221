"""Loader settings.

A single immutable settings object is built once at process start (by the
entry points in ``catalog_loader.handlers``) and passed explicitly to every
component that needs it. Values come from ``LOADER_*`` environment variables
or a ``.env`` file.

Fields
──────
prefix                    : Namespace prefix for every derived name
bucket_name               : The only bucket whose events are accepted
region                    : AWS region for all clients
cluster_name              : Redshift cluster running the verification queries
database_name             : Redshift database the statements run against
secret_arn                : Secrets Manager secret for the Redshift Data API
iam_role / catalog_role   : Role lists used in CREATE EXTERNAL SCHEMA
loader_role_arn           : Role assumed to reach the Redshift Data API
glue_role                 : Service role passed to new crawlers
glue_security_config      : Security configuration for new crawlers
glue_s3_connection        : Network connection for crawler S3 targets
machine_arn               : State machine started by the stepfunctions backend
dispatch_backend          : ``stepfunctions`` or ``local``
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoaderSettings(BaseSettings):
    """Process configuration consumed read-only by all components."""

    model_config = SettingsConfigDict(
        env_prefix="LOADER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ── Naming ───────────────────────────────────────────────────
    prefix: str = Field(default="caq", pattern=r"^[a-z][a-z0-9]*$")
    bucket_name: str

    # ── AWS ──────────────────────────────────────────────────────
    region: str | None = None

    # ── Query engine (Redshift) ──────────────────────────────────
    cluster_name: str = ""
    database_name: str = "dev"
    secret_arn: str = ""
    iam_role: str = ""
    catalog_role: str = ""
    loader_role_arn: str | None = None

    # ── Catalog (Glue) ───────────────────────────────────────────
    glue_role: str = ""
    glue_security_config: str | None = None
    glue_s3_connection: str | None = None

    # ── Dispatch ─────────────────────────────────────────────────
    dispatch_backend: Literal["stepfunctions", "local"] = "stepfunctions"
    machine_arn: str | None = None
    local_max_concurrent: int = Field(default=4, ge=1)

    # ── Timing ───────────────────────────────────────────────────
    poll_interval_seconds: float = Field(default=10.0, gt=0)
    workflow_timeout_seconds: float = Field(default=3600.0, gt=0)
    call_timeout_seconds: float = Field(default=60.0, gt=0)
    retry_max_retries: int = Field(default=3, ge=0)
    retry_base_delay_seconds: float = Field(default=2.0, ge=0)

    # ── Logging ──────────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "json"


_settings: LoaderSettings | None = None


def get_settings() -> LoaderSettings:
    """Get or create the process-wide settings instance (entry points only)."""
    global _settings
    if _settings is None:
        _settings = LoaderSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
