"""Tests for LoaderSettings."""

import pytest
from pydantic import ValidationError

from catalog_loader.core.settings import LoaderSettings, get_settings


class TestLoaderSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("LOADER_BUCKET_NAME", "landing")
        settings = LoaderSettings(_env_file=None)
        assert settings.bucket_name == "landing"
        assert settings.prefix == "caq"
        assert settings.poll_interval_seconds == 10.0
        assert settings.workflow_timeout_seconds == 3600.0
        assert settings.retry_max_retries == 3
        assert settings.retry_base_delay_seconds == 2.0
        assert settings.dispatch_backend == "stepfunctions"

    def test_bucket_is_required(self):
        with pytest.raises(ValidationError):
            LoaderSettings(_env_file=None)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOADER_BUCKET_NAME", "landing")
        monkeypatch.setenv("LOADER_PREFIX", "ns")
        monkeypatch.setenv("LOADER_DISPATCH_BACKEND", "local")
        monkeypatch.setenv("LOADER_POLL_INTERVAL_SECONDS", "2.5")
        settings = LoaderSettings(_env_file=None)
        assert settings.prefix == "ns"
        assert settings.dispatch_backend == "local"
        assert settings.poll_interval_seconds == 2.5

    @pytest.mark.parametrize("prefix", ["", "Caq", "1ab", "a-b", "a_b"])
    def test_invalid_prefix(self, prefix):
        with pytest.raises(ValidationError):
            LoaderSettings(_env_file=None, bucket_name="b", prefix=prefix)

    def test_frozen(self, settings):
        with pytest.raises(ValidationError):
            settings.prefix = "other"

    def test_get_settings_is_cached(self, monkeypatch):
        monkeypatch.setenv("LOADER_BUCKET_NAME", "landing")
        assert get_settings() is get_settings()
