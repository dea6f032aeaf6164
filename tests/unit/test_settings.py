"""
Unit tests for storage settings.

Settings are built with _env_file=None so a developer's local .env never
leaks into the test run.
"""

import pytest

from media_storage.config.settings import Settings, get_settings
from media_storage.infrastructure.storage.client import StorageConfig


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "STORAGE_ENABLED",
        "STORAGE_BUCKET_NAME",
        "STORAGE_REGION",
        "STORAGE_ACCESS_KEY_ID",
        "STORAGE_SECRET_ACCESS_KEY",
        "STORAGE_CLASS",
        "STORAGE_MOCK_MODE",
    ):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Tests for defaults, environment loading and validation."""

    def test_defaults_match_transport_limits(self):
        settings = Settings(_env_file=None)

        assert settings.storage_enabled is False
        assert settings.storage_permission == "public-read"
        assert settings.storage_max_connections == 100
        assert settings.storage_connect_timeout_ms == 120_000
        assert settings.storage_max_retries == 15

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("STORAGE_ENABLED", "true")
        monkeypatch.setenv("STORAGE_BUCKET_NAME", "recordings-bucket")
        monkeypatch.setenv("STORAGE_CLASS", "glacier")

        settings = Settings(_env_file=None)

        assert settings.storage_enabled is True
        assert settings.storage_bucket_name == "recordings-bucket"
        assert settings.storage_class == "glacier"

    def test_storage_config_carries_every_field(self):
        settings = Settings(
            _env_file=None,
            storage_enabled=True,
            storage_bucket_name="bucket",
            storage_endpoint_url="http://minio:9000",
            storage_region="us-east-1",
            storage_access_key_id="key",
            storage_secret_access_key="secret",
            storage_permission="private",
            storage_upload_workers=2,
        )

        config = settings.storage_config()

        assert config == StorageConfig(
            enabled=True,
            bucket_name="bucket",
            endpoint_url="http://minio:9000",
            region="us-east-1",
            access_key_id="key",
            secret_access_key="secret",
            permission="private",
            storage_class="STANDARD",
            max_connections=100,
            connect_timeout_ms=120_000,
            max_retries=15,
            upload_workers=2,
        )

    def test_nothing_required_when_disabled(self):
        assert Settings(_env_file=None).validate_required_fields() == []

    def test_enabled_requires_bucket(self):
        settings = Settings(_env_file=None, storage_enabled=True)
        assert settings.validate_required_fields() == ["STORAGE_BUCKET_NAME"]

    def test_access_key_needs_secret(self):
        settings = Settings(
            _env_file=None,
            storage_enabled=True,
            storage_bucket_name="bucket",
            storage_access_key_id="key",
        )
        assert settings.validate_required_fields() == ["STORAGE_SECRET_ACCESS_KEY"]

    def test_mock_mode_requires_nothing(self):
        settings = Settings(_env_file=None, storage_enabled=True, storage_mock_mode=True)
        assert settings.validate_required_fields() == []

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
