"""
Storage configuration using Pydantic settings.

Configuration is loaded from environment variables (or a .env file) with
sensible defaults. Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Storage can be switched off entirely with STORAGE_ENABLED=false, in which
case every storage operation becomes a logged no-op.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..infrastructure.storage.client import StorageConfig


class Settings(BaseSettings):
    """
    Storage settings loaded from environment variables.

    All settings can be overridden via environment variables named after
    the field (case-insensitive), e.g. STORAGE_BUCKET_NAME.
    """

    # Object Storage Configuration
    storage_enabled: bool = Field(
        default=False,
        description="Master switch. When false, uploads/lists/deletes are skipped and logged."
    )
    storage_bucket_name: str = Field(
        default="",
        description="Bucket that receives recordings and other generated artifacts"
    )
    storage_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom S3-compatible endpoint (MinIO, R2, ...). Only used together with a region."
    )
    storage_region: Optional[str] = Field(
        default=None,
        description="Backend region, e.g. us-east-1"
    )
    storage_access_key_id: Optional[str] = Field(
        default=None,
        description="Access key. Leave unset to use boto3's default credential chain."
    )
    storage_secret_access_key: Optional[str] = Field(
        default=None,
        description="Secret key paired with the access key"
    )
    storage_permission: str = Field(
        default="public-read",
        description="Canned ACL for uploaded objects. Unknown values fall back to public-read."
    )
    storage_class: str = Field(
        default="STANDARD",
        description="Storage class hint for uploads (case-insensitive). Unknown values are ignored."
    )

    # Transport limits
    storage_max_connections: int = Field(
        default=100,
        description="Maximum pooled HTTP connections to the backend"
    )
    storage_connect_timeout_ms: int = Field(
        default=120_000,
        description="Connection timeout in milliseconds"
    )
    storage_max_retries: int = Field(
        default=15,
        description="Maximum retry attempts performed by the transport"
    )
    storage_upload_workers: int = Field(
        default=8,
        description="Worker threads running asynchronous uploads"
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of a real backend. Enables local dev without object storage."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def storage_config(self) -> StorageConfig:
        """Build the immutable StorageConfig handed to storage clients."""
        return StorageConfig(
            enabled=self.storage_enabled,
            bucket_name=self.storage_bucket_name,
            endpoint_url=self.storage_endpoint_url,
            region=self.storage_region,
            access_key_id=self.storage_access_key_id,
            secret_access_key=self.storage_secret_access_key,
            permission=self.storage_permission,
            storage_class=self.storage_class,
            max_connections=self.storage_max_connections,
            connect_timeout_ms=self.storage_connect_timeout_ms,
            max_retries=self.storage_max_retries,
            upload_workers=self.storage_upload_workers,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set.

        Returns list of missing required fields. Nothing is required when
        storage is disabled or running in mock mode.
        """
        missing = []

        if not self.storage_enabled or self.storage_mock_mode:
            return missing

        if not self.storage_bucket_name:
            missing.append("STORAGE_BUCKET_NAME")
        # A secret without a key (or vice versa) is almost certainly a typo
        if self.storage_access_key_id and not self.storage_secret_access_key:
            missing.append("STORAGE_SECRET_ACCESS_KEY")
        if self.storage_secret_access_key and not self.storage_access_key_id:
            missing.append("STORAGE_ACCESS_KEY_ID")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    After rotating credentials in the environment, call
    get_settings.cache_clear() and reset() the storage client.
    """
    return Settings()
