"""
Object storage integration for recordings and generated artifacts.

Supports AWS S3 and S3-compatible backends (MinIO, R2, ...) via boto3.
Includes mock mode for local development without credentials.
"""

from .client import (
    MockStorageClient,
    S3StorageClient,
    StorageClient,
    StorageConfig,
    StorageError,
    create_storage_client,
    is_valid_storage_class,
    known_storage_classes,
)

__all__ = [
    "MockStorageClient",
    "S3StorageClient",
    "StorageClient",
    "StorageConfig",
    "StorageError",
    "create_storage_client",
    "is_valid_storage_class",
    "known_storage_classes",
]
