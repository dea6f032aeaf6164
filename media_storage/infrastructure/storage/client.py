"""
Object storage client for recordings and other generated artifacts.

Supports AWS S3 and any S3-compatible backend (MinIO, R2, Wasabi, ...)
through boto3, plus a mock mode that keeps objects in memory for local
development.

Uploads are asynchronous: upload() hands the transfer to a worker pool and
returns straight away, so request-handling threads never block on network
I/O. The outcome is reported through an UploadCallback on the worker
thread. When storage is disabled every operation is a logged no-op.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Protocol

import boto3
import botocore.session
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...core.models import (
    AccessControlLevel,
    StorageClass,
    UploadCallback,
    UploadTask,
)

logger = logging.getLogger(__name__)

# Error codes meaning "no such object" across S3 and compatible backends
MISSING_OBJECT_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class StorageError(Exception):
    """Raised when a synchronous storage operation fails."""
    pass


@dataclass(frozen=True)
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    Immutable: to pick up new credentials build a new config, hand it to a
    client and reset() the old one.
    """
    enabled: bool
    bucket_name: str
    endpoint_url: Optional[str] = None
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    permission: str = "public-read"
    storage_class: str = "STANDARD"
    max_connections: int = 100
    connect_timeout_ms: int = 120_000
    max_retries: int = 15
    upload_workers: int = 8

    def __post_init__(self) -> None:
        if self.upload_workers < 1:
            raise ValueError("upload_workers must be at least 1")
        if self.max_connections < 1:
            raise ValueError("max_connections must be at least 1")

    @property
    def has_custom_endpoint(self) -> bool:
        return bool(self.endpoint_url)


@lru_cache(maxsize=None)
def known_storage_classes() -> frozenset:
    """Storage classes the S3 API accepts, read from botocore's service model."""
    service_model = botocore.session.get_session().get_service_model("s3")
    return frozenset(service_model.shape_for("StorageClass").enum)


def is_valid_storage_class(name: Optional[str]) -> bool:
    """True if name is a known storage class, ignoring case."""
    return StorageClass.parse(name, known_storage_classes()) is not None


class StorageClient(Protocol):
    """
    Protocol for artifact storage operations.

    Using a protocol means tests can provide mocks and application code
    doesn't care whether it talks to S3, MinIO or memory.
    """

    def list_objects(self, prefix: str) -> list[str]:
        """Keys under prefix, in backend order. Empty when disabled."""
        ...

    def exists(self, key: str) -> bool:
        """Whether key is present. False when disabled."""
        ...

    def delete(self, key: str) -> None:
        """Delete key. Missing keys are not an error."""
        ...

    def upload(
        self,
        key: str,
        file_path: str,
        delete_local_file: bool = False,
        callback: Optional[UploadCallback] = None,
    ) -> Optional[UploadTask]:
        """Start an asynchronous upload. None when disabled."""
        ...

    def save(
        self,
        file_path: str,
        type_directory: str,
        callback: Optional[UploadCallback] = None,
    ) -> Optional[UploadTask]:
        """Upload under {type_directory}/{file name}, keeping the local file."""
        ...

    def reset(self) -> None:
        """Drop the backend handle so the next call rebuilds it."""
        ...

    def shutdown(self, wait: bool = True) -> None:
        """Stop the upload workers."""
        ...


# ---------------------------------------------------------------------------
# Upload completion (runs on worker threads)
# ---------------------------------------------------------------------------

def build_key(file_path: str, type_directory: str) -> str:
    """Object key for save(): the type directory plus the file's base name."""
    return f"{type_directory}/{os.path.basename(os.fspath(file_path))}"


def delete_local_file(file_path: str) -> bool:
    """
    Remove an uploaded file from local disk.

    Failure is logged with its traceback and otherwise ignored: the remote
    copy is already in place and is not rolled back.
    """
    try:
        os.remove(file_path)
    except OSError:
        logger.error(
            "Failed to delete local file after upload",
            extra={"file_path": file_path},
            exc_info=True,
        )
        return False

    logger.info("Deleted local file after upload", extra={"file_path": file_path})
    return True


def complete_upload(task: UploadTask, callback: Optional[UploadCallback]) -> None:
    """Success path: optional local cleanup, then the success callback."""
    task.mark_completed()

    if task.delete_local_file:
        delete_local_file(task.file_path)

    logger.info(
        "File uploaded to storage",
        extra={"file_name": task.file_name, "key": task.key}
    )

    if callback is not None:
        try:
            callback.on_success(task)
        except Exception:
            logger.exception("Upload success callback raised", extra={"key": task.key})


def fail_upload(
    task: UploadTask,
    error: BaseException,
    callback: Optional[UploadCallback],
) -> None:
    """Failure path: log and report. The local file is never touched here."""
    task.mark_failed(error)

    logger.error(
        "Upload failed",
        extra={"file_name": task.file_name, "key": task.key, "error": str(error)}
    )

    if callback is not None:
        try:
            callback.on_failure(task, error)
        except Exception:
            logger.exception("Upload failure callback raised", extra={"key": task.key})


# ---------------------------------------------------------------------------
# S3 / S3-compatible storage
# ---------------------------------------------------------------------------

class S3StorageClient:
    """
    S3-compatible storage client backed by boto3.

    The boto3 client is built lazily on first use and reused until
    reset(). Building happens under a lock and the handle is only published
    once fully constructed, so no caller sees a half-built client. Uploads
    capture the handle they started with, so a reset mid-transfer does not
    disturb them.
    """

    def __init__(
        self,
        config: StorageConfig,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._config = config
        self._client: Any = None
        self._lock = threading.Lock()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.upload_workers,
            thread_name_prefix="storage-upload",
        )

    @property
    def config(self) -> StorageConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    # -- client lifecycle -------------------------------------------------

    def get_client(self) -> Any:
        """Return the cached boto3 client, building it on first use."""
        client = self._client
        if client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._build_client()
                client = self._client
        return client

    def _build_client(self) -> Any:
        config = self._config
        kwargs: dict[str, Any] = {}

        # A custom endpoint is only honoured together with a region
        if config.has_custom_endpoint and config.region:
            kwargs["endpoint_url"] = config.endpoint_url
            kwargs["region_name"] = config.region

        # Without an access key boto3 falls back to its default credential chain
        if config.access_key_id:
            kwargs["aws_access_key_id"] = config.access_key_id
            kwargs["aws_secret_access_key"] = config.secret_access_key

        if not config.has_custom_endpoint and config.region:
            kwargs["region_name"] = config.region

        kwargs["config"] = Config(
            max_pool_connections=config.max_connections,
            connect_timeout=config.connect_timeout_ms / 1000,
            retries={"max_attempts": config.max_retries},
        )

        client = boto3.client("s3", **kwargs)

        logger.info(
            "Initialized storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": kwargs.get("endpoint_url"),
                "region": kwargs.get("region_name"),
            }
        )
        return client

    def reset(self) -> None:
        """Forget the current client; the next operation builds a fresh one."""
        with self._lock:
            self._client = None
        logger.debug("Storage client reset")

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting uploads and, if wait, block until queued ones finish."""
        self._executor.shutdown(wait=wait)

    # -- validation -------------------------------------------------------

    def access_control(self) -> AccessControlLevel:
        return AccessControlLevel.parse(self._config.permission)

    def storage_class(self) -> Optional[StorageClass]:
        return StorageClass.parse(self._config.storage_class, known_storage_classes())

    def _upload_args(self) -> dict[str, str]:
        extra_args = {"ACL": self.access_control().value}
        storage_class = self.storage_class()
        if storage_class is not None:
            extra_args["StorageClass"] = storage_class.name
        return extra_args

    # -- object operations ------------------------------------------------

    def list_objects(self, prefix: str) -> list[str]:
        """
        List keys under prefix.

        Follows continuation tokens, so buckets with more than 1000
        matching objects are returned in full.
        """
        if not self.enabled:
            logger.debug("Storage is not enabled to list objects", extra={"prefix": prefix})
            return []

        try:
            paginator = self.get_client().get_paginator("list_objects_v2")
            keys: list[str] = []
            for page in paginator.paginate(Bucket=self._config.bucket_name, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
            return keys

        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to list objects",
                extra={"prefix": prefix, "error": str(e)}
            )
            raise StorageError(f"List failed: {e}") from e

    def exists(self, key: str) -> bool:
        if not self.enabled:
            logger.debug("Storage is not enabled to check the file existence", extra={"key": key})
            return False

        try:
            self.get_client().head_object(Bucket=self._config.bucket_name, Key=key)
            return True

        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_OBJECT_CODES:
                return False
            logger.error(
                "Failed to check object existence",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Existence check failed: {e}") from e
        except BotoCoreError as e:
            logger.error(
                "Failed to check object existence",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Existence check failed: {e}") from e

    def delete(self, key: str) -> None:
        if not self.enabled:
            logger.debug("Storage is not enabled to delete the file", extra={"key": key})
            return

        try:
            self.get_client().delete_object(Bucket=self._config.bucket_name, Key=key)
            logger.debug("Deleted object", extra={"key": key})

        except ClientError as e:
            # S3 itself answers 204 for missing keys; some compatible backends don't
            if e.response.get("Error", {}).get("Code") in MISSING_OBJECT_CODES:
                logger.debug("Object already absent", extra={"key": key})
                return
            logger.error("Failed to delete object", extra={"key": key, "error": str(e)})
            raise StorageError(f"Delete failed: {e}") from e
        except BotoCoreError as e:
            logger.error("Failed to delete object", extra={"key": key, "error": str(e)})
            raise StorageError(f"Delete failed: {e}") from e

    # -- uploads ----------------------------------------------------------

    def upload(
        self,
        key: str,
        file_path: str,
        delete_local_file: bool = False,
        callback: Optional[UploadCallback] = None,
    ) -> Optional[UploadTask]:
        """
        Start uploading file_path to key and return immediately.

        Exactly one of callback.on_success / callback.on_failure fires later
        on a worker thread. Failures are reported, never raised: the caller
        has already moved on by the time the transfer ends.
        """
        if not self.enabled:
            logger.debug("Storage is not enabled to save the file", extra={"key": key})
            return None

        task = UploadTask(key=key, file_path=file_path, delete_local_file=delete_local_file)
        extra_args = self._upload_args()
        client = self.get_client()

        self._executor.submit(self._run_upload, client, task, extra_args, callback)

        logger.info(
            "Upload has started",
            extra={"file_name": task.file_name, "key": key}
        )
        return task

    def save(
        self,
        file_path: str,
        type_directory: str,
        callback: Optional[UploadCallback] = None,
    ) -> Optional[UploadTask]:
        return self.upload(build_key(file_path, type_directory), file_path, False, callback)

    def _run_upload(
        self,
        client: Any,
        task: UploadTask,
        extra_args: dict[str, str],
        callback: Optional[UploadCallback],
    ) -> None:
        task.mark_in_flight()
        try:
            client.upload_file(
                task.file_path,
                self._config.bucket_name,
                task.key,
                ExtraArgs=extra_args,
            )
        except Exception as e:
            fail_upload(task, e, callback)
            return

        complete_upload(task, callback)


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Objects live in a dictionary keyed by object key. Uploads still run on
    a worker pool and report through the same callbacks, so calling code
    behaves the same as against a real bucket.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self._config = config or StorageConfig(enabled=True, bucket_name="mock")
        self._objects: dict[str, bytes] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=self._config.upload_workers,
            thread_name_prefix="mock-storage-upload",
        )
        logger.info("Initialized mock storage client (in-memory)")

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def get_object(self, key: str) -> bytes:
        """Retrieve stored bytes (mock-only helper for assertions)."""
        with self._lock:
            if key not in self._objects:
                raise StorageError(f"Object not found: {key}")
            return self._objects[key]

    def list_objects(self, prefix: str) -> list[str]:
        if not self.enabled:
            logger.debug("Storage is not enabled to list objects", extra={"prefix": prefix})
            return []
        with self._lock:
            return [key for key in self._objects if key.startswith(prefix)]

    def exists(self, key: str) -> bool:
        if not self.enabled:
            logger.debug("Storage is not enabled to check the file existence", extra={"key": key})
            return False
        with self._lock:
            return key in self._objects

    def delete(self, key: str) -> None:
        if not self.enabled:
            logger.debug("Storage is not enabled to delete the file", extra={"key": key})
            return
        with self._lock:
            self._objects.pop(key, None)

    def upload(
        self,
        key: str,
        file_path: str,
        delete_local_file: bool = False,
        callback: Optional[UploadCallback] = None,
    ) -> Optional[UploadTask]:
        if not self.enabled:
            logger.debug("Storage is not enabled to save the file", extra={"key": key})
            return None

        task = UploadTask(key=key, file_path=file_path, delete_local_file=delete_local_file)
        self._executor.submit(self._run_upload, task, callback)
        return task

    def save(
        self,
        file_path: str,
        type_directory: str,
        callback: Optional[UploadCallback] = None,
    ) -> Optional[UploadTask]:
        return self.upload(build_key(file_path, type_directory), file_path, False, callback)

    def _run_upload(self, task: UploadTask, callback: Optional[UploadCallback]) -> None:
        task.mark_in_flight()
        try:
            with open(task.file_path, "rb") as f:
                data = f.read()
        except OSError as e:
            fail_upload(task, e, callback)
            return

        with self._lock:
            self._objects[task.key] = data

        logger.debug(
            "Stored object in mock storage",
            extra={"key": task.key, "size_bytes": len(data)}
        )
        complete_upload(task, callback)

    def reset(self) -> None:
        logger.debug("Mock storage client reset (no backend handle)")

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return the in-memory client

    Returns:
        StorageClient implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient(config)

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
