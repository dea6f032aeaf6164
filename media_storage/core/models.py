"""
Domain models for artifact storage.

These models describe what we store and how an upload progresses. They
have no dependency on boto3 or any particular backend; the infrastructure
layer translates them into backend request arguments.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Protocol
from uuid import UUID, uuid4

logger = logging.getLogger(__name__)


class AccessControlLevel(Enum):
    """
    Canned access-control levels applied to uploaded objects.

    Values are the exact strings operators put in configuration and the
    exact strings the S3 API expects in the ACL header.
    """
    PUBLIC_READ = "public-read"
    PRIVATE = "private"
    PUBLIC_READ_WRITE = "public-read-write"
    AUTHENTICATED_READ = "authenticated-read"
    LOG_DELIVERY_WRITE = "log-delivery-write"
    BUCKET_OWNER_READ = "bucket-owner-read"
    BUCKET_OWNER_FULL_CONTROL = "bucket-owner-full-control"
    AWS_EXEC_READ = "aws-exec-read"

    @classmethod
    def parse(cls, permission: Optional[str]) -> "AccessControlLevel":
        """
        Map a configured permission string to an access-control level.

        Matching is exact and case-sensitive. Anything unrecognised,
        including an empty or missing value, falls back to PUBLIC_READ
        rather than failing the upload.
        """
        try:
            return cls(permission)
        except ValueError:
            logger.debug(
                "Unknown permission, using public-read",
                extra={"permission": permission}
            )
            return cls.PUBLIC_READ


def resolve_access_control(permission: Optional[str]) -> AccessControlLevel:
    """Functional alias for AccessControlLevel.parse."""
    return AccessControlLevel.parse(permission)


@dataclass(frozen=True)
class StorageClass:
    """
    A storage-class name known to be accepted by the backend.

    Instances only come out of parse(), so holding one means the name has
    already been validated and normalised to upper case.
    """
    name: str

    @classmethod
    def parse(
        cls,
        name: Optional[str],
        known_classes: Iterable[str],
    ) -> Optional["StorageClass"]:
        """
        Validate name against known_classes, ignoring case.

        Returns None for unknown or empty names; callers treat that as
        "don't send a storage class", not as an error.
        """
        logger.debug("Requested storage class", extra={"storage_class": name})
        if not name:
            return None

        wanted = name.upper()
        for known in known_classes:
            if known.upper() == wanted:
                return cls(name=known.upper())
        return None


class UploadState(Enum):
    """
    Where an upload is in its lifecycle.

    There is no CANCELLED state: once submitted, an upload
    runs until the backend reports completion or failure.
    """
    SUBMITTED = "submitted"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.COMPLETED, UploadState.FAILED)


@dataclass
class UploadTask:
    """
    One in-flight upload.

    Not persisted. A task is owned by the worker that runs it; nothing else
    mutates it after submission, so concurrent uploads share no state.
    """
    key: str
    file_path: str
    delete_local_file: bool = False
    state: UploadState = UploadState.SUBMITTED
    error: Optional[BaseException] = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("Upload key cannot be empty")
        self.file_path = os.fspath(self.file_path)

    @property
    def file_name(self) -> str:
        """Base name of the local file, as used in log messages."""
        return os.path.basename(self.file_path)

    def mark_in_flight(self) -> None:
        self.state = UploadState.IN_FLIGHT

    def mark_completed(self) -> None:
        self.state = UploadState.COMPLETED

    def mark_failed(self, error: BaseException) -> None:
        self.state = UploadState.FAILED
        self.error = error


class UploadCallback(Protocol):
    """
    Completion handler for asynchronous uploads.

    Exactly one method is called per submitted upload, on a worker thread.
    Implementations must not rely on request-scoped state of the thread
    that started the upload.
    """

    def on_success(self, task: UploadTask) -> None:
        """Upload finished and the object is in the bucket."""
        ...

    def on_failure(self, task: UploadTask, cause: BaseException) -> None:
        """Upload failed; the local file was left untouched."""
        ...
