"""
Core storage domain logic.

This module is backend-agnostic - it doesn't import boto3 or any
infrastructure concerns. Access-control levels, storage classes and the
upload lifecycle are defined here so they can be tested in isolation.
"""

from .models import (
    AccessControlLevel,
    StorageClass,
    UploadCallback,
    UploadState,
    UploadTask,
    resolve_access_control,
)
from .transfer import (
    LoggingTransferEventRecorder,
    TransferEvent,
    TransferEventRecorder,
    sanitize_identifier,
    should_record,
)

__all__ = [
    "AccessControlLevel",
    "StorageClass",
    "UploadCallback",
    "UploadState",
    "UploadTask",
    "resolve_access_control",
    "LoggingTransferEventRecorder",
    "TransferEvent",
    "TransferEventRecorder",
    "sanitize_identifier",
    "should_record",
]
