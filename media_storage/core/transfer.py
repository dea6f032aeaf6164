"""
Data-transfer accounting for stream reads.

The HTTP layer that serves recordings and segments reports how many bytes
it wrote for each read request. This module defines the event it reports
and the recorder interface it reports to; wiring it into a server is the
job of whichever web stack hosts the media server.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

# Characters that would let a client forge extra log lines or fields
REPLACE_CHARS_PATTERN = re.compile(r"[\n\r\t|]")

RECORDED_METHODS = frozenset({"GET", "HEAD"})

DATA_TRANSFER_EVENT = "dataTransfer"


def sanitize_identifier(value: Optional[str]) -> Optional[str]:
    """Replace log-breaking characters with underscores. None passes through."""
    if value is None:
        return None
    return REPLACE_CHARS_PATTERN.sub("_", value)


def should_record(method: str, stream_id: Optional[str]) -> bool:
    """Only reads (GET/HEAD) that resolved to a stream are accounted."""
    return bool(stream_id and stream_id.strip()) and method.upper() in RECORDED_METHODS


@dataclass(frozen=True)
class TransferEvent:
    """Bytes served for one read request against a stream."""
    app_name: str
    stream_id: str
    uri: str
    subscriber_id: Optional[str]
    client_ip: str
    session_id: Optional[str]
    bytes_transferred: int

    def __post_init__(self) -> None:
        if self.bytes_transferred < 0:
            raise ValueError("bytes_transferred cannot be negative")

    @classmethod
    def create(
        cls,
        app_name: str,
        stream_id: str,
        uri: str,
        client_ip: str,
        bytes_transferred: int,
        subscriber_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> "TransferEvent":
        """Build an event, sanitising the client-supplied identifiers."""
        return cls(
            app_name=app_name,
            stream_id=stream_id,
            uri=uri,
            subscriber_id=sanitize_identifier(subscriber_id),
            client_ip=sanitize_identifier(client_ip),
            session_id=session_id,
            bytes_transferred=bytes_transferred,
        )

    def as_log_fields(self) -> dict:
        return {
            "app": self.app_name,
            "event": DATA_TRANSFER_EVENT,
            "stream_id": self.stream_id,
            "uri": self.uri,
            "subscriber_id": self.subscriber_id,
            "client_ip": self.client_ip,
            "session_id": self.session_id,
            "bytes_transferred": self.bytes_transferred,
        }


class TransferEventRecorder(Protocol):
    """Sink for transfer events (analytics log, metrics, ...)."""

    def record(self, event: TransferEvent) -> None:
        ...


class LoggingTransferEventRecorder:
    """Writes each transfer event as a structured analytics log line."""

    def __init__(self, analytics_logger: Optional[logging.Logger] = None) -> None:
        self._logger = analytics_logger or logger

    def record(self, event: TransferEvent) -> None:
        self._logger.info(DATA_TRANSFER_EVENT, extra=event.as_log_fields())
