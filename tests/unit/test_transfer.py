"""
Unit tests for data-transfer accounting.
"""

import logging

import pytest

from media_storage.core.transfer import (
    LoggingTransferEventRecorder,
    TransferEvent,
    sanitize_identifier,
    should_record,
)


class TestSanitizeIdentifier:
    """Client-supplied identifiers must not be able to break log lines."""

    def test_replaces_control_characters(self):
        assert sanitize_identifier("sub\nscriber\r1\t|x") == "sub_scriber_1__x"

    def test_leaves_clean_values_alone(self):
        assert sanitize_identifier("192.168.1.10") == "192.168.1.10"

    def test_none_passes_through(self):
        assert sanitize_identifier(None) is None


class TestShouldRecord:
    """Only reads against a stream are accounted."""

    @pytest.mark.parametrize("method", ["GET", "HEAD", "get"])
    def test_reads_with_stream_are_recorded(self, method):
        assert should_record(method, "stream1")

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    def test_writes_are_not_recorded(self, method):
        assert not should_record(method, "stream1")

    @pytest.mark.parametrize("stream_id", [None, "", "   "])
    def test_requests_without_stream_are_not_recorded(self, stream_id):
        assert not should_record("GET", stream_id)


class TestTransferEvent:
    """Tests for event construction."""

    def test_create_sanitises_subscriber_and_ip(self):
        event = TransferEvent.create(
            app_name="LiveApp",
            stream_id="stream1",
            uri="/LiveApp/streams/stream1.m3u8",
            client_ip="10.0.0.1\n",
            bytes_transferred=2048,
            subscriber_id="viewer\t42",
            session_id="abc",
        )

        assert event.client_ip == "10.0.0.1_"
        assert event.subscriber_id == "viewer_42"
        assert event.session_id == "abc"

    def test_rejects_negative_byte_count(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            TransferEvent.create(
                app_name="LiveApp",
                stream_id="stream1",
                uri="/",
                client_ip="10.0.0.1",
                bytes_transferred=-1,
            )


class TestLoggingTransferEventRecorder:
    """The default recorder writes one structured log line per event."""

    def test_logs_event_fields(self, caplog):
        event = TransferEvent.create(
            app_name="LiveApp",
            stream_id="stream1",
            uri="/LiveApp/streams/stream1_0.ts",
            client_ip="10.0.0.1",
            bytes_transferred=188_000,
            subscriber_id="viewer1",
        )
        recorder = LoggingTransferEventRecorder()

        with caplog.at_level(logging.INFO, logger="media_storage.core.transfer"):
            recorder.record(event)

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.getMessage() == "dataTransfer"
        assert record.stream_id == "stream1"
        assert record.bytes_transferred == 188_000
        assert record.subscriber_id == "viewer1"
