"""
Unit tests for displaying containers.
"""

import io
import json
import threading

import pytest

from fakes import build_container, make_records
from kafka_replay.cat import cat, format_json, format_raw
from kafka_replay.errors import SessionCancelledError, TruncatedRecordError
from kafka_replay.schema import Record
from kafka_replay.transcoder import Decoder


class TestFormatters:
    """Tests for line formatters."""

    def test_format_json(self) -> None:
        """JSON lines carry an ISO timestamp, key and data."""
        line = format_json(Record(timestamp=1706872530, key=b"user-123", payload=b"Hello, World!"))
        assert line.endswith(b"\n")
        assert json.loads(line) == {
            "timestamp": "2024-02-02T11:15:30Z",
            "key": "user-123",
            "data": "Hello, World!",
        }

    def test_format_json_absent_key(self) -> None:
        """An absent key is null."""
        line = format_json(Record(timestamp=0, key=None, payload=b"x"))
        assert json.loads(line)["key"] is None

    def test_format_json_out_of_range_timestamp(self) -> None:
        """Timestamps beyond datetime range are shown as integers."""
        line = format_json(Record(timestamp=2**62, key=None, payload=b"x"))
        assert json.loads(line)["timestamp"] == str(2**62)

    def test_format_raw(self) -> None:
        """Raw lines are the payload bytes."""
        assert format_raw(Record(timestamp=0, key=b"k", payload=b"\x00\xff")) == b"\x00\xff\n"


class TestCat:
    """Tests for cat()."""

    def test_writes_all_records(self, sample_records: list[Record]) -> None:
        """Every record is written as one line."""
        out = io.BytesIO()
        result = cat(Decoder(io.BytesIO(build_container(sample_records))), out)
        assert result.count == 10
        assert result.error is None
        assert len(out.getvalue().splitlines()) == 10

    def test_find_filter(self, sample_records: list[Record]) -> None:
        """Only matching payloads are shown."""
        out = io.BytesIO()
        result = cat(Decoder(io.BytesIO(build_container(sample_records))), out, format_raw, find=b"ERROR")
        assert result.count == 2
        assert out.getvalue() == b"ERROR timeout talking to db\nERROR disk full\n"

    def test_count_only(self, sample_records: list[Record]) -> None:
        """Counting needs no output stream."""
        result = cat(Decoder(io.BytesIO(build_container(sample_records))), count_only=True, find=b"INFO")
        assert result.count == 6

    def test_output_required(self) -> None:
        """Without count_only an output stream is required."""
        with pytest.raises(ValueError):
            cat(Decoder(io.BytesIO(build_container([]))))

    def test_truncated_reported(self) -> None:
        """A framing error ends the read and is reported with the count so far."""
        data = build_container(make_records([b"a", b"b"]))[:-1]
        result = cat(Decoder(io.BytesIO(data)), count_only=True)
        assert result.count == 1
        assert isinstance(result.error, TruncatedRecordError)

    def test_cancelled(self, sample_records: list[Record]) -> None:
        """A set cancel event stops before the first record."""
        cancel = threading.Event()
        cancel.set()
        result = cat(Decoder(io.BytesIO(build_container(sample_records))), io.BytesIO(), cancel=cancel)
        assert result.count == 0
        assert isinstance(result.error, SessionCancelledError)
