"""
Unit tests for the container framing codec.

Tests cover:
- Exact byte layout of headers and records
- Legacy (version 1) and current (version 2) record layouts
- Size bounds and truncation detection
- Timestamp conversion
"""

import io
import struct
from datetime import UTC, datetime, timedelta, timezone

import pytest

from kafka_replay.errors import (
    SizeOutOfBoundsError,
    TruncatedRecordError,
    UnsupportedVersionError,
)
from kafka_replay.transcoder import (
    HEADER_SIZE,
    MAX_FIELD_SIZE,
    CurrentLayout,
    LegacyLayout,
    ProtocolVersion,
    decode_header,
    decode_record,
    encode_header,
    encode_record,
    layout_for,
)
from kafka_replay.transcoder import codec
from kafka_replay.transcoder.codec import read_exact, to_unix_seconds


def legacy_entry(timestamp: int, payload: bytes) -> bytes:
    return struct.pack(">qq", timestamp, len(payload)) + payload


class TestHeader:
    """Tests for the container header."""

    def test_header_layout(self) -> None:
        """Header is a big-endian version followed by 16 zero bytes."""
        header = encode_header()
        assert len(header) == HEADER_SIZE == 20
        assert header[:4] == b"\x00\x00\x00\x02"
        assert header[4:] == b"\x00" * 16

    def test_decode_current_and_legacy(self) -> None:
        """Both supported versions are detected."""
        assert decode_header(io.BytesIO(encode_header())) == ProtocolVersion.CURRENT
        assert decode_header(io.BytesIO(encode_header(ProtocolVersion.LEGACY))) == ProtocolVersion.LEGACY

    def test_reserved_bytes_ignored(self) -> None:
        """Reserved bytes are not interpreted."""
        header = struct.pack(">i", 2) + b"\xff" * 16
        assert decode_header(io.BytesIO(header)) == ProtocolVersion.CURRENT

    @pytest.mark.parametrize("version", [0, 3, -1, 256])
    def test_unsupported_version(self, version: int) -> None:
        """Unknown versions are rejected."""
        header = struct.pack(">i16s", version, bytes(16))
        with pytest.raises(UnsupportedVersionError) as exc_info:
            decode_header(io.BytesIO(header))
        assert exc_info.value.version == version
        assert exc_info.value.supported == (1, 2)

    def test_short_header(self) -> None:
        """A header shorter than 20 bytes is truncated."""
        with pytest.raises(TruncatedRecordError) as exc_info:
            decode_header(io.BytesIO(encode_header()[:12]))
        assert exc_info.value.expected == 20
        assert exc_info.value.actual == 12

    def test_empty_stream(self) -> None:
        """An empty stream has no header."""
        with pytest.raises(TruncatedRecordError):
            decode_header(io.BytesIO(b""))


class TestEncodeRecord:
    """Tests for the current record layout."""

    def test_keyed_record_layout(self) -> None:
        """A keyed record has timestamp, key size, payload size, key, payload."""
        entry = encode_record(1706872530, b"user-123", b"Hello, World!")
        assert len(entry) == 8 + 8 + 8 + 8 + 13
        assert entry[0:8] == struct.pack(">q", 1706872530)
        assert entry[8:16] == struct.pack(">q", 8)
        assert entry[16:24] == struct.pack(">q", 13)
        assert entry[24:32] == b"user-123"
        assert entry[32:] == b"Hello, World!"

    def test_container_size_with_key(self) -> None:
        """Header plus one keyed record is 65 bytes."""
        data = encode_header() + encode_record(1706872530, b"user-123", b"Hello, World!")
        assert len(data) == 65

    def test_keyless_record_layout(self) -> None:
        """An absent key is written as key size 0 with no key bytes."""
        entry = encode_record(1706872530, None, b"Hello, World!")
        assert len(entry) == 37
        assert entry[8:16] == struct.pack(">q", 0)
        assert entry[24:] == b"Hello, World!"

    def test_empty_key_written_as_absent(self) -> None:
        """An empty key is indistinguishable from no key."""
        assert encode_record(1, b"", b"x") == encode_record(1, None, b"x")

    def test_datetime_timestamp(self) -> None:
        """Datetimes are floored to whole seconds."""
        ts = datetime(2024, 2, 2, 11, 15, 30, 999_000, tzinfo=UTC)
        entry = encode_record(ts, None, b"")
        assert struct.unpack(">q", entry[:8])[0] == 1706872530


class TestDecodeRecord:
    """Tests for decoding records in both layouts."""

    def test_decode_current(self) -> None:
        """A current record decodes to its fields."""
        reader = io.BytesIO(encode_record(1706872530, b"user-123", b"Hello, World!"))
        record = decode_record(ProtocolVersion.CURRENT, reader)
        assert record.timestamp == 1706872530
        assert record.key == b"user-123"
        assert record.payload == b"Hello, World!"

    def test_decode_keyless(self) -> None:
        """Key size 0 decodes as an absent key."""
        reader = io.BytesIO(encode_record(5, None, b"abc"))
        record = decode_record(ProtocolVersion.CURRENT, reader)
        assert record.key is None

    def test_empty_payload(self) -> None:
        """Zero-length payloads are legal."""
        reader = io.BytesIO(encode_record(5, b"k", b""))
        record = decode_record(ProtocolVersion.CURRENT, reader)
        assert record.payload == b""
        assert record.key == b"k"

    def test_decode_legacy(self) -> None:
        """Legacy records never carry a key."""
        reader = io.BytesIO(legacy_entry(1706872530, b"hello"))
        record = decode_record(ProtocolVersion.LEGACY, reader)
        assert record.timestamp == 1706872530
        assert record.key is None
        assert record.payload == b"hello"

    def test_clean_eof(self) -> None:
        """End of stream at a record boundary is not an error."""
        assert decode_record(ProtocolVersion.CURRENT, io.BytesIO(b"")) is None
        assert decode_record(ProtocolVersion.LEGACY, io.BytesIO(b"")) is None

    def test_negative_timestamp(self) -> None:
        """Timestamps before the epoch round-trip."""
        reader = io.BytesIO(encode_record(-86400, None, b"x"))
        assert decode_record(ProtocolVersion.CURRENT, reader).timestamp == -86400

    @pytest.mark.parametrize("cut", [1, 7, 8, 23, 30, 36])
    def test_truncated_current(self, cut: int) -> None:
        """A stream that ends inside a record is truncated."""
        entry = encode_record(1, b"user-123", b"Hello, World!")
        with pytest.raises(TruncatedRecordError):
            decode_record(ProtocolVersion.CURRENT, io.BytesIO(entry[:cut]))

    def test_truncated_prefix_reports_prefix_size(self) -> None:
        """Truncation inside the prefix reports the prefix size."""
        entry = encode_record(1, None, b"abc")
        with pytest.raises(TruncatedRecordError) as exc_info:
            decode_record(ProtocolVersion.CURRENT, io.BytesIO(entry[:10]))
        assert exc_info.value.expected == 24
        assert exc_info.value.actual == 10

    def test_truncated_legacy(self) -> None:
        """Legacy records detect truncated payloads."""
        entry = legacy_entry(1, b"hello")
        with pytest.raises(TruncatedRecordError):
            decode_record(ProtocolVersion.LEGACY, io.BytesIO(entry[:-1]))


class TestSizeBounds:
    """Tests for size field validation."""

    def test_negative_payload_size(self) -> None:
        """Negative payload sizes are rejected."""
        prefix = struct.pack(">qqq", 1, 0, -5)
        with pytest.raises(SizeOutOfBoundsError) as exc_info:
            decode_record(ProtocolVersion.CURRENT, io.BytesIO(prefix))
        assert exc_info.value.field_name == "message"

    def test_oversized_key_rejected_before_read(self) -> None:
        """An oversized key is rejected without reading it."""
        prefix = struct.pack(">qqq", 1, MAX_FIELD_SIZE + 1, 3)
        with pytest.raises(SizeOutOfBoundsError) as exc_info:
            decode_record(ProtocolVersion.CURRENT, io.BytesIO(prefix + b"abc"))
        assert exc_info.value.field_name == "key"
        assert exc_info.value.max_size == MAX_FIELD_SIZE

    def test_oversized_payload_checked_before_key(self) -> None:
        """Both sizes are validated before the key bytes are read."""
        reader = io.BytesIO(struct.pack(">qqq", 1, 3, MAX_FIELD_SIZE + 1) + b"key")
        with pytest.raises(SizeOutOfBoundsError):
            decode_record(ProtocolVersion.CURRENT, reader)
        assert reader.tell() == 24

    def test_legacy_bounds(self) -> None:
        """Legacy payload sizes are bounded too."""
        prefix = struct.pack(">qq", 1, MAX_FIELD_SIZE + 1)
        with pytest.raises(SizeOutOfBoundsError):
            decode_record(ProtocolVersion.LEGACY, io.BytesIO(prefix))

    def test_max_size_accepted_by_bounds(self) -> None:
        """A size equal to the bound passes validation (then truncates here)."""
        prefix = struct.pack(">qqq", 1, 0, MAX_FIELD_SIZE)
        with pytest.raises(TruncatedRecordError):
            decode_record(ProtocolVersion.CURRENT, io.BytesIO(prefix))

    def test_encode_enforces_bound(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Encoding accepts a field at the bound and rejects one past it."""
        monkeypatch.setattr(codec, "MAX_FIELD_SIZE", 4)
        assert len(encode_record(1, b"kkkk", b"pppp")) == 24 + 8
        with pytest.raises(SizeOutOfBoundsError) as exc_info:
            encode_record(1, None, b"ppppp")
        assert exc_info.value.size == 5


class TestHelpers:
    """Tests for codec helper functions."""

    def test_layout_for(self) -> None:
        """Each version maps to its layout."""
        assert isinstance(layout_for(ProtocolVersion.LEGACY), LegacyLayout)
        assert isinstance(layout_for(ProtocolVersion.CURRENT), CurrentLayout)

    def test_read_exact_short(self) -> None:
        """read_exact reports how much was available."""
        with pytest.raises(TruncatedRecordError) as exc_info:
            read_exact(io.BytesIO(b"abc"), 5)
        assert exc_info.value.actual == 3

    def test_read_exact_zero(self) -> None:
        """Reading zero bytes never touches the stream."""
        assert read_exact(io.BytesIO(b""), 0) == b""

    def test_to_unix_seconds_naive_is_utc(self) -> None:
        """Naive datetimes are interpreted as UTC."""
        assert to_unix_seconds(datetime(1970, 1, 1, 0, 1)) == 60

    def test_to_unix_seconds_aware(self) -> None:
        """Aware datetimes are converted to UTC."""
        ts = datetime(1970, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=1)))
        assert to_unix_seconds(ts) == 0

    def test_to_unix_seconds_floors_before_epoch(self) -> None:
        """Sub-second values before the epoch floor downwards."""
        ts = datetime(1969, 12, 31, 23, 59, 59, 500_000, tzinfo=UTC)
        assert to_unix_seconds(ts) == -1
