"""
Framing codec for the kafka-replay container.

Pure encode/decode functions with no I/O policy. Records are parsed through a
layout strategy that is chosen once per container from the header version:

    - LegacyLayout:  timestamp + size + payload (keys are never present)
    - CurrentLayout: timestamp + key size + size + key + payload

All fixed-size fields precede the variable-size fields, so both lengths are
known and validated before any variable data is read.
"""

import struct
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta
from typing import BinaryIO

from kafka_replay.errors import (
    SizeOutOfBoundsError,
    TruncatedRecordError,
    UnsupportedVersionError,
)
from kafka_replay.schema import Record
from kafka_replay.transcoder.constants import (
    CURRENT_PREFIX_FMT,
    HEADER_FMT,
    HEADER_RESERVED_SIZE,
    HEADER_SIZE,
    LEGACY_PREFIX_FMT,
    MAX_FIELD_SIZE,
    SUPPORTED_VERSIONS,
    TIMESTAMP_SIZE,
    ProtocolVersion,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_HEADER = struct.Struct(HEADER_FMT)
_LEGACY_PREFIX = struct.Struct(LEGACY_PREFIX_FMT)
_CURRENT_PREFIX = struct.Struct(CURRENT_PREFIX_FMT)


def to_unix_seconds(timestamp: int | datetime) -> int:
    """
    Convert a timestamp to whole seconds since the epoch.

    Sub-second precision is discarded (floored). Naive datetimes are treated
    as UTC.
    """
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        return (timestamp - _EPOCH) // timedelta(seconds=1)
    return int(timestamp)


def read_exact(reader: BinaryIO, size: int) -> bytes:
    """
    Read exactly size bytes from reader.

    Raises:
        TruncatedRecordError: If the stream ends first
    """
    if size == 0:
        return b""
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = reader.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    data = b"".join(chunks)
    if len(data) != size:
        raise TruncatedRecordError(expected=size, actual=len(data))
    return data


def _check_size(field_name: str, size: int) -> None:
    if size < 0 or size > MAX_FIELD_SIZE:
        raise SizeOutOfBoundsError(field_name=field_name, size=size, max_size=MAX_FIELD_SIZE)


# =============================================================================
# Header
# =============================================================================


def encode_header(version: ProtocolVersion = ProtocolVersion.CURRENT) -> bytes:
    """Encode the fixed 20-byte container header."""
    return _HEADER.pack(int(version), bytes(HEADER_RESERVED_SIZE))


def decode_header(reader: BinaryIO) -> ProtocolVersion:
    """
    Read the container header and return its protocol version.

    Reserved bytes are read but not interpreted.

    Raises:
        TruncatedRecordError: If fewer than 20 bytes are available
        UnsupportedVersionError: If the version is neither legacy nor current
    """
    version, _reserved = _HEADER.unpack(read_exact(reader, HEADER_SIZE))
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersionError(
            version=version,
            supported=tuple(int(v) for v in SUPPORTED_VERSIONS),
        )
    return ProtocolVersion(version)


# =============================================================================
# Records
# =============================================================================


def encode_record(timestamp: int | datetime, key: bytes | None, payload: bytes) -> bytes:
    """
    Encode one record in the current layout.

    An absent (or empty) key is written as key size 0 with no key bytes.
    Fields over MAX_FIELD_SIZE raise SizeOutOfBoundsError.
    """
    key = key or b""
    _check_size("key", len(key))
    _check_size("message", len(payload))
    prefix = _CURRENT_PREFIX.pack(to_unix_seconds(timestamp), len(key), len(payload))
    return b"".join((prefix, key, payload))


class RecordLayout(ABC):
    """Strategy for parsing records of one protocol version."""

    version: ProtocolVersion

    @abstractmethod
    def read(self, reader: BinaryIO) -> Record | None:
        """
        Read one record from reader.

        Returns:
            The record, or None when the stream is exhausted exactly at a
            record boundary

        Raises:
            TruncatedRecordError: If the stream ends inside the record
            SizeOutOfBoundsError: If a size field is out of range
        """
        ...

    def _read_prefix(self, reader: BinaryIO, prefix: struct.Struct) -> tuple[int, ...] | None:
        first = reader.read(TIMESTAMP_SIZE)
        if not first:
            return None
        rest = prefix.size - len(first)
        try:
            data = first + read_exact(reader, rest)
        except TruncatedRecordError as e:
            raise TruncatedRecordError(expected=prefix.size, actual=len(first) + e.actual) from None
        return prefix.unpack(data)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} v{int(self.version)}>"


class LegacyLayout(RecordLayout):
    """Version 1: timestamp + payload size + payload, no key."""

    version = ProtocolVersion.LEGACY

    def read(self, reader: BinaryIO) -> Record | None:
        prefix = self._read_prefix(reader, _LEGACY_PREFIX)
        if prefix is None:
            return None
        timestamp, payload_size = prefix
        _check_size("message", payload_size)
        payload = read_exact(reader, payload_size)
        return Record(timestamp=timestamp, key=None, payload=payload)


class CurrentLayout(RecordLayout):
    """Version 2: timestamp + key size + payload size + key + payload."""

    version = ProtocolVersion.CURRENT

    def read(self, reader: BinaryIO) -> Record | None:
        prefix = self._read_prefix(reader, _CURRENT_PREFIX)
        if prefix is None:
            return None
        timestamp, key_size, payload_size = prefix
        _check_size("key", key_size)
        _check_size("message", payload_size)
        key = read_exact(reader, key_size) if key_size > 0 else None
        payload = read_exact(reader, payload_size)
        return Record(timestamp=timestamp, key=key, payload=payload)


_LAYOUTS: dict[ProtocolVersion, RecordLayout] = {
    ProtocolVersion.LEGACY: LegacyLayout(),
    ProtocolVersion.CURRENT: CurrentLayout(),
}


def layout_for(version: ProtocolVersion) -> RecordLayout:
    """Return the record layout for a protocol version."""
    try:
        return _LAYOUTS[version]
    except KeyError:
        raise UnsupportedVersionError(
            version=int(version),
            supported=tuple(int(v) for v in SUPPORTED_VERSIONS),
        ) from None


def decode_record(version: ProtocolVersion, reader: BinaryIO) -> Record | None:
    """
    Decode one record using the layout for version.

    Returns None at a clean end of stream. For legacy containers the key is
    always None.
    """
    return layout_for(version).read(reader)
