"""
Sequential container writer.

The Encoder writes the header as soon as it is opened and appends one
current-layout record per write() call. It keeps its own running byte count,
so callers never need to inspect the underlying stream.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO

from kafka_replay.transcoder.codec import encode_header, encode_record
from kafka_replay.transcoder.constants import HEADER_SIZE, ProtocolVersion


class Encoder:
    """
    Writes records to a binary sink in the current protocol version.

    Usage:
        with open("messages.bin", "wb") as f, Encoder(f) as encoder:
            encoder.write(1706872530, b"Hello, World!", key=b"user-123")
            print(encoder.total_bytes)

    Not safe for use by more than one writer at a time.

    Attributes:
        version: Protocol version written (always current)
    """

    version = ProtocolVersion.CURRENT

    def __init__(self, sink: BinaryIO, close_sink: bool = False) -> None:
        """
        Open a container on sink by writing its header.

        Args:
            sink: Writable binary stream
            close_sink: Whether close() also closes sink
        """
        self._sink = sink
        self._close_sink = close_sink
        self._closed = False
        self._total_bytes = 0
        self._records = 0

        self._sink.write(encode_header(self.version))
        self._total_bytes = HEADER_SIZE

    @property
    def total_bytes(self) -> int:
        """Bytes written so far, header included."""
        return self._total_bytes

    @property
    def records_written(self) -> int:
        """Records written so far."""
        return self._records

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def write(self, timestamp: int | datetime, payload: bytes, key: bytes | None = None) -> int:
        """
        Append one record.

        Args:
            timestamp: Seconds since the epoch, or a datetime (floored to seconds)
            payload: Message value
            key: Message key, or None

        Returns:
            Number of bytes the record occupies
        """
        if self._closed:
            raise ValueError("write to closed encoder")
        data = encode_record(timestamp, key, payload)
        self._sink.write(data)
        self._total_bytes += len(data)
        self._records += 1
        return len(data)

    def close(self) -> None:
        """Flush and finalize the container. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        flush = getattr(self._sink, "flush", None)
        if flush is not None:
            flush()
        if self._close_sink:
            self._sink.close()

    def __enter__(self) -> "Encoder":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()


def open_encoder(path: str | Path) -> Encoder:
    """Create (or truncate) a container file and return an Encoder that owns it."""
    f = Path(path).open("wb")
    try:
        return Encoder(f, close_sink=True)
    except Exception:
        f.close()
        raise
