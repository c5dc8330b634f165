"""
Sequential container reader.

The Decoder parses the header once, picks the record layout for the detected
version, and then reads records one at a time. reset() seeks back to the
first record, which is what replay looping uses.
"""

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, BinaryIO

from kafka_replay.schema import Record
from kafka_replay.transcoder.codec import decode_header, layout_for, to_unix_seconds
from kafka_replay.transcoder.constants import HEADER_SIZE, ProtocolVersion


class Decoder:
    """
    Reads records from a seekable binary source.

    Supports both the legacy (version 1, keyless) and current (version 2)
    layouts. The layout is chosen once from the header and applied to every
    record in the container.

    Usage:
        with open_decoder("messages.bin") as decoder:
            for record in decoder:
                print(record.timestamp, record.key, record.payload)

    Attributes:
        version: Protocol version detected in the header
        data_start: Stream offset of the first record
    """

    def __init__(
        self,
        source: BinaryIO,
        preserve_timestamps: bool = True,
        close_source: bool = False,
    ) -> None:
        """
        Open a container by reading and validating its header.

        Args:
            source: Readable, seekable binary stream positioned at the header
            preserve_timestamps: Report stored timestamps (False reports the
                current time instead)
            close_source: Whether close() also closes source

        Raises:
            TruncatedRecordError: If the header is incomplete
            UnsupportedVersionError: If the version is unknown
        """
        self._source = source
        self._close_source = close_source
        self._closed = False
        self.preserve_timestamps = preserve_timestamps

        start = source.tell() if source.seekable() else 0
        self.version: ProtocolVersion = decode_header(source)
        self.data_start = start + HEADER_SIZE
        self._layout = layout_for(self.version)
        self._exhausted = False

    @property
    def position(self) -> int:
        """Current stream offset of the read cursor."""
        return self._source.tell()

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def read(self) -> Record | None:
        """
        Read the next record.

        Returns:
            The next record, or None once the container is exhausted at a
            record boundary (repeated calls keep returning None)

        Raises:
            TruncatedRecordError: If the container ends inside a record
            SizeOutOfBoundsError: If a size field is out of range
        """
        if self._closed:
            raise ValueError("read from closed decoder")
        if self._exhausted:
            return None
        record = self._layout.read(self._source)
        if record is None:
            self._exhausted = True
            return None
        if not self.preserve_timestamps:
            record = Record(
                timestamp=to_unix_seconds(datetime.now(UTC)),
                key=record.key,
                payload=record.payload,
            )
        return record

    def reset(self) -> None:
        """Rewind to the first record."""
        if self._closed:
            raise ValueError("reset of closed decoder")
        self._source.seek(self.data_start)
        self._exhausted = False

    def close(self) -> None:
        """Release the source. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._close_source:
            self._source.close()

    def __iter__(self) -> Iterator[Record]:
        while (record := self.read()) is not None:
            yield record

    def __enter__(self) -> "Decoder":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()


def open_decoder(path: str | Path, preserve_timestamps: bool = True) -> Decoder:
    """Open a container file and return a Decoder that owns it."""
    f = Path(path).open("rb")
    try:
        return Decoder(f, preserve_timestamps=preserve_timestamps, close_source=True)
    except Exception:
        f.close()
        raise
