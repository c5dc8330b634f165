"""
Base classes for live stream collaborators.

This module defines the two capabilities the sessions need from a live log:
- Source: Yields the next available keyed, timestamped record
- Sink: Accepts an ordered batch of records

Design Principles:
    - A source that is momentarily idle returns None; it never raises for that
    - Reads are bounded by a timeout so callers can race them against a
      cancellation signal
    - Failures are reported as SourceError / SinkError
    - Sources and sinks are context managers and own their connections

Why ABC over Protocol?
    - Sources share a default seek() that reports "not supported"
    - Both share the context manager plumbing
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from kafka_replay.errors import PositionNotSupportedError
from kafka_replay.schema import DispatchRecord, Record


class Source(ABC):
    """
    Abstract base class for record sources.

    Subclasses must implement:
    - read_next(): Return the next record, or None if none is available yet
    - close(): Release the underlying connection

    Example:
        class ListSource(Source):
            def __init__(self, records):
                self.records = list(records)

            def read_next(self, timeout: float) -> Record | None:
                return self.records.pop(0) if self.records else None

            def close(self) -> None:
                pass
    """

    @abstractmethod
    def read_next(self, timeout: float) -> Record | None:
        """
        Return the next available record.

        Blocks for at most timeout seconds.

        Args:
            timeout: Longest time to wait for a record, in seconds

        Returns:
            The next record, or None when no record is available yet

        Raises:
            SourceError: If the source failed
        """
        ...

    def seek(self, offset: int) -> None:
        """
        Move the read position to an absolute offset.

        The default implementation reports that positioning is not supported.

        Raises:
            PositionNotSupportedError: If the source manages its own position
        """
        raise PositionNotSupportedError(offset=offset)

    @abstractmethod
    def close(self) -> None:
        """Release the source."""
        ...

    def __enter__(self) -> "Source":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()


class Sink(ABC):
    """
    Abstract base class for record sinks.

    Subclasses must implement:
    - dispatch_batch(): Deliver an ordered batch
    - close(): Flush and release the underlying connection
    """

    @abstractmethod
    def dispatch_batch(self, records: Sequence[DispatchRecord]) -> None:
        """
        Deliver a batch of records in order.

        Args:
            records: Records to deliver; each may carry a partition pin

        Raises:
            SinkError: If the batch could not be delivered
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Flush and release the sink."""
        ...

    def __enter__(self) -> "Sink":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()


class DiscardSink(Sink):
    """Sink that drops every batch. Used for dry runs, where no connection is wanted."""

    def dispatch_batch(self, records: Sequence[DispatchRecord]) -> None:
        pass

    def close(self) -> None:
        pass
