"""
In-memory sources, sinks and container builders shared by the tests.
"""

import io
import threading
from collections.abc import Callable, Iterable, Sequence

from kafka_replay.errors import SinkError
from kafka_replay.schema import DispatchRecord, Record
from kafka_replay.streams.base import Sink, Source
from kafka_replay.transcoder import Encoder


class ListSource(Source):
    """
    Source that yields a fixed list of records.

    None entries simulate idle polls. Once the list is exhausted every poll
    is idle, like a quiet topic.
    """

    def __init__(self, records: Iterable[Record | None], seekable: bool = True) -> None:
        self.records = list(records)
        self.seekable = seekable
        self.position = 0
        self.polls = 0
        self.seeks: list[int] = []
        self.closed = False
        self.on_poll: Callable[["ListSource"], None] | None = None

    def read_next(self, timeout: float) -> Record | None:
        self.polls += 1
        if self.on_poll is not None:
            self.on_poll(self)
        if self.position >= len(self.records):
            return None
        record = self.records[self.position]
        self.position += 1
        return record

    def seek(self, offset: int) -> None:
        if not self.seekable:
            super().seek(offset)
        self.seeks.append(offset)
        self.position = offset

    def close(self) -> None:
        self.closed = True


class RecordingSink(Sink):
    """
    Sink that keeps every dispatched batch in memory.

    Optionally fails on a given dispatch call, or sets a cancel event once
    a number of records have been received.
    """

    def __init__(
        self,
        fail_on_batch: int | None = None,
        cancel: threading.Event | None = None,
        cancel_after: int | None = None,
    ) -> None:
        self.batches: list[list[DispatchRecord]] = []
        self.fail_on_batch = fail_on_batch
        self.cancel = cancel
        self.cancel_after = cancel_after
        self.closed = False

    @property
    def records(self) -> list[DispatchRecord]:
        return [r for batch in self.batches for r in batch]

    def dispatch_batch(self, records: Sequence[DispatchRecord]) -> None:
        if self.fail_on_batch is not None and len(self.batches) == self.fail_on_batch:
            raise SinkError(batch_size=len(records), underlying_error="broker unavailable")
        self.batches.append(list(records))
        if (
            self.cancel is not None
            and self.cancel_after is not None
            and len(self.records) >= self.cancel_after
        ):
            self.cancel.set()

    def close(self) -> None:
        self.closed = True


def make_records(payloads: Sequence[bytes], start: int = 1706872530) -> list[Record]:
    """Build records with consecutive timestamps and key-<n> keys."""
    return [
        Record(timestamp=start + i, key=f"key-{i}".encode(), payload=payload)
        for i, payload in enumerate(payloads)
    ]


def build_container(records: Iterable[Record]) -> bytes:
    """Encode records into an in-memory current-version container."""
    buf = io.BytesIO()
    with Encoder(buf) as encoder:
        for record in records:
            encoder.write(record.timestamp, record.payload, record.key)
    return buf.getvalue()
