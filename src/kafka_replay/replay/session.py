"""
Replay Session for kafka-replay.

The ReplaySession reads a container through a Decoder and dispatches its
records to a live sink in batches.

Use cases:
    - Re-inject a recorded topic into another environment
    - Load-test a consumer at a controlled rate, optionally forever
    - Validate a container end to end without sending anything (dry run)

Execution Flow (per iteration):
    1. Check the cancellation signal
    2. Read the next record; at end of container flush, and either rewind
       (loop) or finish
    3. Skip records whose payload does not contain the find filter
    4. Wait for the next pacing tick when a rate is set (also in dry runs)
    5. Append to the batch; flush once the count or byte limit is reached

Design Principles:
    - One batch in flight: dispatch is synchronous
    - No rollback: batches already dispatched stay dispatched on failure
    - Owned resources: decoder and sink are closed on every exit path
"""

import logging
import threading
import time
from pathlib import Path

from kafka_replay.errors import (
    FramingError,
    KafkaReplayError,
    SessionCancelledError,
    SinkError,
)
from kafka_replay.pacing import Ticker
from kafka_replay.schema import (
    DispatchRecord,
    Record,
    ReplayOptions,
    ReplayResult,
    SessionStatus,
)
from kafka_replay.streams.base import Sink
from kafka_replay.transcoder import Decoder, open_decoder

logger = logging.getLogger(__name__)


class _Cancelled(Exception):
    """Internal signal: the cancellation event fired."""


class ReplaySession:
    """
    Replays a container into a live sink.

    Usage:
        with open_decoder("orders.bin") as decoder:
            session = ReplaySession(decoder, sink, ReplayOptions(rate=100))
            result = session.run()
            print(f"Replayed {result.records_replayed} records")

    Attributes:
        decoder: Where records come from
        sink: Where batches are dispatched
        options: Rate, loop, partition, dry run, find filter, batch limits
        cancel: Set this event to stop the session
        status: Current lifecycle state
        cycles: Passes over the container so far
    """

    def __init__(
        self,
        decoder: Decoder,
        sink: Sink,
        options: ReplayOptions | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self.decoder = decoder
        self.sink = sink
        self.options = options or ReplayOptions()
        self.cancel = cancel or threading.Event()
        self.status = SessionStatus.IDLE
        self.cycles = 0

        self._batch: list[DispatchRecord] = []
        self._batch_bytes = 0
        self._count = 0
        self._batches = 0

    @property
    def records_replayed(self) -> int:
        """Records accepted into batches so far."""
        return self._count

    def run(self) -> ReplayResult:
        """
        Run the session to completion.

        Never raises for session outcomes; failures and cancellation are
        reported on the result.

        Returns:
            ReplayResult with the number of records replayed and final status
        """
        if self.status != SessionStatus.IDLE:
            raise RuntimeError(f"session already {self.status.value}")

        self.status = SessionStatus.RUNNING
        started = time.monotonic()
        error: Exception | None = None
        logger.info(
            "Replay started (rate=%s, loop=%s, partition=%s, dry_run=%s, find=%r)",
            self.options.rate or "unbounded",
            self.options.loop,
            self.options.partition,
            self.options.dry_run,
            self.options.find,
        )

        try:
            self._loop()
            self.status = SessionStatus.COMPLETED
        except _Cancelled:
            error = self._finish_cancelled()
        except FramingError as e:
            logger.error("Replay failed: %s", e)
            self._flush_best_effort()
            self.status = SessionStatus.FAILED
            error = e
        except (KafkaReplayError, OSError) as e:
            logger.error("Replay failed: %s", e)
            self.status = SessionStatus.FAILED
            error = e
        finally:
            close_error = self._close()

        if close_error is not None and self.status != SessionStatus.FAILED:
            self.status = SessionStatus.FAILED
            error = close_error

        result = ReplayResult(
            status=self.status,
            records_replayed=self._count,
            batches_dispatched=self._batches,
            cycles=self.cycles,
            dry_run=self.options.dry_run,
            error=error,
            duration_seconds=time.monotonic() - started,
        )
        logger.info(
            "Replay %s: %d records in %d batches over %d cycles",
            result.status.value,
            result.records_replayed,
            result.batches_dispatched,
            result.cycles,
        )
        return result

    def _loop(self) -> None:
        ticker = Ticker(self.options.rate) if self.options.rate > 0 else None
        self.cycles = 1
        decoded_this_cycle = 0

        while True:
            if self.cancel.is_set():
                raise _Cancelled()

            record = self.decoder.read()
            if record is None:
                self._flush()
                if not self.options.loop:
                    return
                if decoded_this_cycle == 0:
                    logger.warning("Container has no records; not looping")
                    return
                self.decoder.reset()
                self.cycles += 1
                decoded_this_cycle = 0
                logger.debug("Restarting from first record (cycle %d)", self.cycles)
                continue

            decoded_this_cycle += 1
            if not record.matches(self.options.find):
                continue

            if ticker is not None and not ticker.wait(self.cancel):
                raise _Cancelled()

            self._append(record)
            if (
                len(self._batch) >= self.options.batch_count_limit
                or self._batch_bytes >= self.options.batch_byte_limit
            ):
                self._flush()

    def _append(self, record: Record) -> None:
        self._batch.append(DispatchRecord(
            key=record.key,
            value=record.payload,
            timestamp=record.timestamp,
            partition=self.options.partition,
        ))
        self._batch_bytes += len(record.payload)
        self._count += 1

    def _flush(self) -> None:
        if not self._batch:
            return
        if not self.options.dry_run:
            try:
                self.sink.dispatch_batch(self._batch)
            except KafkaReplayError:
                raise
            except Exception as e:
                raise SinkError(batch_size=len(self._batch), underlying_error=str(e)) from e
            self._batches += 1
            logger.debug("Dispatched batch of %d records (%d bytes)", len(self._batch), self._batch_bytes)
        self._batch = []
        self._batch_bytes = 0

    def _flush_best_effort(self) -> None:
        try:
            self._flush()
        except (KafkaReplayError, OSError) as e:
            logger.error("Failed to flush final batch: %s", e)

    def _finish_cancelled(self) -> Exception:
        try:
            self._flush()
        except (KafkaReplayError, OSError) as e:
            logger.error("Failed to flush batch after cancellation: %s", e)
            self.status = SessionStatus.FAILED
            return e
        self.status = SessionStatus.CANCELLED
        return SessionCancelledError(records=self._count)

    def _close(self) -> Exception | None:
        try:
            try:
                self.decoder.close()
            finally:
                self.sink.close()
        except (KafkaReplayError, OSError) as e:
            logger.error("Failed to close replay: %s", e)
            return e
        return None


def replay_file(
    path: str | Path,
    sink: Sink,
    options: ReplayOptions | None = None,
    cancel: threading.Event | None = None,
    preserve_timestamps: bool = True,
) -> ReplayResult:
    """
    Replay the container file at path into sink.

    Raises:
        FramingError: If the container header is invalid
        OSError: If the file cannot be opened
    """
    try:
        decoder = open_decoder(path, preserve_timestamps=preserve_timestamps)
    except Exception:
        sink.close()
        raise
    return ReplaySession(decoder, sink, options, cancel).run()
