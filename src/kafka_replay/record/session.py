"""
Record Session for kafka-replay.

The RecordSession drives a live source into an Encoder until the record
limit is reached, the cancellation signal is set, or something fails.

Execution Flow:
    1. Apply the starting offset (if any) to the source
    2. Poll the source; an idle poll just loops again
    3. Skip records whose payload does not contain the find filter
    4. Write matching records and count them
    5. Close the encoder and the source on every exit path

Design Principles:
    - Idle is not the end: a quiet source never stops the session
    - Bounded waits: every poll returns within poll_timeout_seconds so the
      cancellation signal is seen promptly
    - Owned resources: the session closes what it was given
"""

import logging
import threading
import time
from pathlib import Path

from kafka_replay.errors import (
    KafkaReplayError,
    PositionNotSupportedError,
    SessionCancelledError,
    SourceError,
)
from kafka_replay.schema import Record, RecordOptions, RecordResult, SessionStatus
from kafka_replay.streams.base import Source
from kafka_replay.transcoder import Encoder, open_encoder

logger = logging.getLogger(__name__)


class RecordSession:
    """
    Records a live source into a container.

    Usage:
        with KafkaSource(brokers, "orders") as source:
            session = RecordSession(source, open_encoder("orders.bin"), RecordOptions(limit=100))
            result = session.run()
            print(f"Recorded {result.records_written} records ({result.bytes_written} bytes)")

    Attributes:
        source: Where records come from
        encoder: Where records are written
        options: Limit, find filter and starting offset
        cancel: Set this event to stop the session
        status: Current lifecycle state
    """

    def __init__(
        self,
        source: Source,
        encoder: Encoder,
        options: RecordOptions | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self.source = source
        self.encoder = encoder
        self.options = options or RecordOptions()
        self.cancel = cancel or threading.Event()
        self.status = SessionStatus.IDLE
        self._count = 0

    def run(self) -> RecordResult:
        """
        Run the session to completion.

        Never raises for session outcomes; failures and cancellation are
        reported on the result.

        Returns:
            RecordResult with bytes and records written and the final status
        """
        if self.status != SessionStatus.IDLE:
            raise RuntimeError(f"session already {self.status.value}")

        self.status = SessionStatus.RUNNING
        started = time.monotonic()
        error: Exception | None = None
        logger.info(
            "Recording started (offset=%s, limit=%s, find=%r)",
            self.options.offset,
            self.options.limit or "unlimited",
            self.options.find,
        )

        try:
            self._apply_offset()
            error = self._loop()
            self.status = SessionStatus.CANCELLED if error is not None else SessionStatus.STOPPED
        except (KafkaReplayError, OSError) as e:
            logger.error("Recording failed: %s", e)
            self.status = SessionStatus.FAILED
            error = e
        finally:
            close_error = self._close()

        if close_error is not None and self.status != SessionStatus.FAILED:
            self.status = SessionStatus.FAILED
            error = close_error

        result = RecordResult(
            status=self.status,
            bytes_written=self.encoder.total_bytes,
            records_written=self._count,
            error=error,
            duration_seconds=time.monotonic() - started,
        )
        logger.info(
            "Recording %s: %d records (%d bytes)",
            result.status.value,
            result.records_written,
            result.bytes_written,
        )
        return result

    def _apply_offset(self) -> None:
        if self.options.offset is None:
            return
        try:
            self.source.seek(self.options.offset)
        except PositionNotSupportedError as e:
            logger.warning("Ignoring starting offset %d: %s", self.options.offset, e.message)
        except KafkaReplayError:
            raise
        except Exception as e:
            raise SourceError(underlying_error=str(e)) from e

    def _limit_reached(self) -> bool:
        return self.options.limit > 0 and self._count >= self.options.limit

    def _loop(self) -> SessionCancelledError | None:
        while not self._limit_reached():
            if self.cancel.is_set():
                return SessionCancelledError(records=self._count)

            record = self._poll()
            if record is None:
                continue
            if not record.matches(self.options.find):
                continue

            self.encoder.write(record.timestamp, record.payload, record.key)
            self._count += 1
        return None

    def _poll(self) -> Record | None:
        try:
            return self.source.read_next(self.options.poll_timeout_seconds)
        except KafkaReplayError:
            raise
        except Exception as e:
            raise SourceError(underlying_error=str(e)) from e

    def _close(self) -> Exception | None:
        try:
            try:
                self.encoder.close()
            finally:
                self.source.close()
        except (KafkaReplayError, OSError) as e:
            logger.error("Failed to close recording: %s", e)
            return e
        return None


def record_to_file(
    source: Source,
    output: str | Path,
    options: RecordOptions | None = None,
    cancel: threading.Event | None = None,
) -> RecordResult:
    """
    Record source into a new container file at output.

    The file is created (or truncated) before the first poll.
    """
    try:
        encoder = open_encoder(output)
    except Exception:
        source.close()
        raise
    return RecordSession(source, encoder, options, cancel).run()
