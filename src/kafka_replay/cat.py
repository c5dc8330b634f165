"""
Display recorded containers.

cat() walks a container in order, applies the find filter and writes one
formatted line per matching record. With count_only it just counts.
"""

import json
import threading
from collections.abc import Callable
from typing import BinaryIO

from kafka_replay.errors import KafkaReplayError, SessionCancelledError
from kafka_replay.schema import CatResult, Record
from kafka_replay.transcoder import Decoder

Formatter = Callable[[Record], bytes]


def format_json(record: Record) -> bytes:
    """Format a record as one JSON line with timestamp, key and data."""
    try:
        timestamp = record.time.isoformat().replace("+00:00", "Z")
    except OverflowError:
        timestamp = str(record.timestamp)
    line = {
        "timestamp": timestamp,
        "key": record.key.decode("utf-8", errors="replace") if record.key is not None else None,
        "data": record.payload.decode("utf-8", errors="replace"),
    }
    return json.dumps(line, ensure_ascii=False).encode("utf-8") + b"\n"


def format_raw(record: Record) -> bytes:
    """Output only the payload bytes, newline terminated."""
    return record.payload + b"\n"


def cat(
    decoder: Decoder,
    output: BinaryIO | None = None,
    formatter: Formatter = format_json,
    find: bytes | None = None,
    count_only: bool = False,
    cancel: threading.Event | None = None,
) -> CatResult:
    """
    Write every matching record of a container to output.

    Args:
        decoder: Open decoder positioned at the first record
        output: Binary stream to write to (not needed with count_only)
        formatter: Turns a record into the bytes to write
        find: Only records whose payload contains these bytes are counted
        count_only: Count matches without writing anything
        cancel: Set this event to stop early

    Returns:
        CatResult with the number of matching records and any error
    """
    if output is None and not count_only:
        raise ValueError("output is required unless count_only is set")

    count = 0
    try:
        while True:
            if cancel is not None and cancel.is_set():
                return CatResult(count=count, error=SessionCancelledError(records=count))
            record = decoder.read()
            if record is None:
                break
            if not record.matches(find or None):
                continue
            count += 1
            if not count_only:
                output.write(formatter(record))
    except (KafkaReplayError, OSError) as e:
        return CatResult(count=count, error=e)
    return CatResult(count=count)
