"""
Schema definitions for kafka-replay.

This module defines the types shared by the transcoder and the sessions:
- Record: One captured message (timestamp, optional key, payload)
- DispatchRecord: A record prepared for the sink (with partition pin)
- RecordOptions/ReplayOptions: Validated session configuration
- RecordResult/ReplayResult/CatResult: What a session reports when it ends

Design Decisions:
    - Records are plain frozen dataclasses; they are created per message and
      must stay cheap
    - Options are frozen Pydantic models so invalid values fail up front
    - Timestamps are whole seconds since the epoch, matching the wire format
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Batch thresholds for high-throughput dispatch
DEFAULT_BATCH_COUNT_LIMIT = 10_000
DEFAULT_BATCH_BYTE_LIMIT = 50 * 1024 * 1024  # 50 MiB

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


# =============================================================================
# Enums
# =============================================================================


class SessionStatus(str, Enum):
    """Lifecycle state of a record or replay session."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class Record:
    """
    One captured message.

    Attributes:
        timestamp: Whole seconds since the epoch, UTC
        key: Message key, or None when absent
        payload: Message value (may be empty)
    """

    timestamp: int
    key: bytes | None
    payload: bytes

    @property
    def time(self) -> datetime:
        """The timestamp as an aware UTC datetime."""
        return _EPOCH + timedelta(seconds=self.timestamp)

    @property
    def encoded_size(self) -> int:
        """Bytes this record occupies in the current layout."""
        return 24 + len(self.key or b"") + len(self.payload)

    def matches(self, find: bytes | None) -> bool:
        """Whether the payload contains find (always True when find is None)."""
        return find is None or find in self.payload


@dataclass(frozen=True)
class DispatchRecord:
    """
    A record prepared for dispatch to a sink.

    Attributes:
        key: Message key, or None
        value: Message value
        timestamp: Whole seconds since the epoch, or None to let the sink
            assign the time
        partition: Partition to pin the message to, or None for
            automatic assignment
    """

    key: bytes | None
    value: bytes
    timestamp: int | None = None
    partition: int | None = None


# =============================================================================
# Options
# =============================================================================


class RecordOptions(BaseModel):
    """
    Configuration for a record session.

    Attributes:
        offset: Starting offset applied to the source before reading
        limit: Maximum records to write (0 = unlimited)
        find: Only records whose payload contains these bytes are written
        poll_timeout_seconds: Longest single wait on the source before the
            cancellation signal is checked again
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    offset: int | None = Field(
        default=None,
        description="Starting offset (None = the source's own position)",
        ge=0,
    )
    limit: int = Field(
        default=0,
        description="Maximum records to write (0 = unlimited)",
        ge=0,
    )
    find: bytes | None = Field(
        default=None,
        description="Only write records whose payload contains this byte sequence",
    )
    poll_timeout_seconds: float = Field(
        default=0.5,
        description="Maximum time a single source poll may block",
        gt=0,
    )

    @field_validator("find")
    @classmethod
    def empty_find_is_none(cls, v: bytes | None) -> bytes | None:
        """An empty filter matches everything, same as no filter."""
        return v or None


class ReplayOptions(BaseModel):
    """
    Configuration for a replay session.

    Attributes:
        rate: Records per second (0 = unbounded)
        loop: Restart from the first record at end of container
        partition: Pin every record to this partition
        dry_run: Decode, filter and pace without dispatching
        find: Only records whose payload contains these bytes are replayed
        batch_count_limit: Flush once a batch holds this many records
        batch_byte_limit: Flush once a batch holds this many payload bytes
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    rate: int = Field(
        default=0,
        description="Records per second (0 = maximum speed)",
        ge=0,
    )
    loop: bool = Field(
        default=False,
        description="Replay continuously until cancelled",
    )
    partition: int | None = Field(
        default=None,
        description="Target partition (None = automatic assignment)",
        ge=0,
    )
    dry_run: bool = Field(
        default=False,
        description="Validate the container without sending anything",
    )
    find: bytes | None = Field(
        default=None,
        description="Only replay records whose payload contains this byte sequence",
    )
    batch_count_limit: int = Field(
        default=DEFAULT_BATCH_COUNT_LIMIT,
        description="Maximum records per dispatched batch",
        gt=0,
    )
    batch_byte_limit: int = Field(
        default=DEFAULT_BATCH_BYTE_LIMIT,
        description="Maximum payload bytes per dispatched batch",
        gt=0,
    )

    @field_validator("find")
    @classmethod
    def empty_find_is_none(cls, v: bytes | None) -> bytes | None:
        """An empty filter matches everything, same as no filter."""
        return v or None


# =============================================================================
# Results
# =============================================================================


@dataclass
class RecordResult:
    """
    Outcome of a record session.

    Attributes:
        status: Final status (stopped, cancelled, failed)
        bytes_written: Container bytes written, header included
        records_written: Records written to the container
        error: The error that ended the session, if any
        duration_seconds: Wall-clock duration of the session
    """

    status: SessionStatus
    bytes_written: int = 0
    records_written: int = 0
    error: Exception | None = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Whether the session ended without failing."""
        return self.status in (SessionStatus.STOPPED, SessionStatus.CANCELLED)


@dataclass
class ReplayResult:
    """
    Outcome of a replay session.

    Attributes:
        status: Final status (completed, cancelled, failed)
        records_replayed: Records accepted into batches
        batches_dispatched: Batches handed to the sink
        cycles: Passes over the container (more than one when looping)
        dry_run: Whether dispatch was suppressed
        error: The error that ended the session, if any
        duration_seconds: Wall-clock duration of the session
    """

    status: SessionStatus
    records_replayed: int = 0
    batches_dispatched: int = 0
    cycles: int = 0
    dry_run: bool = False
    error: Exception | None = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Whether the session ended without failing."""
        return self.status in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)


@dataclass
class CatResult:
    """
    Outcome of reading a container for display.

    Attributes:
        count: Records that passed the filter
        error: The error that ended the read, if any
    """

    count: int = 0
    error: Exception | None = None
