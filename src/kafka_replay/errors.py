"""
Exception hierarchy for kafka-replay.

All kafka-replay exceptions inherit from KafkaReplayError, allowing callers to
catch every kafka-replay specific exception with a single except clause.

Exception Categories:
    - FramingError: The container bytes do not follow the wire format
    - SourceError: The live source failed while being read
    - SinkError: The live sink rejected a batch
    - SessionCancelledError: A session was stopped by its cancellation signal
    - ConfigError: Configuration could not be loaded or resolved

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (offsets, sizes, versions where applicable)
    - Cancellation is an error type but not a failure; it carries progress
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Framing errors: 1xxx
ERROR_FRAMING_TRUNCATED = 1001
ERROR_FRAMING_SIZE_OUT_OF_BOUNDS = 1002
ERROR_FRAMING_UNSUPPORTED_VERSION = 1003

# Source errors: 2xxx
ERROR_SOURCE_READ = 2001
ERROR_SOURCE_POSITION_NOT_SUPPORTED = 2002

# Sink errors: 3xxx
ERROR_SINK_DISPATCH = 3001

# Session errors: 4xxx
ERROR_SESSION_CANCELLED = 4001

# Configuration errors: 5xxx
ERROR_CONFIG_INVALID = 5001
ERROR_CONFIG_NO_BROKERS = 5002


class FramingErrorKind(str, Enum):
    """Why a container could not be framed."""

    TRUNCATED = "truncated"
    SIZE_OUT_OF_BOUNDS = "size-out-of-bounds"
    UNSUPPORTED_VERSION = "unsupported-version"


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class KafkaReplayError(Exception):
    """
    Base exception for all kafka-replay errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Framing Errors
# =============================================================================


@dataclass
class FramingError(KafkaReplayError):
    """
    Base class for container format errors.

    Framing errors are fatal: the decoder position is not guaranteed to be
    consistent afterwards.

    Attributes:
        kind: Which framing rule was violated
    """

    kind: FramingErrorKind = FramingErrorKind.TRUNCATED

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["kind"] = self.kind.value


@dataclass
class TruncatedRecordError(FramingError):
    """Raised when the container ends inside a header or record."""

    expected: int = 0
    actual: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.kind = FramingErrorKind.TRUNCATED
        if not self.message:
            self.message = f"Truncated container: expected {self.expected} bytes, got {self.actual}"
        if self.code == 0:
            self.code = ERROR_FRAMING_TRUNCATED
        super().__post_init__()
        self.context.update({
            "expected": self.expected,
            "actual": self.actual,
        })


@dataclass
class SizeOutOfBoundsError(FramingError):
    """Raised when a key or payload size field is outside the allowed range."""

    field_name: str = ""
    size: int = 0
    max_size: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.kind = FramingErrorKind.SIZE_OUT_OF_BOUNDS
        if not self.message:
            self.message = f"Invalid {self.field_name} size: {self.size} bytes (max {self.max_size})"
        if self.code == 0:
            self.code = ERROR_FRAMING_SIZE_OUT_OF_BOUNDS
        if not self.suggestion:
            self.suggestion = "The file is corrupt or is not a kafka-replay container"
        super().__post_init__()
        self.context.update({
            "field": self.field_name,
            "size": self.size,
            "max_size": self.max_size,
        })


@dataclass
class UnsupportedVersionError(FramingError):
    """Raised when the container header carries an unknown protocol version."""

    version: int = 0
    supported: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.kind = FramingErrorKind.UNSUPPORTED_VERSION
        if not self.message:
            supported = ", ".join(str(v) for v in self.supported)
            self.message = f"Unsupported protocol version: {self.version} (supported versions: {supported})"
        if self.code == 0:
            self.code = ERROR_FRAMING_UNSUPPORTED_VERSION
        super().__post_init__()
        self.context.update({
            "version": self.version,
            "supported": list(self.supported),
        })


# =============================================================================
# Source / Sink Errors
# =============================================================================


@dataclass
class SourceError(KafkaReplayError):
    """
    Raised when the live source fails while being read.

    Attributes:
        underlying_error: Text of the collaborator's exception
    """

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Source read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_SOURCE_READ
        self.context["underlying_error"] = self.underlying_error


@dataclass
class PositionNotSupportedError(SourceError):
    """Raised when a source cannot seek in its current mode."""

    offset: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot seek to offset {self.offset}: position is managed by the source"
        if self.code == 0:
            self.code = ERROR_SOURCE_POSITION_NOT_SUPPORTED
        super().__post_init__()
        self.context["offset"] = self.offset


@dataclass
class SinkError(KafkaReplayError):
    """
    Raised when the live sink fails to accept a batch.

    Attributes:
        batch_size: Number of records in the rejected batch
        underlying_error: Text of the collaborator's exception
    """

    batch_size: int = 0
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to write batch of {self.batch_size} records: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_SINK_DISPATCH
        self.context.update({
            "batch_size": self.batch_size,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Session Errors
# =============================================================================


@dataclass
class SessionCancelledError(KafkaReplayError):
    """
    Reported when a session stops because its cancellation signal was set.

    This is a clean termination, not a failure.
    """

    records: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Session cancelled after {self.records} records"
        if self.code == 0:
            self.code = ERROR_SESSION_CANCELLED
        self.context["records"] = self.records


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigError(KafkaReplayError):
    """Raised when the configuration file cannot be loaded."""

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration file: {self.path}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context["path"] = self.path


@dataclass
class NoBrokersError(ConfigError):
    """Raised when no broker address is available from any source."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "No brokers configured"
        if self.code == 0:
            self.code = ERROR_CONFIG_NO_BROKERS
        if not self.suggestion:
            self.suggestion = "Set --brokers, a profile with brokers, or KAFKA_BROKERS"
        super().__post_init__()
