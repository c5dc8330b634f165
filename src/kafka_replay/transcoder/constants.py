"""
Wire format constants for the kafka-replay container.

Container layout:
    header:  version (int32) + reserved (16 bytes)            = 20 bytes
    v1 record: timestamp (int64) + size (int64) + payload
    v2 record: timestamp (int64) + key size (int64) + size (int64) + key + payload

All integers are big-endian. Only version 2 is ever written.
"""

from enum import IntEnum


class ProtocolVersion(IntEnum):
    """Protocol versions a decoder accepts."""

    LEGACY = 1
    CURRENT = 2


SUPPORTED_VERSIONS = (ProtocolVersion.LEGACY, ProtocolVersion.CURRENT)

# Header
HEADER_VERSION_SIZE = 4
HEADER_RESERVED_SIZE = 16
HEADER_SIZE = HEADER_VERSION_SIZE + HEADER_RESERVED_SIZE  # 20 bytes

# Record fields
TIMESTAMP_SIZE = 8
KEY_SIZE_FIELD_SIZE = 8
SIZE_FIELD_SIZE = 8

# Sanity bound on key and payload sizes
MAX_FIELD_SIZE = 100 * 1024 * 1024  # 100 MiB

HEADER_FMT = ">i16s"
LEGACY_PREFIX_FMT = ">qq"
CURRENT_PREFIX_FMT = ">qqq"
