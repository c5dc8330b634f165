"""
Transcoder module for kafka-replay.

This module reads and writes the binary container format:
    - codec: Header and record framing, one layout strategy per version
    - Encoder: Appends records (always the current version)
    - Decoder: Reads records (current and legacy versions)

Example:
    from kafka_replay.transcoder import open_decoder, open_encoder

    with open_encoder("orders.bin") as encoder:
        encoder.write(1706872530, b"Hello, World!", key=b"user-123")

    with open_decoder("orders.bin") as decoder:
        for record in decoder:
            print(record.key, record.payload)
"""

from kafka_replay.transcoder.codec import (
    CurrentLayout,
    LegacyLayout,
    RecordLayout,
    decode_header,
    decode_record,
    encode_header,
    encode_record,
    layout_for,
)
from kafka_replay.transcoder.constants import (
    HEADER_SIZE,
    MAX_FIELD_SIZE,
    ProtocolVersion,
)
from kafka_replay.transcoder.decoder import Decoder, open_decoder
from kafka_replay.transcoder.encoder import Encoder, open_encoder

__all__ = [
    "HEADER_SIZE",
    "MAX_FIELD_SIZE",
    "CurrentLayout",
    "Decoder",
    "Encoder",
    "LegacyLayout",
    "ProtocolVersion",
    "RecordLayout",
    "decode_header",
    "decode_record",
    "encode_header",
    "encode_record",
    "layout_for",
    "open_decoder",
    "open_encoder",
]
