"""
Live stream collaborators for kafka-replay.

Sessions talk to a live log only through two small interfaces:
    - Source: read the next available record (None while idle), optional seek
    - Sink: accept an ordered batch of records

The Kafka implementations live in kafka_replay.streams.kafka.
"""

from kafka_replay.streams.base import DiscardSink, Sink, Source

__all__ = [
    "DiscardSink",
    "Sink",
    "Source",
]
