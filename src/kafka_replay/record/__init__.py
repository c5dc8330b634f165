"""
Record module for kafka-replay.

Captures a live source into a container file.

Example:
    from kafka_replay.record import record_to_file
    from kafka_replay.schema import RecordOptions

    result = record_to_file(source, "orders.bin", RecordOptions(limit=100))
    print(f"Recorded {result.records_written} records")
"""

from kafka_replay.record.session import RecordSession, record_to_file

__all__ = [
    "RecordSession",
    "record_to_file",
]
