"""
Replay module for kafka-replay.

This module replays a recorded container back into a live sink.

Use cases:
    - Re-inject production traffic into a test environment
    - Drive a consumer at a fixed rate, optionally forever (loop)
    - Validate a container without sending anything (dry run)

How it works:
    1. Open the container and detect its protocol version
    2. Read records in order, filtering by payload substring
    3. Pace records when a rate is set
    4. Dispatch records in batches bounded by count and bytes

Example:
    from kafka_replay.replay import replay_file
    from kafka_replay.schema import ReplayOptions

    result = replay_file("orders.bin", sink, ReplayOptions(rate=100, loop=True), cancel)
    print(f"Replayed {result.records_replayed} records")
"""

from kafka_replay.replay.session import ReplaySession, replay_file

__all__ = [
    "ReplaySession",
    "replay_file",
]
