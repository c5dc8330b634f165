"""
kafka-replay - Record Kafka topics to a file and replay them later.

kafka-replay captures a stream of keyed, timestamped messages into a compact
binary container and replays that container back into a topic:
- Byte-exact container format with legacy (keyless) read support
- Record sessions with limit, find filter and starting offset
- Replay sessions with batching, rate limiting, looping and dry runs

Example usage:
    $ kafka-replay record --topic orders --limit 1000 --output orders.bin
    $ kafka-replay replay --topic orders-copy --input orders.bin --rate 100
    $ kafka-replay cat --input orders.bin
"""

__version__ = "2.0.0"
__author__ = "kafka-replay contributors"

__all__ = [
    "__version__",
    "__author__",
]
