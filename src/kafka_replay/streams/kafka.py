"""
Kafka-backed source and sink.

KafkaSource reads a topic in one of two modes:
    - Direct partition mode (no group id): the consumer is assigned a single
      partition and supports seek()
    - Consumer group mode: Kafka manages partition assignment and committed
      offsets, so seek() is not supported

KafkaSink writes batches with a synchronous flush so each dispatch either
lands completely or raises SinkError.
"""

import logging
from collections import deque
from collections.abc import Sequence
from typing import Any

from kafka import KafkaConsumer, KafkaProducer, TopicPartition
from kafka.admin import KafkaAdminClient, NewTopic
from kafka.errors import KafkaError, TopicAlreadyExistsError

from kafka_replay.errors import PositionNotSupportedError, SinkError, SourceError
from kafka_replay.schema import DispatchRecord, Record
from kafka_replay.streams.base import Sink, Source

logger = logging.getLogger(__name__)

MAX_POLL_RECORDS = 500
WRITE_TIMEOUT_SECONDS = 30.0


class KafkaSource(Source):
    """
    Reads records from a Kafka topic.

    Usage:
        with KafkaSource(["localhost:9092"], "orders", partition=0) as source:
            source.seek(0)
            record = source.read_next(timeout=1.0)

    Attributes:
        topic: Topic being read
        partition: Partition read in direct mode
        group_id: Consumer group, or None for direct partition mode
    """

    def __init__(
        self,
        brokers: list[str],
        topic: str,
        partition: int = 0,
        group_id: str | None = None,
        client: Any = None,
    ) -> None:
        """
        Connect to the topic.

        Args:
            brokers: Bootstrap broker addresses
            topic: Topic to read
            partition: Partition for direct mode (ignored with a group)
            group_id: Consumer group id (None = direct partition mode)
            client: Pre-built consumer, used instead of creating one
        """
        self.topic = topic
        self.partition = partition
        self.group_id = group_id or None
        self._buffer: deque[Record] = deque()
        self._tp = TopicPartition(topic, partition)

        if client is not None:
            self._consumer = client
        else:
            self._consumer = self._create_consumer(brokers)

        if self.group_id is None:
            self._consumer.assign([self._tp])

    def _create_consumer(self, brokers: list[str]) -> KafkaConsumer:
        try:
            if self.group_id is None:
                return KafkaConsumer(
                    bootstrap_servers=brokers,
                    group_id=None,
                    enable_auto_commit=False,
                    auto_offset_reset="earliest",
                    max_poll_records=MAX_POLL_RECORDS,
                )
            return KafkaConsumer(
                self.topic,
                bootstrap_servers=brokers,
                group_id=self.group_id,
                enable_auto_commit=True,
                auto_offset_reset="earliest",
                max_poll_records=MAX_POLL_RECORDS,
            )
        except KafkaError as e:
            raise SourceError(
                message=f"Failed to connect to any broker (tried: {', '.join(brokers)}): {e}",
                underlying_error=str(e),
                suggestion="Check that the brokers are reachable",
            ) from e

    @property
    def using_group(self) -> bool:
        """Whether offsets are managed by a consumer group."""
        return self.group_id is not None

    def seek(self, offset: int) -> None:
        """Seek the assigned partition to offset (direct mode only)."""
        if self.using_group:
            raise PositionNotSupportedError(
                offset=offset,
                message="seek is not supported when using consumer groups; offsets are managed automatically",
            )
        try:
            self._consumer.seek(self._tp, offset)
        except KafkaError as e:
            raise SourceError(underlying_error=str(e)) from e
        self._buffer.clear()

    def read_next(self, timeout: float) -> Record | None:
        if not self._buffer:
            try:
                polled = self._consumer.poll(
                    timeout_ms=int(timeout * 1000),
                    max_records=MAX_POLL_RECORDS,
                )
            except KafkaError as e:
                raise SourceError(underlying_error=str(e)) from e
            for messages in polled.values():
                for message in messages:
                    self._buffer.append(_to_record(message))
        if not self._buffer:
            return None
        return self._buffer.popleft()

    def close(self) -> None:
        self._buffer.clear()
        self._consumer.close()


class KafkaSink(Sink):
    """
    Writes batches of records to a Kafka topic.

    Attributes:
        topic: Destination topic
        no_ack: Whether the broker acknowledgment is skipped
    """

    def __init__(
        self,
        brokers: list[str],
        topic: str,
        no_ack: bool = False,
        client: Any = None,
    ) -> None:
        """
        Create the producer.

        Args:
            brokers: Bootstrap broker addresses
            topic: Destination topic
            no_ack: Don't wait for the leader to acknowledge writes
            client: Pre-built producer, used instead of creating one
        """
        self.topic = topic
        self.no_ack = no_ack
        if client is not None:
            self._producer = client
        else:
            try:
                self._producer = KafkaProducer(
                    bootstrap_servers=brokers,
                    acks=0 if no_ack else 1,
                    linger_ms=500,
                    batch_size=1024 * 1024,
                    max_request_size=50 * 1024 * 1024,
                    request_timeout_ms=int(WRITE_TIMEOUT_SECONDS * 1000),
                )
            except KafkaError as e:
                raise SinkError(
                    message=f"Failed to connect to any broker (tried: {', '.join(brokers)}): {e}",
                    underlying_error=str(e),
                ) from e

    def dispatch_batch(self, records: Sequence[DispatchRecord]) -> None:
        futures = []
        try:
            for record in records:
                futures.append(self._producer.send(
                    self.topic,
                    key=record.key,
                    value=record.value,
                    partition=record.partition,
                    timestamp_ms=record.timestamp * 1000 if record.timestamp is not None else None,
                ))
            self._producer.flush(timeout=WRITE_TIMEOUT_SECONDS)
            for future in futures:
                future.get(timeout=WRITE_TIMEOUT_SECONDS)
        except KafkaError as e:
            raise SinkError(batch_size=len(records), underlying_error=str(e)) from e
        logger.debug("Wrote batch of %d records to %s", len(records), self.topic)

    def close(self) -> None:
        try:
            self._producer.flush(timeout=WRITE_TIMEOUT_SECONDS)
        finally:
            self._producer.close()


def ensure_topic(brokers: list[str], topic: str, partitions: int = 1, replication: int = 1) -> bool:
    """
    Create topic if it does not exist.

    Returns:
        True if the topic was created, False if it already existed

    Raises:
        SinkError: If the brokers are unreachable or creation fails
    """
    try:
        admin = KafkaAdminClient(bootstrap_servers=brokers)
    except KafkaError as e:
        raise SinkError(
            message=f"Failed to connect to any broker (tried: {', '.join(brokers)}): {e}",
            underlying_error=str(e),
        ) from e
    try:
        admin.create_topics([NewTopic(name=topic, num_partitions=partitions, replication_factor=replication)])
        logger.info("Created topic %s", topic)
        return True
    except TopicAlreadyExistsError:
        logger.debug("Topic %s already exists", topic)
        return False
    except KafkaError as e:
        raise SinkError(message=f"Failed to create topic {topic}: {e}", underlying_error=str(e)) from e
    finally:
        admin.close()


def _to_record(message: Any) -> Record:
    timestamp_ms = message.timestamp if message.timestamp is not None else 0
    return Record(
        timestamp=timestamp_ms // 1000,
        key=message.key or None,
        payload=message.value or b"",
    )
