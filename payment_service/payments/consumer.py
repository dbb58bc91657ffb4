"""
Kafka consumer loop feeding the ingestion pipeline.

Offsets are committed explicitly after each message is handled, whatever the
outcome: a rejected, failed or undecodable event is acknowledged and not
redelivered. Blocking client calls (``poll``, ``commit``, ``close``) run in
worker threads so the event loop stays free for HTTP requests.
"""

import asyncio
import logging

from confluent_kafka import Consumer, KafkaError, KafkaException
from opentelemetry import trace
from opentelemetry.trace import SpanKind
from pydantic import ValidationError

from payments import config
from payments.models import TransactionEvent
from payments.observability import extract_trace_context, kafka_headers_to_dict
from payments.pipeline import IngestionPipeline

logger = logging.getLogger("consumer")


def create_consumer(bootstrap_servers: str, group_id: str, topic: str) -> Consumer:
    consumer = Consumer({
        "bootstrap.servers": bootstrap_servers,
        "group.id": group_id,
        "auto.offset.reset": "earliest",
        "enable.auto.commit": False,
    })
    consumer.subscribe([topic])
    logger.info("Subscribed to topic '%s' on %s (group: %s)", topic, bootstrap_servers, group_id)
    return consumer


def decode_event(payload: bytes) -> TransactionEvent:
    """Parse a topic message value into a ``TransactionEvent``."""
    return TransactionEvent.from_json(payload)


class TransactionConsumer:
    """Pulls messages from the transactions topic and hands each to the pipeline.

    Args:
        consumer: A subscribed confluent-kafka ``Consumer``.
        pipeline: The ingestion pipeline.
        on_undecodable: Called once per message that is not a TransactionEvent
            (the failure counter in production).
        consumed: Optional counter incremented per message received.
    """

    def __init__(
        self,
        consumer,
        pipeline: IngestionPipeline,
        on_undecodable=None,
        consumed=None,
        topic: str = config.KAFKA_TOPIC,
        group_id: str = config.KAFKA_GROUP_ID,
        poll_timeout: float = config.KAFKA_POLL_TIMEOUT_SECONDS,
    ):
        self.consumer = consumer
        self.pipeline = pipeline
        self.on_undecodable = on_undecodable
        self.consumed = consumed
        self.topic = topic
        self.group_id = group_id
        self.poll_timeout = poll_timeout
        self._stopping = asyncio.Event()
        self._task: asyncio.Task | None = None

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run(), name="transaction-consumer")
        logger.info("Kafka consumer task started")
        return self._task

    async def stop(self) -> None:
        self._stopping.set()
        if self._task is not None:
            await self._task
        logger.info("Kafka consumer stopped")

    async def run(self) -> None:
        try:
            while not self._stopping.is_set():
                msg = await asyncio.to_thread(self.consumer.poll, self.poll_timeout)
                if msg is None:
                    continue
                if msg.error():
                    if msg.error().code() != KafkaError._PARTITION_EOF:
                        logger.error("Kafka error: %s", msg.error())
                    continue

                try:
                    await self.handle_message(msg)
                except Exception:
                    logger.exception("Failed to process Kafka message at offset %s", msg.offset())
                await self._commit(msg)
        finally:
            await asyncio.to_thread(self.consumer.close)

    async def handle_message(self, msg) -> None:
        if self.consumed is not None:
            self.consumed.inc()

        links = extract_trace_context(kafka_headers_to_dict(msg.headers()))
        tracer = trace.get_tracer(__name__)
        with tracer.start_as_current_span(
            f"{self.topic} receive",
            kind=SpanKind.CONSUMER,
            links=links,
            attributes={
                "messaging.system": "kafka",
                "messaging.source.name": self.topic,
                "messaging.operation.name": "receive",
                "messaging.kafka.partition": msg.partition(),
                "messaging.kafka.offset": msg.offset(),
                "messaging.kafka.consumer.group": self.group_id,
            }
        ) as span:
            try:
                event = decode_event(msg.value())
            except (TypeError, ValueError) as exc:
                if self.on_undecodable is not None:
                    self.on_undecodable()
                detail = exc.errors(include_url=False) if isinstance(exc, ValidationError) else str(exc)
                logger.warning("Dropping undecodable message at offset %s: %s", msg.offset(), detail)
                span.set_attribute("ingestion.outcome", "undecodable")
                return

            result = await self.pipeline.handle(event)
            span.set_attribute("transaction.id", event.transaction_id or "")
            span.set_attribute("ingestion.outcome", result.state.value)

    async def _commit(self, msg) -> None:
        try:
            await asyncio.to_thread(self.consumer.commit, message=msg, asynchronous=False)
        except KafkaException as exc:
            logger.warning("Offset commit failed at offset %s: %s", msg.offset(), exc)
