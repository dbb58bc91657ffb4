"""
Submission gateway: relay caller-submitted events onto the transactions topic.

The gateway does not validate. It keys each message by ``transactionId`` so
a given id always lands on the same partition, waits for the broker's
delivery report, and only then hands the event back as "accepted for
processing". Anything short of a confirmed delivery is raised as
``TransportFailure``.
"""

import asyncio
import logging
import threading
import time

from confluent_kafka import KafkaException, Producer
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from payments import config
from payments.errors import TransportFailure
from payments.models import TransactionEvent
from payments.observability import inject_trace_context, dict_to_kafka_headers

logger = logging.getLogger("gateway")


def create_producer(bootstrap_servers: str) -> Producer:
    return Producer({
        "bootstrap.servers": bootstrap_servers,
        "enable.idempotence": True,
        "acks": "all",
    })


def encode_event(event: TransactionEvent) -> bytes:
    """Serialise an event as the camelCase JSON carried on the topic."""
    return event.model_dump_json(by_alias=True).encode("utf-8")


class SubmissionGateway:
    """Publishes transaction events for asynchronous ingestion.

    Args:
        producer: A confluent-kafka ``Producer`` (or anything with the same
            ``produce``/``poll``/``flush`` methods).
        topic: Destination topic.
        delivery_timeout: Seconds to wait for the broker to acknowledge.
        submitted: Optional counter incremented per confirmed relay.
    """

    def __init__(
        self,
        producer,
        topic: str = config.KAFKA_TOPIC,
        delivery_timeout: float = config.KAFKA_DELIVERY_TIMEOUT_SECONDS,
        submitted=None,
    ):
        self.producer = producer
        self.topic = topic
        self.delivery_timeout = delivery_timeout
        self.submitted = submitted

    async def submit(self, event: TransactionEvent) -> TransactionEvent:
        logger.info(
            "Received transaction event: %s", event.transaction_id,
            extra={"transaction_id": event.transaction_id},
        )
        tracer = trace.get_tracer(__name__)
        with tracer.start_as_current_span(
            f"{self.topic} publish",
            kind=SpanKind.PRODUCER,
            attributes={
                "messaging.system": "kafka",
                "messaging.destination.name": self.topic,
                "messaging.operation.name": "publish",
                "transaction.id": event.transaction_id or "",
            }
        ) as span:
            headers = dict_to_kafka_headers(inject_trace_context({}))
            try:
                await asyncio.to_thread(self._send, event, headers)
            except TransportFailure as exc:
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                logger.error(
                    "Failed to relay transaction %s: %s", event.transaction_id, exc,
                    extra={"transaction_id": event.transaction_id},
                )
                raise

        if self.submitted is not None:
            self.submitted.inc()
        return event

    def _send(self, event: TransactionEvent, headers: list[tuple]) -> None:
        """Produce one message and block until its own delivery report arrives.

        Delivery callbacks are served with ``poll``; other messages in flight
        on the shared producer do not extend the wait.
        """
        delivered = threading.Event()
        report = {}

        def on_delivery(err, msg):
            report["error"] = err
            delivered.set()

        deadline = time.monotonic() + self.delivery_timeout
        try:
            self.producer.produce(
                self.topic,
                key=event.transaction_id,
                value=encode_event(event),
                headers=headers,
                on_delivery=on_delivery,
            )
            while not delivered.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.producer.poll(min(remaining, 0.1))
        except (KafkaException, BufferError) as exc:
            raise TransportFailure(f"Kafka rejected transaction {event.transaction_id}: {exc}") from exc

        if not delivered.is_set():
            raise TransportFailure(
                f"Delivery of transaction {event.transaction_id} not confirmed "
                f"within {self.delivery_timeout}s"
            )
        if report["error"] is not None:
            raise TransportFailure(f"Delivery of transaction {event.transaction_id} failed: {report['error']}")
