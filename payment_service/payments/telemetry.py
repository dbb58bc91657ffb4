"""
Service metrics for transaction-service.

Domain counters and histograms built on ``payments.observability`` factories,
the ``TelemetrySink`` seam the ingestion pipeline reports outcomes through,
and ``init(app)`` which wires HTTP metrics and FastAPI instrumentation.
"""

import logging
from typing import Protocol

from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from payments.observability import create_counter, create_histogram, MetricsMiddleware

logger = logging.getLogger("telemetry")

# ── Metrics (Prometheus) ──────────────────────────────────────────

TRANSACTIONS_PROCESSED = create_counter(
    "transaction_processed_total",
    "Total number of successfully processed transactions",
)

TRANSACTIONS_FAILED = create_counter(
    "transactions_processed_failed_total",
    "Total number of failed transaction processing attempts",
)

MESSAGES_CONSUMED = create_counter(
    "messages_consumed_total",
    "Total number of messages pulled from the transactions topic",
)

TRANSACTIONS_SUBMITTED = create_counter(
    "transactions_submitted_total",
    "Total number of transaction events relayed to Kafka",
)

HTTP_REQUESTS = create_counter(
    "http_requests_total",
    "Total HTTP requests by method and path",
    ["method", "path", "status"],
)

INGEST_DURATION = create_histogram(
    "ingest_duration_seconds",
    "Time spent validating and persisting one transaction event",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

SAVE_DURATION = create_histogram(
    "db_save_duration_seconds",
    "Time spent saving one transaction record to SQLite",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5],
)


# ── Telemetry sink ───────────────────────────────────────────────

class TelemetrySink(Protocol):
    """Outcome counters for the ingestion pipeline."""

    def increment_success(self) -> None:
        ...

    def increment_failure(self) -> None:
        ...


class PrometheusTelemetry:
    """``TelemetrySink`` backed by the module's Prometheus counters."""

    def __init__(self, success=TRANSACTIONS_PROCESSED, failure=TRANSACTIONS_FAILED):
        self.success = success
        self.failure = failure

    def increment_success(self) -> None:
        self.success.inc()

    def increment_failure(self) -> None:
        self.failure.inc()


# ── Initialization ───────────────────────────────────────────────

def init(app):
    """Wire service telemetry into the FastAPI app.

    * Adds the HTTP-metrics middleware (``/metrics`` scrapes are not counted).
    * Instruments FastAPI with OpenTelemetry auto-instrumentation.
    """
    app.add_middleware(MetricsMiddleware, counter=HTTP_REQUESTS, ignored_paths={"/metrics"})

    try:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI instrumentation enabled")
    except Exception as e:
        logger.warning("FastAPI instrumentation failed: %s", e)

    logger.info("Service telemetry initialised")
