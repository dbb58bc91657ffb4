"""
payments.observability — logging, metrics and tracing for transaction-service.

Submodules
----------
logging      Structured JSON logging with OTel trace-context injection.
metrics      Prometheus metric factories with idempotent registration.
tracing      OpenTelemetry tracing (OTLP/HTTP exporter).
propagation  W3C TraceContext inject / extract for Kafka headers.
middleware   Starlette HTTP-request counting middleware.
testing      In-memory span exporter & counter helpers for tests.

Quick start
-----------
::

    from payments.observability import init_observability, get_logger

    init_observability("transaction-service", "0.1.0")
    logger = get_logger("transaction-service")
"""

import logging as _logging
import os as _os

from .logging import setup_logging, get_logger, JsonTraceFormatter
from .metrics import (
    create_counter,
    create_histogram,
    create_info,
    create_service_info,
    metrics_response,
)
from .tracing import init_tracing, shutdown_tracing
from .propagation import (
    inject_trace_context,
    extract_trace_context,
    kafka_headers_to_dict,
    dict_to_kafka_headers,
)
from .middleware import MetricsMiddleware


def init_observability(
    service_name: str,
    version: str,
    *,
    log_level: int | str | None = None,
    environment: str | None = None,
) -> None:
    """
    Bootstrap logging, tracing and the service-info metric in one call.

    Tracing is only initialised when ``OTEL_EXPORTER_OTLP_ENDPOINT`` is set;
    a failing exporter is logged and otherwise ignored.

    Args:
        service_name: Identifier used in traces, logs and the info metric.
        version: Semantic version of the service.
        log_level: Root log level; defaults to ``$LOG_LEVEL`` or ``INFO``.
        environment: Deployment env; defaults to ``$ENVIRONMENT`` or
            ``"development"``.
    """
    if log_level is None:
        log_level = _os.environ.get("LOG_LEVEL", "INFO").upper()
    setup_logging(log_level, service_name=service_name)
    logger = get_logger(service_name)

    if _os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT"):
        try:
            init_tracing(service_name)
        except Exception as exc:
            logger.warning("Tracing init failed (non-fatal): %s", exc)
    else:
        logger.info("Tracing disabled (OTEL_EXPORTER_OTLP_ENDPOINT not set)")

    create_service_info(service_name.replace("-", "_"), version, environment)

    logger.info("Observability initialised for %s v%s", service_name, version)


__all__ = [
    "init_observability",
    "setup_logging",
    "get_logger",
    "JsonTraceFormatter",
    "create_counter",
    "create_histogram",
    "create_info",
    "create_service_info",
    "metrics_response",
    "init_tracing",
    "shutdown_tracing",
    "inject_trace_context",
    "extract_trace_context",
    "kafka_headers_to_dict",
    "dict_to_kafka_headers",
    "MetricsMiddleware",
]
