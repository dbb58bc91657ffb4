"""
Structured JSON logging with OpenTelemetry trace context.

``setup_logging()`` installs a single stdout handler on the root logger that
renders every record as one JSON object. ``LoggingInstrumentor`` adds
``otelTraceID`` / ``otelSpanID`` to each record, so a log line emitted while a
consumer span is active can be joined to that trace.

Anything passed through ``extra=`` (``transaction_id``, ``outcome``, ...)
becomes a top-level JSON key::

    logger.info("Transaction persisted: %s", tx_id, extra={"transaction_id": tx_id})
"""

import logging
import sys

from opentelemetry.instrumentation.logging import LoggingInstrumentor
from pythonjsonlogger.json import JsonFormatter


_FORMAT_STRING = "%(timestamp)s %(level)s %(name)s %(message)s"
_setup_done = False


class JsonTraceFormatter(JsonFormatter):
    """JSON formatter that stamps standard fields and the owning service."""

    def __init__(self, *args, service_name: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = record.created
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()
        if self.service_name:
            log_record["service"] = self.service_name


def setup_logging(level: int | str = logging.INFO, service_name: str | None = None) -> None:
    """
    Configure the root logger for JSON output. Later calls are no-ops.

    Args:
        level: Root log level, as an int or a level name such as ``"DEBUG"``.
        service_name: Added as a ``service`` key to every log line.
    """
    global _setup_done
    if _setup_done:
        return
    _setup_done = True

    LoggingInstrumentor().instrument(set_logging_format=False)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonTraceFormatter(_FORMAT_STRING, service_name=service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger (thin wrapper for discoverability)."""
    return logging.getLogger(name)
