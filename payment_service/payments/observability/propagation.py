"""W3C trace-context propagation across Kafka message headers."""

from opentelemetry import trace
from opentelemetry.trace import Link
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

_propagator = TraceContextTextMapPropagator()


def inject_trace_context(headers: dict) -> dict:
    """Write the current span's ``traceparent`` into *headers* and return it."""
    _propagator.inject(headers)
    return headers


def extract_trace_context(headers: dict) -> list[Link]:
    """
    Turn an inbound ``traceparent`` into span links.

    The consumer span links to the producer span instead of becoming its
    child, since one HTTP submission and its asynchronous ingestion are
    separate units of work.
    """
    ctx = _propagator.extract(carrier=headers)
    span_ctx = trace.get_current_span(ctx).get_span_context()
    if span_ctx.is_valid:
        return [Link(span_ctx)]
    return []


def kafka_headers_to_dict(headers: list[tuple] | None) -> dict:
    """Convert confluent-kafka ``(key, bytes)`` header tuples to a str dict."""
    if not headers:
        return {}
    return {
        key: value.decode("utf-8") if isinstance(value, bytes) else value
        for key, value in headers
        if value
    }


def dict_to_kafka_headers(headers: dict) -> list[tuple]:
    """Convert a str dict to confluent-kafka header tuples."""
    return [(k, v.encode("utf-8") if isinstance(v, str) else v) for k, v in headers.items()]
