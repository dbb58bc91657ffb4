"""
Test helpers for spans and counters.

Kept in the package (rather than in ``tests/``) so that any test module can
reuse the same global-provider override.
"""

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import Link


def setup_test_tracing(service_name: str = "test-service") -> InMemorySpanExporter:
    """
    Install a TracerProvider that exports synchronously to memory.

    The OTel API only allows the global provider to be set once per process;
    the guard is reset so every test can get a fresh exporter.
    """
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    exporter = InMemorySpanExporter()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    trace._TRACER_PROVIDER = None
    trace._TRACER_PROVIDER_SET_ONCE._done = False
    trace.set_tracer_provider(provider)
    return exporter


def get_spans_by_name(exporter: InMemorySpanExporter, name: str) -> list[ReadableSpan]:
    """Filter exported spans by operation name."""
    return [s for s in exporter.get_finished_spans() if s.name == name]


def find_span_links(span: ReadableSpan) -> list[Link]:
    """Get all links from a span."""
    return list(span.links) if span.links else []


def counter_value(counter, **labels) -> float:
    """Current value of a (optionally labelled) Prometheus counter."""
    target = counter.labels(**labels) if labels else counter
    return target._value.get()
