"""
Prometheus metric factories.

Module-level metrics are created at import time; test runs and reloads import
the same modules more than once, so every factory returns the already
registered collector instead of raising ``Duplicated timeseries``.
"""

import os

from prometheus_client import Counter, Histogram, Info, REGISTRY, generate_latest, CONTENT_TYPE_LATEST


def _get_or_create(metric_cls, name, documentation, **kwargs):
    try:
        return metric_cls(name, documentation, **kwargs)
    except ValueError:
        # Counters drop a ``_total`` suffix, Info metrics gain ``_info``
        base = name[: -len("_total")] if name.endswith("_total") else name
        for candidate in (name, base, f"{base}_info"):
            collector = REGISTRY._names_to_collectors.get(candidate)
            if collector is not None:
                return collector
        raise


def create_counter(name: str, documentation: str, labelnames: list[str] = None) -> Counter:
    """Create (or retrieve) a Prometheus Counter."""
    return _get_or_create(Counter, name, documentation, labelnames=labelnames or [])


def create_histogram(name: str, documentation: str, buckets: list[float] = None, labelnames: list[str] = None) -> Histogram:
    """Create (or retrieve) a Prometheus Histogram."""
    kwargs = {}
    if buckets:
        kwargs["buckets"] = buckets
    if labelnames:
        kwargs["labelnames"] = labelnames
    return _get_or_create(Histogram, name, documentation, **kwargs)


def create_info(name: str, documentation: str) -> Info:
    """Create (or retrieve) a Prometheus Info metric."""
    return _get_or_create(Info, name, documentation)


def create_service_info(service_name: str, version: str, environment: str | None = None) -> Info:
    """
    Publish ``<service_name>_info{version=..., environment=...} 1``.

    Args:
        service_name: Metric name prefix, e.g. ``"transaction_service"``.
        version: Service version string.
        environment: Falls back to ``$ENVIRONMENT``, then ``"development"``.
    """
    info = create_info(service_name, "Service metadata")
    info.info({
        "version": version,
        "environment": environment or os.environ.get("ENVIRONMENT", "development"),
    })
    return info


def metrics_response() -> tuple[bytes, str]:
    """Return ``(body, content_type)`` for a Prometheus scrape response."""
    return generate_latest(), CONTENT_TYPE_LATEST
