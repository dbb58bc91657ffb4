"""Tests for payments.observability."""

import json
import logging
import unittest

from opentelemetry import trace
from opentelemetry.trace import SpanKind

from payments.observability import (
    JsonTraceFormatter,
    create_counter,
    create_histogram,
    dict_to_kafka_headers,
    extract_trace_context,
    inject_trace_context,
    kafka_headers_to_dict,
)
from payments.observability.testing import counter_value, setup_test_tracing


class TestJsonTraceFormatter(unittest.TestCase):
    def _format(self, formatter, **extra):
        record = logging.LogRecord(
            name="pipeline",
            level=logging.INFO,
            pathname="pipeline.py",
            lineno=1,
            msg="Transaction persisted: %s",
            args=("tx-1",),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return json.loads(formatter.format(record))

    def test_standard_fields(self):
        data = self._format(JsonTraceFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["logger"], "pipeline")
        self.assertEqual(data["message"], "Transaction persisted: tx-1")
        self.assertIn("timestamp", data)

    def test_service_and_extra_fields(self):
        formatter = JsonTraceFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s", service_name="transaction-service"
        )
        data = self._format(formatter, transaction_id="tx-1", outcome="persisted")
        self.assertEqual(data["service"], "transaction-service")
        self.assertEqual(data["transaction_id"], "tx-1")
        self.assertEqual(data["outcome"], "persisted")


class TestMetricFactories(unittest.TestCase):
    def test_counter_is_idempotent(self):
        c1 = create_counter("test_obs_counter_total", "counter")
        c2 = create_counter("test_obs_counter_total", "counter")
        self.assertIs(c1, c2)

    def test_counter_value_helper(self):
        c = create_counter("test_obs_labelled_total", "counter", ["status"])
        c.labels(status="ok").inc(3)
        self.assertEqual(counter_value(c, status="ok"), 3.0)

    def test_histogram_is_idempotent(self):
        h1 = create_histogram("test_obs_hist_seconds", "hist", buckets=[0.1, 1.0])
        h2 = create_histogram("test_obs_hist_seconds", "hist", buckets=[0.1, 1.0])
        self.assertIs(h1, h2)


class TestKafkaPropagation(unittest.TestCase):
    def setUp(self):
        setup_test_tracing("propagation-test")
        self.tracer = trace.get_tracer(__name__)

    def test_headers_round_trip_to_link(self):
        with self.tracer.start_as_current_span("publish", kind=SpanKind.PRODUCER) as span:
            kafka_headers = dict_to_kafka_headers(inject_trace_context({}))
            producer_ctx = span.get_span_context()

        links = extract_trace_context(kafka_headers_to_dict(kafka_headers))

        self.assertEqual(len(links), 1)
        self.assertEqual(links[0].context.trace_id, producer_ctx.trace_id)
        self.assertEqual(links[0].context.span_id, producer_ctx.span_id)

    def test_no_headers_no_links(self):
        self.assertEqual(extract_trace_context(kafka_headers_to_dict(None)), [])

    def test_header_conversion(self):
        headers = dict_to_kafka_headers({"traceparent": "00-abc"})
        self.assertEqual(headers, [("traceparent", b"00-abc")])
        self.assertEqual(kafka_headers_to_dict(headers), {"traceparent": "00-abc"})


if __name__ == "__main__":
    unittest.main()
