import asyncio
import json
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from payments.database import save_transaction
from payments.dependencies import get_gateway, get_store
from payments.errors import InvalidTransaction
from payments.gateway import SubmissionGateway
from payments.main import app, invalid_transaction_handler
from payments.mapping import to_record

from conftest import FlakyStore, make_event

EVENT_JSON = {
    "transactionId": "tx-1",
    "amount": "10.00",
    "currency": "USD",
    "customerId": "cust-1",
    "timestamp": "2025-07-12T14:00:00Z",
}


@pytest.fixture
def client():
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def producer():
    mock = MagicMock()
    mock.produce.side_effect = lambda topic, **kwargs: kwargs["on_delivery"](None, MagicMock())
    return mock


@pytest.fixture
def with_gateway(producer):
    app.dependency_overrides[get_gateway] = lambda: SubmissionGateway(
        producer, topic="transactions-topic", delivery_timeout=0.1
    )
    return producer


def _seed(*records):
    for tx_id, amount, currency in records:
        save_transaction(to_record(make_event(transaction_id=tx_id, amount=Decimal(amount), currency=currency)))


# ── Health ────────────────────────────────────────────────────────

class TestHealth:
    def test_health_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_reports_records(self, client):
        _seed(("tx-1", "1.00", "USD"))
        data = client.get("/health").json()
        assert data == {"status": "healthy", "db_connected": True, "total_records": 1}


# ── Submission ────────────────────────────────────────────────────

class TestSubmit:
    def test_accepted_with_echo(self, client, with_gateway):
        response = client.post("/api/transactions", json=EVENT_JSON)

        assert response.status_code == 202
        data = response.json()
        assert data["status"] == "accepted"
        assert data["transactionId"] == "tx-1"
        assert data["customerId"] == "cust-1"
        assert Decimal(data["amount"]) == Decimal("10.00")

    def test_relays_to_topic(self, client, with_gateway):
        client.post("/api/transactions", json=EVENT_JSON)

        args, kwargs = with_gateway.produce.call_args
        assert args == ("transactions-topic",)
        assert kwargs["key"] == "tx-1"

    def test_invalid_event_is_still_accepted(self, client, with_gateway):
        payload = {**EVENT_JSON, "amount": "-5", "customerId": ""}
        response = client.post("/api/transactions", json=payload)
        assert response.status_code == 202
        with_gateway.produce.assert_called_once()

    def test_wrong_types_are_422(self, client, with_gateway):
        response = client.post("/api/transactions", json={**EVENT_JSON, "amount": "ten"})
        assert response.status_code == 422
        with_gateway.produce.assert_not_called()

    def test_malformed_json_is_422(self, client, with_gateway):
        response = client.post(
            "/api/transactions", content=b"{\"transactionId\": ", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422
        assert response.json()["detail"][0]["type"] == "json_invalid"
        with_gateway.produce.assert_not_called()

    def test_numeric_amount_keeps_every_digit(self, client, with_gateway):
        body = (
            b'{"transactionId": "tx-big", "amount": 12345678901234567890.12, "currency": "USD", '
            b'"customerId": "cust-1", "timestamp": "2025-07-12T14:00:00Z"}'
        )
        response = client.post("/api/transactions", content=body, headers={"Content-Type": "application/json"})

        assert response.status_code == 202
        assert response.json()["amount"] == "12345678901234567890.12"
        _, kwargs = with_gateway.produce.call_args
        assert json.loads(kwargs["value"])["amount"] == "12345678901234567890.12"

    def test_request_body_is_documented(self, client):
        operation = client.get("/openapi.json").json()["paths"]["/api/transactions"]["post"]
        schema = operation["requestBody"]["content"]["application/json"]["schema"]
        assert "transactionId" in schema["properties"]

    def test_relay_failure_is_server_error(self, client, with_gateway):
        with_gateway.produce.side_effect = None
        response = client.post("/api/transactions", json=EVENT_JSON)
        assert response.status_code == 500
        assert response.text.startswith("An unexpected error occurred: ")
        assert "not confirmed" in response.text

    def test_no_broker_configured_is_server_error(self, client):
        response = client.post("/api/transactions", json=EVENT_JSON)
        assert response.status_code == 500
        assert "Kafka relay is not configured" in response.text


# ── Summary ───────────────────────────────────────────────────────

class TestSummary:
    def test_summary_empty_db(self, client):
        response = client.get("/api/transactions/summary")
        assert response.status_code == 200
        data = response.json()
        assert data["currency"] == "USD"
        assert data["transactionCount"] == 0
        assert Decimal(data["totalVolume"]) == Decimal("0.00")
        assert datetime.fromisoformat(data["lastUpdated"].replace("Z", "+00:00")).tzinfo is not None

    def test_summary_aggregates_all_currencies(self, client):
        _seed(("A", "10.00", "USD"), ("B", "5.50", "EUR"))
        data = client.get("/api/transactions/summary").json()
        assert data["transactionCount"] == 2
        assert data["totalVolume"] == "15.50"
        assert data["currency"] == "USD"

    def test_summary_is_exact(self, client):
        _seed(("A", "0.10", "USD"), ("B", "0.20", "USD"))
        data = client.get("/api/transactions/summary").json()
        assert data["totalVolume"] == "0.30"

    def test_storage_failure_is_server_error(self, client):
        app.dependency_overrides[get_store] = lambda: FlakyStore(fail_reads=True)
        response = client.get("/api/transactions/summary")
        assert response.status_code == 500
        assert response.text == "An unexpected error occurred: connection refused"


# ── Customer lookup ───────────────────────────────────────────────

class TestCustomerTransactions:
    def test_returns_customer_records(self, client):
        save_transaction(to_record(make_event(transaction_id="tx-1", customer_id="alice")))
        save_transaction(to_record(make_event(transaction_id="tx-2", customer_id="bob")))

        data = client.get("/api/transactions/customers/alice").json()

        assert data["customerId"] == "alice"
        assert data["count"] == 1
        assert data["transactions"][0]["transactionId"] == "tx-1"

    def test_unknown_customer(self, client):
        data = client.get("/api/transactions/customers/nobody").json()
        assert data == {"customerId": "nobody", "transactions": [], "count": 0}


# ── Error mapping ─────────────────────────────────────────────────

class TestErrorHandlers:
    def test_invalid_transaction_maps_to_400(self):
        response = asyncio.run(invalid_transaction_handler(MagicMock(), InvalidTransaction("tx-9", ("amount",))))
        assert response.status_code == 400
        assert response.body == b"Invalid transaction event: tx-9"


# ── Metrics ───────────────────────────────────────────────────────

class TestMetricsEndpoint:
    def test_metrics_exposes_pipeline_counters(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "transaction_processed_total" in response.text
        assert "transactions_processed_failed_total" in response.text
        assert "transaction_service_info" in response.text

    def test_http_requests_are_counted_by_route(self, client):
        from payments.telemetry import HTTP_REQUESTS

        labels = {"method": "GET", "path": "/api/transactions/customers/{customer_id}", "status": "200"}
        before = HTTP_REQUESTS.labels(**labels)._value.get()
        client.get("/api/transactions/customers/alice")
        client.get("/api/transactions/customers/bob")
        assert HTTP_REQUESTS.labels(**labels)._value.get() - before == 2
