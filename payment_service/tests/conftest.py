from datetime import datetime, timezone
from decimal import Decimal

import pytest

import payments.database as db_module
from payments.database import SqliteTransactionStore, init_db
from payments.errors import StorageFailure
from payments.models import TransactionEvent


@pytest.fixture(autouse=True)
def use_temp_db(tmp_path, monkeypatch):
    """Each test uses a fresh temporary SQLite database."""
    test_db = tmp_path / "test.db"
    monkeypatch.setattr(db_module, "DB_PATH", test_db)
    monkeypatch.setenv("DB_RESET_ON_START", "false")
    init_db()
    yield test_db


class RecordingTelemetry:
    """Telemetry sink that just counts calls."""

    def __init__(self):
        self.successes = 0
        self.failures = 0

    def increment_success(self):
        self.successes += 1

    def increment_failure(self):
        self.failures += 1


class FlakyStore(SqliteTransactionStore):
    """sqlite store whose saves fail for the given transaction ids."""

    def __init__(self, failing_ids=(), fail_reads=False):
        super().__init__()
        self.failing_ids = set(failing_ids)
        self.fail_reads = fail_reads

    async def save(self, record):
        if record.transaction_id in self.failing_ids:
            raise StorageFailure(f"disk full while saving {record.transaction_id}")
        return await super().save(record)

    async def find_all(self):
        if self.fail_reads:
            raise StorageFailure("connection refused")
        return await super().find_all()


@pytest.fixture
def telemetry_sink():
    return RecordingTelemetry()


@pytest.fixture
def store():
    return SqliteTransactionStore()


def make_event(**overrides) -> TransactionEvent:
    fields = {
        "transaction_id": "tx-1",
        "amount": Decimal("10.00"),
        "currency": "USD",
        "customer_id": "cust-1",
        "timestamp": datetime(2025, 7, 12, 14, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return TransactionEvent(**fields)
