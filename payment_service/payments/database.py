"""
sqlite persistence for transaction records.

The module-level functions are synchronous and open one connection per call,
so they are safe to run from worker threads. ``SqliteTransactionStore`` is the
asynchronous face the pipeline and the summary use: every call is pushed to a
thread with ``asyncio.to_thread`` and ``sqlite3.Error`` comes back out as
``StorageFailure``.

``save`` is an upsert keyed by ``transaction_id``: saving an id that already
exists overwrites the stored row (last write wins). It does not detect
duplicate deliveries.
"""

import asyncio
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Protocol

from opentelemetry import trace
from opentelemetry.trace import SpanKind

from payments import config
from payments.errors import StorageFailure
from payments.models import TransactionRecord

DB_PATH = config.DATABASE_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    transaction_id TEXT PRIMARY KEY,
    amount TEXT NOT NULL,
    currency TEXT NOT NULL,
    customer_id TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    ingested_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_transactions_customer_id ON transactions(customer_id);
"""

UPSERT = """
INSERT INTO transactions (transaction_id, amount, currency, customer_id, timestamp)
VALUES (:transaction_id, :amount, :currency, :customer_id, :timestamp)
ON CONFLICT(transaction_id) DO UPDATE SET
    amount = excluded.amount,
    currency = excluded.currency,
    customer_id = excluded.customer_id,
    timestamp = excluded.timestamp,
    ingested_at = datetime('now')
"""

_COLUMNS = "transaction_id, amount, currency, customer_id, timestamp"


def _get_db_path() -> Path:
    return DB_PATH


@contextmanager
def get_connection():
    conn = sqlite3.connect(str(_get_db_path()), timeout=10)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db():
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_connection() as conn:
        if config.db_reset_on_start():
            conn.execute("DROP TABLE IF EXISTS transactions")
        conn.executescript(SCHEMA)


def _to_row(record: TransactionRecord) -> dict:
    return {
        "transaction_id": record.transaction_id,
        "amount": str(record.amount),
        "currency": record.currency,
        "customer_id": record.customer_id,
        "timestamp": record.timestamp.isoformat(),
    }


def _from_row(row: sqlite3.Row) -> TransactionRecord:
    return TransactionRecord(
        transaction_id=row["transaction_id"],
        amount=Decimal(row["amount"]),
        currency=row["currency"],
        customer_id=row["customer_id"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
    )


def save_transaction(record: TransactionRecord) -> TransactionRecord:
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        "db save_transaction",
        kind=SpanKind.INTERNAL,
        attributes={
            "db.system": "sqlite",
            "db.operation": "UPSERT",
            "transaction.id": record.transaction_id,
        }
    ):
        with get_connection() as conn:
            conn.execute(UPSERT, _to_row(record))
        return record


def find_all_transactions() -> list[TransactionRecord]:
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        "db query find_all_transactions",
        kind=SpanKind.INTERNAL,
        attributes={
            "db.system": "sqlite",
            "db.operation": "SELECT",
        }
    ) as span:
        with get_connection() as conn:
            rows = conn.execute(f"SELECT {_COLUMNS} FROM transactions").fetchall()

        result = [_from_row(row) for row in rows]
        span.set_attribute("db.result_count", len(result))
        return result


def find_transactions_by_customer(customer_id: str) -> list[TransactionRecord]:
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        "db query find_transactions_by_customer",
        kind=SpanKind.INTERNAL,
        attributes={
            "db.system": "sqlite",
            "db.operation": "SELECT",
            "customer.id": customer_id,
        }
    ) as span:
        with get_connection() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM transactions WHERE customer_id = ?",
                (customer_id,),
            ).fetchall()

        result = [_from_row(row) for row in rows]
        span.set_attribute("db.result_count", len(result))
        return result


def get_total_records() -> int:
    with get_connection() as conn:
        row = conn.execute("SELECT COUNT(*) AS cnt FROM transactions").fetchone()
    return row["cnt"]


def check_connection() -> bool:
    try:
        with get_connection() as conn:
            conn.execute("SELECT 1")
        return True
    except sqlite3.Error:
        return False


# ── Transaction store ────────────────────────────────────────────

class TransactionStore(Protocol):
    """Append/lookup access to persisted transaction records.

    Implementations must tolerate concurrent ``save`` calls for different
    transaction ids and must raise ``StorageFailure`` for any connectivity or
    constraint problem.
    """

    async def save(self, record: TransactionRecord) -> TransactionRecord:
        ...

    async def find_all(self) -> list[TransactionRecord]:
        ...

    async def find_by_customer(self, customer_id: str) -> list[TransactionRecord]:
        ...


class SqliteTransactionStore:
    """``TransactionStore`` over the module's sqlite database."""

    def __init__(self, save_duration=None):
        self.save_duration = save_duration

    async def _run(self, operation, *args):
        try:
            return await asyncio.to_thread(operation, *args)
        except sqlite3.Error as exc:
            raise StorageFailure(f"{operation.__name__} failed: {exc}") from exc

    async def save(self, record: TransactionRecord) -> TransactionRecord:
        start = time.monotonic()
        saved = await self._run(save_transaction, record)
        if self.save_duration is not None:
            self.save_duration.observe(time.monotonic() - start)
        return saved

    async def find_all(self) -> list[TransactionRecord]:
        return await self._run(find_all_transactions)

    async def find_by_customer(self, customer_id: str) -> list[TransactionRecord]:
        return await self._run(find_transactions_by_customer, customer_id)
