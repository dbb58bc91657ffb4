"""
Ingestion pipeline: validate → map → persist → count, one event at a time.

Per event the pipeline walks

    RECEIVED → VALIDATING → (VALID | REJECTED)
    VALID → PERSISTING → (PERSISTED | FAILED)

A rejected or failed event is counted, logged and dropped. It is never
retried here and never poisons later events: each ``handle`` call is its own
failure domain. Events with different ids may be handled concurrently.
"""

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable

from payments.database import TransactionStore
from payments.errors import InvalidTransaction, StorageFailure
from payments.mapping import to_record
from payments.models import TransactionEvent, TransactionRecord
from payments.telemetry import TelemetrySink
from payments.validation import ValidationResult, validate_transaction

logger = logging.getLogger("pipeline")


class IngestionState(str, enum.Enum):
    RECEIVED = "received"
    VALIDATING = "validating"
    VALID = "valid"
    REJECTED = "rejected"
    PERSISTING = "persisting"
    PERSISTED = "persisted"
    FAILED = "failed"


@dataclass
class IngestionResult:
    """Terminal state reached by one event."""

    transaction_id: str | None
    state: IngestionState
    record: TransactionRecord | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is IngestionState.PERSISTED


def _enter(tx_id: str | None, state: IngestionState) -> None:
    logger.debug("Transaction %s -> %s", tx_id, state.value)


class IngestionPipeline:
    """Orchestrates validator, mapper, store and telemetry for each event.

    Args:
        store: Where valid records are saved.
        telemetry: Receives exactly one success or failure per event.
        validator: ``TransactionEvent -> ValidationResult``.
        mapper: ``TransactionEvent -> TransactionRecord``.
        duration: Optional histogram observed with the handling time.
    """

    def __init__(
        self,
        store: TransactionStore,
        telemetry: TelemetrySink,
        validator: Callable[[TransactionEvent], ValidationResult] = validate_transaction,
        mapper: Callable[[TransactionEvent], TransactionRecord] = to_record,
        duration=None,
    ):
        self.store = store
        self.telemetry = telemetry
        self.validator = validator
        self.mapper = mapper
        self.duration = duration

    async def process(self, event: TransactionEvent) -> TransactionRecord:
        """Ingest *event*, raising ``InvalidTransaction`` or the error ``save`` raised.

        Telemetry and logging happen before the error propagates. Any store
        error counts as a failure, not only ``StorageFailure``.
        """
        result = await self.handle(event)
        if result.error is not None:
            raise result.error
        return result.record

    async def handle(self, event: TransactionEvent) -> IngestionResult:
        """Ingest *event* and report the terminal state instead of raising."""
        start = time.monotonic()
        try:
            return await self._run(event)
        finally:
            if self.duration is not None:
                self.duration.observe(time.monotonic() - start)

    async def _run(self, event: TransactionEvent) -> IngestionResult:
        tx_id = event.transaction_id
        _enter(tx_id, IngestionState.RECEIVED)

        _enter(tx_id, IngestionState.VALIDATING)
        verdict = self.validator(event)
        if not verdict.is_valid:
            error = InvalidTransaction(tx_id, verdict.reasons)
            self.telemetry.increment_failure()
            logger.warning(
                "Failed to process transaction: %s (invalid fields: %s)",
                error, ", ".join(verdict.reasons),
                extra={"transaction_id": tx_id, "outcome": IngestionState.REJECTED.value},
            )
            return IngestionResult(tx_id, IngestionState.REJECTED, error=error)

        _enter(tx_id, IngestionState.VALID)
        record = self.mapper(event)

        _enter(tx_id, IngestionState.PERSISTING)
        try:
            saved = await self.store.save(record)
        except StorageFailure as error:
            self.telemetry.increment_failure()
            logger.error(
                "Failed to process transaction %s: %s", tx_id, error,
                extra={"transaction_id": tx_id, "outcome": IngestionState.FAILED.value},
            )
            return IngestionResult(tx_id, IngestionState.FAILED, error=error)
        except Exception as error:
            self.telemetry.increment_failure()
            logger.exception(
                "Unexpected error persisting transaction %s: %s", tx_id, error,
                extra={"transaction_id": tx_id, "outcome": IngestionState.FAILED.value},
            )
            return IngestionResult(tx_id, IngestionState.FAILED, error=error)

        self.telemetry.increment_success()
        logger.info(
            "Transaction persisted: %s", saved.transaction_id,
            extra={"transaction_id": saved.transaction_id, "outcome": IngestionState.PERSISTED.value},
        )
        return IngestionResult(tx_id, IngestionState.PERSISTED, record=saved)
