"""Pydantic models for transaction events, records and summaries.

All models speak camelCase on the wire (``transactionId``, ``customerId``)
and accept either spelling on input.
"""

import json
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class TransactionEvent(_CamelModel):
    """Inbound transaction as received from a caller or from Kafka.

    Every field is optional here: shape is checked by pydantic, validity
    rules (non-blank ids, positive amount, ...) are applied later by
    ``payments.validation`` so that an invalid event can still be relayed
    and then rejected, counted and logged by the pipeline.
    """

    transaction_id: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    customer_id: str | None = None
    timestamp: datetime | None = None

    @classmethod
    def from_json(cls, payload: bytes | str) -> "TransactionEvent":
        """Parse a JSON document, keeping every digit of a numeric ``amount``.

        Raises ``ValueError`` for malformed JSON (including bad UTF-8) and
        pydantic's ``ValidationError`` for a document of the wrong shape.
        """
        return cls.model_validate(json.loads(payload, parse_float=Decimal))


class TransactionRecord(_CamelModel):
    """Durable form of a transaction, one row of the ``transactions`` table."""

    transaction_id: str
    amount: Decimal
    currency: str
    customer_id: str
    timestamp: datetime


class TransactionSummary(_CamelModel):
    """Count and total volume over every stored transaction.

    ``last_updated`` is when the summary was computed, not the time of the
    newest transaction.
    """

    currency: str
    transaction_count: int = Field(ge=0)
    total_volume: Decimal
    last_updated: datetime


class SubmissionResponse(TransactionEvent):
    """Echo of a submitted event, acknowledged as accepted for processing."""

    status: str = "accepted"


class CustomerTransactionsResponse(_CamelModel):
    customer_id: str
    transactions: list[TransactionRecord]
    count: int
