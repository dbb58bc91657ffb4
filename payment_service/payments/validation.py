"""
Transaction validity rules.

An event is valid when all of the following hold:

* ``transactionId`` is present and not blank
* ``amount`` is present and strictly greater than zero (no upper bound)
* ``currency`` is present and not blank
* ``customerId`` is present and not blank
* ``timestamp`` is present (no past/future bound)

``validate_transaction`` reports every failing field; ``ensure_valid`` turns a
failed result into ``InvalidTransaction``. Neither has side effects.
"""

from dataclasses import dataclass
from decimal import Decimal

from payments.errors import InvalidTransaction
from payments.models import TransactionEvent


@dataclass(frozen=True)
class ValidationResult:
    transaction_id: str | None
    reasons: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.reasons


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_transaction(event: TransactionEvent) -> ValidationResult:
    reasons = []
    if _is_blank(event.transaction_id):
        reasons.append("transactionId")
    if event.amount is None or event.amount.is_nan() or event.amount <= Decimal(0):
        reasons.append("amount")
    if _is_blank(event.currency):
        reasons.append("currency")
    if _is_blank(event.customer_id):
        reasons.append("customerId")
    if event.timestamp is None:
        reasons.append("timestamp")
    return ValidationResult(transaction_id=event.transaction_id, reasons=tuple(reasons))


def ensure_valid(event: TransactionEvent) -> TransactionEvent:
    """Return *event* unchanged, or raise ``InvalidTransaction``."""
    result = validate_transaction(event)
    if not result.is_valid:
        raise InvalidTransaction(event.transaction_id, result.reasons)
    return event
