from datetime import datetime, timezone
from decimal import Decimal

import pytest

from payments.errors import InvalidTransaction
from payments.mapping import to_record
from payments.models import TransactionRecord
from payments.validation import ensure_valid, validate_transaction

from conftest import make_event


# ── Validator ─────────────────────────────────────────────────────

class TestValidateTransaction:
    def test_complete_event_is_valid(self):
        result = validate_transaction(make_event())
        assert result.is_valid
        assert result.reasons == ()

    @pytest.mark.parametrize("overrides, field", [
        ({"transaction_id": None}, "transactionId"),
        ({"transaction_id": ""}, "transactionId"),
        ({"transaction_id": "   "}, "transactionId"),
        ({"amount": None}, "amount"),
        ({"amount": Decimal("0")}, "amount"),
        ({"amount": Decimal("0.00")}, "amount"),
        ({"amount": Decimal("-5.25")}, "amount"),
        ({"currency": None}, "currency"),
        ({"currency": "\t"}, "currency"),
        ({"customer_id": None}, "customerId"),
        ({"customer_id": ""}, "customerId"),
        ({"timestamp": None}, "timestamp"),
    ])
    def test_single_rule_violation_invalidates(self, overrides, field):
        result = validate_transaction(make_event(**overrides))
        assert not result.is_valid
        assert result.reasons == (field,)

    def test_reports_every_failing_field(self):
        event = make_event(amount=Decimal("-1"), currency=" ", timestamp=None)
        result = validate_transaction(event)
        assert result.reasons == ("amount", "currency", "timestamp")

    def test_no_upper_bound_on_amount(self):
        assert validate_transaction(make_event(amount=Decimal("1e12"))).is_valid

    def test_smallest_positive_amount_is_valid(self):
        assert validate_transaction(make_event(amount=Decimal("0.01"))).is_valid

    def test_future_timestamp_is_valid(self):
        future = datetime(2999, 1, 1, tzinfo=timezone.utc)
        assert validate_transaction(make_event(timestamp=future)).is_valid


class TestEnsureValid:
    def test_returns_valid_event_unchanged(self):
        event = make_event()
        assert ensure_valid(event) is event

    def test_raises_with_identifier_in_message(self):
        with pytest.raises(InvalidTransaction) as exc_info:
            ensure_valid(make_event(transaction_id="tx-9", amount=Decimal("0")))
        assert str(exc_info.value) == "Invalid transaction event: tx-9"
        assert exc_info.value.transaction_id == "tx-9"
        assert exc_info.value.reasons == ("amount",)


# ── Record mapper ─────────────────────────────────────────────────

class TestToRecord:
    def test_copies_every_field(self):
        event = make_event(transaction_id="tx-42", amount=Decimal("99.95"), currency="EUR")
        record = to_record(event)
        assert isinstance(record, TransactionRecord)
        assert record.transaction_id == "tx-42"
        assert record.amount == Decimal("99.95")
        assert record.currency == "EUR"
        assert record.customer_id == event.customer_id
        assert record.timestamp == event.timestamp

    def test_preserves_decimal_scale(self):
        record = to_record(make_event(amount=Decimal("5.50")))
        assert str(record.amount) == "5.50"
