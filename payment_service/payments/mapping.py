from payments.models import TransactionEvent, TransactionRecord


def to_record(event: TransactionEvent) -> TransactionRecord:
    """Copy a validated event field for field into its durable record.

    Performs no checks of its own; call only after ``ensure_valid``.
    """
    return TransactionRecord.model_construct(
        transaction_id=event.transaction_id,
        amount=event.amount,
        currency=event.currency,
        customer_id=event.customer_id,
        timestamp=event.timestamp,
    )
