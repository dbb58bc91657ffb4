"""Failure taxonomy shared by the pipeline, the store and the gateway."""


class PaymentsError(Exception):
    """Base class for errors raised by transaction-service."""


class InvalidTransaction(PaymentsError):
    """A transaction event broke at least one validity rule.

    ``reasons`` lists the offending field names (``transactionId``, ``amount``,
    ...); the message only carries the identifier.
    """

    def __init__(self, transaction_id: str | None, reasons: tuple[str, ...] = ()):
        self.transaction_id = transaction_id
        self.reasons = tuple(reasons)
        super().__init__(f"Invalid transaction event: {transaction_id}")


class StorageFailure(PaymentsError):
    """The transaction store could not complete a read or a write."""


class TransportFailure(PaymentsError):
    """The message queue did not accept a relayed event."""
