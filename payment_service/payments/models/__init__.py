from .transactions import (
    TransactionEvent,
    TransactionRecord,
    TransactionSummary,
    SubmissionResponse,
    CustomerTransactionsResponse,
)
from .health import HealthResponse

__all__ = [
    "TransactionEvent",
    "TransactionRecord",
    "TransactionSummary",
    "SubmissionResponse",
    "CustomerTransactionsResponse",
    "HealthResponse",
]
