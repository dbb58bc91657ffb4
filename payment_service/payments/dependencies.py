"""FastAPI dependency providers.

The lifespan handler stores the wired collaborators on ``app.state``; these
providers read them back per request. Tests replace them through
``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from payments.database import SqliteTransactionStore, TransactionStore
from payments.errors import TransportFailure
from payments.gateway import SubmissionGateway
from payments.summary import SummaryAggregator


def get_store(request: Request) -> TransactionStore:
    store = getattr(request.app.state, "store", None)
    return store if store is not None else SqliteTransactionStore()


def get_aggregator(store: TransactionStore = Depends(get_store)) -> SummaryAggregator:
    return SummaryAggregator(store)


def get_gateway(request: Request) -> SubmissionGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        # Without a broker the relay cannot accept anything
        raise TransportFailure("Kafka relay is not configured (KAFKA_BOOTSTRAP_SERVERS unset)")
    return gateway
