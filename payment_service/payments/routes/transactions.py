"""
Transaction routes.

  POST /api/transactions                          — relay an event to Kafka (202)
  GET  /api/transactions/summary                  — count and total volume
  GET  /api/transactions/customers/{customer_id}  — one customer's records

A 202 from the submit route means "accepted for processing": validation
happens later in the consumer and its outcome is not reported back here.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from payments.database import TransactionStore
from payments.dependencies import get_aggregator, get_gateway, get_store
from payments.gateway import SubmissionGateway
from payments.models import (
    CustomerTransactionsResponse,
    SubmissionResponse,
    TransactionEvent,
    TransactionSummary,
)
from payments.summary import SummaryAggregator

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])


@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": TransactionEvent.model_json_schema()}},
            "required": True,
        },
    },
)
async def submit_transaction(
    request: Request,
    gateway: SubmissionGateway = Depends(get_gateway),
):
    # Parsed by hand so a JSON-number amount keeps all of its digits
    try:
        event = TransactionEvent.from_json(await request.body())
    except ValidationError as exc:
        raise RequestValidationError(
            [{**error, "loc": ("body", *error["loc"])} for error in exc.errors(include_url=False)]
        )
    except ValueError as exc:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}, "ctx": {"error": str(exc)}}]
        )
    accepted = await gateway.submit(event)
    return SubmissionResponse(**accepted.model_dump())


@router.get("/summary", response_model=TransactionSummary)
async def transaction_summary(aggregator: SummaryAggregator = Depends(get_aggregator)):
    return await aggregator.summarize()


@router.get("/customers/{customer_id}", response_model=CustomerTransactionsResponse)
async def customer_transactions(customer_id: str, store: TransactionStore = Depends(get_store)):
    records = await store.find_by_customer(customer_id)
    return CustomerTransactionsResponse(
        customer_id=customer_id,
        transactions=records,
        count=len(records),
    )
