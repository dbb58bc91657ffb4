import asyncio

from fastapi import APIRouter, Response

from payments.database import check_connection, get_total_records
from payments.models import HealthResponse
from payments.observability import metrics_response

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health():
    db_ok = await asyncio.to_thread(check_connection)
    total = await asyncio.to_thread(get_total_records) if db_ok else 0
    return HealthResponse(
        status="healthy" if db_ok else "unhealthy",
        db_connected=db_ok,
        total_records=total,
    )


@router.get("/metrics")
def metrics():
    body, content_type = metrics_response()
    return Response(content=body, media_type=content_type)
