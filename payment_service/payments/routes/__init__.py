from .transactions import router as transactions_router
from .health import router as health_router

__all__ = ["transactions_router", "health_router"]
