"""
Starlette middleware that counts HTTP requests.

Usage::

    HTTP_REQUESTS = create_counter(
        "http_requests_total", "Total HTTP requests", ["method", "path", "status"]
    )
    app.add_middleware(MetricsMiddleware, counter=HTTP_REQUESTS, ignored_paths={"/metrics"})
"""

from prometheus_client import Counter
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


class MetricsMiddleware(BaseHTTPMiddleware):
    """Increment ``counter`` once per response, labelled by method, path and status.

    Paths are taken from the matched route template when there is one, so
    ``/api/transactions/customers/{customer_id}`` is a single series rather
    than one per customer.
    """

    def __init__(self, app, counter: Counter, ignored_paths: set[str] | None = None):
        super().__init__(app)
        self.counter = counter
        self.ignored_paths = ignored_paths or set()

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if request.url.path not in self.ignored_paths:
            route = request.scope.get("route")
            path = getattr(route, "path", None) or request.url.path
            self.counter.labels(
                method=request.method,
                path=path,
                status=response.status_code,
            ).inc()

        return response
