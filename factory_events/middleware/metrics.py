"""HTTP metrics middleware.

Requests are labelled by route template (``/events/stats``), never by raw URL,
so query strings and unknown paths cannot blow up label cardinality.
"""
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import structlog

UNMATCHED = "unmatched"


def route_label(request: Request) -> str:
    """Template of the route that served the request, once routing has run."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts and times every request except the Prometheus scrape itself."""

    def __init__(self, app, metrics):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith("/metrics"):
            return await call_next(request)

        self.metrics.http_requests_active.inc()
        start_time = time.time()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            self.metrics.http_requests_active.dec()
            self._observe(request, status, time.time() - start_time)

    def _observe(self, request: Request, status: int, duration: float):
        path = route_label(request)
        labels = {"service": self.metrics.service_name, "method": request.method, "path": path}
        self.metrics.http_requests_total.labels(status=status, **labels).inc()
        self.metrics.http_request_duration.labels(**labels).observe(duration)

        log = structlog.get_logger()
        if status >= 500:
            log.error("http_request", route=path, http_status=status, duration_ms=round(duration * 1000, 2))
        else:
            log.info("http_request", route=path, http_status=status, duration_ms=round(duration * 1000, 2))
