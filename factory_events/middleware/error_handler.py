"""Maps exceptions escaping the routes to structured JSON error responses."""
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import structlog
from .correlation import get_correlation_id
from ..errors import InvalidRangeError, StoreError

log = structlog.get_logger()


def error_body(request: Request, status_code: int, error: str, message: str, **extra) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
        "status_code": status_code,
        "correlation_id": get_correlation_id(),
        "path": str(request.url.path),
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Query windows that do not parse are the caller's fault (400); an
    unreachable store is temporary (503); anything else is a 500.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except InvalidRangeError as exc:
            log.info("query.invalid_range", bound=exc.name, value=exc.value)
            return error_body(request, 400, "InvalidRange", str(exc), field=exc.name)
        except StoreError as exc:
            log.error("store.unavailable", error=str(exc))
            return error_body(request, 503, "StoreUnavailable", "Event store is unavailable")
        except Exception as exc:
            log.error(
                "unhandled.exception",
                error=str(exc),
                error_type=exc.__class__.__name__,
                exc_info=True
            )
            return error_body(request, 500, "InternalServerError", "An unexpected error occurred")
