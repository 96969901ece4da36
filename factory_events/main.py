"""
factory-events - Machine telemetry ingestion and defect analytics service.

Features:
- Batch ingestion with deduplication and last-writer-wins updates
- Per-machine health statistics and top defect lines per factory
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from .config import get_settings
from .logging import setup_logging, get_logger
from .api.router import router
from .middleware.correlation import CorrelationIdMiddleware
from .middleware.error_handler import ErrorHandlerMiddleware
from .middleware.metrics import MetricsMiddleware
from .middleware.validation import ValidationMiddleware
from .metrics import Metrics
from .health import HealthChecker
from .services.event_service import service, set_metrics

SERVICE_NAME = "factory-events"
VERSION = "0.1.0"

settings = get_settings()

setup_logging(json_output=settings.LOG_JSON, service_name=SERVICE_NAME)
logger = get_logger()

metrics = Metrics(service_name=SERVICE_NAME, version=VERSION)
set_metrics(metrics)

health_checker = HealthChecker(service.store, service_name=SERVICE_NAME, version=VERSION)

app = FastAPI(
    title="factory-events",
    version=VERSION,
    description="Machine telemetry ingestion, reconciliation and defect analytics",
)

# Last added runs first: correlation ID wraps everything else
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(ValidationMiddleware)
app.add_middleware(MetricsMiddleware, metrics=metrics)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(router)

# Mount Prometheus metrics endpoint
metrics_app = make_asgi_app(registry=metrics.registry)
app.mount("/metrics", metrics_app)


@app.get("/health")
async def health():
    """
    Liveness probe - basic health check.

    Returns 200 if service is running.
    """
    logger.debug("health_check_liveness")
    return health_checker.liveness()


@app.get("/health/ready")
async def health_ready():
    """
    Readiness probe - store, disk and memory checks.

    Returns:
        200: Service is ready to handle traffic
        503: Service is not ready
    """
    logger.debug("health_check_readiness")
    metrics.update_system_metrics()
    result = await health_checker.readiness()
    status_code = 200 if result["status"] == "ready" else 503
    return JSONResponse(result, status_code=status_code)


@app.on_event("startup")
async def startup_event():
    logger.info(
        "service_starting",
        version=VERSION,
        env=settings.ENV,
        store=type(service.store).__name__,
    )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("service_stopping")
    metrics.app_up.labels(service=SERVICE_NAME, version=VERSION).set(0)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "factory_events.main:app",
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
        reload=settings.ENV == "dev",
    )
