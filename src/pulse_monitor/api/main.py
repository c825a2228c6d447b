"""
FastAPI application exposing the monitoring service.

The application lifespan owns the monitoring service: background loops
start with the server and stop on shutdown (SIGINT/SIGTERM under uvicorn).
Every request passes through a timing middleware that feeds the request
instrumentation hook.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse

from pulse_monitor import __version__
from pulse_monitor.config.settings import Settings, get_settings, validate_required_settings
from pulse_monitor.core.exceptions import AlertNotFoundError, ValidationError
from pulse_monitor.core.logging import (
    generate_request_id,
    get_logger,
    get_performance_logger,
    set_request_context,
)
from pulse_monitor.monitoring.collector import process_snapshot
from pulse_monitor.monitoring.models import HealthState
from pulse_monitor.monitoring.prometheus_exporter import PrometheusExporter
from pulse_monitor.monitoring.service import MonitoringService

from .schemas import (
    AlertListResponse,
    CreateAlertRequest,
    CreateAlertResponse,
    HealthResponse,
    MessageResponse,
    ResolveAlertRequest,
    StatsResponse,
)
from .security import require_operator

logger = get_logger(__name__)
perf_logger = get_performance_logger(__name__)


def get_service(request: Request) -> MonitoringService:
    return request.app.state.monitoring


def health_response(service: MonitoringService) -> JSONResponse:
    health = service.get_health_status()
    body = health.to_dict()
    # Critical health is reported as service unavailable
    code = (status.HTTP_503_SERVICE_UNAVAILABLE
            if health.status is HealthState.CRITICAL else status.HTTP_200_OK)
    body["success"] = code == status.HTTP_200_OK
    return JSONResponse(status_code=code, content=body)


router = APIRouter(prefix="/api/monitoring", tags=["monitoring"])


@router.get("/health", response_model=HealthResponse)
async def health_check(service: MonitoringService = Depends(get_service)):
    """System health check."""
    return health_response(service)


@router.get("/metrics/basic")
async def basic_metrics():
    """Process uptime, memory and runtime details. Public."""
    return {
        "success": True,
        "data": process_snapshot(),
        "message": "Basic system metrics retrieved",
    }


@router.get("/metrics", response_model=StatsResponse, dependencies=[Depends(require_operator)])
async def system_metrics(
    time_range: str = Query("1h", alias="range", description="1h, 6h or 24h"),
    service: MonitoringService = Depends(get_service),
):
    """Detailed statistics for a time range; unknown ranges use 1h."""
    return {"success": True, "stats": service.get_detailed_stats(time_range).to_dict()}


@router.get("/metrics/prometheus", dependencies=[Depends(require_operator)])
async def prometheus_metrics(request: Request):
    exporter: PrometheusExporter = request.app.state.exporter
    return Response(content=exporter.render(), media_type=exporter.content_type)


@router.get("/alerts", response_model=AlertListResponse, dependencies=[Depends(require_operator)])
async def list_alerts(service: MonitoringService = Depends(get_service)):
    return {"success": True, "alerts": service.list_alerts()}


@router.post("/alerts/resolve", response_model=MessageResponse, dependencies=[Depends(require_operator)])
async def resolve_alert(body: ResolveAlertRequest,
                        service: MonitoringService = Depends(get_service)):
    if not body.alert_id:
        raise ValidationError("alertId is required")
    if not service.resolve_alert(body.alert_id):
        raise AlertNotFoundError(body.alert_id)
    return {"success": True, "message": "Alert resolved"}


@router.post("/alerts/create",
             response_model=CreateAlertResponse,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_operator)])
async def create_alert(body: CreateAlertRequest,
                       service: MonitoringService = Depends(get_service)):
    alert = service.create_alert(body.type, body.message, body.severity)
    return {"success": True, "alert": alert.to_dict(), "message": "Alert created"}


@router.get("/status", dependencies=[Depends(require_operator)])
async def status_summary(service: MonitoringService = Depends(get_service)):
    """Simplified system status."""
    return {"success": True, **service.health.get_status_summary()}


@router.get("/dashboard", dependencies=[Depends(require_operator)])
async def dashboard(
    time_range: str = Query("1h", alias="range", description="1h, 6h or 24h"),
    service: MonitoringService = Depends(get_service),
):
    return {
        "success": True,
        "dashboard": service.health.get_dashboard(time_range),
        "timestamp": int(time.time() * 1000),
    }


def create_app(service: Optional[MonitoringService] = None,
               settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Monitoring service to expose (created from settings if omitted)
        settings: Application settings (defaults to cached environment settings)

    Returns:
        FastAPI: Configured application

    Raises:
        ConfigurationError: If settings are inconsistent, e.g. production without API_TOKEN
    """
    settings = settings or (service.settings if service else get_settings())
    validate_required_settings(settings)
    service = service or MonitoringService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.start()
        try:
            yield
        finally:
            await service.stop()

    app = FastAPI(
        title="Pulse Monitor API",
        description="Runtime health monitoring and alerting",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.monitoring = service
    app.state.exporter = PrometheusExporter(service.health)

    @app.middleware("http")
    async def request_monitoring(request: Request, call_next):
        set_request_context(generate_request_id())
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            service.record_request(elapsed_ms, has_error=status_code >= 400)
            perf_logger.log_api_call(request.url.path, request.method, status_code, elapsed_ms)
            set_request_context(None)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content={"success": False, "message": str(exc)})

    @app.exception_handler(AlertNotFoundError)
    async def not_found_handler(request: Request, exc: AlertNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND,
                            content={"success": False, "message": "Alert not found or already resolved"})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled API error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            content={"success": False,
                                     "message": "Monitoring operation failed",
                                     "error": str(exc)})

    @app.get("/health", response_model=HealthResponse)
    async def root_health(request: Request):
        return health_response(request.app.state.monitoring)

    app.include_router(router)

    return app
