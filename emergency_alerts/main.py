import json
import logging
from contextlib import asynccontextmanager
from typing import Annotated, Optional

from fastapi import FastAPI, Response, Request, Header, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from emergency_alerts.config import Settings, get_settings
from emergency_alerts.errors import AlertServiceError, InvalidArgument, register_error_handlers
from emergency_alerts.gateway import GatewayCredentials, SmsGatewayClient
from emergency_alerts.listing import AlertListing
from emergency_alerts.logging_utils import setup_logging, RequestLoggingMiddleware, log_dispatch_data
from emergency_alerts.metrics import record_dispatch_outcome, get_metrics, get_metrics_content_type
from emergency_alerts.pipeline import AlertDispatchPipeline
from emergency_alerts.recorder import OutcomeRecorder
from emergency_alerts.schemas import (
    AlertRecordResponse,
    AlertsListResponse,
    DispatchResponse,
    ErrorResponse,
    HealthResponse,
    ListErrorResponse,
)
from emergency_alerts.storage import create_db_engine, create_session_factory, init_db, check_db_health


logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[SmsGatewayClient] = None,
    session_factory: Optional[sessionmaker] = None,
) -> FastAPI:
    """
    Composition root. Every shared collaborator is built here exactly once
    and attached to app.state; routes reach them through the request.

    gateway and session_factory may be supplied to replace the configured ones.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    if session_factory is None:
        session_factory = create_session_factory(create_db_engine(settings.DATABASE_URL))
    if gateway is None:
        gateway = SmsGatewayClient(
            GatewayCredentials(settings.GATEWAY_ACCOUNT_SID, settings.GATEWAY_AUTH_TOKEN),
            base_url=settings.GATEWAY_BASE_URL,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        - Startup: create tables
        - Shutdown: release the gateway connection pool
        """
        init_db(session_factory.kw["bind"])
        if not settings.gateway_configured:
            logger.warning("Gateway credentials or sender number not configured")
        yield
        gateway.close()

    app = FastAPI(
        title="Emergency Alert API",
        description="Dispatches emergency alerts as SMS and records every attempt",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.pipeline = AlertDispatchPipeline(
        gateway=gateway,
        recorder=OutcomeRecorder(session_factory),
        from_number=settings.GATEWAY_FROM_NUMBER,
    )
    app.state.listing = AlertListing(
        session_factory,
        default_limit=settings.ALERTS_DEFAULT_LIMIT,
        max_limit=settings.ALERTS_MAX_LIMIT,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Caller-Id"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)
    _register_routes(app)

    return app


def _register_routes(app: FastAPI) -> None:

    # =========================================================================
    # Health Check Routes
    # =========================================================================

    @app.get("/health/live", response_model=HealthResponse)
    async def health_live() -> HealthResponse:
        """Liveness probe - always returns 200 once the app is running."""
        return HealthResponse(status="ok")

    @app.get("/health/ready", response_model=HealthResponse, response_model_exclude_none=True)
    def health_ready(request: Request, response: Response) -> HealthResponse:
        """
        Readiness probe - returns 200 only if:
        1. Gateway credentials and sender number are configured
        2. DB is reachable and the alerts table exists

        Otherwise returns 503 (Service Unavailable).
        """
        if not request.app.state.settings.gateway_configured:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return HealthResponse(
                status="not_ready",
                reason="Gateway credentials not configured"
            )

        if not check_db_health(request.app.state.session_factory):
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return HealthResponse(
                status="not_ready",
                reason="Database not reachable or schema not applied"
            )

        return HealthResponse(status="ready")

    # =========================================================================
    # Dispatch Route
    # =========================================================================

    @app.post(
        "/alerts/dispatch",
        response_model=DispatchResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Missing or invalid fields"},
            500: {"model": ErrorResponse, "description": "Delivery failed"},
        }
    )
    async def dispatch_alert(
        request: Request,
        x_caller_id: Annotated[str | None, Header(alias="X-Caller-Id")] = None,
    ) -> DispatchResponse:
        """
        Send an emergency alert as SMS and record the attempt.

        Body:
            - phoneNumber, message: required
            - location {latitude, longitude}, intensity, timestamp: optional

        Caller identity is optional; unauthenticated calls are processed
        identically.
        """
        caller = x_caller_id or "unauthenticated"
        logger.info(f"Dispatch request received from {caller}")

        raw_body = await request.body()
        try:
            payload = json.loads(raw_body) if raw_body.strip() else None
        except (ValueError, RecursionError) as e:
            # RecursionError: nesting deeper than the decoder can follow
            logger.error(f"Invalid JSON: {e}")
            record_dispatch_outcome("invalid")
            log_dispatch_data(request, caller=caller, result="invalid")
            raise InvalidArgument(f"Invalid JSON: {e}")

        # The gateway call blocks; keep it off the event loop
        try:
            result = await run_in_threadpool(request.app.state.pipeline.dispatch, payload)
        except InvalidArgument:
            record_dispatch_outcome("invalid")
            log_dispatch_data(request, caller=caller, result="invalid")
            raise
        except AlertServiceError:
            record_dispatch_outcome("failed")
            log_dispatch_data(request, caller=caller, result="failed")
            raise

        record_dispatch_outcome("sent")
        log_dispatch_data(request, caller=caller, result="sent", message_id=result.message_id)
        return result

    # =========================================================================
    # Alerts Listing Route
    # =========================================================================

    @app.get(
        "/alerts",
        response_model=AlertsListResponse,
        response_model_exclude_none=True,
        responses={500: {"model": ListErrorResponse}},
    )
    def list_alerts(
        request: Request,
        limit: Annotated[str | None, Query(description="Maximum number of alerts to return")] = None,
    ):
        """
        Most recent alert records, newest first.

        Query Parameters:
            - limit: default 10 when absent, non-numeric or non-positive;
              capped only when ALERTS_MAX_LIMIT is set
        """
        try:
            records = request.app.state.listing.list(limit)
        except Exception as e:
            logger.error(f"Error fetching alerts: {e}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Failed to fetch alerts"},
            )

        logger.info(f"GET /alerts: returned {len(records)} alerts")
        return AlertsListResponse(
            alerts=[
                AlertRecordResponse(
                    id=r.id,
                    phone_number=r.phone_number,
                    message=r.message,
                    status=r.status,
                    gateway_message_id=r.gateway_message_id,
                    gateway_status=r.gateway_status,
                    error=r.error,
                    created_at=r.created_at,
                )
                for r in records
            ]
        )

    @app.api_route("/alerts", methods=["POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"], include_in_schema=False)
    async def alerts_method_not_allowed(request: Request) -> JSONResponse:
        logger.warning(f"{request.method} /alerts rejected")
        return JSONResponse(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            content={"error": "Method not allowed"},
            headers={"Allow": "GET"},
        )

    # =========================================================================
    # Metrics Route
    # =========================================================================

    @app.get("/metrics")
    async def metrics() -> Response:
        """Expose Prometheus-style metrics."""
        return Response(
            content=get_metrics(),
            media_type=get_metrics_content_type()
        )


app = create_app()
