"""
Meet Service - FastAPI Application

Entry point for the meet HTTP API. Wires configuration, storage, the
identity client, and the scheduling service, and maps engine errors to
HTTP responses.

Usage:
    uvicorn meet.api.main:app --host 127.0.0.1 --port 8080

    Or run directly:
    python -m meet.api.main
"""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime

# Load .env file before configuration is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from meet.api.routes import build_api_router
from meet.api.schemas import ErrorResponse, HealthCheck
from meet.auth.client import IdentityClient
from meet.auth.models import parse_roles
from meet.config import MeetConfig, load_config
from meet.logging_config import bind_request_context, clear_request_context, get_logger, setup_logging
from meet.meets.errors import (
    AuthorizationError,
    ConflictError,
    InfrastructureError,
    MeetError,
    NotFoundError,
    PersistenceTimeoutError,
    ValidationError,
)
from meet.meets.repository import MeetRepository, SQLiteMeetRepository
from meet.meets.service import MeetService

logger = get_logger(__name__)

# Most specific first
ERROR_STATUS: list[tuple[type[MeetError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthorizationError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (PersistenceTimeoutError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InfrastructureError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: MeetError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def build_service(config: MeetConfig, repository: MeetRepository | None = None) -> MeetService:
    if repository is None:
        repository = SQLiteMeetRepository(
            config.storage.resolved_db_path(),
            timeout=config.storage.timeout_seconds,
        )
    return MeetService(
        repository,
        elevated_roles=parse_roles(config.auth.elevated_roles),
        timeout=config.storage.timeout_seconds,
        window_days=config.availability.default_days,
    )


def create_app(
    config: MeetConfig | None = None,
    repository: MeetRepository | None = None,
    identity_client: IdentityClient | None = None,
) -> FastAPI:
    """Build the application. Storage is opened at startup."""
    if config is None:
        config = load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("starting", name=config.app.name, env=config.app.env, version=config.app.version)
        app.state.service = build_service(config, repository)
        logger.info("storage_ready")
        yield
        logger.info("shutting_down")

    app = FastAPI(
        title=config.app.name,
        description="Book meets for organizers without double-booking",
        version=config.app.version,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.identity_client = identity_client or IdentityClient(
        config.auth.service_url, timeout=config.auth.timeout_seconds
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Request logging
    # =========================================================================

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        clear_request_context()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        bind_request_context(request_id=request_id, method=request.method, path=request.url.path)
        started = time.monotonic()
        response = await call_next(request)
        logger.debug(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        response.headers["x-request-id"] = request_id
        return response

    # =========================================================================
    # Health Check Endpoint
    # =========================================================================

    @app.get("/api/health", response_model=HealthCheck, tags=["health"])
    def health_check(request: Request):
        """Check storage reachability."""
        services = {}
        try:
            request.app.state.service.repository.ping(timeout=1.0)
            services["database"] = "healthy"
        except MeetError as e:
            logger.error("database_health_check_failed", error=str(e))
            services["database"] = "unhealthy"

        overall = "healthy" if services["database"] == "healthy" else "degraded"
        return HealthCheck(
            status=overall,
            version=config.app.version,
            timestamp=datetime.now(),
            services=services,
        )

    # =========================================================================
    # Error Handlers
    # =========================================================================

    @app.exception_handler(MeetError)
    async def meet_error_handler(request: Request, exc: MeetError):
        code = status_for(exc)
        if isinstance(exc, InfrastructureError):
            # Driver details stay in the log
            logger.error("infrastructure_error", error=exc.message, exc_info=exc)
            message = (
                "Service temporarily unavailable"
                if isinstance(exc, PersistenceTimeoutError)
                else "Internal server error"
            )
        else:
            message = exc.message

        return JSONResponse(
            status_code=code,
            content=ErrorResponse(error=message, code=exc.code.upper()).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies and query parameters are caller errors."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(
                error="invalid request",
                code=ValidationError.code.upper(),
                details={"errors": jsonable_encoder(exc.errors())},
            ).model_dump(),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with consistent format."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=str(exc.detail), code=f"HTTP_{exc.status_code}").model_dump(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error("unhandled_exception", error=str(exc), exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error="Internal server error", code="INTERNAL_ERROR").model_dump(),
        )

    app.include_router(build_api_router(config.app.rest_prefix))

    return app


def run(config: MeetConfig | None = None, reload: bool = False) -> None:
    import uvicorn

    if config is None:
        config = load_config()
    setup_logging(config.logging.level, config.logging.format.lower() == "json")

    uvicorn.run(
        "meet.api.main:app" if reload else create_app(config),
        host=config.app.host,
        port=config.app.port,
        reload=reload,
        log_level=config.logging.level.lower(),
    )


app = create_app()


if __name__ == "__main__":
    run()
