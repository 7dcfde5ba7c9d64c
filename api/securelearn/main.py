"""SecureLearn API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from securelearn.assessments.router import router as assessment_router
from securelearn.assessments.router import router_section_assessment
from securelearn.assessments.service import AssessmentService
from securelearn.auth.router import router as auth_router
from securelearn.auth.service import AuthService
from securelearn.certificates.router import router as certificate_router
from securelearn.config import get_settings
from securelearn.core.context import get_request_id
from securelearn.core.database import init_async_cassandra, shutdown_async_cassandra
from securelearn.core.logging import configure_structlog, get_logger
from securelearn.core.middleware import RequestContextMiddleware
from securelearn.core.redis import init_redis, shutdown_redis
from securelearn.health.router import router as health_router
from securelearn.progress.router import router as progress_router
from securelearn.progress.service import ProgressService
from securelearn.reports.router import router as admin_router
from securelearn.training.router import router_modules, router_pages, router_sections
from securelearn.training.service import ModuleService, PageService, SectionService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    auth_service: AuthService | None = None
    section_service: SectionService | None = None
    module_service: ModuleService | None = None
    page_service: PageService | None = None
    progress_service: ProgressService | None = None
    assessment_service: AssessmentService | None = None


app_state = AppState()


def get_auth_service() -> AuthService:
    """Get AuthService instance from app state."""
    if app_state.auth_service is None:
        msg = "AuthService not initialized"
        raise RuntimeError(msg)
    return app_state.auth_service


def get_section_service() -> SectionService:
    """Get SectionService instance from app state."""
    if app_state.section_service is None:
        msg = "SectionService not initialized"
        raise RuntimeError(msg)
    return app_state.section_service


def get_module_service() -> ModuleService:
    """Get ModuleService instance from app state."""
    if app_state.module_service is None:
        msg = "ModuleService not initialized"
        raise RuntimeError(msg)
    return app_state.module_service


def get_page_service() -> PageService:
    """Get PageService instance from app state."""
    if app_state.page_service is None:
        msg = "PageService not initialized"
        raise RuntimeError(msg)
    return app_state.page_service


def get_assessment_service() -> AssessmentService:
    """Get AssessmentService instance from app state."""
    if app_state.assessment_service is None:
        msg = "AssessmentService not initialized"
        raise RuntimeError(msg)
    return app_state.assessment_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - submission locks and rate limits disabled",
        )

    # Initialize Cassandra (async)
    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        keyspace = settings.cassandra_keyspace

        app_state.auth_service = AuthService(
            session=app_state.cassandra_session,
            keyspace=keyspace,
        )
        logger.info("auth_service_initialized")

        # Training content services
        app_state.module_service = ModuleService(
            session=app_state.cassandra_session,
            keyspace=keyspace,
        )
        app_state.section_service = SectionService(
            session=app_state.cassandra_session,
            keyspace=keyspace,
            module_service=app_state.module_service,
        )
        app_state.page_service = PageService(
            session=app_state.cassandra_session,
            keyspace=keyspace,
        )
        logger.info("training_services_initialized")

        app_state.progress_service = ProgressService(
            session=app_state.cassandra_session,
            keyspace=keyspace,
        )
        # Progress routes resolve the service via request.app.state
        app.state.progress_service = app_state.progress_service
        logger.info("progress_service_initialized")

        app_state.assessment_service = AssessmentService(
            session=app_state.cassandra_session,
            keyspace=keyspace,
            redis=redis_client,
            settings=settings,
        )
        logger.info(
            "assessment_service_initialized", redis_enabled=redis_client is not None
        )
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug=False keeps Starlette's ServerErrorMiddleware from rendering
    # stack traces; the handlers below log details and return safe messages.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="SecureLearn - Information Security Awareness Training API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with per-field details."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler; details are logged, never returned."""
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(router_sections)
    app.include_router(router_modules)
    app.include_router(router_pages)
    app.include_router(progress_router)
    app.include_router(router_section_assessment)
    app.include_router(assessment_router)
    app.include_router(certificate_router)
    app.include_router(admin_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "SecureLearn API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


# Configure router dependencies before creating app
from securelearn.assessments.dependencies import (  # noqa: E402
    set_assessment_service_getter,
)
from securelearn.auth.dependencies import set_auth_service_getter  # noqa: E402
from securelearn.training.dependencies import (  # noqa: E402
    set_module_service_getter,
    set_page_service_getter,
    set_section_service_getter,
)


set_auth_service_getter(get_auth_service)
set_section_service_getter(get_section_service)
set_module_service_getter(get_module_service)
set_page_service_getter(get_page_service)
set_assessment_service_getter(get_assessment_service)


app = create_app()
