"""FastAPI application entry point.

Creates and configures the FastAPI application:
- Lifespan that builds the service container at startup and closes it
  at shutdown
- Exception handlers mapping domain errors to the error envelope
- API v1 router mounting
- Database health check and Prometheus metrics endpoints
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from webapp.api.v1.router import router as v1_router
from webapp.container import ServiceContainer, build_container
from webapp.core.config import Settings
from webapp.core.config import settings as default_settings
from webapp.core.errors import APIError, ErrorKind
from webapp.core.logging_config import configure_logging
from webapp.core.responses import ErrorDetail, ErrorResponse

logger = structlog.get_logger()


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Handle domain errors.

    Args:
        request: The incoming request.
        exc: The APIError that was raised.

    Returns:
        JSONResponse with error envelope and the error's status code.
    """
    if exc.status_code >= 500:
        logger.error("Request failed", code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        ).model_dump(),
    )


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI's request validation errors to a 400 envelope."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code=ErrorKind.VALIDATION_ERROR.value,
                message="Request validation failed",
                details=[
                    {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                    for e in exc.errors()
                ],
            )
        ).model_dump(),
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Returns 500 INTERNAL_ERROR without exposing stack traces; the exception
    is logged for debugging.
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code=ErrorKind.INTERNAL_ERROR.value,
                message="An unexpected error occurred",
            )
        ).model_dump(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the container on startup (unless one was injected) and close it."""
    app_settings: Settings = app.state.settings
    configure_logging(app_settings.log_level, app_settings.log_format)

    if getattr(app.state, "container", None) is None:
        app.state.container = build_container(app_settings)
    app.state.container.start_background_tasks()
    logger.info("Application started", environment=app_settings.environment)

    try:
        yield
    finally:
        container: ServiceContainer = app.state.container
        await container.aclose()
        logger.info("Application stopped")


def create_app(
    settings: Settings | None = None,
    *,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; the environment-loaded ones by default.
        container: Pre-built services (tests). Built in the lifespan otherwise.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Webapp Accounts API",
        version="1.0.0",
        description="Account management, email verification, and profile pictures",
        lifespan=lifespan,
    )
    app.state.settings = settings or default_settings
    app.state.container = container

    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(v1_router, prefix="/v1")

    @app.get("/healthz")
    async def health_check(request: Request) -> Response:
        """Database health check: 200 if it answers, 503 otherwise.

        The check takes no parameters; a query string or body is a 400.
        """
        headers = {"Cache-Control": "no-cache"}
        if request.url.query or await request.body():
            return Response(status_code=status.HTTP_400_BAD_REQUEST, headers=headers)
        services: ServiceContainer = request.app.state.container
        try:
            async with services.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError):
            logger.warning("Health check failed", exc_info=True)
            return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, headers=headers)
        return Response(status_code=status.HTTP_200_OK, headers=headers)

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


# Used by uvicorn: uvicorn webapp.main:app
app = create_app()
