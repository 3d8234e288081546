"""
FastAPI application entry point.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
import traceback
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from .config import get_settings
from .dependencies import MetricsDep, SettingsDep
from .middleware import LoggingMiddleware
from .models.error_response import ErrorResponse
from .routes.planner import router as planner_router
from .utils.exceptions import PlanicoError
from .utils.logging_config import configure_logging
from .utils.metrics import PlannerMetrics

logger = logging.getLogger(__name__)


# ============================================================================
# Global Exception Handlers
# ============================================================================


async def planico_error_handler(request: Request, exc: PlanicoError) -> JSONResponse:
    """
    Convert PlanicoError instances into the standardized ErrorResponse format.

    4xx errors are logged at WARNING; 5xx errors at ERROR with traceback and
    are reported to Sentry.
    """
    settings = get_settings()

    log_context = {
        "error_code": exc.code,
        "status_code": exc.status_code,
        "detail": exc.detail,
        "path": request.url.path,
        "method": request.method,
    }

    if exc.status_code >= 500:
        logger.error(
            f"PlanicoError [500-level]: {exc.code} - {exc.message}",
            exc_info=exc,
            extra=log_context,
        )
        sentry_sdk.capture_exception(exc)
    else:
        logger.warning(f"PlanicoError: {exc.code} - {exc.message}", extra=log_context)

    error_response = ErrorResponse(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        detail=exc.detail if settings.DEBUG else None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(exclude_none=True),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Reformat request validation errors as a 400 ErrorResponse.
    """
    settings = get_settings()
    errors = exc.errors()

    if len(errors) == 1:
        error = errors[0]
        field = " -> ".join(str(loc) for loc in error["loc"])
        message = f"Validation error in field '{field}': {error['msg']}"
    else:
        message = f"Request validation failed with {len(errors)} error(s)"

    error_response = ErrorResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="VALIDATION_ERROR",
        message=message,
        detail=str(errors) if settings.DEBUG else None,
    )

    logger.info(f"Validation error: {message}", extra={"path": request.url.path})

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response.model_dump(exclude_none=True),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Safety net for unexpected errors. Logs the full traceback and returns a
    generic message so internal details never reach the client.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=exc,
        extra={
            "exception_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
            "traceback": "".join(traceback.format_exception(exc)),
        },
    )
    sentry_sdk.capture_exception(exc)

    error_response = ErrorResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="INTERNAL_SERVER_ERROR",
        message="An internal server error occurred. Please try again later.",
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(exclude_none=True),
    )


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    settings = get_settings()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if settings.SENTRY_DSN and settings.SENTRY_DSN.strip():
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            sample_rate=1.0,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            ],
            release=settings.APP_VERSION,
        )
        logger.info(
            "Sentry error tracking initialized",
            extra={"environment": settings.ENVIRONMENT, "release": settings.APP_VERSION},
        )
    else:
        logger.warning(
            "Sentry DSN not configured - error tracking disabled",
            extra={"hint": "Set SENTRY_DSN in .env file or environment variable to enable"},
        )

    yield  # Application runs here

    logger.info("Shutting down application...")
    app.state.metrics.close()
    logger.info("Shutdown complete")


def create_app(metrics: PlannerMetrics | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.state.metrics = metrics or PlannerMetrics()

    app.add_exception_handler(PlanicoError, planico_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(LoggingMiddleware, metrics=app.state.metrics)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    @app.get("/")
    async def root(settings: SettingsDep) -> dict[str, str]:
        """Root endpoint."""
        return {"message": settings.APP_NAME, "version": settings.APP_VERSION}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness check."""
        return {"status": "OK"}

    @app.get("/metrics")
    async def metrics_endpoint(metrics: MetricsDep) -> Response:
        """Prometheus scrape endpoint."""
        return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(planner_router)

    return app


# Create app instance
app = create_app()
