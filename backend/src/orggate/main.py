"""orggate - Main FastAPI Application

Tenant resolution and capability authorization engine.

This module creates and configures the main FastAPI application, including:
- API routers (workspace, channels, capabilities, approvals, resources)
- Middleware (request ID correlation, org hint extraction, CORS)
- Exception handlers (domain errors map to fixed public messages)
- Health and observability endpoints
- The in-process maintenance scheduler (SCHEDULER_ENABLED)
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .approvals.router import router as approvals_router
from .capabilities.router import router as capabilities_router
from .config import get_settings
from .errors import OrgGateError
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router
from .scheduling import build_default_scheduler
from .tenancy.middleware import TenantContextMiddleware
from .tenancy.router import router as resources_router
from .workspace.router import channel_router, router as workspace_router

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

_docs_enabled = settings.ENVIRONMENT != "production"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Startup: start the maintenance scheduler when enabled
    - Shutdown: stop it
    """
    logger.info("orggate API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = build_default_scheduler()
        scheduler.start()
    app.state.scheduler = scheduler

    yield

    if scheduler is not None:
        scheduler.stop()
    logger.info("orggate API shutting down...")


app = FastAPI(
    title="orggate API",
    description="Tenant resolution and capability authorization engine",
    version="0.1.0",
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
    openapi_url="/openapi.json" if _docs_enabled else None,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

# Request ID Middleware (must be first for proper correlation)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

# Org hint extraction (X-Organization-Id / X-Organization-Slug / subdomain)
app.add_middleware(TenantContextMiddleware)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(OrgGateError)
async def orggate_exception_handler(request: Request, exc: OrgGateError) -> JSONResponse:
    """Map domain errors to their fixed public message.

    The internal reason is logged and never serialized.
    """
    logger.info(
        f"{exc.kind} on {request.method} {request.url.path}",
        extra={"reason": exc.reason, "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry exception objects that are not JSON serializable
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": jsonable_errors(exc),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors.

    Logs the full error but returns a generic message to prevent
    information leakage.
    """
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "message": "A database error occurred. Please try again later.",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle uncaught exceptions.

    Full details are logged but not exposed to the client.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

# Observability (health, metrics)
app.include_router(observability_router)

# Workspace selection & channel hook
app.include_router(workspace_router, prefix="/api/v1")
app.include_router(channel_router, prefix="/api/v1")

# Capabilities & approvals
app.include_router(capabilities_router, prefix="/api/v1")
app.include_router(approvals_router, prefix="/api/v1")

# Resource access checks
app.include_router(resources_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    """Root endpoint - API information."""
    return {
        "name": "orggate API",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs" if _docs_enabled else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "orggate.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
