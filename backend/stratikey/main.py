"""
Main Application Entry Point
============================

Responsibilities:
- Initialize FastAPI application
- Configure middleware stack
- Register API routers
- Set up exception handlers (every failure uses the error envelope)
- Provide health check endpoints

IMPORTANT:
    Database tables are managed via Alembic migrations.
    Do NOT use Base.metadata.create_all() in production.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stratikey.core.config import settings
from stratikey.core.exceptions import (
    ErrorCodes,
    RateLimitError,
    StratikeyException,
    to_error_envelope,
)
from stratikey.core.logging import configure_logging, get_logger
from stratikey.db.session import check_database_connection

# Import models so metadata is complete for Alembic
from stratikey import models  # noqa: F401

from stratikey.middleware import (
    RateLimitMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from stratikey.routes import approval_routes, organization_routes, permission_routes

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Application Lifespan Handler
# =====================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: configure logging and check the database connection.
    Shutdown: log completion.
    """
    configure_logging()
    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if not check_database_connection():
        logger.error("database_connection_failed_on_startup")
    else:
        logger.info("database_connection_established")

    try:
        yield
    except asyncio.CancelledError:
        logger.debug("application_shutdown_requested")
        raise
    finally:
        logger.info("application_shutdown_complete")


# =====================================
# FastAPI App Initialization
# =====================================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Stratikey - Multi-Tenant Marketing Workspace Core

    ## Organizations

    A user may belong to several organizations with a different role in
    each. Exactly one organization is active per request: the one named by
    the `X-Organization-Id` header (403 if the user is not a member), else
    the one stored in the selection cookie, else the user's first membership.

    ## Authorization

    Every operation is checked against a static role x module permission
    matrix (`read`, `create`, `update`, `delete`). Unlisted combinations
    are denied.

    ## Approvals

    Assets and tasks move through `DRAFT`, `IN_REVIEW`, `APPROVED` and
    `CHANGES_REQUESTED`. Reviewers approve or request changes through
    `PATCH /api/{assets|tasks}/{id}/approval`.
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)


# =====================================
# CORS Configuration
# =====================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.cors_methods_list,
    allow_headers=settings.cors_headers_list,
    max_age=3600,
)


# =====================================
# Custom Middleware
# =====================================

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestContextMiddleware)


# =====================================
# Exception Handlers
# =====================================

@app.exception_handler(StratikeyException)
async def stratikey_exception_handler(request: Request, exc: StratikeyException):
    """Render domain exceptions in the error envelope."""
    logger.warning(
        "request_failed",
        exception_type=type(exc).__name__,
        code=exc.code,
        status_code=exc.status_code,
        path=request.url.path,
    )

    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=to_error_envelope(exc),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are reported as 400 VALIDATION_ERROR."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning("request_validation_error", path=request.url.path, errors=errors)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": "Validation error",
                "details": {"errors": errors},
            }
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures and answer with a generic 500 envelope."""
    logger.error(
        "unhandled_exception",
        exception_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    message = "An unexpected error occurred"
    if settings.DEBUG and not settings.is_production:
        message = str(exc) or message

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": ErrorCodes.INTERNAL_ERROR, "message": message}},
    )


# =====================================
# Register Routers
# =====================================

app.include_router(organization_routes.router)
app.include_router(permission_routes.router)
app.include_router(approval_routes.router)


# =====================================
# Health Check Endpoints
# =====================================

@app.get(
    "/",
    tags=["Health"],
    summary="Basic Health Check",
)
def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get(
    "/health",
    tags=["Health"],
    summary="Detailed Health Check",
    description="Returns detailed health status including database connectivity.",
)
def detailed_health_check():
    db_healthy = check_database_connection()

    return {
        "status": "healthy" if db_healthy else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {
            "database": "healthy" if db_healthy else "unhealthy",
        },
    }


@app.get(
    "/ready",
    tags=["Health"],
    summary="Readiness Check",
)
def readiness_check():
    """200 if ready, 503 if the database is unreachable."""
    if not check_database_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {"status": "ready"}
