# backend/portfolio_tracker/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)

Run with:
    uvicorn portfolio_tracker.main:app --app-dir backend
"""

import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from portfolio_tracker import __version__
from portfolio_tracker.config import settings
from portfolio_tracker.database import check_database_health, get_db
from portfolio_tracker.dependencies import get_shared_cache
from portfolio_tracker.middleware import CorrelationIdMiddleware
from portfolio_tracker.routers import equity_router, simulations_router
from portfolio_tracker.schemas.errors import ErrorDetail, FieldError, ValidationErrorDetail
from portfolio_tracker.services.cache import RedisCache
from portfolio_tracker.services.exceptions import (
    InvalidRangeError,
    NoPriceDataError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from portfolio_tracker.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()

# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Portfolio equity curves, DCA/HODL simulations and preset portfolios",
    version=__version__,
)

# =============================================================================
# MIDDLEWARE
# =============================================================================

# Extracts/generates correlation IDs and adds them to response headers
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# These handlers catch service-layer exceptions and convert them to
# consistent HTTP responses. Handlers are matched on the most specific
# class, so ServiceError only sees what nothing else claims.
# =============================================================================


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle missing portfolios and unknown presets (404)."""
    logger.warning(f"{exc.resource_type} not found: {exc.resource_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={
                "resource_type": exc.resource_type,
                "resource_id": exc.resource_id,
            },
        ).model_dump(),
    )


@app.exception_handler(NoPriceDataError)
async def no_price_data_handler(request: Request, exc: NoPriceDataError) -> JSONResponse:
    """Handle a required symbol without price history (404)."""
    logger.warning(f"No price data: {exc.symbol}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="NoPriceDataError",
            message=str(exc),
            details={"symbol": exc.symbol},
        ).model_dump(),
    )


@app.exception_handler(InvalidRangeError)
async def invalid_range_handler(request: Request, exc: InvalidRangeError) -> JSONResponse:
    """Handle reversed or future date ranges (400)."""
    logger.warning(f"Invalid range: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="InvalidRangeError",
            message=str(exc),
            details={
                "start_date": exc.start_date.isoformat(),
                "end_date": exc.end_date.isoformat(),
            },
        ).model_dump(),
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="ValidationError",
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to our standard
    ErrorDetail format for API consistency.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        422: "ValidationError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    error_type = error_types.get(exc.status_code, "HTTPError")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_type,
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors with consistent format.

    Converts the default 422 validation error to our ValidationErrorDetail format.
    """
    errors = [
        FieldError(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            type=error["type"],
        )
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(
            error="ValidationError",
            message="Request validation failed",
            details=errors,
        ).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(equity_router)  # /portfolios/{id}/equity-curve, /summary, ...
app.include_router(simulations_router)  # /simulations/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
def root():
    """
    API root - returns basic application info.
    """
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    **Response Status Codes:**
    - 200: All systems healthy, or the shared cache degraded
    - 503: Database unhealthy - do not route traffic here

    Redis is non-critical: when it is down, simulations are recomputed
    instead of served from the cache.
    """
    checks = {"database": {**check_database_health(db), "critical": True}}
    critical_healthy = checks["database"]["status"] == "healthy"
    overall_status = "healthy" if critical_healthy else "unhealthy"

    shared_cache = get_shared_cache()
    if isinstance(shared_cache, RedisCache):
        redis_healthy = shared_cache.ping()
        checks["redis"] = {
            "status": "healthy" if redis_healthy else "unhealthy",
            "critical": False,
        }
        if not redis_healthy and overall_status == "healthy":
            overall_status = "degraded"
    else:
        checks["cache"] = {"status": "healthy", "critical": False, "backend": "in-process"}

    response_data = {
        "status": overall_status,
        "checks": checks,
    }

    if not critical_healthy:
        return JSONResponse(
            status_code=503,
            content=response_data,
        )

    return response_data
