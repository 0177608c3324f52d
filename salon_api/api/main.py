from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from salon_api.core.logging import bind_owner, configure_logging, correlation_id_var, owner_id_var
from salon_api.core.rate_limit import api_rate_limit
from salon_api.core.settings import get_app_settings
from salon_api.db.run_migrations import main as run_alembic
from salon_api.db.seed import seed_all
from salon_api.schemas.common import ErrorInfo, ErrorResponse, MessageResponse

# Routers
from salon_api.api.routes.auth import router as auth_router
from salon_api.api.routes.customers import router as customers_router
from salon_api.api.routes.products import router as products_router
from salon_api.api.routes.inventory import router as inventory_router
from salon_api.api.routes.staff import router as staff_router
from salon_api.api.routes.payroll import router as payroll_router
from salon_api.api.routes.appointments import router as appointments_router
from salon_api.api.routes.finance import router as finance_router
from salon_api.api.routes.settings import router as settings_router
from salon_api.api.routes.audit import router as audit_router
from salon_api.api.routes.analytics import router as analytics_router

# Configure structured logging once at import
configure_logging()
logger = logging.getLogger(__name__)

settings = get_app_settings()

openapi_tags = [
    {"name": "Health", "description": "Liveness check."},
    {"name": "Auth", "description": "Registration, login, token refresh and logout."},
    {"name": "Customers", "description": "Customers, loyalty points, product holdings and vouchers."},
    {"name": "Products", "description": "Products and services offered by the salon."},
    {"name": "Inventory", "description": "Stock levels, movements, alerts and batch expiry."},
    {"name": "Staff", "description": "Staff members, attendance and weekly schedules."},
    {"name": "Payroll", "description": "Payroll settings, monthly records and calculation."},
    {"name": "Appointments", "description": "Bookings, including recurring series."},
    {"name": "Finance", "description": "Income transactions, expenses and the combined ledger."},
    {"name": "Settings", "description": "Per-owner settings document."},
    {"name": "Audit", "description": "Audit trail of mutations."},
    {"name": "Analytics", "description": "Customer lifetime value and VIP reports."},
    {"name": "Dashboard", "description": "Headline figures for the current day and month."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with correlation_id for logging and error responses.
    Adds 'X-Correlation-ID' to every response. owner_id is filled in once the
    caller is authenticated.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    token_corr = correlation_id_var.set(corr)
    token_owner = bind_owner(None)
    request.state.correlation_id = corr
    request.state.owner_id = None

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        owner_id_var.reset(token_owner)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        owner_id=getattr(request.state, "owner_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"), headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Global handler for HTTP errors to produce a standardized error envelope.
    Headers carried by the exception (Retry-After, WWW-Authenticate) are kept.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else jsonable_encoder(exc.detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    This ensures the database schema is up to date. Seeding is opt-in via settings.
    """
    startup_settings = get_app_settings()
    if startup_settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            # env.py drives its own event loop, so run it off the server loop
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)
            # Do not crash the app in case of transient DB issues; rely on retries or later readiness checks.

    if startup_settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


# Build API v1 router and include sub-routers; every request is rate limited per client
api_v1 = APIRouter(prefix="/api/v1", dependencies=[Depends(api_rate_limit)])


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


api_v1.include_router(auth_router)
api_v1.include_router(customers_router)
api_v1.include_router(products_router)
api_v1.include_router(inventory_router)
api_v1.include_router(staff_router)
api_v1.include_router(payroll_router)
api_v1.include_router(appointments_router)
api_v1.include_router(finance_router)
api_v1.include_router(settings_router)
api_v1.include_router(audit_router)
api_v1.include_router(analytics_router)

# Attach api_v1 to app
app.include_router(api_v1)


# PUBLIC_INTERFACE
def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("salon_api.api.main:app", host="0.0.0.0", port=8000)
