"""
FastAPI application initialization for the Legal Case Management Service.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from legal_case_management.api.routers import (
    allocations,
    cases,
    communications,
    documents,
    error_handling,
    lawyers,
    master_data,
    notices,
    notifications,
    system as system_routes,
    templates,
    triggers,
)
from legal_case_management.config import get_settings
from legal_case_management.domain.errors import (
    AccessDenied,
    ConflictError,
    DomainError,
    ResourceNotFound,
    ServiceUnavailable,
    ValidationFailed,
)
from legal_case_management.observability.middleware import RequestIdAndTimingMiddleware
from legal_case_management.observability.rate_limiter import setup_rate_limiter
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.services.security import validate_request_size
from legal_case_management.utils.logging import setup_logging

# Initialize logging
logger = setup_logging()
app_logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Legal Case Management API (lifespan init)")
    # A system injected before startup (tests) is kept as is
    if getattr(app.state, "system", None) is None:
        app.state.system = LegalCaseSystem(settings=settings)
    app.state.settings = settings
    try:
        yield
    finally:
        logger.info("Shutting down Legal Case Management API (lifespan cleanup)")


app = FastAPI(
    title=settings.app_name,
    description="API for loan recovery legal case, notice and master data management",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
cors_origins = (
    settings.cors_allowed_origins
    if settings.production_mode and settings.cors_allowed_origins
    else settings.cors_allow_origins
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_rate_limiter(app)

for module in (
    cases,
    lawyers,
    allocations,
    documents,
    notices,
    triggers,
    communications,
    notifications,
    error_handling,
    master_data,
    templates,
    system_routes,
):
    app.include_router(module.router)

# Add request ID and access logging middleware
app.add_middleware(RequestIdAndTimingMiddleware)


@app.middleware("http")
async def validate_request_size_middleware(request: Request, call_next):
    """Validate request body size before processing."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            validate_request_size(int(content_length), settings.max_request_size_mb)
        except ValueError as e:
            request_id = getattr(request.state, "request_id", "unknown")
            app_logger.warning(f"Request too large: {e}", extra={"request_id": request_id})
            return JSONResponse(
                status_code=413,
                content={
                    "error": f"Request body too large. Maximum size: {settings.max_request_size_mb}MB",
                    "detail": str(e),
                    "request_id": request_id,
                },
            )
    return await call_next(request)


# User-friendly error messages mapping
ERROR_MESSAGES = {
    ResourceNotFound: "The requested resource was not found.",
    ValidationFailed: "The request data is invalid. Please check your input.",
    ConflictError: "A conflict occurred while processing your request.",
    AccessDenied: "You do not have access to this resource.",
    ServiceUnavailable: "Service temporarily unavailable. Please try again later.",
    DomainError: "An error occurred while processing your request.",
    ValueError: "Invalid input provided. Please check your request.",
}


def get_user_friendly_error(exc: Exception) -> str:
    """Get user-friendly error message for exception."""
    for exc_type in type(exc).__mro__:
        if exc_type in ERROR_MESSAGES:
            return ERROR_MESSAGES[exc_type]
    return "An error occurred. Please try again later."


def error_response(request: Request, status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": get_user_friendly_error(exc),
            "detail": str(exc),
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    )


# Domain exception handlers -> HTTP mapping with user-friendly messages
@app.exception_handler(ResourceNotFound)
async def handle_not_found(request: Request, exc: ResourceNotFound):
    app_logger.info(f"Resource not found: {exc}")
    return error_response(request, 404, exc)


@app.exception_handler(ValidationFailed)
async def handle_validation(request: Request, exc: ValidationFailed):
    app_logger.warning(f"Validation failed: {exc}")
    return error_response(request, 422, exc)


@app.exception_handler(ConflictError)
async def handle_conflict(request: Request, exc: ConflictError):
    app_logger.warning(f"Conflict: {exc}")
    return error_response(request, 409, exc)


@app.exception_handler(AccessDenied)
async def handle_access_denied(request: Request, exc: AccessDenied):
    app_logger.warning(f"Access denied: {exc}")
    return error_response(request, 403, exc)


@app.exception_handler(ServiceUnavailable)
async def handle_service_unavailable(request: Request, exc: ServiceUnavailable):
    app_logger.error(f"Service unavailable: {exc}", exc_info=True)
    return error_response(request, 503, exc)


@app.exception_handler(DomainError)
async def handle_domain_error(request: Request, exc: DomainError):
    app_logger.error(f"Domain error: {exc}", exc_info=True)
    return error_response(request, 400, exc)


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError):
    """Handle ValueError (e.g., from input validation)."""
    app_logger.warning(f"Value error: {exc}")
    return error_response(request, 400, exc)


@app.exception_handler(Exception)
async def handle_generic_exception(request: Request, exc: Exception):
    """Handle all other exceptions with user-friendly message."""
    request_id = getattr(request.state, "request_id", "unknown")
    app_logger.error(f"Unhandled exception: {exc}", exc_info=True, extra={"request_id": request_id})
    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred. Please try again later.",
            "detail": exc.__class__.__name__,
            "request_id": request_id,
        },
    )
