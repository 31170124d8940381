"""Error envelope and the exception handlers that produce it.

Every failure leaves the API as::

    {"error": {"category": ..., "code": ..., "detail": ..., "suggestions": [...], "metadata": {...}}}

``code`` is what clients switch on (``UNAUTHORIZED``, ``NOT_FOUND``,
``BAD_REQUEST``, ...); ``suggestions`` and ``metadata`` appear only when set.
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from psycopg.errors import CheckViolation, ForeignKeyViolation, NotNullViolation, UniqueViolation
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from courseforge.auth.exceptions import AuthenticationError, AuthProviderError
from courseforge.exceptions import ProcedureError


logger = logging.getLogger(__name__)


class ErrorCategory:
    """Broad family of an error, for dashboards and client logging."""

    AUTHENTICATION = "AUTHENTICATION_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    DATABASE = "DATABASE_ERROR"
    EXTERNAL_SERVICE = "EXTERNAL_SERVICE_ERROR"
    RATE_LIMIT = "RATE_LIMIT_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class ErrorCode:
    """Machine-readable error kinds."""

    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    BAD_REQUEST = "BAD_REQUEST"

    DB_CONNECTION_FAILED = "DB_CONNECTION_FAILED"
    DB_CONSTRAINT_VIOLATION = "DB_CONSTRAINT_VIOLATION"
    DB_UNIQUE_VIOLATION = "DB_UNIQUE_VIOLATION"
    DB_FOREIGN_KEY_VIOLATION = "DB_FOREIGN_KEY_VIOLATION"

    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL = "INTERNAL_ERROR"


_CATEGORY_BY_CODE = {
    ErrorCode.UNAUTHORIZED: ErrorCategory.AUTHENTICATION,
    ErrorCode.NOT_FOUND: ErrorCategory.RESOURCE_NOT_FOUND,
    ErrorCode.BAD_REQUEST: ErrorCategory.VALIDATION,
}

_ALREADY_EXISTS = "This resource already exists"
_MISSING_REFERENCE = "Referenced resource does not exist"
_BAD_DATA = "Required data is missing or invalid"

# (psycopg error, SQLite message fragment, code, HTTP status, detail)
_INTEGRITY_VIOLATIONS = (
    (UniqueViolation, "unique", ErrorCode.DB_UNIQUE_VIOLATION, 409, _ALREADY_EXISTS),
    (ForeignKeyViolation, "foreign key", ErrorCode.DB_FOREIGN_KEY_VIOLATION, 400, _MISSING_REFERENCE),
    (NotNullViolation, "not null", ErrorCode.DB_CONSTRAINT_VIOLATION, 400, _BAD_DATA),
    (CheckViolation, "check constraint", ErrorCode.DB_CONSTRAINT_VIOLATION, 400, _BAD_DATA),
)


class ExternalServiceError(HTTPException):
    """A service we depend on (video host, identity provider) failed."""

    def __init__(self, service: str, detail: str) -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"{service} service error: {detail}")


def format_error_response(
    category: str,
    code: str,
    detail: str,
    status_code: int,
    suggestions: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the error envelope."""
    error: dict[str, Any] = {"category": category, "code": code, "detail": detail}
    if suggestions:
        error["suggestions"] = suggestions
    if metadata:
        error["metadata"] = metadata
    return JSONResponse(status_code=status_code, content={"error": error})


def _caller(request: Request) -> str:
    return str(getattr(request.state, "user_id", None))


async def handle_procedure_errors(request: Request, exc: ProcedureError) -> JSONResponse:
    """UNAUTHORIZED / NOT_FOUND / BAD_REQUEST raised by the services."""
    logger.info(
        "%s on %s %s: %s",
        exc.code,
        request.method,
        request.url.path,
        exc.message,
        extra={"user_id": _caller(request)},
    )
    return format_error_response(
        category=_CATEGORY_BY_CODE.get(exc.code, ErrorCategory.INTERNAL),
        code=exc.code,
        detail=exc.message,
        status_code=exc.status_code,
    )


async def handle_authentication_errors(request: Request, exc: AuthenticationError) -> JSONResponse:
    """No identity, or one the provider rejected."""
    logger.warning(
        "Rejected unauthenticated %s %s: %s",
        request.method,
        request.url.path,
        exc.detail,
        extra={"client_host": request.client.host if request.client else "unknown"},
    )
    return format_error_response(
        category=ErrorCategory.AUTHENTICATION,
        code=ErrorCode.UNAUTHORIZED,
        detail=str(exc.detail),
        status_code=status.HTTP_401_UNAUTHORIZED,
        suggestions=["Sign in again", "Send the access token as 'Authorization: Bearer <token>'"],
    )


async def handle_auth_provider_errors(request: Request, exc: AuthProviderError) -> JSONResponse:
    logger.error("Auth provider misconfigured on %s %s: %s", request.method, request.url.path, exc.detail)
    return format_error_response(
        category=ErrorCategory.INTERNAL,
        code=ErrorCode.INTERNAL,
        detail="Authentication is not configured on this server",
        status_code=exc.status_code,
    )


async def handle_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed procedure payloads are BAD_REQUEST, with one entry per offending field."""
    errors = [
        {"field": " -> ".join(str(part) for part in error["loc"]), "message": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.info("Invalid payload on %s %s (%d errors)", request.method, request.url.path, len(errors))

    return format_error_response(
        category=ErrorCategory.VALIDATION,
        code=ErrorCode.BAD_REQUEST,
        detail="Invalid input data",
        status_code=status.HTTP_400_BAD_REQUEST,
        metadata={"errors": errors},
    )


async def handle_database_errors(request: Request, exc: DBAPIError) -> JSONResponse:
    """Constraint violations become client errors; anything else is ours."""
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)

    if isinstance(exc, OperationalError):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_CONNECTION_FAILED,
            detail="Database connection error",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            suggestions=["Please try again later"],
        )

    if isinstance(exc, IntegrityError):
        orig = exc.orig
        message = str(orig or exc).lower()
        for violation, fragment, code, status_code, detail in _INTEGRITY_VIOLATIONS:
            if isinstance(orig, violation) or fragment in message:
                return format_error_response(
                    category=ErrorCategory.DATABASE, code=code, detail=detail, status_code=status_code
                )

    return format_error_response(
        category=ErrorCategory.DATABASE,
        code=ErrorCode.INTERNAL,
        detail="A database error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def handle_external_service_errors(request: Request, exc: ExternalServiceError) -> JSONResponse:
    logger.error("External service error on %s %s: %s", request.method, request.url.path, exc.detail)
    return format_error_response(
        category=ErrorCategory.EXTERNAL_SERVICE,
        code=ErrorCode.SERVICE_UNAVAILABLE,
        detail=str(exc.detail),
        status_code=exc.status_code,
        suggestions=["Please try again later"],
    )


async def handle_rate_limit_errors(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.info("Rate limit hit on %s %s: %s", request.method, request.url.path, exc.detail)
    return format_error_response(
        category=ErrorCategory.RATE_LIMIT,
        code=ErrorCode.RATE_LIMITED,
        detail=f"Rate limit exceeded: {exc.detail}",
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )


async def handle_unexpected_errors(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log everything, reveal nothing but an id to quote."""
    error_id = uuid4()
    log_error_context(request, exc, error_id)
    return format_error_response(
        category=ErrorCategory.INTERNAL,
        code=ErrorCode.INTERNAL,
        detail="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        metadata={"error_id": str(error_id)},
        suggestions=["If the problem persists, contact support with the error ID"],
    )


def log_error_context(request: Request, exc: Exception, error_id: UUID | None = None) -> None:
    """Log the request around an unhandled error, minus credentials."""
    context = {
        "error_id": str(error_id) if error_id else None,
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client_host": request.client.host if request.client else "unknown",
        "user_id": _caller(request),
        "error_type": type(exc).__name__,
        "headers": {
            k: v for k, v in request.headers.items() if k.lower() not in ("authorization", "cookie", "x-api-key")
        },
    }
    logger.error("Unhandled error %s", context["error_id"], extra=context, exc_info=exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Route each failure type to its handler."""
    app.add_exception_handler(ProcedureError, handle_procedure_errors)
    app.add_exception_handler(AuthenticationError, handle_authentication_errors)
    app.add_exception_handler(AuthProviderError, handle_auth_provider_errors)
    app.add_exception_handler(RequestValidationError, handle_validation_errors)
    app.add_exception_handler(DBAPIError, handle_database_errors)
    app.add_exception_handler(ExternalServiceError, handle_external_service_errors)
    app.add_exception_handler(RateLimitExceeded, handle_rate_limit_errors)
    app.add_exception_handler(Exception, handle_unexpected_errors)
