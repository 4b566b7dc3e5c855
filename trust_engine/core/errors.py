"""
Trust Engine - Error Handling

Error taxonomy for the contribution pipeline plus the FastAPI handlers that
render it. Request-aborting errors (validation, access, moderation,
persistence) are converted into a structured failure result by the pipeline;
SideEffectError is only ever logged.
"""

from __future__ import annotations

import logging

import psycopg
import psycopg.errors
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

# Client errors (4xx)
ERROR_VALIDATION = "validation_error"
ERROR_INVALID_IDENTITY = "invalid_identity"
ERROR_ACCESS_DENIED = "access_denied"
ERROR_MODERATION_REJECTED = "moderation_rejected"
ERROR_NOT_FOUND = "not_found"
ERROR_CONFLICT = "conflict"
ERROR_BAD_REQUEST = "bad_request"

# Server errors (5xx)
ERROR_INTERNAL = "internal_error"
ERROR_PERSISTENCE = "persistence_error"
ERROR_SCHEMA_MISSING = "schema_missing"
ERROR_STORAGE_PERMISSION = "storage_permission_denied"
ERROR_SIDE_EFFECT = "side_effect_error"


# =============================================================================
# Exceptions
# =============================================================================


class TrustEngineError(Exception):
    """Base exception for pipeline business logic errors."""

    def __init__(
        self,
        message: str,
        error_code: str = ERROR_INTERNAL,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code


class ValidationError(TrustEngineError):
    """Submitted input failed validation. No I/O was attempted."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, error_code=ERROR_VALIDATION, status_code=422)
        self.field = field


class InvalidIdentity(TrustEngineError):
    """Caller identity could not be resolved to a non-empty id."""

    def __init__(self, message: str = "You must be signed in to do that"):
        super().__init__(message, error_code=ERROR_INVALID_IDENTITY, status_code=401)


class AccessDenied(TrustEngineError):
    """Caller is banned or lacks the role required for the action."""

    def __init__(self, message: str = "Your laboratory access has been restricted"):
        super().__init__(message, error_code=ERROR_ACCESS_DENIED, status_code=403)


class ModerationRejected(TrustEngineError):
    """Guest content was judged unsafe by the safety classifier."""

    def __init__(self, message: str = "Content did not pass moderation", reason: str = ""):
        super().__init__(message, error_code=ERROR_MODERATION_REJECTED, status_code=422)
        self.reason = reason


class PersistenceError(TrustEngineError):
    """The contribution row could not be written."""

    def __init__(
        self,
        message: str = "Database operation failed",
        error_code: str = ERROR_PERSISTENCE,
        status_code: int = 503,
    ):
        super().__init__(message, error_code=error_code, status_code=status_code)


class SchemaMissingError(PersistenceError):
    """A table, column or function the store relies on does not exist."""

    def __init__(self, message: str = "Storage schema is missing"):
        super().__init__(message, error_code=ERROR_SCHEMA_MISSING, status_code=503)


class ConstraintViolationError(PersistenceError):
    """Foreign key, unique, check or not-null constraint rejected the row."""

    def __init__(self, message: str = "Contribution violates a storage constraint"):
        super().__init__(message, error_code=ERROR_CONFLICT, status_code=409)


class StoragePermissionError(PersistenceError):
    """The database role is not allowed to perform the write."""

    def __init__(self, message: str = "Storage permission denied"):
        super().__init__(message, error_code=ERROR_STORAGE_PERMISSION, status_code=503)


class SideEffectError(TrustEngineError):
    """A post-commit effect failed. Logged, never surfaced to the caller."""

    def __init__(self, effect: str, cause: BaseException):
        super().__init__(
            f"Side effect '{effect}' failed: {type(cause).__name__}: {cause}",
            error_code=ERROR_SIDE_EFFECT,
            status_code=500,
        )
        self.effect = effect
        self.cause = cause


def classify_persistence_error(exc: Exception) -> PersistenceError:
    """
    Map a psycopg exception to the matching PersistenceError subtype.

    Anything that is already a PersistenceError is returned unchanged.
    """
    if isinstance(exc, PersistenceError):
        return exc
    if isinstance(exc, (psycopg.errors.UndefinedTable, psycopg.errors.UndefinedColumn,
                        psycopg.errors.UndefinedFunction)):
        return SchemaMissingError(f"Storage schema is missing: {exc}")
    if isinstance(exc, psycopg.errors.IntegrityError):
        return ConstraintViolationError(f"Contribution violates a storage constraint: {exc}")
    if isinstance(exc, psycopg.errors.InsufficientPrivilege):
        return StoragePermissionError(f"Storage permission denied: {exc}")
    return PersistenceError(f"Database operation failed: {type(exc).__name__}: {exc}")


# =============================================================================
# Error Response Model
# =============================================================================


class ErrorResponse(BaseModel):
    """
    Standardized error response format.

    All API errors return this structure for consistency.
    """

    error: str  # Machine-readable error code
    message: str  # Human-readable error message
    status_code: int


def create_error_response(status_code: int, error: str, message: str) -> JSONResponse:
    """Create a standardized error response."""
    response = ErrorResponse(error=error, message=message, status_code=status_code)
    return JSONResponse(status_code=status_code, content=response.model_dump())


# =============================================================================
# Exception Handlers
# =============================================================================


async def trust_engine_error_handler(request: Request, exc: TrustEngineError) -> JSONResponse:
    """Render business errors raised outside the pipeline entry point."""
    if exc.status_code >= 500:
        logger.error(
            "%s on %s: %s",
            exc.error_code,
            request.url.path,
            exc.message,
            extra={"error_code": exc.error_code},
        )
    return create_error_response(exc.status_code, exc.error_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Map standard HTTP errors to our error format."""
    error_map = {
        400: ERROR_BAD_REQUEST,
        401: ERROR_INVALID_IDENTITY,
        403: ERROR_ACCESS_DENIED,
        404: ERROR_NOT_FOUND,
        409: ERROR_CONFLICT,
    }
    error_code = error_map.get(exc.status_code, ERROR_INTERNAL)

    if exc.status_code >= 500:
        logger.error("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail)

    return create_error_response(exc.status_code, error_code, str(exc.detail))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert request body validation errors to the structured format."""
    messages = []
    for error in exc.errors():
        loc = ".".join(str(x) for x in error.get("loc", []))
        messages.append(f"{loc}: {error.get('msg', 'invalid')}" if loc else error.get("msg", ""))

    logger.warning("Validation error on %s: %d errors", request.url.path, len(messages))

    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ERROR_VALIDATION,
        "; ".join(messages) or "Request validation failed",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unhandled exceptions.

    Logs the full traceback but returns a generic error to the client.
    """
    logger.error(
        "Unhandled exception: %s: %s",
        type(exc).__name__,
        exc,
        exc_info=True,
    )
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ERROR_INTERNAL,
        "An unexpected error occurred. Please try again later.",
    )


def setup_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app."""
    app.add_exception_handler(TrustEngineError, trust_engine_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Error handlers registered")
