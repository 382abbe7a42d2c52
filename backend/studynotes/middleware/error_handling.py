"""
Error Handling

Provides consistent, informative error responses across the API.

Features:
- Standardized error response format
- Correlation IDs for log tracking
- Sanitized responses (hides internal details in production)
- Custom exception classes for different error types

Usage:
    from studynotes.middleware.error_handling import NotFoundError, setup_error_handling

    setup_error_handling(app, debug=settings.DEBUG)

    # Raise custom exceptions anywhere below a route handler
    raise NotFoundError(f"Question {question_id} not found")

Exception handling hierarchy:
    - HTTPException: left to FastAPI's built-in handler
    - ServiceError: custom exceptions → structured JSON response
    - Exception: catch-all for unexpected errors → sanitized 500 response

ServiceError is rendered by a registered exception handler so the status
code survives FastAPI's exception middleware; ErrorHandlingMiddleware is
the outer catch-all for everything else.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP status code
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Database connection failed", status_code=503)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: int = None,
        error_code: str = None,
        details: dict = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class BadRequestError(ServiceError):
    """Malformed request, e.g. a missing query parameter."""

    status_code = 400
    error_code = "bad_request"


class MissingFieldsError(BadRequestError):
    """
    Required body fields are absent.

    The message names exactly the missing fields.
    """

    error_code = "missing_fields"

    def __init__(self, fields: list[str]):
        super().__init__(
            f"Required fields missing: {', '.join(fields)}",
            details={"missing": fields},
        )
        self.fields = fields


class ValidationError(ServiceError):
    """
    Data validation error.

    Raised when input data fails validation.
    """

    status_code = 422
    error_code = "validation_error"


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a requested resource doesn't exist.
    """

    status_code = 404
    error_code = "not_found"


class ConflictError(ServiceError):
    """Request conflicts with the current state of a resource."""

    status_code = 409
    error_code = "conflict"


class InvalidSessionStateError(ConflictError):
    """Review session operation not allowed in the session's current phase."""

    error_code = "invalid_session_state"


class InvalidTransitionError(ConflictError):
    """AI review status change not allowed by the pipeline state machine."""

    error_code = "invalid_transition"


class StaleQuestionError(ConflictError):
    """Question changed since it was read (duplicate or concurrent schedule write)."""

    error_code = "stale_question"


class LLMError(ServiceError):
    """
    LLM provider error.

    Raised when LLM API calls fail or return unusable output.
    """

    status_code = 502
    error_code = "llm_error"


# =============================================================================
# Error Rendering
# =============================================================================


def _service_error_response(
    request: Request, exc: ServiceError, debug: bool
) -> JSONResponse:
    error_id = str(uuid4())[:8]
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"[{error_id}] {exc.error_code}: {exc.message}",
        extra={
            "error_id": error_id,
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
    )

    # Client errors keep their details; server errors only in debug mode
    details = exc.details if (debug or exc.status_code < 500) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "error_id": error_id,
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    - Catches unhandled exceptions
    - Logs with correlation ID
    - Returns consistent error format
    - Hides internal details in production
    """

    def __init__(self, app, debug: bool = False):
        """
        Initialize middleware.

        Args:
            app: FastAPI/Starlette application
            debug: Whether to include stack traces in responses
        """
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any errors."""
        try:
            return await call_next(request)

        except HTTPException:
            raise

        except ServiceError as e:
            return _service_error_response(request, e, self.debug)

        except Exception as e:
            error_id = str(uuid4())[:8]
            logger.error(
                f"[{error_id}] Unhandled error: {type(e).__name__}: {e}",
                extra={
                    "error_id": error_id,
                    "path": request.url.path,
                    "method": request.method,
                    "traceback": traceback.format_exc(),
                },
            )

            content = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "error_id": error_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            if self.debug:
                content["details"] = {
                    "exception": type(e).__name__,
                    "message": str(e),
                    "traceback": traceback.format_exc(),
                }

            return JSONResponse(status_code=500, content=content)


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    Args:
        app: FastAPI application instance
        debug: Whether to include stack traces in responses
    """

    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        return _service_error_response(request, exc, debug)

    app.add_exception_handler(ServiceError, handle_service_error)
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling enabled (debug={debug})")


def error_message(exc: Exception) -> Optional[str]:
    """Message of a ServiceError, or the exception text for anything else."""
    if isinstance(exc, ServiceError):
        return exc.message
    return str(exc) or type(exc).__name__
