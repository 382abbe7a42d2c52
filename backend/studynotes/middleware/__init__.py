"""Middleware and error types."""

from studynotes.middleware.error_handling import (
    BadRequestError,
    ConflictError,
    ErrorHandlingMiddleware,
    InvalidSessionStateError,
    InvalidTransitionError,
    LLMError,
    MissingFieldsError,
    NotFoundError,
    ServiceError,
    StaleQuestionError,
    ValidationError,
    setup_error_handling,
)

__all__ = [
    "BadRequestError",
    "ConflictError",
    "ErrorHandlingMiddleware",
    "InvalidSessionStateError",
    "InvalidTransitionError",
    "LLMError",
    "MissingFieldsError",
    "NotFoundError",
    "ServiceError",
    "StaleQuestionError",
    "ValidationError",
    "setup_error_handling",
]
