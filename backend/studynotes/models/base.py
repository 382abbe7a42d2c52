"""
Strict Base Model for API Request/Response Validation

This module provides base classes with strict validation settings to harden
the API contract between backend and frontend.

The frontend speaks camelCase JSON (noteId, easeFactor, nextReview) while
Python code uses snake_case attributes. Both base classes generate camelCase
aliases and accept either spelling on input; FastAPI serializes responses
by alias.

Usage:
    # For request bodies (strictest validation)
    class StartReviewRequest(StrictRequest):
        mode: ReviewMode
        scope_id: str  # sent as "scopeId"

    # For response bodies (allows extra fields from DB)
    class QuestionListResponse(StrictResponse):
        success: bool = True
        questions: list[Question]

Architecture:
    API Request → StrictRequest (extra="forbid") → Route Handler
    DB Model → StrictResponse (extra="ignore") → API Response
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StrictRequest(BaseModel):
    """
    Base model for API request bodies with strict validation.

    Rejects any fields not explicitly declared in the model, catching
    frontend typos and mismatches at request time rather than runtime.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - alias_generator=to_camel: camelCase on the wire
        - str_strip_whitespace=True: Trims whitespace from strings
    """

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
        str_strip_whitespace=True,
        from_attributes=True,
    )


class StrictResponse(BaseModel):
    """
    Base model for API response bodies and stored records.

    More lenient than StrictRequest: extra fields (DB columns, UI-only
    fields such as noteTitle) are ignored rather than rejected.
    """

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
        from_attributes=True,
    )


# =============================================================================
# Common Response Patterns
# =============================================================================


class ErrorDetail(StrictResponse):
    """
    Standardized error response detail.

    Matches the error format from the error_handling middleware.
    """

    model_config = ConfigDict(extra="ignore", alias_generator=None, from_attributes=True)

    error: str  # Error code (e.g., "validation_error")
    message: str  # Human-readable message
    error_id: str  # Correlation ID for log lookup
    details: Optional[dict] = None
    timestamp: datetime


class SuccessResponse(StrictResponse):
    """
    Simple success response for operations without complex output.

    Example usage:
        @router.delete("/questions", response_model=SuccessResponse)
        async def delete_question(id: str):
            ...
            return SuccessResponse(message="Question deleted")
    """

    success: bool = True
    message: str
