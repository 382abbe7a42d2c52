"""
Questions API Router

CRUD for spaced repetition questions authored inside notes.

Endpoints:
- POST /api/questions - Create or replace a question
- GET /api/questions?noteId= - List a note's questions
- GET /api/questions/{id} - Get one question
- DELETE /api/questions?id= - Delete a question
"""

import logging
from typing import Any, Optional

import pydantic
from fastapi import APIRouter, Body, Depends, Query

from studynotes.config import settings
from studynotes.dependencies import get_repository
from studynotes.middleware.error_handling import (
    BadRequestError,
    MissingFieldsError,
    NotFoundError,
    ValidationError,
)
from studynotes.models.base import ErrorDetail, SuccessResponse
from studynotes.models.review import (
    Question,
    QuestionListResponse,
    QuestionResponse,
    SaveQuestionResponse,
)
from studynotes.services.review.repository import ReviewRepository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/questions", tags=["questions"])

REQUIRED_FIELDS = ("id", "noteId", "userId", "answer", "question", "timeStamp", "history")


def missing_fields(payload: dict[str, Any]) -> list[str]:
    """Required fields that are absent, null or empty strings, in declaration order."""
    return [
        name
        for name in REQUIRED_FIELDS
        if payload.get(name) is None or payload.get(name) == ""
    ]


@router.post(
    "",
    response_model=SaveQuestionResponse,
    responses={400: {"model": ErrorDetail}, 422: {"model": ErrorDetail}},
)
async def save_question(
    payload: dict[str, Any] = Body(...),
    repository: ReviewRepository = Depends(get_repository),
) -> SaveQuestionResponse:
    """
    Create or replace a question.

    Schedule fields (repetition, interval, easeFactor, nextReview,
    lastReview) are optional; new questions start with the initial ease
    factor and no schedule, which makes them due immediately.
    """
    missing = missing_fields(payload)
    if missing:
        raise MissingFieldsError(missing)

    payload.setdefault("easeFactor", settings.SM2_INITIAL_EASE_FACTOR)
    try:
        question = Question.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(
            "Invalid question",
            details={"errors": e.errors(include_url=False, include_context=False)},
        )

    saved = await repository.save_question(question)
    return SaveQuestionResponse(message="Question saved successfully", question=saved)


@router.get("", response_model=QuestionListResponse, responses={400: {"model": ErrorDetail}})
async def list_questions(
    note_id: Optional[str] = Query(None, alias="noteId", description="Owning note"),
    repository: ReviewRepository = Depends(get_repository),
) -> QuestionListResponse:
    """List the questions of a note."""
    if not note_id:
        raise BadRequestError("noteId is required")

    questions = await repository.list_questions_by_note(note_id)
    return QuestionListResponse(questions=questions)


@router.get(
    "/{question_id}",
    response_model=QuestionResponse,
    responses={404: {"model": ErrorDetail}},
)
async def get_question(
    question_id: str,
    repository: ReviewRepository = Depends(get_repository),
) -> QuestionResponse:
    question = await repository.get_question(question_id)
    if question is None:
        raise NotFoundError(f"Question {question_id} not found")
    return QuestionResponse(question=question)


@router.delete(
    "",
    response_model=SuccessResponse,
    responses={400: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
async def delete_question(
    question_id: Optional[str] = Query(None, alias="id", description="Question to delete"),
    repository: ReviewRepository = Depends(get_repository),
) -> SuccessResponse:
    """Delete a question."""
    if not question_id:
        raise BadRequestError("id is required")

    if not await repository.delete_question(question_id):
        raise NotFoundError(f"Question {question_id} not found")

    return SuccessResponse(message="Question deleted successfully")
