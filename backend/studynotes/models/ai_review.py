"""
Pydantic models for AI-assisted review sessions.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from studynotes.enums.review import (
    AiQuestionType,
    AiReviewDifficulty,
    AiReviewEvaluation,
    AiReviewMode,
    AiReviewQuestionStatus,
    AiReviewStatus,
    ScopeKind,
)
from studynotes.models.base import StrictRequest, StrictResponse


class AiReviewQuestion(StrictResponse):
    """A generated question together with the user's answer and its evaluation."""

    id: str
    question_type: AiQuestionType = AiQuestionType.FACT_BASED
    question: str
    options: Optional[list[str]] = None  # Multiple choice / matching only
    answer: Optional[str] = None
    time_spent: int = 0  # Seconds
    status: AiReviewQuestionStatus = AiReviewQuestionStatus.GENERATED
    evaluation: Optional[AiReviewEvaluation] = None
    score: Optional[float] = None  # 0-100
    ai_message: Optional[str] = None


class AiReviewResult(StrictResponse):
    total_questions: int
    correct_answers: int
    skipped_answers: int = 0


class AiReviewSession(StrictResponse):
    """Server-tracked AI review attempt; the record is the source of truth for resuming."""

    id: str
    user_id: str
    source_id: str
    source_type: ScopeKind
    status: AiReviewStatus = AiReviewStatus.PENDING
    mode: AiReviewMode = AiReviewMode.SEPARATE_QUESTIONS
    difficulty: Optional[AiReviewDifficulty] = None
    question_count: int = 5
    generated_questions: list[AiReviewQuestion] = Field(default_factory=list)
    result: Optional[AiReviewResult] = None
    model_version: Optional[str] = None
    error_message: Optional[str] = None
    requested_at: datetime
    questions_generated_at: Optional[datetime] = None
    session_started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class AiReviewSessionList(StrictResponse):
    success: bool = True
    sessions: list[AiReviewSession]


class AiReviewCreateRequest(StrictRequest):
    """Request a new AI review for a note, folder or user."""

    user_id: str = Field(..., min_length=1)
    source_id: str = Field(..., min_length=1)
    source_type: ScopeKind = ScopeKind.NOTE
    difficulty: AiReviewDifficulty = AiReviewDifficulty.MEDIUM
    mode: AiReviewMode = AiReviewMode.SEPARATE_QUESTIONS
    question_count: Optional[int] = Field(default=None, ge=1)


class AiReviewAnswer(StrictRequest):
    question_id: str
    answer: Optional[str] = None  # Empty or missing: skipped
    time_spent: int = Field(default=0, ge=0)


class AiReviewSubmitRequest(StrictRequest):
    answers: list[AiReviewAnswer]


class AnswerEvaluation(StrictResponse):
    """Evaluator verdict for one answer."""

    evaluation: AiReviewEvaluation
    score: float = Field(ge=0, le=100)
    message: str = ""


class GeneratedQuestion(StrictResponse):
    """Question as returned by the generator, before it joins a session."""

    question_type: AiQuestionType
    question: str
    options: Optional[list[str]] = None
