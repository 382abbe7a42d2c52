"""
Pydantic models for questions, review sessions and review statistics.

Questions are exchanged with the frontend as camelCase JSON. Dates may be
sent either as ISO strings or as epoch milliseconds, which pydantic parses
into datetimes.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import Field

from studynotes.enums.review import Rating, ReviewMode, ReviewPhase, ScopeKind
from studynotes.models.base import StrictRequest, StrictResponse


# ===========================================
# Questions
# ===========================================


class QuestionHistoryItem(StrictResponse):
    """One review of a question: when and how well it was recalled."""

    date: datetime
    quality: Rating


class Question(StrictResponse):
    """A spaced-repetition question owned by a note."""

    id: str
    note_id: str
    user_id: str
    question: str
    answer: str
    time_stamp: int  # Authoring time, epoch milliseconds
    repetition: int = Field(default=0, ge=0)
    interval: int = Field(default=0, ge=0)  # Days
    ease_factor: float = 2.5
    next_review: Optional[datetime] = None  # None: never scheduled, due now
    last_review: Optional[datetime] = None
    history: list[QuestionHistoryItem] = Field(default_factory=list)
    version: int = 0


class QuestionListResponse(StrictResponse):
    success: bool = True
    questions: list[Question]


class QuestionResponse(StrictResponse):
    success: bool = True
    question: Question


class SaveQuestionResponse(StrictResponse):
    success: bool = True
    message: str
    question: Question


class SourceReview(StrictResponse):
    """SM-2 schedule of a whole note or folder, advanced by completed AI reviews."""

    id: str
    source_type: ScopeKind
    repetition: int = Field(default=0, ge=0)
    interval: int = Field(default=0, ge=0)  # Days
    ease_factor: float = 2.5
    next_review: Optional[datetime] = None
    last_review: Optional[datetime] = None
    history: list[QuestionHistoryItem] = Field(default_factory=list)


# ===========================================
# Review Sessions
# ===========================================


class StartReviewRequest(StrictRequest):
    """Start a review session over a note, folder or user scope."""

    mode: ReviewMode = ReviewMode.DUE
    scope: ScopeKind
    scope_id: str = Field(..., min_length=1)


class FeedbackRequest(StrictRequest):
    quality: Rating


class ReviewQuestionView(StrictResponse):
    """The current question as shown to the user."""

    id: str
    note_id: str
    question: str
    answer: Optional[str] = None  # Hidden until the answer is revealed


class ReviewSessionResponse(StrictResponse):
    """Snapshot of an in-memory review session."""

    session_id: str
    mode: ReviewMode
    scope: ScopeKind
    scope_id: str
    phase: ReviewPhase
    current_question: Optional[ReviewQuestionView] = None
    is_showing_answer: bool = False
    total_questions: int
    remaining_questions: int
    answered_questions: int
    session_elapsed_seconds: int
    question_elapsed_seconds: int
    notifications: list[str] = Field(default_factory=list)


# ===========================================
# Statistics
# ===========================================


class DailyReviewStats(StrictResponse):
    """Question reviews on one local calendar day."""

    date: date
    count: int
    accuracy: int  # Percent of reviews rated above Again


class AiScorePoint(StrictResponse):
    """Score of one completed AI review on a /10 scale."""

    date: date
    score: float


class DueCounts(StrictResponse):
    today: int = 0
    tomorrow: int = 0


class QuestionStats(StrictResponse):
    total_questions: int = 0
    total_reviews: int = 0
    accuracy: float = 0.0
    history: list[DailyReviewStats] = Field(default_factory=list)
    due: DueCounts = Field(default_factory=DueCounts)


class AiReviewStats(StrictResponse):
    total_sessions: int = 0
    completed_sessions: int = 0
    average_score: float = 0.0  # Percent
    mastery: float = 0.0  # Percent, recent sessions only
    history: list[AiScorePoint] = Field(default_factory=list)
    last_session_completed_at: Optional[datetime] = None
    next_review_date: Optional[date] = None


class StudyStatistics(StrictResponse):
    """Full statistics report for a note, folder or user."""

    scope: ScopeKind
    scope_id: str
    questions: QuestionStats
    ai_reviews: AiReviewStats
    study_streak: int = 0
    reviewed_today: int = 0
    generated_at: datetime
