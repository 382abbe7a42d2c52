"""
Centralized enum definitions for the application.

Usage:
    from studynotes.enums import Rating, ReviewMode, AiReviewStatus

    # Or import from the module directly
    from studynotes.enums.review import ScopeKind
"""

from studynotes.enums.review import (
    AiQuestionType,
    AiReviewDifficulty,
    AiReviewEvaluation,
    AiReviewMode,
    AiReviewQuestionStatus,
    AiReviewStatus,
    NoteStatus,
    Rating,
    ReviewMode,
    ReviewPhase,
    ScopeKind,
)

__all__ = [
    "AiQuestionType",
    "AiReviewDifficulty",
    "AiReviewEvaluation",
    "AiReviewMode",
    "AiReviewQuestionStatus",
    "AiReviewStatus",
    "NoteStatus",
    "Rating",
    "ReviewMode",
    "ReviewPhase",
    "ScopeKind",
]
