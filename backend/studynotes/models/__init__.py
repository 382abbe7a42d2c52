"""API and domain models."""

from studynotes.models.ai_review import (
    AiReviewAnswer,
    AiReviewCreateRequest,
    AiReviewQuestion,
    AiReviewResult,
    AiReviewSession,
    AiReviewSessionList,
    AiReviewSubmitRequest,
    AnswerEvaluation,
    GeneratedQuestion,
)
from studynotes.models.base import (
    ErrorDetail,
    StrictRequest,
    StrictResponse,
    SuccessResponse,
)
from studynotes.models.review import (
    AiReviewStats,
    AiScorePoint,
    DailyReviewStats,
    DueCounts,
    FeedbackRequest,
    Question,
    QuestionHistoryItem,
    QuestionListResponse,
    QuestionResponse,
    QuestionStats,
    ReviewQuestionView,
    ReviewSessionResponse,
    SaveQuestionResponse,
    SourceReview,
    StartReviewRequest,
    StudyStatistics,
)

__all__ = [
    "AiReviewAnswer",
    "AiReviewCreateRequest",
    "AiReviewQuestion",
    "AiReviewResult",
    "AiReviewSession",
    "AiReviewSessionList",
    "AiReviewSubmitRequest",
    "AiReviewStats",
    "AiScorePoint",
    "AnswerEvaluation",
    "DailyReviewStats",
    "DueCounts",
    "ErrorDetail",
    "FeedbackRequest",
    "GeneratedQuestion",
    "Question",
    "QuestionHistoryItem",
    "QuestionListResponse",
    "QuestionResponse",
    "QuestionStats",
    "ReviewQuestionView",
    "ReviewSessionResponse",
    "SaveQuestionResponse",
    "SourceReview",
    "StartReviewRequest",
    "StrictRequest",
    "StrictResponse",
    "StudyStatistics",
    "SuccessResponse",
]
