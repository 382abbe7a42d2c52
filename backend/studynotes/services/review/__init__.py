"""
Review services: SM-2 scheduling, review sessions, statistics and the
AI review pipeline.

Usage:
    from studynotes.services.review import ReviewSessionManager, ReviewScope, update_schedule
"""

from studynotes.services.review.ai_pipeline import (
    AiReviewJobRunner,
    AiReviewPipeline,
    transition,
)
from studynotes.services.review.outbox import PersistenceOutbox
from studynotes.services.review.repository import (
    ReviewRepository,
    SqlReviewRepository,
    sql_repository_scope,
)
from studynotes.services.review.scheduling import ScheduleUpdate, update_schedule
from studynotes.services.review.scope import ReviewScope, resolve_scope
from studynotes.services.review.session_manager import (
    ReviewSession,
    ReviewSessionManager,
)

__all__ = [
    "AiReviewJobRunner",
    "AiReviewPipeline",
    "PersistenceOutbox",
    "ReviewRepository",
    "ReviewScope",
    "ReviewSession",
    "ReviewSessionManager",
    "ScheduleUpdate",
    "SqlReviewRepository",
    "resolve_scope",
    "sql_repository_scope",
    "transition",
    "update_schedule",
]
