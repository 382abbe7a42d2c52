"""
FastAPI Dependencies

Repository, review session manager and AI review pipeline providers.
Long-lived objects (the session manager and the AI job runner) are created
once in ``create_app`` and kept on ``app.state``.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from studynotes.db.base import get_db
from studynotes.services.review.ai_pipeline import AiReviewJobRunner, AiReviewPipeline
from studynotes.services.review.repository import ReviewRepository, SqlReviewRepository
from studynotes.services.review.session_manager import ReviewSessionManager


async def get_repository(db: AsyncSession = Depends(get_db)) -> ReviewRepository:
    """Request-scoped repository; commits when the request succeeds."""
    return SqlReviewRepository(db)


def get_review_manager(request: Request) -> ReviewSessionManager:
    return request.app.state.review_manager


def get_ai_job_runner(request: Request) -> AiReviewJobRunner:
    return request.app.state.ai_job_runner


async def get_ai_pipeline(
    repository: ReviewRepository = Depends(get_repository),
    runner: AiReviewJobRunner = Depends(get_ai_job_runner),
) -> AiReviewPipeline:
    """AI review pipeline bound to the request's repository."""
    return AiReviewPipeline(repository, runner.generator, runner.evaluator, runner.clock)
