"""
AI Review API Router

Endpoints for AI-generated review sessions. Question generation and answer
evaluation run as background jobs; clients poll the session until it
reaches the next status.

Endpoints:
- POST /api/ai-review/sessions - Request a review (202, generation runs in background)
- GET /api/ai-review/sessions/{id} - Session state
- GET /api/ai-review/sessions?sourceId= - Sessions for a note/folder, newest first
- POST /api/ai-review/sessions/{id}/start - ready_for_review → in_progress
- POST /api/ai-review/sessions/{id}/answers - Submit answers (202, evaluation in background)
- GET /api/ai-review/unfinished?userId= - Resumable sessions
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from studynotes.dependencies import get_ai_job_runner, get_ai_pipeline
from studynotes.middleware.error_handling import BadRequestError
from studynotes.models.ai_review import (
    AiReviewCreateRequest,
    AiReviewSession,
    AiReviewSessionList,
    AiReviewSubmitRequest,
)
from studynotes.models.base import ErrorDetail
from studynotes.services.review.ai_pipeline import AiReviewJobRunner, AiReviewPipeline

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ai-review", tags=["ai-review"])

SESSION_ERRORS = {404: {"model": ErrorDetail}, 409: {"model": ErrorDetail}}


@router.post(
    "/sessions",
    response_model=AiReviewSession,
    status_code=202,
    responses={422: {"model": ErrorDetail}},
)
async def request_review(
    request: AiReviewCreateRequest,
    background_tasks: BackgroundTasks,
    pipeline: AiReviewPipeline = Depends(get_ai_pipeline),
    runner: AiReviewJobRunner = Depends(get_ai_job_runner),
) -> AiReviewSession:
    """
    Request a new AI review.

    The session is created as ``pending``; generation moves it to
    ``ready_for_review`` or ``failed``.
    """
    session = await pipeline.request_review(request)
    await pipeline.repository.commit()
    background_tasks.add_task(runner.generate, session.id)
    return session


@router.get("/sessions", response_model=AiReviewSessionList, responses={400: {"model": ErrorDetail}})
async def list_sessions(
    source_id: Optional[str] = Query(None, alias="sourceId"),
    pipeline: AiReviewPipeline = Depends(get_ai_pipeline),
) -> AiReviewSessionList:
    if not source_id:
        raise BadRequestError("sourceId is required")

    return AiReviewSessionList(sessions=await pipeline.list_for_source(source_id))


@router.get("/sessions/{session_id}", response_model=AiReviewSession, responses=SESSION_ERRORS)
async def get_session(
    session_id: str,
    pipeline: AiReviewPipeline = Depends(get_ai_pipeline),
) -> AiReviewSession:
    return await pipeline.get_session(session_id)


@router.post(
    "/sessions/{session_id}/start",
    response_model=AiReviewSession,
    responses=SESSION_ERRORS,
)
async def start_session(
    session_id: str,
    pipeline: AiReviewPipeline = Depends(get_ai_pipeline),
) -> AiReviewSession:
    """Start answering a ready session, or resume one already in progress."""
    return await pipeline.start_session(session_id)


@router.post(
    "/sessions/{session_id}/answers",
    response_model=AiReviewSession,
    status_code=202,
    responses={400: {"model": ErrorDetail}, **SESSION_ERRORS},
)
async def submit_answers(
    session_id: str,
    submission: AiReviewSubmitRequest,
    background_tasks: BackgroundTasks,
    pipeline: AiReviewPipeline = Depends(get_ai_pipeline),
    runner: AiReviewJobRunner = Depends(get_ai_job_runner),
) -> AiReviewSession:
    """Submit answers; the session moves to ``evaluating_answers`` and is scored in the background."""
    session = await pipeline.submit_answers(session_id, submission.answers)
    await pipeline.repository.commit()
    background_tasks.add_task(runner.evaluate, session.id)
    return session


@router.get("/unfinished", response_model=AiReviewSessionList, responses={400: {"model": ErrorDetail}})
async def list_unfinished(
    user_id: Optional[str] = Query(None, alias="userId"),
    pipeline: AiReviewPipeline = Depends(get_ai_pipeline),
) -> AiReviewSessionList:
    """Sessions a returning user can resume (anything not completed or failed)."""
    if not user_id:
        raise BadRequestError("userId is required")

    return AiReviewSessionList(sessions=await pipeline.list_unfinished(user_id))
