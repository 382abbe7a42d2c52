"""
Review API Router

Endpoints for interactive review sessions and review statistics.

Endpoints:
- POST /api/review/sessions - Start a review session (mode=due|all over a note/folder/user)
- GET /api/review/sessions/{id} - Current session state
- POST /api/review/sessions/{id}/show-answer - Reveal the current answer
- POST /api/review/sessions/{id}/feedback - Rate the current question (1-4)
- DELETE /api/review/sessions/{id} - End the session
- GET /api/review/statistics - Accuracy, history, due counts, AI scores, mastery, streak
"""

import logging

from fastapi import APIRouter, Depends, Query

from studynotes.dependencies import get_repository, get_review_manager
from studynotes.enums.review import ScopeKind
from studynotes.models.base import ErrorDetail, SuccessResponse
from studynotes.models.review import (
    FeedbackRequest,
    ReviewQuestionView,
    ReviewSessionResponse,
    StartReviewRequest,
    StudyStatistics,
)
from studynotes.services.review import statistics
from studynotes.services.review.repository import ReviewRepository
from studynotes.services.review.scope import ReviewScope, resolve_ai_sessions, resolve_scope
from studynotes.services.review.session_manager import ReviewSession, ReviewSessionManager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/review", tags=["review"])

SESSION_ERRORS = {404: {"model": ErrorDetail}, 409: {"model": ErrorDetail}}


def session_response(
    manager: ReviewSessionManager, session: ReviewSession
) -> ReviewSessionResponse:
    """Snapshot of a session for the client; the answer stays hidden until revealed."""
    current = session.current_question
    view = None
    if current is not None:
        view = ReviewQuestionView(
            id=current.id,
            note_id=current.note_id,
            question=current.question,
            answer=current.answer if session.is_showing_answer else None,
        )

    return ReviewSessionResponse(
        session_id=session.id,
        mode=session.mode,
        scope=session.scope.kind,
        scope_id=session.scope.id,
        phase=session.phase,
        current_question=view,
        is_showing_answer=session.is_showing_answer,
        total_questions=len(session.questions),
        remaining_questions=len(session.questions_to_answer),
        answered_questions=len(session.answered),
        session_elapsed_seconds=manager.get_session_elapsed_time(session),
        question_elapsed_seconds=manager.get_current_question_elapsed_time(session),
        notifications=list(session.notifications),
    )


# ===========================================
# Review Sessions
# ===========================================


@router.post("/sessions", response_model=ReviewSessionResponse, status_code=201)
async def start_session(
    request: StartReviewRequest,
    repository: ReviewRepository = Depends(get_repository),
    manager: ReviewSessionManager = Depends(get_review_manager),
) -> ReviewSessionResponse:
    """
    Start a review session.

    An empty pool (e.g. nothing due) returns a session that is already
    completed.
    """
    scope = ReviewScope.of(request.scope, request.scope_id)
    session = await manager.start_review_session(request.mode, scope, repository)
    return session_response(manager, session)


@router.get("/sessions/{session_id}", response_model=ReviewSessionResponse, responses=SESSION_ERRORS)
async def get_session(
    session_id: str,
    manager: ReviewSessionManager = Depends(get_review_manager),
) -> ReviewSessionResponse:
    """Get the current state of a session, including elapsed times."""
    return session_response(manager, manager.get_session(session_id))


@router.post(
    "/sessions/{session_id}/show-answer",
    response_model=ReviewSessionResponse,
    responses=SESSION_ERRORS,
)
async def show_answer(
    session_id: str,
    manager: ReviewSessionManager = Depends(get_review_manager),
) -> ReviewSessionResponse:
    session = manager.show_answer(manager.get_session(session_id))
    return session_response(manager, session)


@router.post(
    "/sessions/{session_id}/feedback",
    response_model=ReviewSessionResponse,
    responses=SESSION_ERRORS,
)
async def submit_feedback(
    session_id: str,
    feedback: FeedbackRequest,
    manager: ReviewSessionManager = Depends(get_review_manager),
) -> ReviewSessionResponse:
    """
    Rate the current question and advance.

    Returns as soon as the next question is selected; the schedule is
    saved in the background and save failures appear in ``notifications``.
    """
    session = manager.submit_feedback(manager.get_session(session_id), feedback.quality)
    return session_response(manager, session)


@router.delete("/sessions/{session_id}", response_model=SuccessResponse, responses=SESSION_ERRORS)
async def end_session(
    session_id: str,
    manager: ReviewSessionManager = Depends(get_review_manager),
) -> SuccessResponse:
    """End a session. Feedback already given stays saved."""
    manager.end_session(manager.get_session(session_id))
    return SuccessResponse(message="Review session ended")


# ===========================================
# Statistics
# ===========================================


@router.get("/statistics", response_model=StudyStatistics)
async def get_statistics(
    scope: ScopeKind = Query(..., description="note, folder or user"),
    scope_id: str = Query(..., alias="scopeId", min_length=1),
    repository: ReviewRepository = Depends(get_repository),
) -> StudyStatistics:
    """Review statistics for a note, folder or user."""
    review_scope = ReviewScope.of(scope, scope_id)
    questions = await resolve_scope(review_scope, repository)
    sessions = await resolve_ai_sessions(review_scope, repository)
    return statistics.summarize_statistics(review_scope, questions, sessions)
