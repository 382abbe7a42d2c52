"""
AI Review Pipeline

Server-tracked state machine for AI-assisted review sessions:

    pending ──generated──► ready_for_review ──start──► in_progress
       │                                                  │
       └──generation error──► failed                   submit
                                ▲                         ▼
                                └──scoring error── evaluating_answers ──scored──► completed

Every transition is persisted; the session record is what a returning
user resumes from. ``transition`` rejects anything outside this table
(e.g. pending → completed).

Failures are terminal. A failed session is never retried in place: the
user requests a new review, which creates a new pending session.

A completed review advances the SM-2 schedule of the reviewed note or
folder: the share of correct answers is mapped onto a rating (0 → Again,
below 0.5 → Hard, below 0.8 → Good, otherwise Easy).

Generation and evaluation run as background jobs (AiReviewJobRunner), each
in its own repository scope, so they finish regardless of what the
requesting client does.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from studynotes.config import settings
from studynotes.enums.review import (
    AiReviewDifficulty,
    AiReviewEvaluation,
    AiReviewQuestionStatus,
    AiReviewStatus,
    ScopeKind,
)
from studynotes.middleware.error_handling import (
    BadRequestError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    error_message,
)
from studynotes.models.ai_review import (
    AiReviewAnswer,
    AiReviewCreateRequest,
    AiReviewQuestion,
    AiReviewResult,
    AiReviewSession,
)
from studynotes.models.review import SourceReview
from studynotes.services.review.ai_generator import AiAnswerEvaluator, AiQuestionGenerator
from studynotes.services.review.repository import ReviewRepository
from studynotes.services.review.scheduling import rating_for_score, update_schedule
from studynotes.services.review.scope import ReviewScope

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[AiReviewStatus, frozenset[AiReviewStatus]] = {
    AiReviewStatus.PENDING: frozenset(
        {AiReviewStatus.READY_FOR_REVIEW, AiReviewStatus.FAILED}
    ),
    AiReviewStatus.READY_FOR_REVIEW: frozenset({AiReviewStatus.IN_PROGRESS}),
    AiReviewStatus.IN_PROGRESS: frozenset({AiReviewStatus.EVALUATING_ANSWERS}),
    AiReviewStatus.EVALUATING_ANSWERS: frozenset(
        {AiReviewStatus.COMPLETED, AiReviewStatus.FAILED}
    ),
    AiReviewStatus.COMPLETED: frozenset(),
    AiReviewStatus.FAILED: frozenset(),
}

RETRY_HINT = "Please try generating a new review."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(current: AiReviewStatus, target: AiReviewStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(session: AiReviewSession, target: AiReviewStatus) -> None:
    """Raise InvalidTransitionError unless the session may move to ``target``."""
    if not can_transition(session.status, target):
        raise InvalidTransitionError(
            f"AI review {session.id} cannot go from {session.status.value} to {target.value}",
            details={"from": session.status.value, "to": target.value},
        )


def transition(
    session: AiReviewSession,
    target: AiReviewStatus,
    now: datetime,
    **changes,
) -> AiReviewSession:
    """
    Move a session to ``target``, stamping the matching timestamp.

    Args:
        session: Current session (not modified)
        target: New status
        now: Transition time
        **changes: Other fields to update with the status

    Returns:
        Updated copy of the session

    Raises:
        InvalidTransitionError: ``target`` is not reachable from the current status
    """
    ensure_transition(session, target)

    timestamps = {
        AiReviewStatus.READY_FOR_REVIEW: "questions_generated_at",
        AiReviewStatus.IN_PROGRESS: "session_started_at",
        AiReviewStatus.COMPLETED: "completed_at",
    }
    update = {"status": target, **changes}
    if target in timestamps:
        update[timestamps[target]] = now

    logger.info(f"AI review {session.id}: {session.status.value} → {target.value}")
    return session.model_copy(update=update)


class AiReviewPipeline:
    """Operations on AI review sessions, one repository transaction at a time."""

    def __init__(
        self,
        repository: ReviewRepository,
        generator: AiQuestionGenerator,
        evaluator: AiAnswerEvaluator,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.repository = repository
        self.generator = generator
        self.evaluator = evaluator
        self.clock = clock

    # ===========================================
    # Queries
    # ===========================================

    async def get_session(self, session_id: str) -> AiReviewSession:
        session = await self.repository.get_ai_session(session_id)
        if session is None:
            raise NotFoundError(f"AI review session {session_id} not found")
        return session

    async def list_for_source(self, source_id: str) -> list[AiReviewSession]:
        return await self.repository.list_ai_sessions(source_id=source_id)

    async def list_unfinished(self, user_id: str) -> list[AiReviewSession]:
        """Resumable sessions (not completed or failed), newest request first."""
        sessions = await self.repository.list_ai_sessions(user_id=user_id)
        unfinished = [s for s in sessions if not s.status.is_terminal]
        return sorted(unfinished, key=lambda s: s.requested_at, reverse=True)

    # ===========================================
    # Lifecycle
    # ===========================================

    async def request_review(self, request: AiReviewCreateRequest) -> AiReviewSession:
        """Create a pending session; generation runs separately."""
        count = request.question_count or settings.AI_REVIEW_DEFAULT_QUESTION_COUNT
        if count > settings.AI_REVIEW_MAX_QUESTION_COUNT:
            raise ValidationError(
                f"At most {settings.AI_REVIEW_MAX_QUESTION_COUNT} questions per review",
                details={"question_count": count},
            )

        session = AiReviewSession(
            id=str(uuid.uuid4()),
            user_id=request.user_id,
            source_id=request.source_id,
            source_type=request.source_type,
            status=AiReviewStatus.PENDING,
            mode=request.mode,
            difficulty=request.difficulty,
            question_count=count,
            requested_at=self.clock(),
        )
        session = await self.repository.create_ai_session(session)
        logger.info(
            f"AI review {session.id} requested for {session.source_type.value} "
            f"{session.source_id} ({count} {request.difficulty.value} questions)"
        )
        return session

    async def run_generation(self, session_id: str) -> AiReviewSession:
        """
        Generate questions for a pending session.

        Empty source content or any generator error fails the session.
        Sessions that are no longer pending are left untouched.
        """
        session = await self.get_session(session_id)
        if session.status != AiReviewStatus.PENDING:
            logger.warning(
                f"AI review {session_id} is {session.status.value}, skipping generation"
            )
            return session

        try:
            content = await self._source_content(session)
            if not content.strip():
                raise ValidationError("There is no content to generate questions from")

            generated = await self.generator.generate(
                content=content,
                difficulty=session.difficulty or AiReviewDifficulty.MEDIUM,
                mode=session.mode,
                count=session.question_count,
            )
        except Exception as e:
            logger.error(f"Question generation failed for AI review {session_id}: {e}")
            return await self._fail(session, f"Question generation failed: {error_message(e)}")

        questions = [
            AiReviewQuestion(
                id=f"{session.id}-q{index + 1}",
                question_type=item.question_type,
                question=item.question,
                options=item.options,
            )
            for index, item in enumerate(generated)
        ]
        session = transition(
            session,
            AiReviewStatus.READY_FOR_REVIEW,
            self.clock(),
            generated_questions=questions,
            model_version=(
                getattr(self.generator, "model", None)
                or settings.AI_REVIEW_GENERATION_MODEL
                or settings.TEXT_MODEL
            ),
        )
        return await self.repository.update_ai_session(session)

    async def start_session(self, session_id: str) -> AiReviewSession:
        """Open a ready session for answering. Opening an in-progress session resumes it."""
        session = await self.get_session(session_id)
        if session.status == AiReviewStatus.IN_PROGRESS:
            return session

        session = transition(session, AiReviewStatus.IN_PROGRESS, self.clock())
        return await self.repository.update_ai_session(session)

    async def submit_answers(
        self, session_id: str, answers: list[AiReviewAnswer]
    ) -> AiReviewSession:
        """
        Record the user's answers and hand the session to evaluation.

        Questions without a (non-blank) answer are marked skipped.
        """
        session = await self.get_session(session_id)
        ensure_transition(session, AiReviewStatus.EVALUATING_ANSWERS)

        by_question = {answer.question_id: answer for answer in answers}
        known = {q.id for q in session.generated_questions}
        unknown = sorted(set(by_question) - known)
        if unknown:
            raise BadRequestError(
                f"Unknown question ids: {', '.join(unknown)}",
                details={"unknown": unknown},
            )

        questions = []
        for question in session.generated_questions:
            answer = by_question.get(question.id)
            text = (answer.answer or "").strip() if answer else ""
            questions.append(
                question.model_copy(
                    update={
                        "answer": text or None,
                        "time_spent": answer.time_spent if answer else 0,
                        "status": (
                            AiReviewQuestionStatus.ANSWERED
                            if text
                            else AiReviewQuestionStatus.SKIPPED
                        ),
                    }
                )
            )

        session = transition(
            session,
            AiReviewStatus.EVALUATING_ANSWERS,
            self.clock(),
            generated_questions=questions,
        )
        return await self.repository.update_ai_session(session)

    async def run_evaluation(self, session_id: str) -> AiReviewSession:
        """
        Score the submitted answers and complete the session.

        Answers are evaluated concurrently. Any evaluator error fails the
        session. On completion the reviewed note or folder is rescheduled.
        """
        session = await self.get_session(session_id)
        if session.status != AiReviewStatus.EVALUATING_ANSWERS:
            logger.warning(
                f"AI review {session_id} is {session.status.value}, skipping evaluation"
            )
            return session

        try:
            content = await self._source_content(session)
            questions = list(
                await asyncio.gather(
                    *(
                        self._evaluate_question(question, content)
                        for question in session.generated_questions
                    )
                )
            )
        except Exception as e:
            logger.error(f"Answer evaluation failed for AI review {session_id}: {e}")
            return await self._fail(session, f"Answer evaluation failed: {error_message(e)}")

        result = AiReviewResult(
            total_questions=len(questions),
            correct_answers=sum(
                1 for q in questions if q.evaluation == AiReviewEvaluation.CORRECT
            ),
            skipped_answers=sum(
                1 for q in questions if q.status == AiReviewQuestionStatus.SKIPPED
            ),
        )
        session = transition(
            session,
            AiReviewStatus.COMPLETED,
            self.clock(),
            generated_questions=questions,
            result=result,
        )
        logger.info(
            f"AI review {session_id} scored {result.correct_answers}/{result.total_questions}"
        )
        session = await self.repository.update_ai_session(session)
        await self._schedule_source(session)
        return session

    # ===========================================
    # Helpers
    # ===========================================

    async def _source_content(self, session: AiReviewSession) -> str:
        scope = ReviewScope.of(session.source_type, session.source_id)
        return await self.repository.get_source_content(scope)

    async def _evaluate_question(
        self, question: AiReviewQuestion, content: str
    ) -> AiReviewQuestion:
        if question.status == AiReviewQuestionStatus.SKIPPED:
            return question.model_copy(update={"score": 0.0})

        verdict = await self.evaluator.evaluate(question, question.answer, content)
        return question.model_copy(
            update={
                "status": AiReviewQuestionStatus.EVALUATED,
                "evaluation": verdict.evaluation,
                "score": verdict.score,
                "ai_message": verdict.message,
            }
        )

    async def _schedule_source(self, session: AiReviewSession) -> Optional[SourceReview]:
        """Advance the reviewed note or folder by the completed session's score."""
        result = session.result
        if session.source_type == ScopeKind.USER or result is None or not result.total_questions:
            return None

        scope = ReviewScope.of(session.source_type, session.source_id)
        current = await self.repository.get_source_review(scope)
        if current is None:
            logger.warning(f"AI review {session.id}: {scope} no longer exists, not rescheduled")
            return None

        rating = rating_for_score(result.correct_answers / result.total_questions)
        schedule = update_schedule(current, rating, now=session.completed_at or self.clock())
        return await self.repository.apply_source_review(scope, schedule)

    async def _fail(self, session: AiReviewSession, reason: str) -> AiReviewSession:
        session = transition(
            session,
            AiReviewStatus.FAILED,
            self.clock(),
            error_message=f"{reason}. {RETRY_HINT}",
        )
        return await self.repository.update_ai_session(session)


class AiReviewJobRunner:
    """
    Runs generation and evaluation jobs outside the request.

    Each job opens its own repository scope, so it is unaffected by the
    lifetime of the request or the client session that triggered it.
    """

    def __init__(
        self,
        repository_scope: Callable[[], AbstractAsyncContextManager[ReviewRepository]],
        generator: AiQuestionGenerator,
        evaluator: AiAnswerEvaluator,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository_scope = repository_scope
        self.generator = generator
        self.evaluator = evaluator
        self.clock = clock or _utc_now

    async def generate(self, session_id: str) -> None:
        async with self._pipeline() as pipeline:
            await pipeline.run_generation(session_id)

    async def evaluate(self, session_id: str) -> None:
        async with self._pipeline() as pipeline:
            await pipeline.run_evaluation(session_id)

    @asynccontextmanager
    async def _pipeline(self) -> AsyncIterator[AiReviewPipeline]:
        async with self.repository_scope() as repository:
            yield AiReviewPipeline(repository, self.generator, self.evaluator, self.clock)
