"""
Review Session Manager

Drives the interactive review loop: question → reveal → feedback → next.

Session states:

    IDLE ──start──► AWAITING_REVEAL ──show_answer──► AWAITING_FEEDBACK
                         ▲                                 │
                         └────────submit_feedback──────────┤
                                                           ▼
                                                       COMPLETED

    start with an empty pool goes straight to COMPLETED.
    end_session is legal in any state and discards the session.

Sessions live in memory only. Completed sessions are kept for
REVIEW_SESSION_TTL_MINUTES so late persistence failures still reach their
notifications; abandoned sessions are dropped the same time after their
last activity. Expired sessions are swept whenever a session starts.

Feedback is applied optimistically: the schedule update is computed, the
in-memory question is updated and the session advances immediately. The
write goes through the PersistenceOutbox; failures show up as session
notifications and never roll progress back.

Questions are presented in pool order: the next question is always the
first question of the resolved pool that is still pending.

Usage:
    manager = ReviewSessionManager(outbox)

    session = await manager.start_review_session(
        ReviewMode.DUE, ReviewScope.of("note", note_id), repository
    )
    manager.show_answer(session)
    manager.submit_feedback(session, Rating.GOOD)
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional

from studynotes.config import settings
from studynotes.enums.review import Rating, ReviewMode, ReviewPhase
from studynotes.middleware.error_handling import InvalidSessionStateError, NotFoundError
from studynotes.models.review import Question
from studynotes.services.review.outbox import FailedScheduleWrite, PersistenceOutbox
from studynotes.services.review.repository import ReviewRepository
from studynotes.services.review.scheduling import (
    SchedulingParams,
    is_due,
    local_date,
    update_schedule,
)
from studynotes.services.review.scope import ReviewScope, resolve_scope

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AnsweredQuestion:
    question_id: str
    quality: Rating
    answered_at: datetime
    time_spent: int  # Seconds


@dataclass
class ReviewSession:
    """
    In-memory state of one review session. Never persisted.

    Attributes:
        questions: Resolved pool, in presentation order
        questions_to_answer: Ids still pending; only ever shrinks
        current_question_id: Question on screen, None once completed
        answered: Feedback given so far, in order
        notifications: Non-fatal messages for the user (failed saves)
    """

    id: str
    mode: ReviewMode
    scope: ReviewScope
    questions: list[Question]
    questions_to_answer: set[str]
    started_at: datetime
    phase: ReviewPhase = ReviewPhase.IDLE
    current_question_id: Optional[str] = None
    current_question_started_at: Optional[datetime] = None
    is_showing_answer: bool = False
    last_activity_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    answered: list[AnsweredQuestion] = field(default_factory=list)
    notifications: list[str] = field(default_factory=list)

    @property
    def expires_from(self) -> datetime:
        return self.completed_at or self.last_activity_at or self.started_at

    @property
    def is_complete(self) -> bool:
        return not self.questions_to_answer

    @property
    def current_question(self) -> Optional[Question]:
        if self.current_question_id is None:
            return None
        return next(q for q in self.questions if q.id == self.current_question_id)

    def next_pending_id(self) -> Optional[str]:
        for question in self.questions:
            if question.id in self.questions_to_answer:
                return question.id
        return None


class ReviewSessionManager:
    """
    Registry and state machine for review sessions.

    One instance is created per application (stored on ``app.state``) and
    handed to request handlers through dependency injection.
    """

    def __init__(
        self,
        outbox: PersistenceOutbox,
        clock: Callable[[], datetime] = _utc_now,
        params: Optional[SchedulingParams] = None,
        tz: Optional[tzinfo] = None,
        session_ttl: Optional[timedelta] = None,
    ):
        """
        Args:
            outbox: Queue for schedule writes; its failures become session
                notifications
            clock: Returns the current aware datetime
            params: SM-2 constants, defaults to the configured ones
            tz: Timezone for due-day comparisons, defaults to REVIEW_TIMEZONE
            session_ttl: How long finished or idle sessions stay in memory,
                defaults to REVIEW_SESSION_TTL_MINUTES
        """
        self.outbox = outbox
        self.outbox.on_failure = self._notify_persistence_failure
        self.clock = clock
        self.params = params or SchedulingParams.from_settings()
        self.tz = tz or settings.review_tz
        self.session_ttl = (
            session_ttl
            if session_ttl is not None
            else timedelta(minutes=settings.REVIEW_SESSION_TTL_MINUTES)
        )
        self._sessions: dict[str, ReviewSession] = {}

    # ===========================================
    # Lifecycle
    # ===========================================

    async def start_review_session(
        self,
        mode: ReviewMode,
        scope: ReviewScope,
        repository: ReviewRepository,
    ) -> ReviewSession:
        """
        Resolve the scope's question pool and start a session over it.

        ``due`` keeps questions whose next review day is today or earlier;
        ``all`` keeps the whole pool. An empty pool completes the session
        immediately.
        """
        mode = ReviewMode(mode)
        now = self.clock()
        self.evict_expired(now)
        pool = await resolve_scope(scope, repository)

        if mode == ReviewMode.DUE:
            today = local_date(now, self.tz)
            pool = [q for q in pool if is_due(q, today, self.tz)]

        session = ReviewSession(
            id=str(uuid.uuid4()),
            mode=mode,
            scope=scope,
            questions=pool,
            questions_to_answer={q.id for q in pool},
            started_at=now,
        )
        self._sessions[session.id] = session
        self._advance(session, now)

        logger.info(
            f"Started review session {session.id} ({mode.value}, {scope}) "
            f"with {len(pool)} questions"
        )
        return session

    def get_session(self, session_id: str) -> ReviewSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Review session {session_id} not found")
        return session

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def evict_expired(self, now: Optional[datetime] = None) -> int:
        """
        Drop sessions that completed, or last saw activity, more than
        ``session_ttl`` ago.

        Returns:
            Number of sessions removed
        """
        now = now or self.clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.expires_from >= self.session_ttl
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info(f"Evicted {len(expired)} expired review session(s)")
        return len(expired)

    def end_session(self, session: ReviewSession) -> None:
        """
        Discard a session. Legal in any state.

        Already queued schedule writes still go through.
        """
        self._sessions.pop(session.id, None)
        session.phase = ReviewPhase.IDLE
        session.current_question_id = None
        session.current_question_started_at = None
        session.is_showing_answer = False
        logger.info(
            f"Ended review session {session.id} "
            f"({len(session.answered)}/{len(session.questions)} answered)"
        )

    # ===========================================
    # Review loop
    # ===========================================

    def show_answer(self, session: ReviewSession) -> ReviewSession:
        self._require_phase(session, ReviewPhase.AWAITING_REVEAL, "show the answer")
        session.is_showing_answer = True
        session.phase = ReviewPhase.AWAITING_FEEDBACK
        session.last_activity_at = self.clock()
        return session

    def submit_feedback(self, session: ReviewSession, quality: Rating) -> ReviewSession:
        """
        Rate the current question and move on.

        Computes the new schedule, applies it to the in-memory copy, queues
        the write, removes the question from the pending set and selects
        the next question (or completes the session) without waiting for
        the write.
        """
        self._require_phase(session, ReviewPhase.AWAITING_FEEDBACK, "submit feedback")
        quality = Rating(quality)
        now = self.clock()
        question = session.current_question

        schedule = update_schedule(question, quality, now=now, params=self.params)
        updated = schedule.apply_to(question).model_copy(
            update={"version": question.version + 1}
        )
        session.questions = [
            updated if q.id == question.id else q for q in session.questions
        ]
        self.outbox.enqueue(schedule, expected_version=question.version, session_id=session.id)

        session.answered.append(
            AnsweredQuestion(
                question_id=question.id,
                quality=quality,
                answered_at=now,
                time_spent=self.get_current_question_elapsed_time(session),
            )
        )
        session.questions_to_answer.discard(question.id)
        session.is_showing_answer = False
        self._advance(session, now)

        logger.debug(
            f"Session {session.id}: question {question.id} rated {quality.name}, "
            f"next in {schedule.interval}d, {len(session.questions_to_answer)} left"
        )
        return session

    # ===========================================
    # Timing
    # ===========================================

    def get_session_elapsed_time(self, session: ReviewSession) -> int:
        """Whole seconds since the session started."""
        return self._seconds_since(session.started_at)

    def get_current_question_elapsed_time(self, session: ReviewSession) -> int:
        """Whole seconds since the current question was shown, 0 if there is none."""
        if session.current_question_started_at is None:
            return 0
        return self._seconds_since(session.current_question_started_at)

    # ===========================================
    # Helpers
    # ===========================================

    def _seconds_since(self, start: datetime) -> int:
        return max(0, math.floor((self.clock() - start).total_seconds()))

    def _advance(self, session: ReviewSession, now: datetime) -> None:
        session.last_activity_at = now
        next_id = session.next_pending_id()
        if next_id is None:
            session.phase = ReviewPhase.COMPLETED
            session.current_question_id = None
            session.completed_at = now
            session.current_question_started_at = None
            logger.info(f"Review session {session.id} completed")
            return

        session.phase = ReviewPhase.AWAITING_REVEAL
        session.current_question_id = next_id
        session.current_question_started_at = now

    def _require_phase(
        self, session: ReviewSession, phase: ReviewPhase, action: str
    ) -> None:
        if session.id not in self._sessions:
            raise InvalidSessionStateError(
                f"Cannot {action}: review session {session.id} has ended"
            )
        if session.phase != phase:
            raise InvalidSessionStateError(
                f"Cannot {action} while the session is {session.phase.value}",
                details={"phase": session.phase.value, "expected": phase.value},
            )

    def _notify_persistence_failure(self, failure: FailedScheduleWrite) -> None:
        session = self._sessions.get(failure.write.session_id)
        if session is None:
            return
        session.notifications.append(failure.message)
