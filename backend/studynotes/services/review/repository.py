"""
Review Persistence

Persistence collaborator for questions and AI review sessions. Services
depend on the abstract ``ReviewRepository``; ``SqlReviewRepository`` is
the PostgreSQL implementation.

Schedule writes are optimistic: ``apply_schedule_update`` only succeeds
when the stored version still matches the version the caller read, so a
retried network request cannot apply the same feedback twice.

Usage:
    from studynotes.services.review.repository import SqlReviewRepository

    repository = SqlReviewRepository(db)
    questions = await repository.list_questions_by_note(note_id)

    # Outside a request (background jobs, persistence outbox)
    async with sql_repository_scope() as repository:
        await repository.apply_schedule_update(update, expected_version=3)
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studynotes.db.base import session_scope
from studynotes.db.models import AiReviewSessionRecord, Folder, Note, QuestionRecord
from studynotes.enums.review import NoteStatus, ScopeKind
from studynotes.middleware.error_handling import (
    BadRequestError,
    NotFoundError,
    StaleQuestionError,
)
from studynotes.models.ai_review import AiReviewSession
from studynotes.models.review import Question, QuestionHistoryItem, SourceReview
from studynotes.services.review.scheduling import ScheduleUpdate
from studynotes.services.review.scope import ReviewScope

logger = logging.getLogger(__name__)


class ReviewRepository(ABC):
    """Question and AI review session storage used by the review services."""

    # ===========================================
    # Questions
    # ===========================================

    @abstractmethod
    async def get_question(self, question_id: str) -> Optional[Question]:
        ...

    @abstractmethod
    async def list_questions_by_note(self, note_id: str) -> list[Question]:
        ...

    @abstractmethod
    async def list_questions_by_folder(self, folder_id: str) -> list[Question]:
        """Questions of the folder's non-archived notes."""

    @abstractmethod
    async def list_questions_by_user(self, user_id: str) -> list[Question]:
        ...

    @abstractmethod
    async def save_question(self, question: Question) -> Question:
        """Create or replace a question."""

    @abstractmethod
    async def delete_question(self, question_id: str) -> bool:
        """Delete a question. Returns False if it did not exist."""

    @abstractmethod
    async def apply_schedule_update(
        self, schedule: ScheduleUpdate, expected_version: int
    ) -> Question:
        """
        Persist a schedule update.

        Raises:
            NotFoundError: The question no longer exists
            StaleQuestionError: The stored version differs from expected_version
        """

    # ===========================================
    # AI review sessions
    # ===========================================

    @abstractmethod
    async def create_ai_session(self, session: AiReviewSession) -> AiReviewSession:
        ...

    @abstractmethod
    async def get_ai_session(self, session_id: str) -> Optional[AiReviewSession]:
        ...

    @abstractmethod
    async def update_ai_session(self, session: AiReviewSession) -> AiReviewSession:
        ...

    @abstractmethod
    async def list_ai_sessions(
        self, user_id: Optional[str] = None, source_id: Optional[str] = None
    ) -> list[AiReviewSession]:
        """Sessions matching the filters, newest request first."""

    @abstractmethod
    async def get_source_content(self, scope: ReviewScope) -> str:
        """Plain text of the notes a scope covers, for AI question generation."""

    @abstractmethod
    async def get_source_review(self, scope: ReviewScope) -> Optional[SourceReview]:
        """Schedule of the note or folder a scope names; None if it does not exist."""

    @abstractmethod
    async def apply_source_review(
        self, scope: ReviewScope, schedule: ScheduleUpdate
    ) -> SourceReview:
        """
        Store a new schedule on a note or folder.

        Raises:
            NotFoundError: The note or folder does not exist
            BadRequestError: The scope is not a note or folder
        """

    @abstractmethod
    async def commit(self) -> None:
        """Make pending changes visible to other repository scopes."""


# ===========================================
# SQL implementation
# ===========================================


def _history_json(question: Question) -> list[dict]:
    return [item.model_dump(mode="json") for item in question.history]


_SOURCE_MODELS = {ScopeKind.NOTE: Note, ScopeKind.FOLDER: Folder}


class SqlReviewRepository(ReviewRepository):
    """ReviewRepository backed by PostgreSQL through an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_question(self, question_id: str) -> Optional[Question]:
        record = await self.db.get(QuestionRecord, question_id)
        return Question.model_validate(record) if record else None

    async def _list_questions(self, *conditions) -> list[Question]:
        query = (
            select(QuestionRecord)
            .join(Note, QuestionRecord.note_id == Note.id)
            .where(*conditions)
            .order_by(Note.created_at, QuestionRecord.time_stamp, QuestionRecord.id)
        )
        result = await self.db.execute(query)
        return [Question.model_validate(record) for record in result.scalars()]

    async def list_questions_by_note(self, note_id: str) -> list[Question]:
        return await self._list_questions(QuestionRecord.note_id == note_id)

    async def list_questions_by_folder(self, folder_id: str) -> list[Question]:
        return await self._list_questions(
            Note.folder_id == folder_id,
            Note.status != NoteStatus.ARCHIVED.value,
        )

    async def list_questions_by_user(self, user_id: str) -> list[Question]:
        return await self._list_questions(Note.user_id == user_id)

    async def save_question(self, question: Question) -> Question:
        record = await self.db.get(QuestionRecord, question.id)
        values = question.model_dump(exclude={"history", "version"})

        if record is None:
            record = QuestionRecord(**values, history=_history_json(question), version=0)
            self.db.add(record)
        else:
            for field, value in values.items():
                setattr(record, field, value)
            record.history = _history_json(question)
            record.version = record.version + 1

        await self.db.flush()
        logger.info(f"Saved question {question.id} (note={question.note_id})")
        return Question.model_validate(record)

    async def delete_question(self, question_id: str) -> bool:
        result = await self.db.execute(
            delete(QuestionRecord).where(QuestionRecord.id == question_id)
        )
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted question {question_id}")
        return deleted

    async def apply_schedule_update(
        self, schedule: ScheduleUpdate, expected_version: int
    ) -> Question:
        stmt = (
            update(QuestionRecord)
            .where(
                QuestionRecord.id == schedule.question_id,
                QuestionRecord.version == expected_version,
            )
            .values(
                repetition=schedule.repetition,
                interval=schedule.interval,
                ease_factor=schedule.ease_factor,
                next_review=schedule.next_review,
                last_review=schedule.last_review,
                history=[item.model_dump(mode="json") for item in schedule.history],
                version=QuestionRecord.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)

        if result.rowcount == 0:
            current = await self.db.get(QuestionRecord, schedule.question_id)
            if current is None:
                raise NotFoundError(f"Question {schedule.question_id} not found")
            raise StaleQuestionError(
                f"Question {schedule.question_id} changed since it was read",
                details={"expected_version": expected_version, "version": current.version},
            )

        record = await self.db.get(
            QuestionRecord, schedule.question_id, populate_existing=True
        )
        return Question.model_validate(record)

    async def create_ai_session(self, session: AiReviewSession) -> AiReviewSession:
        record = AiReviewSessionRecord(id=session.id)
        self._copy_session(session, record)
        self.db.add(record)
        await self.db.flush()
        return AiReviewSession.model_validate(record)

    async def get_ai_session(self, session_id: str) -> Optional[AiReviewSession]:
        record = await self.db.get(AiReviewSessionRecord, session_id)
        return AiReviewSession.model_validate(record) if record else None

    async def update_ai_session(self, session: AiReviewSession) -> AiReviewSession:
        record = await self.db.get(AiReviewSessionRecord, session.id)
        if record is None:
            raise NotFoundError(f"AI review session {session.id} not found")
        self._copy_session(session, record)
        await self.db.flush()
        return AiReviewSession.model_validate(record)

    async def list_ai_sessions(
        self, user_id: Optional[str] = None, source_id: Optional[str] = None
    ) -> list[AiReviewSession]:
        query = select(AiReviewSessionRecord)
        if user_id is not None:
            query = query.where(AiReviewSessionRecord.user_id == user_id)
        if source_id is not None:
            query = query.where(AiReviewSessionRecord.source_id == source_id)
        query = query.order_by(AiReviewSessionRecord.requested_at.desc())

        result = await self.db.execute(query)
        return [AiReviewSession.model_validate(record) for record in result.scalars()]

    async def commit(self) -> None:
        await self.db.commit()

    async def get_source_review(self, scope: ReviewScope) -> Optional[SourceReview]:
        model = _SOURCE_MODELS.get(scope.kind)
        if model is None:
            return None
        record = await self.db.get(model, scope.id)
        return self._source_review(scope, record) if record else None

    async def apply_source_review(
        self, scope: ReviewScope, schedule: ScheduleUpdate
    ) -> SourceReview:
        model = _SOURCE_MODELS.get(scope.kind)
        if model is None:
            raise BadRequestError(f"A {scope.kind.value} has no review schedule")
        record = await self.db.get(model, scope.id)
        if record is None:
            raise NotFoundError(f"{scope.kind.value.capitalize()} {scope.id} not found")

        record.repetition = schedule.repetition
        record.interval = schedule.interval
        record.ease_factor = schedule.ease_factor
        record.next_review = schedule.next_review
        record.last_review = schedule.last_review
        record.review_history = [item.model_dump(mode="json") for item in schedule.history]
        await self.db.flush()

        logger.info(
            f"Scheduled {scope} for review in {schedule.interval}d ({schedule.quality.name})"
        )
        return self._source_review(scope, record)

    async def get_source_content(self, scope: ReviewScope) -> str:
        query = select(Note).order_by(Note.created_at, Note.id)
        if scope.kind == ScopeKind.NOTE:
            query = query.where(Note.id == scope.id)
        elif scope.kind == ScopeKind.FOLDER:
            query = query.where(
                Note.folder_id == scope.id,
                Note.status != NoteStatus.ARCHIVED.value,
            )
        else:
            query = query.where(Note.user_id == scope.id)

        result = await self.db.execute(query)
        notes = list(result.scalars())
        if scope.kind == ScopeKind.NOTE and not notes:
            raise NotFoundError(f"Note {scope.id} not found")

        sections = []
        for note in notes:
            text = (note.content_plain_text or "").strip()
            if not text:
                continue
            sections.append(f"# {note.title}\n\n{text}" if note.title else text)
        return "\n\n".join(sections)

    @staticmethod
    def _source_review(scope: ReviewScope, record) -> SourceReview:
        return SourceReview(
            id=record.id,
            source_type=scope.kind,
            repetition=record.repetition or 0,
            interval=record.interval or 0,
            ease_factor=record.ease_factor if record.ease_factor is not None else 2.5,
            next_review=record.next_review,
            last_review=record.last_review,
            history=[
                QuestionHistoryItem.model_validate(item)
                for item in (record.review_history or [])
            ],
        )

    @staticmethod
    def _copy_session(session: AiReviewSession, record: AiReviewSessionRecord) -> None:
        data = session.model_dump(mode="json", exclude={"id"})
        for field in (
            "user_id",
            "source_id",
            "source_type",
            "status",
            "mode",
            "difficulty",
            "question_count",
            "generated_questions",
            "result",
            "model_version",
            "error_message",
        ):
            setattr(record, field, data[field])
        record.requested_at = session.requested_at
        record.questions_generated_at = session.questions_generated_at
        record.session_started_at = session.session_started_at
        record.completed_at = session.completed_at


@asynccontextmanager
async def sql_repository_scope() -> AsyncIterator[ReviewRepository]:
    """Repository with its own transaction, for work that outlives a request."""
    async with session_scope() as db:
        yield SqlReviewRepository(db)
