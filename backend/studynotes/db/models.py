"""
SQLAlchemy Database Models for the Review System

Tables:
- folders: User folders grouping notes (with an AI review schedule)
- notes: Notes whose plain text feeds AI review generation (with an AI review schedule)
- questions: Spaced repetition questions with SM-2 schedule state and review history
- ai_review_sessions: AI review attempts and their pipeline status

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    The corresponding Pydantic models live in studynotes/models/review.py
    and studynotes/models/ai_review.py.

    Data flows: Service Layer → Pydantic → SQLAlchemy → Database
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studynotes.db.base import Base
from studynotes.enums.review import AiReviewStatus, NoteStatus


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class ReviewScheduleMixin:
    """
    SM-2 schedule of a whole note or folder.

    Advanced by completed AI reviews, whose score is mapped onto a rating.
    """

    repetition: Mapped[int] = mapped_column(Integer, default=0)
    interval: Mapped[int] = mapped_column(Integer, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    next_review: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_review: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    review_history: Mapped[list] = mapped_column(JSON, default=list)


class Folder(ReviewScheduleMixin, Base):
    """A user's folder of notes."""

    __tablename__ = "folders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )

    notes: Mapped[list["Note"]] = relationship(back_populates="folder")


class Note(ReviewScheduleMixin, Base):
    """
    A note owning spaced repetition questions.

    Attributes:
        status: active, draft or archived. Archived notes are excluded
            from folder-scoped reviews.
        content_plain_text: Plain-text rendering of the note body, used as
            AI review source material.
    """

    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    folder_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("folders.id", ondelete="SET NULL"), index=True
    )
    title: Mapped[str] = mapped_column(String(500), default="")
    status: Mapped[str] = mapped_column(String(20), default=NoteStatus.ACTIVE.value)
    content_plain_text: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )

    folder: Mapped[Optional[Folder]] = relationship(back_populates="notes")
    questions: Mapped[list["QuestionRecord"]] = relationship(
        back_populates="note", cascade="all, delete-orphan", passive_deletes=True
    )


class QuestionRecord(Base):
    """
    Spaced repetition question with SM-2 schedule state.

    Attributes:
        time_stamp: Authoring time in epoch milliseconds.
        repetition: Consecutive successful recalls since the last lapse.
        interval: Days between last_review and next_review.
        ease_factor: SM-2 interval multiplier, floored at 1.3.
        history: JSON list of {"date": iso, "quality": 1-4}, append-only.
        version: Bumped by every schedule write, guards duplicate submissions.
    """

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    note_id: Mapped[str] = mapped_column(
        ForeignKey("notes.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    question: Mapped[str] = mapped_column(Text)
    answer: Mapped[str] = mapped_column(Text)
    time_stamp: Mapped[int] = mapped_column(BigInteger)

    # Schedule state
    repetition: Mapped[int] = mapped_column(Integer, default=0)
    interval: Mapped[int] = mapped_column(Integer, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    next_review: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), index=True
    )
    last_review: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    history: Mapped[list] = mapped_column(JSON, default=list)
    version: Mapped[int] = mapped_column(Integer, default=0)

    note: Mapped[Note] = relationship(back_populates="questions")


class AiReviewSessionRecord(Base):
    """
    AI review attempt for a note, folder or user.

    The status column follows the pipeline state machine; a failed row is
    terminal and never reused.
    """

    __tablename__ = "ai_review_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    source_id: Mapped[str] = mapped_column(String(64), index=True)
    source_type: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(
        String(30), default=AiReviewStatus.PENDING.value, index=True
    )
    mode: Mapped[str] = mapped_column(String(30))
    difficulty: Mapped[Optional[str]] = mapped_column(String(20))
    question_count: Mapped[int] = mapped_column(Integer, default=5)
    generated_questions: Mapped[list] = mapped_column(JSON, default=list)
    result: Mapped[Optional[dict]] = mapped_column(JSON)
    model_version: Mapped[Optional[str]] = mapped_column(String(100))
    error_message: Mapped[Optional[str]] = mapped_column(Text)

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    questions_generated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )
    session_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_ai_review_sessions_user_requested", "user_id", "requested_at"),
    )
