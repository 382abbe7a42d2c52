"""
SM-2 Scheduling

Computes the next schedule state of a question from a feedback rating.
Pure: no I/O, no clock reads unless ``now`` is omitted. Callers persist
the result.

The four feedback buttons map onto SM-2 grades (0-5):

    Again → lapse path (no grade)
    Hard  → 3  (ease factor decreases by 0.14)
    Good  → 4  (ease factor unchanged)
    Easy  → 5  (ease factor increases by 0.10)

Lapse (Again):
    repetition = 0, interval = 1 day, ease factor lowered by the lapse penalty.

Success (Hard/Good/Easy):
    repetition += 1
    EF' = max(floor, EF + 0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    interval = 1 if repetition == 1 else max(1, round_half_up(max(previous_interval, 1) * EF'))

Usage:
    from studynotes.services.review.scheduling import update_schedule

    update = update_schedule(question, Rating.GOOD, now=now)
    question = update.apply_to(question)
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Union

from studynotes.config import settings
from studynotes.enums.review import Rating
from studynotes.models.review import Question, QuestionHistoryItem, SourceReview

# Anything carrying SM-2 state: a question, or a note/folder reviewed by AI
Schedulable = Union[Question, SourceReview]


@dataclass(frozen=True)
class SchedulingParams:
    """Tunable SM-2 constants."""

    initial_ease_factor: float = 2.5
    min_ease_factor: float = 1.3
    lapse_ease_penalty: float = 0.2
    hard_grade: int = 3
    good_grade: int = 4
    easy_grade: int = 5

    @classmethod
    def from_settings(cls) -> "SchedulingParams":
        return cls(
            initial_ease_factor=settings.SM2_INITIAL_EASE_FACTOR,
            min_ease_factor=settings.SM2_MIN_EASE_FACTOR,
            lapse_ease_penalty=settings.SM2_LAPSE_EASE_PENALTY,
            hard_grade=settings.SM2_HARD_GRADE,
            good_grade=settings.SM2_GOOD_GRADE,
            easy_grade=settings.SM2_EASY_GRADE,
        )

    def grade_for(self, quality: Rating) -> int:
        return {
            Rating.HARD: self.hard_grade,
            Rating.GOOD: self.good_grade,
            Rating.EASY: self.easy_grade,
        }[quality]


@dataclass(frozen=True)
class ScheduleUpdate:
    """
    New schedule fields after one feedback submission.

    ``question_id`` is the id of the scheduled item; for note and folder
    schedules it is the note or folder id.
    """

    question_id: str
    quality: Rating
    repetition: int
    interval: int
    ease_factor: float
    next_review: datetime
    last_review: datetime
    history: tuple[QuestionHistoryItem, ...]

    def apply_to(self, question: Schedulable) -> Schedulable:
        """Return a copy of ``question`` (or source) carrying this schedule."""
        return question.model_copy(
            update={
                "repetition": self.repetition,
                "interval": self.interval,
                "ease_factor": self.ease_factor,
                "next_review": self.next_review,
                "last_review": self.last_review,
                "history": list(self.history),
            }
        )


def local_date(value: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of a timestamp in the review timezone. Naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz or settings.review_tz).date()


def is_due(question: Question, today: date, tz: Optional[tzinfo] = None) -> bool:
    """
    Whether a question is due on ``today``.

    Compares calendar days, not timestamps: a question scheduled for later
    today is already due. A question that was never scheduled is due.
    """
    if question.next_review is None:
        return True
    return local_date(question.next_review, tz) <= today


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rating_for_score(score: float) -> Rating:
    """
    Map an AI review score (share of correct answers, 0-1) onto a feedback rating.

    0 → Again, below 0.5 → Hard, below 0.8 → Good, otherwise Easy.
    """
    if score <= 0:
        return Rating.AGAIN
    if score < 0.5:
        return Rating.HARD
    if score < 0.8:
        return Rating.GOOD
    return Rating.EASY


def sm2_ease_factor(ease_factor: float, grade: int, min_ease_factor: float) -> float:
    """Standard SM-2 ease factor update for grade 0-5, clamped to the floor."""
    miss = 5 - grade
    updated = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return round(max(min_ease_factor, updated), 4)


def update_schedule(
    question: Schedulable,
    quality: Rating,
    now: Optional[datetime] = None,
    params: Optional[SchedulingParams] = None,
) -> ScheduleUpdate:
    """
    Compute the next schedule state of a question.

    Args:
        question: Current question (or note/folder) state, not modified
        quality: Feedback rating 1-4
        now: Review time, defaults to the current UTC time
        params: SM-2 constants, defaults to the configured ones

    Returns:
        ScheduleUpdate with the new schedule and the history extended by
        exactly one entry.
    """
    params = params or SchedulingParams.from_settings()
    now = now or datetime.now(timezone.utc)
    quality = Rating(quality)

    ease_factor = max(question.ease_factor, params.min_ease_factor)

    if quality == Rating.AGAIN:
        repetition = 0
        interval = 1
        ease_factor = round(
            max(params.min_ease_factor, ease_factor - params.lapse_ease_penalty), 4
        )
    else:
        repetition = question.repetition + 1
        ease_factor = sm2_ease_factor(
            ease_factor, params.grade_for(quality), params.min_ease_factor
        )
        if repetition == 1:
            interval = 1
        else:
            previous = max(question.interval, 1)
            interval = max(1, round_half_up(previous * ease_factor))

    history = tuple(question.history) + (QuestionHistoryItem(date=now, quality=quality),)

    return ScheduleUpdate(
        question_id=question.id,
        quality=quality,
        repetition=repetition,
        interval=interval,
        ease_factor=ease_factor,
        next_review=now + timedelta(days=interval),
        last_review=now,
        history=history,
    )
