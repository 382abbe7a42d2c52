"""
Review Statistics

Pure, read-only aggregation over questions and AI review sessions:
accuracy, per-day review history, AI review scores, mastery, due counts,
the next suggested AI review date and the study streak.

Calendar-day bucketing uses the review timezone (REVIEW_TIMEZONE); naive
timestamps are treated as UTC.

Metric definitions:
- accuracy: share of history entries rated above Again, in percent
- normalized score: correct answers / total questions of a completed AI review
- mastery: mean normalized score of the most recent N completed reviews
  (N = MASTERY_RECENT_SESSIONS), in percent; older reviews do not count

Usage:
    from studynotes.services.review import statistics

    stats = statistics.summarize_statistics(scope, questions, sessions)
    print(stats.questions.accuracy, stats.ai_reviews.mastery)
"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Sequence

import pandas as pd

from studynotes.config import settings
from studynotes.enums.review import AiReviewStatus, Rating
from studynotes.models.ai_review import AiReviewSession
from studynotes.models.review import (
    AiReviewStats,
    AiScorePoint,
    DailyReviewStats,
    DueCounts,
    Question,
    QuestionStats,
    StudyStatistics,
)
from studynotes.services.review.scheduling import is_due, local_date, round_half_up
from studynotes.services.review.scope import ReviewScope


# =============================================================================
# Question statistics
# =============================================================================


def total_reviews(questions: Iterable[Question]) -> int:
    """Number of history entries across all questions."""
    return sum(len(question.history) for question in questions)


def accuracy(questions: Iterable[Question]) -> float:
    """Percent of history entries rated above Again; 0 when nothing was reviewed."""
    total = 0
    correct = 0
    for question in questions:
        for item in question.history:
            total += 1
            if item.quality > Rating.AGAIN:
                correct += 1

    if total == 0:
        return 0.0
    return correct / total * 100


def question_history_by_day(
    questions: Iterable[Question], tz: Optional[tzinfo] = None
) -> list[DailyReviewStats]:
    """
    Group every history entry by local calendar day.

    Returns:
        One bucket per day with its review count and accuracy (whole
        percent), ascending by date.
    """
    rows = [
        {"day": local_date(item.date, tz), "correct": item.quality > Rating.AGAIN}
        for question in questions
        for item in question.history
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows)
    grouped = (
        df.groupby("day")
        .agg(reviews=("correct", "size"), correct=("correct", "sum"))
        .sort_index()
    )

    return [
        DailyReviewStats(
            date=day,
            count=int(row["reviews"]),
            accuracy=round_half_up(row["correct"] / row["reviews"] * 100),
        )
        for day, row in grouped.iterrows()
    ]


def due_counts(
    questions: Iterable[Question], today: date, tz: Optional[tzinfo] = None
) -> DueCounts:
    """
    Count questions due today (on or before ``today``) and due exactly tomorrow.
    """
    tomorrow = today + timedelta(days=1)
    counts = DueCounts()
    for question in questions:
        if is_due(question, today, tz):
            counts.today += 1
        elif local_date(question.next_review, tz) == tomorrow:
            counts.tomorrow += 1
    return counts


def reviewed_on(
    questions: Iterable[Question], day: date, tz: Optional[tzinfo] = None
) -> int:
    """Number of history entries recorded on a given local day."""
    return sum(
        1
        for question in questions
        for item in question.history
        if local_date(item.date, tz) == day
    )


# =============================================================================
# AI review statistics
# =============================================================================


def _session_date(session: AiReviewSession) -> datetime:
    return session.completed_at or session.requested_at


def normalized_score(session: AiReviewSession) -> Optional[float]:
    """
    Fraction of correct answers (0-1) of a completed session.

    None for sessions that are not completed or have no questions.
    """
    if session.status != AiReviewStatus.COMPLETED or session.result is None:
        return None
    if session.result.total_questions <= 0:
        return None
    return session.result.correct_answers / session.result.total_questions


def completed_sessions(sessions: Iterable[AiReviewSession]) -> list[AiReviewSession]:
    """Scored sessions in chronological order of completion (or request) date."""
    scored = [s for s in sessions if normalized_score(s) is not None]
    return sorted(scored, key=_session_date)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def average_ai_score(sessions: Iterable[AiReviewSession], scale: int = 100) -> float:
    """Mean normalized score of all completed sessions, times ``scale`` (100 or 10)."""
    return _mean([normalized_score(s) for s in completed_sessions(sessions)]) * scale


def mastery_percentage(
    sessions: Iterable[AiReviewSession], recent_n: Optional[int] = None
) -> float:
    """
    Mean normalized score of the last ``recent_n`` completed sessions, in percent.

    Uses every completed session when fewer than ``recent_n`` exist;
    ``recent_n=0`` counts no session at all.
    """
    if recent_n is None:
        recent_n = settings.MASTERY_RECENT_SESSIONS
    recent = completed_sessions(sessions)[-recent_n:] if recent_n > 0 else []
    return _mean([normalized_score(s) for s in recent]) * 100


def last_completed_session(
    sessions: Iterable[AiReviewSession],
) -> Optional[AiReviewSession]:
    ordered = completed_sessions(sessions)
    return ordered[-1] if ordered else None


def next_ai_review_date(
    last_completed: Optional[AiReviewSession],
    thresholds: Optional[Sequence[float]] = None,
    interval_days: Optional[Sequence[int]] = None,
) -> Optional[datetime]:
    """
    Suggested date of the next AI review.

    The last session's score on a /10 scale picks the gap:
    below 5 → 1 day, below 7 → 3 days, below 9 → 7 days, otherwise 14 days.

    Returns:
        Completion date plus the gap, or None when there is no completed
        session (the first review can happen right away).
    """
    if last_completed is None:
        return None
    score = normalized_score(last_completed)
    if score is None:
        return None

    if thresholds is None:
        thresholds = settings.AI_REVIEW_SCORE_THRESHOLDS
    if interval_days is None:
        interval_days = settings.AI_REVIEW_INTERVAL_DAYS

    score_out_of_ten = score * 10
    days = interval_days[-1]
    for threshold, gap in zip(thresholds, interval_days):
        if score_out_of_ten < threshold:
            days = gap
            break

    return _session_date(last_completed) + timedelta(days=days)


def ai_review_history(
    sessions: Iterable[AiReviewSession], tz: Optional[tzinfo] = None
) -> list[AiScorePoint]:
    """Score (/10, one decimal) of each completed session, oldest first."""
    return [
        AiScorePoint(
            date=local_date(_session_date(s), tz),
            score=round(normalized_score(s) * 10, 1),
        )
        for s in completed_sessions(sessions)
    ]


# =============================================================================
# Activity
# =============================================================================


def study_streak(
    questions: Iterable[Question],
    sessions: Iterable[AiReviewSession],
    today: date,
    tz: Optional[tzinfo] = None,
) -> int:
    """
    Consecutive days, ending today, with any question review or AI review.

    A day without activity today means no streak.
    """
    active_days = {
        local_date(item.date, tz) for question in questions for item in question.history
    }
    active_days.update(local_date(_session_date(s), tz) for s in sessions)

    streak = 0
    day = today
    while day in active_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


# =============================================================================
# Report
# =============================================================================


def summarize_statistics(
    scope: ReviewScope,
    questions: Sequence[Question],
    sessions: Sequence[AiReviewSession],
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> StudyStatistics:
    """Assemble the full statistics report for a scope."""
    now = now or datetime.now(timezone.utc)
    tz = tz or settings.review_tz
    today = local_date(now, tz)

    completed = completed_sessions(sessions)
    last = completed[-1] if completed else None
    next_review = next_ai_review_date(last)

    return StudyStatistics(
        scope=scope.kind,
        scope_id=scope.id,
        questions=QuestionStats(
            total_questions=len(questions),
            total_reviews=total_reviews(questions),
            accuracy=round(accuracy(questions), 1),
            history=question_history_by_day(questions, tz),
            due=due_counts(questions, today, tz),
        ),
        ai_reviews=AiReviewStats(
            total_sessions=len(sessions),
            completed_sessions=len(completed),
            average_score=round(average_ai_score(sessions), 1),
            mastery=round(mastery_percentage(sessions), 1),
            history=ai_review_history(sessions, tz),
            last_session_completed_at=_session_date(last) if last else None,
            next_review_date=local_date(next_review, tz) if next_review else None,
        ),
        study_streak=study_streak(questions, sessions, today, tz),
        reviewed_today=reviewed_on(questions, today, tz),
        generated_at=now,
    )
