"""
Unit tests for SM-2 scheduling.

Tests the pure update_schedule function: lapses, the three success
grades, the ease factor floor, interval rounding, history bookkeeping and
calendar-day due checks.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from studynotes.enums.review import Rating, ScopeKind
from studynotes.models.review import SourceReview
from studynotes.services.review.scheduling import (
    SchedulingParams,
    is_due,
    local_date,
    rating_for_score,
    round_half_up,
    sm2_ease_factor,
    update_schedule,
)
from tests.conftest import NOW, history, make_question


class TestFirstReview:
    """A new question (repetition 0, interval 0, EF 2.5)."""

    def test_good_schedules_one_day(self):
        update = update_schedule(make_question(), Rating.GOOD, now=NOW)

        assert update.repetition == 1
        assert update.interval == 1
        assert update.ease_factor == 2.5
        assert update.next_review == NOW + timedelta(days=1)
        assert update.last_review == NOW

    def test_easy_raises_ease_factor(self):
        update = update_schedule(make_question(), Rating.EASY, now=NOW)

        assert update.repetition == 1
        assert update.interval == 1
        assert update.ease_factor == pytest.approx(2.6)

    def test_hard_lowers_ease_factor(self):
        update = update_schedule(make_question(), Rating.HARD, now=NOW)

        assert update.repetition == 1
        assert update.interval == 1
        assert update.ease_factor == pytest.approx(2.36)

    def test_again_resets(self):
        update = update_schedule(make_question(), Rating.AGAIN, now=NOW)

        assert update.repetition == 0
        assert update.interval == 1
        assert update.ease_factor == pytest.approx(2.3)


class TestLaterReviews:
    def test_second_success_multiplies_interval(self):
        question = make_question(repetition=1, interval=1, ease_factor=2.5)

        update = update_schedule(question, Rating.GOOD, now=NOW)

        assert update.repetition == 2
        assert update.interval == 3  # round_half_up(1 * 2.5)

    def test_interval_uses_updated_ease_factor(self):
        question = make_question(repetition=2, interval=6, ease_factor=2.5)

        update = update_schedule(question, Rating.EASY, now=NOW)

        assert update.ease_factor == pytest.approx(2.6)
        assert update.interval == 16  # round_half_up(6 * 2.6 = 15.6)

    def test_interval_rounds_half_up(self):
        question = make_question(repetition=3, interval=5, ease_factor=2.5)

        update = update_schedule(question, Rating.GOOD, now=NOW)

        assert update.interval == 13  # 12.5 rounds up, not to even

    def test_lapse_after_long_interval(self):
        question = make_question(repetition=5, interval=40, ease_factor=2.1)

        update = update_schedule(question, Rating.AGAIN, now=NOW)

        assert update.repetition == 0
        assert update.interval == 1
        assert update.ease_factor == pytest.approx(1.9)
        assert update.next_review == NOW + timedelta(days=1)


class TestEaseFactorFloor:
    @pytest.mark.parametrize("quality", [Rating.AGAIN, Rating.HARD])
    def test_never_below_floor(self, quality):
        question = make_question(repetition=2, interval=4, ease_factor=1.3)

        update = update_schedule(question, quality, now=NOW)

        assert update.ease_factor == 1.3

    def test_again_clamps_to_floor(self):
        question = make_question(ease_factor=1.4)

        update = update_schedule(question, Rating.AGAIN, now=NOW)

        assert update.ease_factor == 1.3

    def test_custom_params(self):
        params = SchedulingParams(min_ease_factor=1.5, lapse_ease_penalty=0.5)

        update = update_schedule(make_question(ease_factor=1.8), Rating.AGAIN, now=NOW, params=params)

        assert update.ease_factor == 1.5


class TestHistory:
    def test_appends_exactly_one_entry(self):
        earlier = NOW - timedelta(days=3)
        question = make_question(history=history((earlier, Rating.GOOD)))

        update = update_schedule(question, Rating.HARD, now=NOW)

        assert len(update.history) == 2
        assert update.history[0].date == earlier
        assert update.history[-1].date == NOW
        assert update.history[-1].quality == Rating.HARD

    def test_does_not_modify_input(self):
        question = make_question()

        update_schedule(question, Rating.GOOD, now=NOW)

        assert question.history == []
        assert question.repetition == 0
        assert question.next_review is None

    def test_apply_to_copies_schedule(self):
        question = make_question(version=4)
        update = update_schedule(question, Rating.GOOD, now=NOW)

        applied = update.apply_to(question)

        assert applied.repetition == 1
        assert applied.next_review == update.next_review
        assert len(applied.history) == 1
        assert applied.version == 4

    def test_integer_quality_accepted(self):
        update = update_schedule(make_question(), 3, now=NOW)

        assert update.quality == Rating.GOOD


class TestHelpers:
    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2
        assert round_half_up(12.5) == 13

    def test_sm2_ease_factor_grades(self):
        assert sm2_ease_factor(2.5, 5, 1.3) == pytest.approx(2.6)
        assert sm2_ease_factor(2.5, 4, 1.3) == pytest.approx(2.5)
        assert sm2_ease_factor(2.5, 3, 1.3) == pytest.approx(2.36)

    def test_grade_for(self):
        params = SchedulingParams()
        assert params.grade_for(Rating.HARD) == 3
        assert params.grade_for(Rating.GOOD) == 4
        assert params.grade_for(Rating.EASY) == 5


class TestDueCheck:
    def test_never_scheduled_is_due(self):
        assert is_due(make_question(), date(2024, 3, 10), timezone.utc)

    def test_later_today_is_due(self):
        question = make_question(next_review=datetime(2024, 3, 10, 23, 0, tzinfo=timezone.utc))

        assert is_due(question, date(2024, 3, 10), timezone.utc)

    def test_tomorrow_is_not_due(self):
        question = make_question(next_review=datetime(2024, 3, 11, 0, 30, tzinfo=timezone.utc))

        assert not is_due(question, date(2024, 3, 10), timezone.utc)

    def test_overdue_is_due(self):
        question = make_question(next_review=datetime(2024, 1, 1, tzinfo=timezone.utc))

        assert is_due(question, date(2024, 3, 10), timezone.utc)

    def test_local_date_uses_timezone(self):
        moment = datetime(2024, 3, 10, 20, 0, tzinfo=timezone.utc)

        assert local_date(moment, timezone.utc) == date(2024, 3, 10)
        assert local_date(moment, ZoneInfo("Asia/Tokyo")) == date(2024, 3, 11)

    def test_naive_datetimes_are_utc(self):
        assert local_date(datetime(2024, 3, 10, 23, 0), ZoneInfo("Asia/Tokyo")) == date(2024, 3, 11)


class TestAiReviewRating:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (0.0, Rating.AGAIN),
            (0.1, Rating.HARD),
            (0.49, Rating.HARD),
            (0.5, Rating.GOOD),
            (0.79, Rating.GOOD),
            (0.8, Rating.EASY),
            (1.0, Rating.EASY),
        ],
    )
    def test_score_maps_to_rating(self, score, expected):
        assert rating_for_score(score) == expected

    def test_note_schedule_uses_the_same_rules(self):
        note = SourceReview(id="note-1", source_type=ScopeKind.NOTE)

        update = update_schedule(note, Rating.EASY, now=NOW)
        scheduled = update.apply_to(note)

        assert update.question_id == "note-1"
        assert scheduled.repetition == 1
        assert scheduled.interval == 1
        assert scheduled.ease_factor == pytest.approx(2.6)
        assert scheduled.next_review == NOW + timedelta(days=1)
        assert scheduled.source_type == ScopeKind.NOTE
