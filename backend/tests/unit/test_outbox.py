"""
Unit tests for the persistence outbox.

Tests ordered draining, retries on transient errors, non-retried
conflicts and failure reporting.
"""

from unittest.mock import MagicMock

import pytest

from studynotes.enums.review import Rating
from studynotes.services.review.outbox import PersistenceOutbox
from studynotes.services.review.scheduling import update_schedule
from tests.conftest import NOW


def good_update(repository, question_id="q1"):
    return update_schedule(repository.questions[question_id], Rating.GOOD, now=NOW)


class TestEnqueue:
    def test_without_event_loop_stays_queued(self, outbox, repository):
        outbox.enqueue(good_update(repository), expected_version=0)

        assert outbox.pending == 1
        assert repository.write_attempts == 0

    @pytest.mark.asyncio
    async def test_drain_applies_writes(self, outbox, repository):
        outbox.enqueue(good_update(repository), expected_version=0, session_id="s1")

        await outbox.drain()

        assert outbox.pending == 0
        assert repository.questions["q1"].repetition == 1
        assert outbox.failures == []

    @pytest.mark.asyncio
    async def test_writes_apply_in_order(self, outbox, repository):
        first = good_update(repository)
        second = update_schedule(first.apply_to(repository.questions["q1"]), Rating.EASY, now=NOW)

        outbox.enqueue(first, expected_version=0)
        outbox.enqueue(second, expected_version=1)
        await outbox.drain()

        stored = repository.questions["q1"]
        assert stored.version == 2
        assert stored.repetition == 2
        assert [h.quality for h in stored.history] == [Rating.GOOD, Rating.EASY]


class TestRetries:
    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self, outbox, repository):
        repository.fail_writes = 2

        outbox.enqueue(good_update(repository), expected_version=0)
        await outbox.drain()

        assert repository.write_attempts == 3
        assert repository.questions["q1"].repetition == 1
        assert outbox.failures == []

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, repository):
        on_failure = MagicMock()
        outbox = PersistenceOutbox(
            repository.scope(), on_failure=on_failure, max_attempts=2, backoff_min=0, backoff_max=0
        )
        repository.fail_writes = 5

        outbox.enqueue(good_update(repository), expected_version=0, session_id="s1")
        await outbox.drain()

        assert repository.write_attempts == 2
        assert len(outbox.failures) == 1
        failure = outbox.failures[0]
        assert failure.attempts == 2
        assert failure.write.session_id == "s1"
        assert "database unavailable" in failure.message
        on_failure.assert_called_once_with(failure)

    @pytest.mark.asyncio
    async def test_stale_version_is_not_retried(self, outbox, repository):
        outbox.enqueue(good_update(repository), expected_version=0)
        outbox.enqueue(good_update(repository), expected_version=0)

        await outbox.drain()

        assert repository.write_attempts == 2
        assert repository.questions["q1"].version == 1
        assert len(outbox.failures) == 1

    @pytest.mark.asyncio
    async def test_deleted_question_is_not_retried(self, outbox, repository):
        update = good_update(repository)
        del repository.questions["q1"]

        outbox.enqueue(update, expected_version=0)
        await outbox.drain()

        assert repository.write_attempts == 1
        assert len(outbox.failures) == 1

    @pytest.mark.asyncio
    async def test_failure_does_not_block_later_writes(self, outbox, repository):
        update = good_update(repository)
        del repository.questions["q1"]

        outbox.enqueue(update, expected_version=0)
        outbox.enqueue(good_update(repository, "q2"), expected_version=0)
        await outbox.drain()

        assert repository.questions["q2"].repetition == 1
