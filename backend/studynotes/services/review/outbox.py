"""
Persistence Outbox for Review Feedback

Review sessions advance as soon as feedback is submitted; the schedule
write happens afterwards. The outbox queues those writes, drains them in
order on a background task and reconciles failures:

- transient errors are retried with exponential backoff (tenacity)
- a stale version (duplicate submission) or a deleted question is not retried
- every write that finally fails is reported through ``on_failure`` and kept
  in ``failures``; session progress is never rolled back

Usage:
    outbox = PersistenceOutbox(sql_repository_scope, on_failure=notify)
    outbox.enqueue(update, expected_version=question.version, session_id=session.id)

    # Wait for outstanding writes (shutdown, tests)
    await outbox.drain()
"""

import asyncio
import logging
from collections import deque
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from studynotes.config import settings
from studynotes.middleware.error_handling import NotFoundError, StaleQuestionError
from studynotes.services.review.repository import ReviewRepository
from studynotes.services.review.scheduling import ScheduleUpdate

logger = logging.getLogger(__name__)

RepositoryScope = Callable[[], AbstractAsyncContextManager[ReviewRepository]]


@dataclass
class PendingScheduleWrite:
    """A schedule update waiting to be persisted."""

    update: ScheduleUpdate
    expected_version: int
    session_id: Optional[str] = None
    queued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class FailedScheduleWrite:
    write: PendingScheduleWrite
    error: str
    attempts: int

    @property
    def message(self) -> str:
        return (
            f"Could not save your review of question {self.write.update.question_id}: "
            f"{self.error}"
        )


class PersistenceOutbox:
    """
    Ordered, non-blocking queue of schedule writes.

    Writes are applied one at a time in enqueue order, each in its own
    repository scope.
    """

    def __init__(
        self,
        repository_scope: RepositoryScope,
        on_failure: Optional[Callable[[FailedScheduleWrite], None]] = None,
        max_attempts: Optional[int] = None,
        backoff_min: Optional[float] = None,
        backoff_max: Optional[float] = None,
    ):
        """
        Args:
            repository_scope: Factory of async context managers yielding a
                repository with its own transaction
            on_failure: Called once for every write that finally fails
            max_attempts: Attempts per write, including the first
            backoff_min: Minimum wait between attempts, seconds
            backoff_max: Maximum wait between attempts, seconds
        """
        self.repository_scope = repository_scope
        self.on_failure = on_failure
        self.max_attempts = max_attempts or settings.OUTBOX_MAX_ATTEMPTS
        self.backoff_min = settings.OUTBOX_BACKOFF_MIN if backoff_min is None else backoff_min
        self.backoff_max = settings.OUTBOX_BACKOFF_MAX if backoff_max is None else backoff_max

        self.failures: list[FailedScheduleWrite] = []
        self._queue: deque[PendingScheduleWrite] = deque()
        self._worker: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return len(self._queue)

    def enqueue(
        self,
        update: ScheduleUpdate,
        expected_version: int,
        session_id: Optional[str] = None,
    ) -> PendingScheduleWrite:
        """
        Queue a write and make sure a drain task is running.

        Never blocks. Without a running event loop the write stays queued
        until ``drain()`` is awaited.
        """
        write = PendingScheduleWrite(
            update=update, expected_version=expected_version, session_id=session_id
        )
        self._queue.append(write)
        logger.debug(
            f"Queued schedule write for question {update.question_id} "
            f"(pending={len(self._queue)})"
        )

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return write

        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._run())
        return write

    async def drain(self) -> None:
        """Wait until every queued write has been applied or has failed."""
        if self._queue and (self._worker is None or self._worker.done()):
            self._worker = asyncio.get_running_loop().create_task(self._run())
        if self._worker is not None:
            await self._worker

    async def _run(self) -> None:
        while self._queue:
            write = self._queue.popleft()
            await self._apply(write)

    async def _apply(self, write: PendingScheduleWrite) -> None:
        question_id = write.update.question_id
        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(
                    multiplier=self.backoff_min, min=self.backoff_min, max=self.backoff_max
                ),
                retry=retry_if_not_exception_type((StaleQuestionError, NotFoundError)),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    async with self.repository_scope() as repository:
                        await repository.apply_schedule_update(
                            write.update, write.expected_version
                        )
            logger.info(f"Persisted schedule for question {question_id}")

        except Exception as e:
            failure = FailedScheduleWrite(write=write, error=str(e), attempts=attempts)
            self.failures.append(failure)
            logger.error(
                f"Schedule write for question {question_id} failed after "
                f"{attempts} attempt(s): {e}"
            )
            if self.on_failure is not None:
                self.on_failure(failure)
