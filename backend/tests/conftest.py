"""
Shared Test Fixtures and Configuration

Review services are tested against an in-memory repository
(tests/fakes.py); API tests swap it in through dependency overrides.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest
from dotenv import load_dotenv

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

from studynotes.enums.review import NoteStatus, Rating  # noqa: E402
from studynotes.models.review import Question, QuestionHistoryItem  # noqa: E402
from studynotes.services.review.ai_pipeline import AiReviewPipeline  # noqa: E402
from studynotes.services.review.outbox import PersistenceOutbox  # noqa: E402
from studynotes.services.review.session_manager import ReviewSessionManager  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeAnswerEvaluator,
    FakeClock,
    FakeNote,
    FakeQuestionGenerator,
    InMemoryReviewRepository,
)


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """Predictable environment for code that reads os.environ at call time."""
    original_env = os.environ.copy()

    os.environ.update(
        {
            "POSTGRES_HOST": os.environ.get("POSTGRES_HOST", "localhost"),
            "POSTGRES_USER": os.environ.get("POSTGRES_TEST_USER", "testuser"),
            "POSTGRES_PASSWORD": os.environ.get("POSTGRES_TEST_PASSWORD", "testpass"),
            "POSTGRES_DB": os.environ.get("POSTGRES_TEST_DB", "testdb"),
            "OPENAI_API_KEY": os.environ.get("OPENAI_API_KEY", "test-api-key"),
        }
    )

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Builders
# ============================================================================


NOW = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)


def make_question(
    question_id: str = "q1",
    note_id: str = "note-1",
    user_id: str = "user-1",
    **overrides,
) -> Question:
    """Question with sensible defaults; keyword arguments override fields."""
    data = {
        "id": question_id,
        "note_id": note_id,
        "user_id": user_id,
        "question": f"What is {question_id}?",
        "answer": f"{question_id} is an answer",
        "time_stamp": 1_700_000_000_000,
        "ease_factor": 2.5,
    }
    data.update(overrides)
    return Question(**data)


def history(*entries: tuple[datetime, Rating]) -> list[QuestionHistoryItem]:
    return [QuestionHistoryItem(date=when, quality=quality) for when, quality in entries]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def repository() -> InMemoryReviewRepository:
    """
    Repository with one user, two folders and four notes.

    folder-1: note-1 (q1, q2, q3), note-2 (q4), note-archived (q5, archived)
    folder-2: note-3 (q6)

    q1 and q4 are due before NOW, q2 was never scheduled, q3 is due
    tomorrow, q6 next week.
    """
    repo = InMemoryReviewRepository()
    repo.add_note(FakeNote("note-1", "user-1", "folder-1", "Cells", content="Cells are small."))
    repo.add_note(FakeNote("note-2", "user-1", "folder-1", "Enzymes", content="Enzymes catalyze."))
    repo.add_note(
        FakeNote("note-archived", "user-1", "folder-1", "Old", status=NoteStatus.ARCHIVED)
    )
    repo.add_note(FakeNote("note-3", "user-1", "folder-2", "Genes", content="Genes encode."))

    repo.add_question(
        make_question("q1", "note-1", time_stamp=1, next_review=NOW - timedelta(days=2))
    )
    repo.add_question(make_question("q2", "note-1", time_stamp=2))
    repo.add_question(
        make_question("q3", "note-1", time_stamp=3, next_review=NOW + timedelta(days=1))
    )
    repo.add_question(
        make_question("q4", "note-2", time_stamp=1, next_review=NOW - timedelta(hours=1))
    )
    repo.add_question(make_question("q5", "note-archived", time_stamp=1))
    repo.add_question(
        make_question("q6", "note-3", time_stamp=1, next_review=NOW + timedelta(days=7))
    )
    return repo


@pytest.fixture
def outbox(repository: InMemoryReviewRepository) -> PersistenceOutbox:
    return PersistenceOutbox(
        repository.scope(), max_attempts=3, backoff_min=0, backoff_max=0
    )


@pytest.fixture
def manager(outbox: PersistenceOutbox, clock: FakeClock) -> ReviewSessionManager:
    return ReviewSessionManager(outbox, clock=clock, tz=timezone.utc)


@pytest.fixture
def generator() -> FakeQuestionGenerator:
    return FakeQuestionGenerator()


@pytest.fixture
def evaluator() -> FakeAnswerEvaluator:
    return FakeAnswerEvaluator()


@pytest.fixture
def pipeline(
    repository: InMemoryReviewRepository,
    generator: FakeQuestionGenerator,
    evaluator: FakeAnswerEvaluator,
    clock: FakeClock,
) -> AiReviewPipeline:
    return AiReviewPipeline(repository, generator, evaluator, clock)


@pytest.fixture
def client(repository, clock, generator, evaluator):
    """
    TestClient over the real app with in-memory collaborators.

    The repository dependency, the review session manager and the AI job
    runner all use ``repository``; the database is never touched.
    """
    from fastapi.testclient import TestClient

    from studynotes.dependencies import get_repository
    from studynotes.main import create_app
    from studynotes.services.review.ai_pipeline import AiReviewJobRunner

    app = create_app()
    app.dependency_overrides[get_repository] = lambda: repository
    outbox = PersistenceOutbox(repository.scope(), max_attempts=2, backoff_min=0, backoff_max=0)
    app.state.review_manager = ReviewSessionManager(outbox, clock=clock, tz=timezone.utc)
    app.state.ai_job_runner = AiReviewJobRunner(repository.scope(), generator, evaluator, clock)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
