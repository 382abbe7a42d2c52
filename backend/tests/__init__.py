"""
Study Notes Test Suite

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures (in-memory repository, fake clock, TestClient)
    ├── fakes.py             # In-memory repository and fake AI generator/evaluator
    ├── unit/                # Unit tests (no database, no network)
    └── integration/         # SqlReviewRepository against PostgreSQL

Running Tests:
    # Unit tests (default; integration tests are deselected)
    pytest

    # Integration tests (requires PostgreSQL, see POSTGRES_TEST_* env vars)
    pytest -m integration
"""
