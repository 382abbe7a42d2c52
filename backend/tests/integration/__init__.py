"""
Integration Tests

Require a running PostgreSQL (POSTGRES_TEST_* env vars). Deselected by
default; run with ``pytest -m integration``.
"""
