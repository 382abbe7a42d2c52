"""
Unit Tests

Run in isolation: the repository is in memory and LiteLLM is mocked.
"""
