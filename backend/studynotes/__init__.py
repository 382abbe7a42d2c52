"""Study Notes backend: spaced-repetition review core."""

__version__ = "0.1.0"
