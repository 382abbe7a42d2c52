"""API Routers package."""

from studynotes.routers import ai_review as ai_review_router
from studynotes.routers import health as health_router
from studynotes.routers import questions as questions_router
from studynotes.routers import review as review_router

__all__ = ["ai_review_router", "health_router", "questions_router", "review_router"]
