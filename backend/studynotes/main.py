"""
Study Notes API

FastAPI application factory. Long-lived review objects are built here and
stored on ``app.state``:

- ``review_manager``: in-memory review sessions plus the persistence outbox
  that saves schedule updates in the background
- ``ai_job_runner``: background generation and evaluation of AI reviews

Usage:
    uvicorn studynotes.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studynotes import __version__
from studynotes.config import settings
from studynotes.db.base import init_db
from studynotes.middleware.error_handling import setup_error_handling
from studynotes.routers import ai_review, health, questions, review
from studynotes.services.llm import get_llm_client
from studynotes.services.review.ai_generator import AiAnswerEvaluator, AiQuestionGenerator
from studynotes.services.review.ai_pipeline import AiReviewJobRunner
from studynotes.services.review.outbox import PersistenceOutbox
from studynotes.services.review.repository import sql_repository_scope
from studynotes.services.review.session_manager import ReviewSessionManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DB_CREATE_TABLES:
        await init_db()
    logger.info(f"{settings.APP_NAME} {__version__} started")

    yield

    outbox = app.state.review_manager.outbox
    if outbox.pending:
        logger.info(f"Flushing {outbox.pending} pending schedule write(s)")
    await outbox.drain()


def create_app() -> FastAPI:
    app = FastAPI(title=f"{settings.APP_NAME} API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_error_handling(app, debug=settings.DEBUG)

    llm_client = get_llm_client()
    app.state.review_manager = ReviewSessionManager(PersistenceOutbox(sql_repository_scope))
    app.state.ai_job_runner = AiReviewJobRunner(
        sql_repository_scope,
        AiQuestionGenerator(llm_client),
        AiAnswerEvaluator(llm_client),
    )

    app.include_router(health.router)
    app.include_router(questions.router)
    app.include_router(review.router)
    app.include_router(ai_review.router)
    return app


app = create_app()
