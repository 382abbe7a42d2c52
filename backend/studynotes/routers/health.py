"""
Health Check Endpoints

Endpoints:
- GET /api/health - Basic health check
- GET /api/health/detailed - Health with database and outbox status
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from studynotes import __version__
from studynotes.config import settings
from studynotes.db.base import get_db

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": __version__,
    }


@router.get("/detailed")
async def detailed_health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Detailed health check.

    Checks PostgreSQL connectivity and reports the persistence outbox:
    schedule writes still queued and writes that gave up.
    """
    health = {"status": "healthy", "service": settings.APP_NAME, "dependencies": {}}

    try:
        await db.execute(text("SELECT 1"))
        health["dependencies"]["postgres"] = {"status": "healthy"}
    except Exception as e:
        health["dependencies"]["postgres"] = {"status": "unhealthy", "error": str(e)}
        health["status"] = "degraded"

    outbox = request.app.state.review_manager.outbox
    health["dependencies"]["review_outbox"] = {
        "status": "healthy" if not outbox.failures else "degraded",
        "pending": outbox.pending,
        "failed": len(outbox.failures),
    }
    if outbox.failures:
        health["status"] = "degraded"

    return health
