"""Health and system status endpoints."""

from fastapi import APIRouter, Depends, Request
from datetime import datetime, timezone
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.config import settings
from moviebooks.database import get_db
from moviebooks.models.tables import Book, Comment, Connection, Movie, User

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Service health check: reports database and image store status."""
    integrations = getattr(request.app.state, "integrations", {})
    return {
        "status": "ok",
        "version": "1.0.0",
        "environment": settings.environment,
        "imageStore": settings.image_store,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "integrations": integrations,
    }


@router.get("/stats")
async def system_stats(db: AsyncSession = Depends(get_db)):
    """Row counts for the main collections."""
    counts = {}
    for key, model in (
        ("users", User), ("connections", Connection), ("movies", Movie),
        ("books", Book), ("comments", Comment),
    ):
        counts[key] = await db.scalar(select(func.count()).select_from(model)) or 0
    return counts
