"""Probe the database and image store on startup and report status."""

from sqlalchemy import text

from moviebooks.clients.base import IImageStore
from moviebooks.config import Settings
from moviebooks.database import engine


async def probe_all(settings: Settings, images: IImageStore) -> dict:
    """Check reachability of the backing services. Returns status dict."""
    results = {"database": await _probe_database()}

    if settings.image_store == "cloudinary" and not settings.has_cloudinary:
        results["image_store"] = {"status": "not_configured", "backend": "cloudinary"}
    else:
        results["image_store"] = await _probe_images(images)

    return results


async def _probe_database() -> dict:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ok", "backend": engine.dialect.name}
    except Exception as e:
        return {"status": "error", "detail": str(e)[:200]}


async def _probe_images(images: IImageStore) -> dict:
    """Probe a single image store."""
    try:
        ok = await images.test_connection()
        return {"status": "ok" if ok else "error", "backend": images.name}
    except Exception as e:
        return {"status": "error", "backend": images.name, "detail": str(e)[:200]}
