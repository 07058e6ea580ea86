"""Live integration smoke test: runs against actual services.

Usage: python -m tests.test_live_integration  (or pytest; skipped without credentials)
NOT for CI: requires live Cloudinary credentials and optionally a PostgreSQL DATABASE_URL.
"""

import asyncio
import os

import pytest

from moviebooks.clients.base import ImageUpload

CLOUD_NAME = os.environ.get("CLOUDINARY_CLOUD_NAME", "")
API_KEY = os.environ.get("CLOUDINARY_API_KEY", "")
API_SECRET = os.environ.get("CLOUDINARY_API_SECRET", "")
LIVE_DB_URL = os.environ.get("LIVE_DATABASE_URL", "")

# 1x1 transparent GIF
PIXEL_GIF = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\xff\xff\xff!\xf9\x04\x01\x00\x00\x00\x00"
    b",\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
)


@pytest.mark.skipif(not (CLOUD_NAME and API_KEY and API_SECRET), reason="Cloudinary credentials not set")
async def test_cloudinary():
    """Upload, then delete, a tiny image on the live Cloudinary account."""
    from moviebooks.clients.cloudinary import CloudinaryClient
    client = CloudinaryClient(CLOUD_NAME, API_KEY, API_SECRET, folder="moviebooks-smoke")

    print("\n═══ CLOUDINARY ═══")
    ok = await client.test_connection()
    print(f"  Connection: {'✅' if ok else '❌'}")
    assert ok

    stored = await client.upload(ImageUpload(
        field="screenshot", filename="pixel.gif", content=PIXEL_GIF, content_type="image/gif",
    ))
    print(f"  Uploaded: {stored.public_id} → {stored.url}")
    assert stored.url.startswith("https://")

    await client.delete([stored.public_id])
    print("  Deleted: ✅")


@pytest.mark.skipif(not LIVE_DB_URL, reason="LIVE_DATABASE_URL not set")
async def test_database():
    """Test PostgreSQL connection."""
    import asyncpg

    print("\n═══ DATABASE ═══")
    # Convert SQLAlchemy URL to asyncpg format
    pg_url = LIVE_DB_URL.replace("postgresql+asyncpg://", "postgresql://")
    conn = await asyncpg.connect(pg_url)
    try:
        version = await conn.fetchval("SELECT version()")
        print("  Connection: ✅")
        print(f"  Version: {version[:60]}...")
    finally:
        await conn.close()


async def main():
    print("╔══════════════════════════════════════════════════╗")
    print("║  MOVIEBOOKS — Live Integration Smoke Test       ║")
    print("╚══════════════════════════════════════════════════╝")

    if LIVE_DB_URL:
        await test_database()
    else:
        print("\n═══ DATABASE ═══\n  ⏭ Skipped (LIVE_DATABASE_URL not set)")

    if CLOUD_NAME and API_KEY and API_SECRET:
        await test_cloudinary()
    else:
        print("\n═══ CLOUDINARY ═══\n  ⏭ Skipped (CLOUDINARY_* not set)")

    print("\n══════════════════════════════════════════════════")
    print("Done. Review results above for any ❌ failures.")


if __name__ == "__main__":
    asyncio.run(main())
