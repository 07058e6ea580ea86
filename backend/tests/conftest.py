"""Shared fixtures: in-memory SQLite, an in-memory image store, and an API client."""

import os
import tempfile

# Settings are read at import time, so configure before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["IMAGE_STORE"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="moviebooks-uploads-")
os.environ["JWT_SECRET"] = "test-secret"

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from moviebooks.clients.base import IImageStore, ImageUpload, StoredImage
from moviebooks.database import Base, configure_sqlite, get_db
from moviebooks.main import app
from moviebooks.services.uploads import get_image_store
from moviebooks import models  # noqa: F401


class MemoryImageStore(IImageStore):
    """Keeps uploads in a dict and records deletes."""

    name = "memory"

    def __init__(self):
        self.images: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self._counter = 0

    async def upload(self, image: ImageUpload) -> StoredImage:
        self._counter += 1
        public_id = f"{image.field}-{self._counter}"
        self.images[public_id] = image.content
        return StoredImage(url=f"https://images.test/{public_id}", public_id=public_id)

    async def delete(self, public_ids: list[str]) -> None:
        for public_id in public_ids:
            self.deleted.append(public_id)
            self.images.pop(public_id, None)

    async def test_connection(self) -> bool:
        return True


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    configure_sqlite(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def image_store():
    return MemoryImageStore()


@pytest_asyncio.fixture
async def client(session_factory, image_store):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_store] = lambda: image_store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user and return `{id, username, token, headers}`."""

    async def _register(username: str = "alice", password: str = "secret123"):
        resp = await client.post(
            "/api/auth/register",
            json={"username": username, "email": f"{username}@example.com", "password": password},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {
            "id": body["_id"],
            "username": username,
            "token": body["token"],
            "headers": {"Authorization": f"Bearer {body['token']}"},
        }

    return _register


@pytest.fixture
def post_connection(client):
    """Create a connection as `user` from form fields (and optional files)."""

    async def _post(user: dict, files=None, **fields):
        data = {k: str(v) for k, v in fields.items()}
        resp = await client.post("/api/connections", data=data, files=files, headers=user["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _post
