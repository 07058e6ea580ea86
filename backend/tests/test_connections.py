"""Creating, reading, editing connections."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.clients.base import ImageUpload
from moviebooks.models.tables import User
from moviebooks.services.connections import ConnectionForm, ConnectionService

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


async def test_create_connection_populates_refs(client, register, post_connection):
    alice = await register("alice")
    conn = await post_connection(
        alice,
        movieTitle="Arrival",
        bookTitle="Story of Your Life",
        tags="scifi, linguistics , ,scifi",
        movieGenres="Sci-Fi, Drama",
        director="Denis Villeneuve",
        actors="Amy Adams, Jeremy Renner",
        author="Ted Chiang",
        context="Same story, told backwards.",
    )
    assert conn["userRef"] == {"_id": alice["id"], "username": "alice", "displayName": None, "profilePictureUrl": None}
    assert conn["movieRef"]["title"] == "Arrival"
    assert conn["movieRef"]["genres"] == ["Sci-Fi", "Drama"]
    assert conn["movieRef"]["actors"] == ["Amy Adams", "Jeremy Renner"]
    assert conn["bookRef"]["author"] == "Ted Chiang"
    assert conn["tags"] == ["scifi", "linguistics"]
    assert conn["likes"] == []
    assert conn["favorites"] == []


async def test_create_requires_auth(client):
    resp = await client.post("/api/connections", data={"movieTitle": "Arrival"})
    assert resp.status_code == 401


async def test_create_requires_title_or_context(client, register):
    alice = await register("alice")
    resp = await client.post("/api/connections", data={"tags": "x"}, headers=alice["headers"])
    assert resp.status_code == 400


async def test_context_only_connection(client, register, post_connection):
    alice = await register("alice")
    conn = await post_connection(alice, context="Films that feel like novels")
    assert conn["movieRef"] is None
    assert conn["bookRef"] is None
    assert conn["context"] == "Films that feel like novels"


async def test_titles_resolve_to_one_record(client, register, post_connection):
    alice = await register("alice")
    first = await post_connection(alice, movieTitle="Arrival", bookTitle="Story of Your Life")
    second = await post_connection(alice, movieTitle="ARRIVAL", bookTitle="story of your life", director="Villeneuve")
    assert second["movieRef"]["_id"] == first["movieRef"]["_id"]
    assert second["bookRef"]["_id"] == first["bookRef"]["_id"]
    assert second["movieRef"]["director"] == "Villeneuve"


async def test_first_poster_wins_and_unused_upload_is_removed(client, register, post_connection, image_store):
    alice = await register("alice")
    first = await post_connection(
        alice, files={"moviePoster": ("a.png", PNG, "image/png")}, movieTitle="Dune",
    )
    assert first["movieRef"]["posterPath"] == "https://images.test/moviePoster-1"

    second = await post_connection(
        alice, files={"moviePoster": ("b.png", PNG, "image/png")}, movieTitle="dune",
    )
    assert second["movieRef"]["posterPath"] == "https://images.test/moviePoster-1"
    assert image_store.deleted == ["moviePoster-2"]


async def test_screenshot_and_cover_are_stored(client, register, post_connection):
    alice = await register("alice")
    conn = await post_connection(
        alice,
        files={
            "bookCover": ("cover.jpg", PNG, "image/jpeg"),
            "screenshot": ("shot.gif", PNG, "image/gif"),
        },
        bookTitle="Dune",
    )
    assert conn["bookRef"]["coverPath"].startswith("https://images.test/bookCover-")
    assert conn["screenshotUrl"].startswith("https://images.test/screenshot-")


async def test_non_image_upload_rejected(client, register):
    alice = await register("alice")
    resp = await client.post(
        "/api/connections",
        data={"movieTitle": "Dune"},
        files={"screenshot": ("notes.txt", b"hello", "text/plain")},
        headers=alice["headers"],
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Error: Images Only! (jpeg, jpg, png, gif)"


async def test_get_connection(client, register, post_connection):
    alice = await register("alice")
    conn = await post_connection(alice, movieTitle="Arrival")

    resp = await client.get(f"/api/connections/{conn['_id']}")
    assert resp.status_code == 200
    assert resp.json()["movieRef"]["title"] == "Arrival"

    resp = await client.get("/api/connections/9999")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Connection not found"

    resp = await client.get("/api/connections/not-an-id")
    assert resp.status_code == 400


async def test_update_connection_owner_only(client, register, post_connection, image_store):
    alice = await register("alice")
    bob = await register("bob")
    conn = await post_connection(
        alice, files={"screenshot": ("a.png", PNG, "image/png")}, movieTitle="Arrival", tags="a",
    )
    old_shot = conn["screenshotUrl"].rsplit("/", 1)[1]

    resp = await client.put(
        f"/api/connections/{conn['_id']}", data={"context": "hijack"}, headers=bob["headers"],
    )
    assert resp.status_code == 403

    resp = await client.put(
        f"/api/connections/{conn['_id']}",
        data={"context": "Updated", "tags": "c, a", "bookTitle": "Story of Your Life"},
        files={"screenshot": ("b.png", PNG, "image/png")},
        headers=alice["headers"],
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["context"] == "Updated"
    assert body["tags"] == ["c", "a"]
    assert body["movieRef"]["title"] == "Arrival"
    assert body["bookRef"]["title"] == "Story of Your Life"
    assert body["screenshotUrl"] != conn["screenshotUrl"]
    assert old_shot in image_store.deleted


async def test_whitespace_edit_fields_leave_links_alone(client, register, post_connection):
    alice = await register("alice")
    conn = await post_connection(
        alice, movieTitle="Arrival", bookTitle="Story of Your Life", context="Same story",
    )

    resp = await client.put(
        f"/api/connections/{conn['_id']}",
        data={"movieTitle": "   ", "bookTitle": " ", "context": "  "},
        headers=alice["headers"],
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["movieRef"]["title"] == "Arrival"
    assert body["bookRef"]["title"] == "Story of Your Life"
    assert body["context"] == "Same story"


async def test_failed_edit_discards_new_screenshot(register, post_connection, session_factory, image_store, monkeypatch):
    alice = await register("alice")
    conn = await post_connection(alice, movieTitle="Arrival")

    async def failing_commit(self):
        raise RuntimeError("database unavailable")

    async with session_factory() as db:
        user = await db.get(User, alice["id"])
        service = ConnectionService(db, image_store)
        monkeypatch.setattr(AsyncSession, "commit", failing_commit)
        with pytest.raises(RuntimeError):
            await service.update(
                conn["_id"], user, ConnectionForm(context="Updated"),
                ImageUpload(field="screenshot", filename="b.png", content=PNG, content_type="image/png"),
            )

    assert image_store.deleted == ["screenshot-1"]
    assert image_store.images == {}
