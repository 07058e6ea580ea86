"""Comment lifecycle."""

import pytest


@pytest.fixture
async def thread(register, post_connection):
    alice = await register("alice")
    bob = await register("bob")
    conn = await post_connection(alice, movieTitle="Arrival")
    return alice, bob, conn


async def test_create_and_list(client, thread):
    alice, bob, conn = thread
    url = f"/api/connections/{conn['_id']}/comments"

    resp = await client.post(url, json={"text": "  First!  "}, headers=bob["headers"])
    assert resp.status_code == 201
    first = resp.json()
    assert first["text"] == "First!"
    assert first["user"]["username"] == "bob"
    assert first["connection"] == conn["_id"]

    await client.post(url, json={"text": "Second"}, headers=alice["headers"])

    listing = (await client.get(url)).json()
    assert [c["text"] for c in listing] == ["Second", "First!"]


async def test_comment_notifies_owner_once(client, thread):
    alice, bob, conn = thread
    url = f"/api/connections/{conn['_id']}/comments"
    await client.post(url, json={"text": "Nice"}, headers=bob["headers"])
    await client.post(url, json={"text": "Thanks"}, headers=alice["headers"])

    inbox = (await client.get("/api/notifications", headers=alice["headers"])).json()
    assert [n["type"] for n in inbox] == ["comment"]
    assert inbox[0]["message"] == "bob commented on your connection."
    assert inbox[0]["link"] == f"/connections/{conn['_id']}"


@pytest.mark.parametrize("text, message", [
    ("", "Comment text cannot be empty."),
    ("    ", "Comment text cannot be empty."),
    ("x" * 1001, "Comment cannot be more than 1000 characters."),
])
async def test_invalid_text(client, thread, text, message):
    _, bob, conn = thread
    resp = await client.post(f"/api/connections/{conn['_id']}/comments", json={"text": text}, headers=bob["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == message


async def test_comment_on_missing_connection(client, thread):
    _, bob, _ = thread
    resp = await client.post("/api/connections/999/comments", json={"text": "hi"}, headers=bob["headers"])
    assert resp.status_code == 404


async def test_only_author_can_edit_or_delete(client, thread):
    alice, bob, conn = thread
    comment = (await client.post(
        f"/api/connections/{conn['_id']}/comments", json={"text": "Original"}, headers=bob["headers"],
    )).json()
    url = f"/api/comments/{comment['_id']}"

    resp = await client.put(url, json={"text": "Edited by owner"}, headers=alice["headers"])
    assert resp.status_code == 401
    resp = await client.delete(url, headers=alice["headers"])
    assert resp.status_code == 401

    resp = await client.put(url, json={"text": "Edited"}, headers=bob["headers"])
    assert resp.status_code == 200
    assert resp.json()["text"] == "Edited"

    resp = await client.delete(url, headers=bob["headers"])
    assert resp.status_code == 200
    assert resp.json() == {"message": "Comment deleted successfully"}
    assert (await client.get(f"/api/connections/{conn['_id']}/comments")).json() == []
