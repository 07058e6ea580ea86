"""Notification inbox and best-effort creation."""

from moviebooks.models.tables import Notification
from moviebooks.services.notifications import generate_notification


async def _seed(session_factory, recipient_id, sender_id, count):
    async with session_factory() as db:
        for i in range(count):
            db.add(Notification(
                recipient_id=recipient_id, sender_id=sender_id, type="like", message=f"n{i}",
            ))
            await db.flush()
        await db.commit()


async def test_inbox_is_newest_first_and_capped(client, register, session_factory):
    alice = await register("alice")
    bob = await register("bob")
    await _seed(session_factory, alice["id"], bob["id"], 35)

    inbox = (await client.get("/api/notifications", headers=alice["headers"])).json()
    assert len(inbox) == 30
    assert inbox[0]["message"] == "n34"
    assert inbox[-1]["message"] == "n5"
    assert all(n["recipientRef"] == alice["id"] for n in inbox)


async def test_mark_one_read(client, register, session_factory):
    alice = await register("alice")
    bob = await register("bob")
    await _seed(session_factory, alice["id"], bob["id"], 1)
    nid = (await client.get("/api/notifications", headers=alice["headers"])).json()[0]["_id"]

    resp = await client.patch(f"/api/notifications/{nid}/read", headers=bob["headers"])
    assert resp.status_code == 403
    assert resp.json()["message"] == "Not authorized to update this notification"

    resp = await client.patch(f"/api/notifications/{nid}/read", headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json()["read"] is True

    resp = await client.patch("/api/notifications/999/read", headers=alice["headers"])
    assert resp.status_code == 404


async def test_mark_all_read(client, register, session_factory):
    alice = await register("alice")
    bob = await register("bob")
    await _seed(session_factory, alice["id"], bob["id"], 3)
    await _seed(session_factory, bob["id"], alice["id"], 2)

    resp = await client.patch("/api/notifications/read-all", headers=alice["headers"])
    assert resp.json() == {"message": "All notifications marked as read", "count": 3}

    inbox = (await client.get("/api/notifications", headers=bob["headers"])).json()
    assert not any(n["read"] for n in inbox)


async def test_bulk_mark_read_skips_foreign_ids(client, register, session_factory):
    alice = await register("alice")
    bob = await register("bob")
    await _seed(session_factory, alice["id"], bob["id"], 2)
    await _seed(session_factory, bob["id"], alice["id"], 1)
    mine = [n["_id"] for n in (await client.get("/api/notifications", headers=alice["headers"])).json()]
    theirs = [n["_id"] for n in (await client.get("/api/notifications", headers=bob["headers"])).json()]

    resp = await client.put(
        "/api/notifications/mark-read",
        json={"notificationIds": mine[:1] + theirs},
        headers=alice["headers"],
    )
    assert resp.json()["count"] == 1
    inbox = (await client.get("/api/notifications", headers=bob["headers"])).json()
    assert inbox[0]["read"] is False


async def test_generate_notification_swallows_failures(register, session_factory):
    alice = await register("alice")
    async with session_factory() as db:
        # Unknown recipient violates the foreign key
        failed = await generate_notification(
            db, recipient_id=9999, sender_id=alice["id"], type="like", message="nope",
        )
        assert failed is None

        # The session is still usable afterwards
        ok = await generate_notification(
            db, recipient_id=alice["id"], sender_id=None, type="like", message="yes",
        )
        assert ok is not None
        await db.commit()
        assert ok.id is not None


async def test_generate_notification_rejects_unknown_type(register, session_factory):
    alice = await register("alice")
    async with session_factory() as db:
        result = await generate_notification(
            db, recipient_id=alice["id"], sender_id=None, type="poke", message="hi",
        )
        assert result is None
