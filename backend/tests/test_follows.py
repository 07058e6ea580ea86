"""Follow graph."""


async def test_follow_and_notification(client, register):
    alice = await register("alice")
    bob = await register("bob")

    resp = await client.post(f"/api/follows/{bob['id']}", headers=alice["headers"])
    assert resp.status_code == 201
    body = resp.json()
    assert body["follower"]["username"] == "alice"
    assert body["followee"]["username"] == "bob"

    inbox = (await client.get("/api/notifications", headers=bob["headers"])).json()
    assert len(inbox) == 1
    assert inbox[0]["type"] == "new_follower"
    assert inbox[0]["message"] == "alice started following you."
    assert inbox[0]["link"] == "/profile/alice"
    assert inbox[0]["connectionRef"] is None


async def test_follow_rejections(client, register):
    alice = await register("alice")
    bob = await register("bob")

    resp = await client.post(f"/api/follows/{alice['id']}", headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot follow yourself"

    resp = await client.post("/api/follows/999", headers=alice["headers"])
    assert resp.status_code == 404
    assert resp.json()["message"] == "User to follow not found"

    assert (await client.post(f"/api/follows/{bob['id']}", headers=alice["headers"])).status_code == 201
    resp = await client.post(f"/api/follows/{bob['id']}", headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == "Already following this user"


async def test_lists_and_status(client, register):
    alice = await register("alice")
    bob = await register("bob")
    carol = await register("carol")
    await client.post(f"/api/follows/{bob['id']}", headers=alice["headers"])
    await client.post(f"/api/follows/{bob['id']}", headers=carol["headers"])

    followers = (await client.get(f"/api/follows/followers/{bob['id']}")).json()
    assert sorted(u["username"] for u in followers) == ["alice", "carol"]
    following = (await client.get(f"/api/follows/following/{alice['id']}")).json()
    assert [u["username"] for u in following] == ["bob"]
    assert (await client.get("/api/follows/followers/999")).status_code == 404

    status = (await client.get(f"/api/follows/is-following/{bob['id']}", headers=alice["headers"])).json()
    assert status == {"isFollowing": True, "isSelf": False}
    status = (await client.get(f"/api/follows/is-following/{alice['id']}", headers=alice["headers"])).json()
    assert status == {"isFollowing": False, "isSelf": True}
    status = (await client.get(f"/api/follows/is-following/{carol['id']}", headers=alice["headers"])).json()
    assert status == {"isFollowing": False, "isSelf": False}


async def test_unfollow(client, register):
    alice = await register("alice")
    bob = await register("bob")
    await client.post(f"/api/follows/{bob['id']}", headers=alice["headers"])

    resp = await client.delete(f"/api/follows/{bob['id']}", headers=alice["headers"])
    assert resp.status_code == 200
    resp = await client.delete(f"/api/follows/{bob['id']}", headers=alice["headers"])
    assert resp.status_code == 404
    assert resp.json()["message"] == "Not following this user"

    resp = await client.delete(f"/api/follows/{alice['id']}", headers=alice["headers"])
    assert resp.status_code == 400
