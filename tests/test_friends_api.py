from conftest import auth


def _request(client, token, handle):
    return client.post("/api/friends/request", json={"receiverHandle": handle}, headers=auth(token))


def test_friend_request_flow(client, store):
    response = _request(client, "token-alice", "bob")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["friendRequest"]["receiver"]["handle"] == "bob"
    request_id = body["friendRequest"]["id"]

    bob_view = client.get("/api/friends", headers=auth("token-bob")).json()
    assert [r["sender"]["handle"] for r in bob_view["pendingRequests"]] == ["alice"]
    alice_view = client.get("/api/friends", headers=auth("token-alice")).json()
    assert [r["receiver"]["handle"] for r in alice_view["sentRequests"]] == ["bob"]

    response = client.post("/api/friends/accept", json={"requestId": request_id}, headers=auth("token-bob"))
    assert response.json() == {"success": True}
    assert store.friend_requests == {}

    alice_view = client.get("/api/friends", headers=auth("token-alice")).json()
    assert [f["user"]["handle"] for f in alice_view["friends"]] == ["bob"]
    bob_view = client.get("/api/friends", headers=auth("token-bob")).json()
    assert [f["user"]["handle"] for f in bob_view["friends"]] == ["alice"]


def test_friend_request_validation(client, store):
    assert _request(client, "token-alice", "ghost").status_code == 404
    response = _request(client, "token-alice", "alice")
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot send friend request to yourself"}

    assert _request(client, "token-alice", "bob").status_code == 200
    response = _request(client, "token-bob", "alice")
    assert response.json() == {"error": "Friend request already exists"}

    store.friend_requests.clear()
    alice = store.get_user_by_handle("alice")
    bob = store.get_user_by_handle("bob")
    store.create_friendship(alice["id"], bob["id"])
    response = _request(client, "token-alice", "bob")
    assert response.json() == {"error": "Already friends"}


def test_only_receiver_can_answer_request(client):
    request_id = _request(client, "token-alice", "bob").json()["friendRequest"]["id"]

    response = client.post("/api/friends/accept", json={"requestId": request_id}, headers=auth("token-alice"))
    assert response.status_code == 403
    response = client.post("/api/friends/reject", json={"requestId": "nope"}, headers=auth("token-bob"))
    assert response.status_code == 404

    response = client.post("/api/friends/reject", json={"requestId": request_id}, headers=auth("token-bob"))
    assert response.json() == {"success": True}
    assert client.get("/api/friends", headers=auth("token-bob")).json()["pendingRequests"] == []


def test_remove_friend_deletes_both_sides(client, store):
    alice = store.get_user_by_handle("alice")
    bob = store.get_user_by_handle("bob")
    store.create_friendship(alice["id"], bob["id"])

    response = client.request(
        "DELETE", "/api/friends/remove", json={"friendId": bob["id"]}, headers=auth("token-alice")
    )
    assert response.json() == {"success": True}
    assert store.friendships == {}
