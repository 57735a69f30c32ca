from conftest import auth


def test_create_review_requires_auth(client):
    response = client.post("/api/reviews", json={"placeId": "p1", "name": "Bean", "rating": 5})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}

    response = client.post(
        "/api/reviews", json={"placeId": "p1", "name": "Bean", "rating": 5}, headers=auth("bogus")
    )
    assert response.status_code == 401


def test_create_review_stores_and_notifies_memory(client, store, memory):
    response = client.post(
        "/api/reviews",
        json={"placeId": "p-new", "name": "Bean There", "rating": 4.5, "tags": "coffee, quiet", "text": "Nice"},
        headers=auth("token-alice"),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True

    review = store.get_review(body["reviewId"])
    assert review["rating"] == 4.5
    assert review["tags"] == ["coffee", "quiet"]
    assert store.activities[review["activity_id"]]["place_id"] == "p-new"

    assert memory.recorded == [
        ("alice", {"placeId": "p-new", "rating": 4.5, "tags": ["coffee", "quiet"], "text": "Nice"})
    ]


def test_create_review_reuses_activity_by_place_id(client, store):
    before = len(store.activities)
    client.post(
        "/api/reviews",
        json={"placeId": "p-pizza", "name": "Tony's Pizza", "rating": 3},
        headers=auth("token-bob"),
    )
    assert len(store.activities) == before


def test_create_review_validates_fields(client, memory):
    for payload in (
        {"name": "Bean", "rating": 5},
        {"placeId": "p1", "rating": 5},
        {"placeId": "p1", "name": "Bean", "rating": "five"},
        {"placeId": "p1", "name": "Bean", "rating": True},
    ):
        response = client.post("/api/reviews", json=payload, headers=auth("token-alice"))
        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "required: placeId, name, rating(number)"}
    assert memory.recorded == []


def test_create_review_store_failure_is_500(client, store):
    def broken(place_id, name):
        raise RuntimeError("insert failed")

    store.upsert_activity = broken
    response = client.post(
        "/api/reviews", json={"placeId": "p1", "name": "Bean", "rating": 5}, headers=auth("token-alice")
    )
    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "insert failed"}


def test_list_reviews_newest_first(client):
    body = client.get("/api/reviews", headers=auth("token-alice")).json()
    names = [r["activity"]["name"] for r in body["reviews"]]
    assert names == ["Dull Bar", "Tony's Pizza"]
    assert body["reviews"][1]["tags"] == ["pizza", "cozy"]
    assert body["reviews"][1]["activity"]["placeId"] == "p-pizza"


def test_delete_review_checks_ownership(client, store):
    alice_review = next(r for r in store.reviews.values() if r["rating"] == 5)

    response = client.request(
        "DELETE", "/api/reviews/delete", json={"reviewId": alice_review["id"]}, headers=auth("token-bob")
    )
    assert response.status_code == 403

    response = client.request(
        "DELETE", "/api/reviews/delete", json={"reviewId": "missing"}, headers=auth("token-alice")
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Review not found"}

    response = client.request(
        "DELETE", "/api/reviews/delete", json={"reviewId": alice_review["id"]}, headers=auth("token-alice")
    )
    assert response.json() == {"success": True}
    assert alice_review["id"] not in store.reviews
