import itertools
import json
from types import SimpleNamespace

import pytest
import requests
from fastapi.testclient import TestClient

from tasteplans.api import dependencies
from tasteplans.api.app import app
from tasteplans.config import ServiceSettings
from tasteplans.models import Coords, Place


class FakeStore:
    """In-memory stand-in for ``SupabaseService``."""

    def __init__(self):
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)
        self.users = {}
        self.tokens = {}
        self.activities = {}
        self.reviews = {}
        self.friendships = {}
        self.friend_requests = {}
        self.fail_reads = False

    def _next_id(self, prefix):
        return f"{prefix}{next(self._ids)}"

    def _stamp(self):
        return f"2024-01-01T00:00:{next(self._clock):02d}Z"

    def add_user(self, handle, name=None, token=None):
        user_id = self._next_id("u")
        self.users[user_id] = {
            "id": user_id,
            "handle": handle,
            "name": name or (handle or "").title(),
            "email": f"{handle or user_id}@example.com",
            "image": None,
        }
        if token:
            self.tokens[token] = user_id
        return self.users[user_id]

    def add_review(self, user, place_id, name, rating, tags=()):
        activity = self.upsert_activity(place_id, name)
        return self.create_review(user["id"], activity["id"], rating, tags=list(tags))

    # auth + users
    def get_session_user_id(self, access_token):
        return self.tokens.get(access_token)

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_user_by_handle(self, handle):
        return next((u for u in self.users.values() if u["handle"] == handle), None)

    def get_users_by_handles(self, handles):
        if self.fail_reads:
            raise RuntimeError("database unavailable")
        return [u for u in self.users.values() if u["handle"] in handles]

    def get_users_by_ids(self, user_ids):
        return [self.users[uid] for uid in user_ids if uid in self.users]

    def update_user_handle(self, user_id, handle):
        self.users[user_id]["handle"] = handle
        return self.users[user_id]

    # activities + reviews
    def upsert_activity(self, place_id, name):
        for activity in self.activities.values():
            if activity["place_id"] == place_id:
                activity["name"] = name
                return activity
        activity_id = self._next_id("a")
        self.activities[activity_id] = {"id": activity_id, "place_id": place_id, "name": name, "type": None}
        return self.activities[activity_id]

    def create_review(self, user_id, activity_id, rating, text="", tags=None):
        review_id = self._next_id("r")
        self.reviews[review_id] = {
            "id": review_id,
            "user_id": user_id,
            "activity_id": activity_id,
            "rating": rating,
            "text": text,
            "tags": list(tags or []),
            "created_at": self._stamp(),
        }
        return self.reviews[review_id]

    def get_review(self, review_id):
        return self.reviews.get(review_id)

    def _joined(self, review):
        activity = self.activities[review["activity_id"]]
        return {**review, "activities": {k: activity[k] for k in ("name", "place_id", "type")}}

    def get_user_reviews(self, user_id, limit=100):
        rows = [self._joined(r) for r in self.reviews.values() if r["user_id"] == user_id]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)[:limit]

    def get_recent_reviews(self, user_ids, limit=100):
        if self.fail_reads:
            raise RuntimeError("database unavailable")
        rows = [self._joined(r) for r in self.reviews.values() if r["user_id"] in user_ids]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)[:limit]

    def delete_review(self, review_id):
        return self.reviews.pop(review_id, None) is not None

    # friendships
    def get_friendships(self, user_id):
        rows = [f for f in self.friendships.values() if f["user_id"] == user_id]
        return sorted(rows, key=lambda f: f["created_at"], reverse=True)

    def find_friendship(self, user_id, other_id):
        return next(
            (f for f in self.friendships.values() if f["user_id"] == user_id and f["friend_id"] == other_id),
            None,
        )

    def create_friendship(self, user_id, other_id):
        rows = []
        stamp = self._stamp()
        for left, right in ((user_id, other_id), (other_id, user_id)):
            fid = self._next_id("f")
            self.friendships[fid] = {"id": fid, "user_id": left, "friend_id": right, "created_at": stamp}
            rows.append(self.friendships[fid])
        return rows

    def delete_friendship(self, user_id, other_id):
        doomed = [
            fid for fid, f in self.friendships.items()
            if {f["user_id"], f["friend_id"]} == {user_id, other_id}
        ]
        for fid in doomed:
            del self.friendships[fid]
        return len(doomed)

    def create_friend_request(self, sender_id, receiver_id):
        rid = self._next_id("fr")
        self.friend_requests[rid] = {
            "id": rid,
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "created_at": self._stamp(),
        }
        return self.friend_requests[rid]

    def get_friend_request(self, request_id):
        return self.friend_requests.get(request_id)

    def find_friend_request(self, user_id, other_id):
        return next(
            (
                r for r in self.friend_requests.values()
                if {r["sender_id"], r["receiver_id"]} == {user_id, other_id}
            ),
            None,
        )

    def get_friend_requests(self, receiver_id=None, sender_id=None):
        rows = [
            r for r in self.friend_requests.values()
            if (receiver_id is None or r["receiver_id"] == receiver_id)
            and (sender_id is None or r["sender_id"] == sender_id)
        ]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    def delete_friend_request(self, request_id):
        return self.friend_requests.pop(request_id, None) is not None


class FakeMaps:
    """Maps client double; returns more places than asked so callers must cap."""

    def __init__(self, per_query=5, failing=(), origin=Coords(lat=30.27, lng=-97.74)):
        self.per_query = per_query
        self.failing = tuple(failing)
        self.origin = origin
        self.searches = []
        self.geocoded = []

    def geocode_city(self, city):
        self.geocoded.append(city)
        return self.origin

    def search_text(self, query, location=None, radius=6000, minprice=None, maxprice=None, limit=3):
        self.searches.append(
            {"query": query, "location": location, "radius": radius, "maxprice": maxprice, "limit": limit}
        )
        if any(word in query for word in self.failing):
            raise requests.ConnectionError("maps unavailable")
        slug = query.replace(" ", "-")
        return [Place(place_id=f"{slug}-{i}", name=f"{query} #{i}") for i in range(self.per_query)]


class FakeCompletions:
    def __init__(self):
        self.responses = []
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeOpenAI:
    """Exposes ``chat.completions.create`` returning queued responses in order."""

    def __init__(self, *responses):
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)
        self.respond_with(*responses)

    def respond_with(self, *responses):
        self.completions.responses = list(responses)

    @property
    def calls(self):
        return self.completions.calls


def chat_response(content=None, tool_arguments=None, tool_name="return_suggestions"):
    tool_calls = None
    if tool_arguments is not None:
        arguments = tool_arguments if isinstance(tool_arguments, str) else json.dumps(tool_arguments)
        tool_calls = [
            SimpleNamespace(
                id="call_1",
                type="function",
                function=SimpleNamespace(name=tool_name, arguments=arguments),
            )
        ]
    message = SimpleNamespace(role="assistant", content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


class FakeMemory:
    def __init__(self):
        self.recorded = []

    def record_review(self, handle, memo):
        self.recorded.append((handle, memo))
        return True


TOOL_SUGGESTIONS = {
    "suggestions": [
        {"title": "Arcade night", "reason": "You rate games highly", "hint": "arcade"},
        {"title": "Taco crawl", "reason": "Cheap and loud"},
        {"title": "Museum afternoon", "reason": "Quiet break", "hint": "art museum"},
    ]
}

FEED_SUGGESTIONS = {
    "suggestions": [
        {"title": "Sunday brunch", "reason": "Slow start to the day", "query": "brunch"},
        {"title": "Live music", "reason": "Catch a local band", "places": []},
        {"title": "Bookstore browse", "reason": "Find a new read"},
        {"title": "Dessert run", "reason": "Something sweet"},
    ]
}


@pytest.fixture
def store():
    fake = FakeStore()
    alice = fake.add_user("alice", token="token-alice")
    bob = fake.add_user("bob", token="token-bob")
    fake.add_user(None, name="Newcomer", token="token-new")
    fake.add_user("carol", token="token-carol")
    fake.add_review(alice, "p-pizza", "Tony's Pizza", 5, ["pizza", "cozy"])
    fake.add_review(bob, "p-arcade", "Pixel Arcade", 4, ["arcade", "games"])
    fake.add_review(alice, "p-bar", "Dull Bar", 2, ["bar"])
    return fake


@pytest.fixture
def maps():
    return FakeMaps()


@pytest.fixture
def llm():
    return FakeOpenAI(chat_response(tool_arguments=TOOL_SUGGESTIONS))


@pytest.fixture
def memory():
    return FakeMemory()


@pytest.fixture
def client(store, maps, llm, memory):
    overrides = {
        dependencies.get_settings: lambda: ServiceSettings(),
        dependencies.get_store: lambda: store,
        dependencies.get_store_factory: lambda: (lambda: store),
        dependencies.get_openai_client: lambda: llm,
        dependencies.get_maps_client: lambda: maps,
        dependencies.get_memory_client: lambda: memory,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}
