from tasteplans.config import FEED_ROUTE, SUGGEST_ROUTE, load_settings
from tasteplans.models import Coords, FeedRequest, SuggestRequest


def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_TIMEOUT_S", "not-a-number")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("LETTA_API_KEY", "letta")
    monkeypatch.setenv("LETTA_PROJECT_ID", "proj")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.openai_api_key == "sk-test"
    assert settings.openai_timeout_s == 20.0
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.memory_enabled is True
    assert settings.log_level == "DEBUG"


def test_route_settings():
    assert (SUGGEST_ROUTE.radius_m, SUGGEST_ROUTE.place_cap, SUGGEST_ROUTE.default_city) == (6000, 1, None)
    assert (FEED_ROUTE.radius_m, FEED_ROUTE.place_cap, FEED_ROUTE.default_city) == (8000, 3, "San Francisco")


def test_request_normalization():
    request = SuggestRequest.model_validate(
        {
            "handle": " alice ",
            "companions": ["bob", "alice", "", None, "bob"],
            "city": "   ",
            "budgetMax": float("inf"),
            "coords": {"lat": 1, "lng": 2},
        }
    )
    assert request.group_handles() == ["alice", "bob"]
    assert request.city is None
    assert request.budget_max is None
    assert request.coords == Coords(lat=1, lng=2)

    feed = FeedRequest.model_validate({"coords": {"lat": True, "lng": 2}, "budgetMax": "10"})
    assert feed.coords is None
    assert feed.budget_max is None
