from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


DEFAULT_CITY = "San Francisco"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_LETTA_API_URL = "https://api.letta.ai/v1"
DEFAULT_LETTA_MODEL = "openai/gpt-4o-mini"
DEFAULT_LETTA_EMBEDDING = "openai/text-embedding-3-small"


@dataclass
class ServiceSettings:
    """Provider credentials and runtime knobs read from the environment."""

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_timeout_s: float = 20.0
    google_maps_api_key: Optional[str] = None
    letta_api_url: str = DEFAULT_LETTA_API_URL
    letta_api_key: Optional[str] = None
    letta_project_id: Optional[str] = None
    letta_model: str = DEFAULT_LETTA_MODEL
    letta_embedding: str = DEFAULT_LETTA_EMBEDDING
    request_timeout_s: float = 10.0
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def memory_enabled(self) -> bool:
        return bool(self.letta_api_key and self.letta_project_id)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_settings() -> ServiceSettings:
    load_dotenv()
    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    return ServiceSettings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
        openai_timeout_s=_float_env("OPENAI_TIMEOUT_S", 20.0),
        google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY"),
        letta_api_url=os.getenv("LETTA_API_URL", DEFAULT_LETTA_API_URL),
        letta_api_key=os.getenv("LETTA_API_KEY"),
        letta_project_id=os.getenv("LETTA_PROJECT_ID"),
        letta_model=os.getenv("LETTA_MODEL", DEFAULT_LETTA_MODEL),
        letta_embedding=os.getenv("LETTA_EMBEDDING", DEFAULT_LETTA_EMBEDDING),
        request_timeout_s=_float_env("REQUEST_TIMEOUT_S", 10.0),
        cors_origins=origins or ["*"],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@dataclass
class TasteProfileConfig:
    """Bounds applied when aggregating review history into a taste profile."""

    review_limit: int = 100
    top_tags: int = 10
    liked_limit: int = 10
    liked_min_rating: float = 4.0


@dataclass
class GeneratorConfig:
    """Parameters for the generative suggestion step."""

    model: str = DEFAULT_OPENAI_MODEL
    timeout_s: float = 20.0
    title_max_chars: int = 60
    reason_max_chars: int = 140
    query_max_chars: int = 120
    max_suggestions: int = 6
    min_heuristic_suggestions: int = 3
    tool_max_tokens: int = 600
    feed_max_tokens: int = 2000
    feed_temperature: float = 0.8
    default_city: str = DEFAULT_CITY


@dataclass(frozen=True)
class RouteConfig:
    """Per entry point enrichment settings."""

    name: str
    radius_m: int
    place_cap: int
    default_city: Optional[str] = None


SUGGEST_ROUTE = RouteConfig(name="suggest", radius_m=6000, place_cap=1)
FEED_ROUTE = RouteConfig(name="feed", radius_m=8000, place_cap=3, default_city=DEFAULT_CITY)
