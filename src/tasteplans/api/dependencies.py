"""
Process-wide collaborators for the HTTP layer.

Each provider client is created once on first use and handed to the pipeline
stages through their constructors; routes receive them via ``Depends`` so
tests can swap them with ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from openai import OpenAI

from tasteplans.config import GeneratorConfig, ServiceSettings, TasteProfileConfig, load_settings
from tasteplans.maps.google_maps import GoogleMapsClient
from tasteplans.memory.letta_client import TasteMemoryClient
from tasteplans.recommendation.place_enrichment import PlaceEnricher
from tasteplans.recommendation.plans import PlanOrchestrator
from tasteplans.recommendation.suggestion_generator import SuggestionGenerator
from tasteplans.recommendation.taste_profile import TasteProfileExtractor
from tasteplans.supabase_client.supabase_service import SupabaseService, get_supabase_service


LOGGER = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache(maxsize=None)
def get_settings() -> ServiceSettings:
    return load_settings()


def get_store() -> SupabaseService:
    """Store for the authenticated routes; a missing configuration is a 503."""
    try:
        return get_supabase_service()
    except ValueError as exc:
        LOGGER.error("Persistence unavailable: %s", exc)
        raise HTTPException(status_code=503, detail="Persistence not configured")


def get_store_factory() -> Callable[[], SupabaseService]:
    """Deferred store access for the plan pipeline; only personalization connects."""
    return get_supabase_service


@lru_cache(maxsize=None)
def get_openai_client() -> Optional[OpenAI]:
    settings = get_settings()
    if not settings.openai_api_key:
        LOGGER.warning("OPENAI_API_KEY missing; suggestions will fall back")
        return None
    return OpenAI(api_key=settings.openai_api_key, timeout=settings.openai_timeout_s, max_retries=0)


@lru_cache(maxsize=None)
def get_maps_client() -> GoogleMapsClient:
    settings = get_settings()
    return GoogleMapsClient(settings.google_maps_api_key, timeout=settings.request_timeout_s)


@lru_cache(maxsize=None)
def get_memory_client() -> TasteMemoryClient:
    return TasteMemoryClient.from_settings(get_settings())


def get_orchestrator_builder(
    store_factory: Callable[[], SupabaseService] = Depends(get_store_factory),
    settings: ServiceSettings = Depends(get_settings),
    openai_client: Optional[OpenAI] = Depends(get_openai_client),
    maps_client: GoogleMapsClient = Depends(get_maps_client),
) -> Callable[[], PlanOrchestrator]:
    """Return a callable that assembles the pipeline inside the route's error handling."""
    def build() -> PlanOrchestrator:
        generator_config = GeneratorConfig(model=settings.openai_model, timeout_s=settings.openai_timeout_s)
        return PlanOrchestrator(
            extractor=TasteProfileExtractor(store_factory, TasteProfileConfig()),
            generator=SuggestionGenerator(openai_client, generator_config),
            enricher=PlaceEnricher(maps_client),
        )
    return build


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: SupabaseService = Depends(get_store),
) -> Dict[str, Any]:
    """Resolve the bearer token to the caller's ``users`` row or answer 401."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        user_id = store.get_session_user_id(credentials.credentials)
    except Exception as exc:
        LOGGER.info("Session lookup rejected: %s", exc)
        user_id = None
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        user = store.get_user(user_id)
    except Exception:
        LOGGER.exception("User lookup failed for %s", user_id)
        raise HTTPException(status_code=500, detail="Failed to load user")
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def close_clients() -> None:
    """Close the OpenAI connection pool and forget cached clients."""
    if get_openai_client.cache_info().currsize:
        client = get_openai_client()
        if client is not None:
            client.close()
    for cached in (get_settings, get_openai_client, get_maps_client, get_memory_client):
        cached.cache_clear()
