"""
Attach real places to generated suggestions.

For every suggestion a search query is derived (explicit hint, or a keyword
guessed from the title), a search origin is resolved once per request, and
the maps provider is asked for at most ``route.place_cap`` places.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from tasteplans.config import RouteConfig
from tasteplans.models import Coords, Place, Suggestion


LOGGER = logging.getLogger(__name__)

TITLE_KEYWORDS: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("brunch",), "brunch"),
    (("coffee",), "coffee shop"),
    (("walk", "scenic"), "park viewpoint"),
    (("museum",), "museum"),
    (("dessert",), "dessert ice cream"),
    (("book",), "bookstore"),
    (("music",), "live music venue"),
    (("arcade",), "arcade"),
    (("bowling",), "bowling"),
    (("pizza",), "pizza"),
    (("tacos",), "tacos"),
)
DEFAULT_QUERY = "interesting places"


def price_tier(budget_max: Optional[float]) -> Optional[int]:
    """Map a budget ceiling onto the provider's 1-4 price levels."""
    if budget_max is None:
        return None
    if budget_max <= 20:
        return 1
    if budget_max <= 50:
        return 2
    if budget_max <= 80:
        return 3
    return 4


def fallback_query_for_title(title: str) -> str:
    lowered = title.lower()
    for needles, query in TITLE_KEYWORDS:
        if any(n in lowered for n in needles):
            return query
    return DEFAULT_QUERY


def build_query(suggestion: Suggestion, city: Optional[str]) -> str:
    base = (suggestion.query or "").strip() or fallback_query_for_title(suggestion.title)
    return " ".join(part for part in (base, (city or "").strip()) if part).strip()


class PlaceEnricher:
    """Runs one text search per suggestion against the maps client."""

    def __init__(self, maps_client):
        self.maps = maps_client

    def resolve_origin(self, city: Optional[str], coords: Optional[Coords],
                       route: RouteConfig) -> Optional[Coords]:
        if coords is not None:
            return coords
        target = city or route.default_city
        if not target:
            return None
        try:
            return self.maps.geocode_city(target)
        except Exception as exc:
            LOGGER.warning("Geocoding %r failed: %s", target, exc)
            return None

    def search(self, query: str, origin: Optional[Coords], maxprice: Optional[int],
               route: RouteConfig) -> List[Place]:
        try:
            places = self.maps.search_text(
                query=query,
                location=origin,
                radius=route.radius_m,
                maxprice=maxprice,
                limit=route.place_cap,
            )
        except Exception as exc:
            LOGGER.warning("Place search for %r failed: %s", query, exc)
            return []
        return list(places or [])[:route.place_cap]

    def enrich(
        self,
        suggestions: Sequence[Suggestion],
        city: Optional[str],
        budget_max: Optional[float],
        coords: Optional[Coords],
        route: RouteConfig,
    ) -> List[Suggestion]:
        city = (city or "").strip() or None
        # Coordinates stand in for the city name in the query text.
        query_city = city or (None if coords is not None else route.default_city)
        origin = self.resolve_origin(city, coords, route)
        maxprice = price_tier(budget_max)

        enriched = []
        for suggestion in suggestions:
            query = build_query(suggestion, query_city)
            places = self.search(query, origin, maxprice, route)
            enriched.append(suggestion.model_copy(update={"query": query, "places": places}))
        return enriched
