"""Google Maps web service calls: city geocoding and Places text search."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from tasteplans.exceptions import ProviderError
from tasteplans.models import Coords, Place, finite_number


LOGGER = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
EMPTY_STATUSES = {"OK", "ZERO_RESULTS"}


def _to_place(result: Dict[str, Any]) -> Optional[Place]:
    place_id = result.get("place_id")
    name = result.get("name")
    if not place_id or not name:
        return None
    price_level = finite_number(result.get("price_level"))
    return Place(
        place_id=place_id,
        name=name,
        address=result.get("formatted_address"),
        rating=finite_number(result.get("rating")),
        price_level=None if price_level is None else int(price_level),
        location=Coords.parse((result.get("geometry") or {}).get("location")),
        types=list(result.get("types") or []),
    )


class GoogleMapsClient:
    """Thin client over the Geocoding and Places Text Search endpoints.

    Without an API key every lookup returns nothing, mirroring an empty
    provider answer. ``http`` defaults to the ``requests`` module; each call
    opens its own connection, so one client serves every worker thread.
    """

    def __init__(self, api_key: Optional[str], http=None, timeout: float = 10.0):
        if not api_key:
            LOGGER.warning("GOOGLE_MAPS_API_KEY missing; place enrichment disabled")
        self.api_key = api_key
        self.http = http or requests
        self.timeout = timeout

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        response = self.http.get(url, params={**params, "key": self.api_key}, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        status = data.get("status", "OK")
        if status not in EMPTY_STATUSES:
            raise ProviderError("google_maps", f"{status}: {data.get('error_message', '')}".strip())
        return data

    def geocode_city(self, city: str) -> Optional[Coords]:
        if not self.api_key or not city:
            return None
        data = self._get(GEOCODE_URL, {"address": city})
        results = data.get("results") or []
        if not results:
            return None
        return Coords.parse((results[0].get("geometry") or {}).get("location"))

    def search_text(
        self,
        query: str,
        location: Optional[Coords] = None,
        radius: int = 6000,
        minprice: Optional[int] = None,
        maxprice: Optional[int] = None,
        limit: int = 3,
    ) -> List[Place]:
        if not self.api_key:
            return []
        params: Dict[str, Any] = {"query": query, "radius": radius}
        if location is not None:
            params["location"] = f"{location.lat},{location.lng}"
        if minprice is not None:
            params["minprice"] = minprice
        if maxprice is not None:
            params["maxprice"] = maxprice
        data = self._get(TEXT_SEARCH_URL, params)
        places = []
        for result in data.get("results") or []:
            place = _to_place(result)
            if place is not None:
                places.append(place)
            if len(places) >= limit:
                break
        return places
