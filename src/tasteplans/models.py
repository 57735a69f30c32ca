"""Pydantic models shared by the plan pipeline and the HTTP layer."""

from __future__ import annotations

import math
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def finite_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float when it is a real, finite number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Coords(CamelModel):
    lat: float
    lng: float

    @classmethod
    def parse(cls, raw: Any) -> Optional["Coords"]:
        """Build coordinates from a loose mapping, or ``None`` if either axis is unusable."""
        if isinstance(raw, Coords):
            return raw
        if not isinstance(raw, dict):
            return None
        lat = finite_number(raw.get("lat"))
        lng = finite_number(raw.get("lng"))
        if lat is None or lng is None:
            return None
        return cls(lat=lat, lng=lng)


class Place(CamelModel):
    place_id: str = Field(..., alias="placeId")
    name: str
    address: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[int] = Field(None, alias="priceLevel")
    location: Optional[Coords] = None
    types: List[str] = Field(default_factory=list)


class Suggestion(CamelModel):
    title: str
    reason: str
    query: Optional[str] = None
    places: List[Place] = Field(default_factory=list)


class LikedVenue(CamelModel):
    name: str
    place_id: Optional[str] = Field(None, alias="placeId")


class TasteProfile(CamelModel):
    group: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    liked: List[LikedVenue] = Field(default_factory=list)

    @classmethod
    def empty(cls, group: Optional[List[str]] = None) -> "TasteProfile":
        return cls(group=list(group or []))


class PlanContext(CamelModel):
    """Everything the generator needs to frame a prompt."""

    handles: List[str] = Field(default_factory=list)
    city: Optional[str] = None
    coords: Optional[Coords] = None
    budget_max: Optional[float] = None
    occasion: Optional[str] = None
    taste: TasteProfile = Field(default_factory=TasteProfile)


class _PlanRequestBase(CamelModel):
    city: Optional[str] = None
    budget_max: Optional[float] = Field(None, alias="budgetMax")
    occasion: Optional[str] = None
    coords: Optional[Coords] = None

    @field_validator("budget_max", mode="before")
    @classmethod
    def _finite_budget(cls, value: Any) -> Optional[float]:
        return finite_number(value)

    @field_validator("coords", mode="before")
    @classmethod
    def _valid_coords(cls, value: Any) -> Optional[Coords]:
        return Coords.parse(value)

    @field_validator("city", "occasion", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class SuggestRequest(_PlanRequestBase):
    handle: Optional[str] = None
    companions: List[str] = Field(default_factory=list)

    @field_validator("companions", mode="before")
    @classmethod
    def _companion_list(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(v) for v in value if v is not None]

    def group_handles(self) -> List[str]:
        handles: List[str] = []
        for raw in [self.handle, *self.companions]:
            handle = (raw or "").strip()
            if handle and handle not in handles:
                handles.append(handle)
        return handles


class FeedRequest(_PlanRequestBase):
    handle: Optional[str] = None


class SuggestResponse(CamelModel):
    ok: bool = True
    group: List[str] = Field(default_factory=list)
    city: Optional[str] = None
    coords: Optional[Coords] = None
    budget_max: Optional[float] = Field(None, alias="budgetMax")
    top_tags: List[str] = Field(default_factory=list, alias="topTags")
    liked: List[LikedVenue] = Field(default_factory=list)
    suggestions: List[Suggestion] = Field(default_factory=list)


class FeedResponse(CamelModel):
    ok: bool = True
    city: Optional[str] = None
    coords: Optional[Coords] = None
    budget_max: Optional[float] = Field(None, alias="budgetMax")
    suggestions: List[Suggestion] = Field(default_factory=list)
    error: Optional[str] = None
