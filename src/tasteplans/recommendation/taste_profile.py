from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

import pandas as pd

from tasteplans.config import TasteProfileConfig
from tasteplans.models import LikedVenue, TasteProfile


LOGGER = logging.getLogger(__name__)

REVIEW_COLUMNS = ["rating", "tags", "name", "place_id"]


def _flatten_reviews(reviews: Iterable[Dict]) -> pd.DataFrame:
    rows = []
    for review in reviews:
        activity = review.get("activities") or review.get("activity") or {}
        tags = review.get("tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]
        rows.append(
            {
                "rating": review.get("rating"),
                "tags": list(tags),
                "name": activity.get("name"),
                "place_id": activity.get("place_id"),
            }
        )
    df = pd.DataFrame(rows, columns=REVIEW_COLUMNS)
    df["rating"] = pd.to_numeric(df["rating"], errors="coerce")
    return df


def rank_tags(reviews: pd.DataFrame, top_n: int = 10) -> List[str]:
    """Sum review ratings per tag and return the heaviest tags first.

    Ties keep the order in which tags were first accumulated; callers must
    not rely on that order.
    """
    if reviews.empty:
        return []
    exploded = reviews[["rating", "tags"]].explode("tags").dropna(subset=["tags"])
    exploded = exploded[exploded["tags"].astype(str).str.len() > 0].copy()
    if exploded.empty:
        return []
    exploded["rating"] = exploded["rating"].fillna(0.0)
    weights = exploded.groupby("tags", sort=False)["rating"].sum()
    weights = weights.sort_values(ascending=False, kind="stable")
    return [str(tag) for tag in weights.head(top_n).index]


def liked_venues(reviews: pd.DataFrame, min_rating: float = 4.0, limit: int = 10) -> List[LikedVenue]:
    """Highly rated venues, newest review first, one entry per place."""
    if reviews.empty:
        return []
    df = reviews.copy()
    df["name"] = df["name"].fillna("").astype(str)
    df = df[(df["rating"] >= min_rating) & (df["name"].str.len() > 0)].copy()
    if df.empty:
        return []
    df["venue_key"] = df["place_id"].where(df["place_id"].notna() & (df["place_id"] != ""), df["name"])
    df = df.drop_duplicates(subset="venue_key", keep="first").head(limit)
    return [
        LikedVenue(name=row.name, place_id=row.place_id if isinstance(row.place_id, str) and row.place_id else None)
        for row in df.itertuples()
    ]


class TasteProfileExtractor:
    """Builds a group taste profile from the stored review history.

    ``store_factory`` returns the store on demand, so a pipeline that never
    personalizes never connects to persistence.
    """

    def __init__(self, store_factory: Callable[[], Any], config: Optional[TasteProfileConfig] = None):
        self.store_factory = store_factory
        self.config = config or TasteProfileConfig()

    def compute(self, handles: List[str]) -> TasteProfile:
        try:
            store = self.store_factory()
            users = store.get_users_by_handles(list(handles))
            if not users:
                return TasteProfile.empty()
            group = [u["handle"] for u in users if u.get("handle")]
            reviews = store.get_recent_reviews(
                [u["id"] for u in users], limit=self.config.review_limit
            )
        except Exception:
            LOGGER.exception("Taste profile lookup failed for %s; continuing without personalization", handles)
            return TasteProfile.empty(group=handles)

        df = _flatten_reviews(reviews or [])
        return TasteProfile(
            group=group,
            tags=rank_tags(df, self.config.top_tags),
            liked=liked_venues(df, self.config.liked_min_rating, self.config.liked_limit),
        )
