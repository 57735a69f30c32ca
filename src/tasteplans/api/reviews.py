"""Review endpoints; creating a review also feeds the taste memory agent."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from tasteplans.api.dependencies import get_current_user, get_memory_client, get_store
from tasteplans.memory.letta_client import TasteMemoryClient
from tasteplans.supabase_client.supabase_service import SupabaseService


LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


class ReviewCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    handle: Optional[str] = None
    place_id: Optional[str] = Field(None, alias="placeId")
    name: Optional[str] = None
    rating: Optional[Any] = None
    tags: Optional[Union[List[str], str]] = None
    text: Optional[Any] = None

    @field_validator("tags", mode="after")
    @classmethod
    def _tag_list(cls, value: Optional[Union[List[str], str]]) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [t.strip() for t in value if t and t.strip()]


class ReviewDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    review_id: str = Field(..., alias="reviewId")


def _valid_rating(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@router.post("")
def create_review(
    body: ReviewCreateRequest,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_current_user),
    store: SupabaseService = Depends(get_store),
    memory: TasteMemoryClient = Depends(get_memory_client),
):
    """Store a review for the caller, upserting the reviewed activity by place id."""
    if not body.place_id or not body.name or not _valid_rating(body.rating):
        return JSONResponse(
            {"ok": False, "error": "required: placeId, name, rating(number)"}, status_code=400
        )
    text = body.text if isinstance(body.text, str) else ""
    try:
        activity = store.upsert_activity(body.place_id, body.name)
        review = store.create_review(user["id"], activity["id"], body.rating, text=text, tags=body.tags)
    except Exception as exc:
        LOGGER.exception("Review creation failed")
        return JSONResponse({"ok": False, "error": str(exc) or "server_error"}, status_code=500)

    handle = user.get("handle") or body.handle
    if handle:
        memo = {"placeId": body.place_id, "rating": body.rating, "tags": body.tags, "text": text}
        background_tasks.add_task(memory.record_review, handle, memo)

    return {"ok": True, "reviewId": review["id"]}


@router.get("")
def list_reviews(
    user: Dict[str, Any] = Depends(get_current_user),
    store: SupabaseService = Depends(get_store),
):
    """The caller's reviews, newest first."""
    try:
        rows = store.get_user_reviews(user["id"])
    except Exception:
        LOGGER.exception("Listing reviews failed")
        raise HTTPException(status_code=500, detail="Failed to get reviews")
    reviews = []
    for row in rows:
        activity = row.get("activities") or {}
        reviews.append(
            {
                "id": row.get("id"),
                "rating": row.get("rating"),
                "text": row.get("text") or "",
                "tags": row.get("tags") or [],
                "createdAt": row.get("created_at"),
                "activity": {"name": activity.get("name"), "placeId": activity.get("place_id")},
            }
        )
    return {"reviews": reviews}


@router.delete("/delete")
def delete_review(
    body: ReviewDeleteRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    store: SupabaseService = Depends(get_store),
):
    """Delete one of the caller's own reviews."""
    review = store.get_review(body.review_id)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    if review.get("user_id") != user["id"]:
        raise HTTPException(status_code=403, detail="Not authorized")
    try:
        store.delete_review(body.review_id)
    except Exception:
        LOGGER.exception("Delete review failed")
        raise HTTPException(status_code=500, detail="Failed to delete review")
    return {"success": True}
