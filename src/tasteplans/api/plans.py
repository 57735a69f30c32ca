"""Suggest and feed endpoints."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from tasteplans.api.dependencies import get_orchestrator_builder
from tasteplans.exceptions import InvalidPlanRequest
from tasteplans.models import FeedRequest, FeedResponse, SuggestRequest, SuggestResponse, finite_number
from tasteplans.recommendation.plans import FEED_ERROR, PlanOrchestrator, fallback_suggestions


LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plans", tags=["plans"])

OrchestratorBuilder = Callable[[], PlanOrchestrator]


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _query_number(raw: Optional[str]) -> Optional[float]:
    """Query string number, or ``None`` when missing, non-numeric or not finite."""
    if raw is None:
        return None
    try:
        return finite_number(float(raw))
    except ValueError:
        return None


@router.post("/suggest", response_model=SuggestResponse)
def suggest(request: SuggestRequest, build_orchestrator: OrchestratorBuilder = Depends(get_orchestrator_builder)):
    """
    Personalized suggestions for a handle and optional companions.

    Unknown handles give ``ok: true`` with no suggestions; a missing handle is
    a 400 and anything unexpected a 500 with a generic error.
    """
    try:
        return build_orchestrator().suggest(request)
    except InvalidPlanRequest as exc:
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=400)
    except Exception:
        LOGGER.exception("Suggest request failed")
        return JSONResponse({"ok": False, "error": "internal_error"}, status_code=500)


def _run_feed(request: FeedRequest, build_orchestrator: OrchestratorBuilder) -> JSONResponse:
    try:
        response = build_orchestrator().feed(request)
    except Exception:
        LOGGER.exception("Feed request failed")
        response = FeedResponse(
            ok=False,
            city=request.city,
            coords=request.coords,
            budget_max=request.budget_max,
            suggestions=fallback_suggestions(),
            error=FEED_ERROR,
        )
    return JSONResponse(_dump(response), status_code=200 if response.ok else 500)


@router.post("/feed", response_model=FeedResponse)
def feed(request: FeedRequest, build_orchestrator: OrchestratorBuilder = Depends(get_orchestrator_builder)):
    """Home feed; generation failures still return enriched fallback suggestions."""
    return _run_feed(request, build_orchestrator)


@router.get("/feed", response_model=FeedResponse)
def feed_from_query(
    handle: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    budget_max: Optional[str] = Query(None, alias="budgetMax"),
    occasion: Optional[str] = Query(None),
    build_orchestrator: OrchestratorBuilder = Depends(get_orchestrator_builder),
):
    # Malformed numbers drop to null instead of failing validation.
    request = FeedRequest(
        handle=handle,
        city=city,
        coords={"lat": _query_number(lat), "lng": _query_number(lng)},
        budget_max=_query_number(budget_max),
        occasion=occasion,
    )
    return _run_feed(request, build_orchestrator)
