"""Suggest and feed orchestration over the taste, generation and enrichment stages."""

from __future__ import annotations

import logging
from typing import List

from tasteplans.config import FEED_ROUTE, SUGGEST_ROUTE, RouteConfig
from tasteplans.exceptions import InvalidPlanRequest, SuggestionGenerationError
from tasteplans.models import (
    FeedRequest,
    FeedResponse,
    PlanContext,
    Suggestion,
    SuggestRequest,
    SuggestResponse,
)


LOGGER = logging.getLogger(__name__)

FEED_ERROR = "Failed to generate feed"

FALLBACK_SUGGESTIONS: List[Suggestion] = [
    Suggestion(title="Coffee shop adventure", reason="Find a cozy spot to hang"),
    Suggestion(title="Try a new cuisine", reason="Branch out from your usual"),
    Suggestion(title="Weekend brunch", reason="Relaxed morning with friends"),
    Suggestion(title="Scenic city walk", reason="Explore a photogenic area"),
]


def fallback_suggestions() -> List[Suggestion]:
    return [s.model_copy(deep=True) for s in FALLBACK_SUGGESTIONS]


class PlanOrchestrator:
    """Runs taste profile -> generation -> enrichment for both entry points."""

    def __init__(self, extractor, generator, enricher,
                 suggest_route: RouteConfig = SUGGEST_ROUTE,
                 feed_route: RouteConfig = FEED_ROUTE):
        self.extractor = extractor
        self.generator = generator
        self.enricher = enricher
        self.suggest_route = suggest_route
        self.feed_route = feed_route

    def suggest(self, request: SuggestRequest) -> SuggestResponse:
        handles = request.group_handles()
        if not handles:
            raise InvalidPlanRequest("handle required")

        profile = self.extractor.compute(handles)
        base = SuggestResponse(
            ok=True,
            group=profile.group,
            city=request.city,
            coords=request.coords,
            budget_max=request.budget_max,
            top_tags=profile.tags,
            liked=profile.liked,
        )
        if not profile.group:
            LOGGER.info("No users found for %s; returning empty suggestions", handles)
            return base

        context = PlanContext(
            handles=profile.group,
            city=request.city,
            coords=request.coords,
            budget_max=request.budget_max,
            occasion=request.occasion,
            taste=profile,
        )
        suggestions = self.generator.generate_tool_suggestions(context)
        base.suggestions = self.enricher.enrich(
            suggestions, request.city, request.budget_max, request.coords, self.suggest_route
        )
        return base

    def feed(self, request: FeedRequest) -> FeedResponse:
        context = PlanContext(
            handles=[request.handle] if request.handle else [],
            city=request.city,
            coords=request.coords,
            budget_max=request.budget_max,
            occasion=request.occasion,
        )
        response = FeedResponse(
            ok=True,
            city=request.city,
            coords=request.coords,
            budget_max=request.budget_max,
        )
        try:
            suggestions = self.generator.generate_feed_suggestions(context)
        except SuggestionGenerationError as exc:
            LOGGER.error("Feed generation error: %s", exc)
            suggestions = fallback_suggestions()
            response.ok = False
            response.error = FEED_ERROR

        response.suggestions = self.enricher.enrich(
            suggestions, request.city, request.budget_max, request.coords, self.feed_route
        )
        return response
