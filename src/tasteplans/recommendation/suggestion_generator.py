from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from tasteplans.config import GeneratorConfig
from tasteplans.exceptions import SuggestionGenerationError
from tasteplans.models import PlanContext, Suggestion
from tasteplans.recommendation.suggestion_parser import (
    coerce_suggestions,
    parse_json_envelope,
    parse_tool_call,
    scrape_suggestion_lines,
)


LOGGER = logging.getLogger(__name__)

TOOL_NAME = "return_suggestions"

TOOL_SYSTEM_PROMPT = (
    "You are a planner. Given a group's tastes/tags, city, budget and occasion, "
    f"return 3-5 activity suggestions by calling the {TOOL_NAME} function. "
    "Do not answer in prose."
)

SUGGESTION_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": TOOL_NAME,
        "description": "Return ranked activity suggestions for this group.",
        "parameters": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "suggestions": {
                    "type": "array",
                    "minItems": 3,
                    "maxItems": 5,
                    "items": {
                        "type": "object",
                        "additionalProperties": False,
                        "properties": {
                            "title": {"type": "string"},
                            "reason": {"type": "string"},
                            "hint": {"type": "string"},
                        },
                        "required": ["title", "reason"],
                    },
                }
            },
            "required": ["suggestions"],
        },
    },
}

FEED_SYSTEM_PROMPT = """You are a JSON generator for a discovery feed app.
Return ONLY a single valid JSON object. No explanations, no markdown, no prose.
If unsure, return: {"suggestions":[]}

Schema (must match EXACTLY):
{
  "suggestions": [
    {
      "title": "Short punchy title (<= 8 words)",
      "reason": "One sentence explanation",
      "query": "Optional place search keywords",
      "places": []
    }
  ]
}

Rules:
- Generate 4-6 diverse activity suggestions based on user context.
- Titles under 8 words; reasons one sentence.
- Do not include code fences or any surrounding text.
- No trailing commas or comments."""


def describe_city(context: PlanContext, default_city: str) -> str:
    if context.city:
        return context.city
    if context.coords is not None:
        return "near current location"
    return default_city


def describe_budget(context: PlanContext) -> Any:
    return context.budget_max if context.budget_max is not None else "flexible"


def build_context_block(context: PlanContext, default_city: str) -> str:
    """Plain-text prompt block describing who is going out, where and why."""
    taste = context.taste
    lines = [
        f"Group: {', '.join(context.handles) if context.handles else 'anonymous'}",
        f"City: {describe_city(context, default_city)}",
        f"Budget Max: {describe_budget(context)}",
        f"Occasion: {context.occasion or 'general'}",
        f"TopTags: {', '.join(taste.tags) if taste.tags else '(none)'}",
    ]
    if taste.liked:
        lines.append(f"Previously liked venues: {', '.join(v.name for v in taste.liked)}")
    else:
        lines.append("No previous likes recorded.")
    lines.append(f"Return 3-5 suggestions via the {TOOL_NAME} function.")
    return "\n".join(lines)


class SuggestionGenerator:
    """Asks the generative provider for activity ideas and parses what comes back.

    ``client`` is an ``openai.OpenAI`` instance (or anything exposing
    ``chat.completions.create``); ``None`` means generation is unavailable.
    """

    def __init__(self, client, config: Optional[GeneratorConfig] = None):
        self.client = client
        self.config = config or GeneratorConfig()

    def _complete(self, **kwargs):
        if self.client is None:
            raise SuggestionGenerationError("generative provider is not configured")
        return self.client.chat.completions.create(
            model=self.config.model,
            timeout=self.config.timeout_s,
            **kwargs,
        )

    def generate_tool_suggestions(self, context: PlanContext) -> List[Suggestion]:
        """Suggest route: function calling with structured, JSON and heuristic fallbacks.

        Never raises; an unusable answer yields an empty list.
        """
        try:
            response = self._complete(
                max_tokens=self.config.tool_max_tokens,
                messages=[
                    {"role": "system", "content": TOOL_SYSTEM_PROMPT},
                    {"role": "user", "content": build_context_block(context, self.config.default_city)},
                ],
                tools=[SUGGESTION_TOOL],
                tool_choice={"type": "function", "function": {"name": TOOL_NAME}},
            )
            message = response.choices[0].message
        except Exception as exc:
            LOGGER.warning("Suggestion tool call failed: %s", exc)
            return []

        payload = parse_tool_call(getattr(message, "tool_calls", None), TOOL_NAME)
        if payload is not None:
            return coerce_suggestions(payload["suggestions"], self.config)

        text = getattr(message, "content", None) or ""
        payload = parse_json_envelope(text)
        if payload is not None:
            return coerce_suggestions(payload["suggestions"], self.config)

        scraped = coerce_suggestions(scrape_suggestion_lines(text), self.config)
        if len(scraped) >= self.config.min_heuristic_suggestions:
            LOGGER.info("Provider ignored the tool contract; using %d scraped suggestions", len(scraped))
            return scraped

        LOGGER.warning("No usable suggestions in provider answer: %s", text[:300])
        return []

    def generate_feed_suggestions(self, context: PlanContext) -> List[Suggestion]:
        """Feed route: a single JSON object, strictly parsed.

        Raises ``SuggestionGenerationError`` when nothing usable comes back.
        """
        user_payload = {
            "user_handle": context.handles[0] if context.handles else "anonymous",
            "city": describe_city(context, self.config.default_city),
            "budget": describe_budget(context),
            "occasion": context.occasion or "general",
            "instruction": "Generate 4-6 diverse activity suggestions",
        }
        try:
            response = self._complete(
                max_tokens=self.config.feed_max_tokens,
                temperature=self.config.feed_temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": FEED_SYSTEM_PROMPT},
                    {"role": "user", "content": json.dumps(user_payload)},
                ],
            )
            text = (response.choices[0].message.content or "").strip()
        except SuggestionGenerationError:
            raise
        except Exception as exc:
            raise SuggestionGenerationError(f"feed generation failed: {exc}") from exc

        payload = parse_json_envelope(text)
        if payload is None:
            LOGGER.error("No JSON detected in feed answer: %s", text[:300])
            raise SuggestionGenerationError("feed answer was not a suggestions object")

        suggestions = coerce_suggestions(payload["suggestions"], self.config)
        if not suggestions:
            raise SuggestionGenerationError("feed answer contained no usable suggestions")
        return suggestions
