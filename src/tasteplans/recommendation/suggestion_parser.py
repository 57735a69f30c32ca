"""
Tiered parsing of generative provider output into suggestions.

Each tier is a standalone function over the provider's raw output:
    * ``parse_tool_call``       - structured function/tool call arguments,
    * ``parse_json_envelope``   - a ``{"suggestions": [...]}`` object in text,
    * ``scrape_suggestion_lines`` - a line-by-line heuristic for prose lists.

``coerce_suggestions`` turns whatever a tier produced into bounded
``Suggestion`` models and drops entries that cannot be salvaged.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from tasteplans.config import GeneratorConfig
from tasteplans.models import Coords, Place, Suggestion, finite_number


LOGGER = logging.getLogger(__name__)

DEFAULT_REASON = "A great spot to check out"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_NUMBERING_RE = re.compile(r"^\s*(?:\d+\s*[.)]|[-*•])\s*")
_HINT_RE = re.compile(r"[\s(\[]*(?:hint|keywords?)\s*:\s*(?P<hint>[^)\]]*)[)\]]?\s*$", re.IGNORECASE)
_SEPARATOR_RE = re.compile(r"\s+[-–—]\s+|:\s+")


def extract_json_string(text: Optional[str]) -> Optional[str]:
    """Return the outermost ``{...}`` block of ``text``, ignoring code fences."""
    if not text:
        return None
    t = text.strip()
    if t.startswith("```"):
        t = _FENCE_RE.sub("", t).strip()
    if t.startswith("{") and t.endswith("}"):
        return t
    first = t.find("{")
    last = t.rfind("}")
    if first != -1 and last > first:
        return t[first:last + 1]
    return None


def parse_json_envelope(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Strictly parse a suggestions envelope out of free text."""
    json_str = extract_json_string(text)
    if json_str is None:
        return None
    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError as exc:
        LOGGER.warning("Provider JSON did not parse (%s): %s", exc, json_str[:300])
        return None
    if not isinstance(parsed, dict) or not isinstance(parsed.get("suggestions"), list):
        return None
    return parsed


def parse_tool_call(tool_calls: Optional[Iterable[Any]], tool_name: str) -> Optional[Dict[str, Any]]:
    """Return the arguments of the first call to ``tool_name`` if they decode to an envelope."""
    for call in tool_calls or []:
        function = getattr(call, "function", None)
        if function is None or getattr(function, "name", None) != tool_name:
            continue
        arguments = getattr(function, "arguments", None)
        if isinstance(arguments, dict):
            payload = arguments
        else:
            try:
                payload = json.loads(arguments or "")
            except (TypeError, json.JSONDecodeError):
                LOGGER.warning("Tool call %s carried undecodable arguments", tool_name)
                continue
        if isinstance(payload, dict) and isinstance(payload.get("suggestions"), list):
            return payload
    return None


def _scrape_line(line: str) -> Optional[Dict[str, str]]:
    text = _NUMBERING_RE.sub("", line.strip(), count=1).strip()
    if not text or text[0] in "{}[]\"":
        return None
    hint = None
    match = _HINT_RE.search(text)
    if match:
        hint = match.group("hint").strip(" .;,") or None
        text = text[:match.start()].rstrip(" .;,-")
    parts = _SEPARATOR_RE.split(text, maxsplit=1)
    if len(parts) != 2:
        return None
    title = parts[0].strip(" *_\"'#")
    reason = parts[1].strip(" *_\"'")
    if not title or not reason:
        return None
    item = {"title": title, "reason": reason}
    if hint:
        item["hint"] = hint
    return item


def scrape_suggestion_lines(text: Optional[str]) -> List[Dict[str, str]]:
    """Heuristically read ``Title - reason (hint: ...)`` lines from prose."""
    if not text:
        return []
    items = []
    for line in text.splitlines():
        item = _scrape_line(line)
        if item:
            items.append(item)
    return items


def _coerce_place(raw: Any) -> Optional[Place]:
    if not isinstance(raw, dict):
        return None
    place_id = raw.get("placeId", raw.get("place_id"))
    name = raw.get("name")
    if place_id in (None, "") or name in (None, ""):
        return None
    address = raw.get("address")
    price_level = finite_number(raw.get("priceLevel", raw.get("price_level")))
    types = raw.get("types") if isinstance(raw.get("types"), list) else []
    return Place(
        place_id=str(place_id),
        name=str(name),
        address=None if address is None else str(address),
        rating=finite_number(raw.get("rating")),
        price_level=None if price_level is None else int(price_level),
        location=Coords.parse(raw.get("location")),
        types=[str(t) for t in types],
    )


def coerce_suggestion(raw: Any, config: GeneratorConfig) -> Optional[Suggestion]:
    if not isinstance(raw, dict):
        return None
    title = str(raw.get("title") or "").strip()[:config.title_max_chars].strip()
    if not title:
        return None
    reason = str(raw.get("reason") or "").strip()[:config.reason_max_chars].strip() or DEFAULT_REASON
    query_raw = raw.get("query") or raw.get("hint")
    query = str(query_raw).strip()[:config.query_max_chars] if query_raw else None
    raw_places = raw.get("places") if isinstance(raw.get("places"), list) else []
    places = [p for p in (_coerce_place(item) for item in raw_places) if p is not None]
    return Suggestion(title=title, reason=reason, query=query or None, places=places)


def coerce_suggestions(raw_items: Any, config: Optional[GeneratorConfig] = None) -> List[Suggestion]:
    config = config or GeneratorConfig()
    if not isinstance(raw_items, list):
        return []
    suggestions = []
    for raw in raw_items:
        suggestion = coerce_suggestion(raw, config)
        if suggestion is not None:
            suggestions.append(suggestion)
        if len(suggestions) >= config.max_suggestions:
            break
    return suggestions
