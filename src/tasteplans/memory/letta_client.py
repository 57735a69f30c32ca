"""Best-effort taste memory notifications to a Letta agent server."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from tasteplans.config import ServiceSettings


LOGGER = logging.getLogger(__name__)

AGENT_PERSONA = "you maintain the user's evolving taste from reviews and check-ins."
TASTE_LABEL = "taste"
TASTE_LIMIT = 2000


def _taste_tag(handle: str) -> str:
    return f"taste:{handle}"


def _resource_id(resource: Any) -> Optional[str]:
    if not isinstance(resource, dict):
        return None
    nested = resource.get("data")
    if isinstance(nested, dict):
        return resource.get("id") or nested.get("id")
    return resource.get("id")


def append_entry(existing: str, entry: str, limit: int = TASTE_LIMIT) -> str:
    """Add ``entry`` as the newest line of a memory block, dropping the oldest lines past ``limit``."""
    lines = [line for line in existing.splitlines() if line.strip()]
    lines.append(entry)
    while len(lines) > 1 and len("\n".join(lines)) > limit:
        lines.pop(0)
    return "\n".join(lines)


class TasteMemoryClient:
    """Keeps one tagged taste agent per handle and appends each review to its ``taste`` block.

    Talks to the Letta REST API (``/agents/``, ``/agents/{id}/core-memory/blocks/{label}``,
    ``/blocks/``). ``http`` defaults to the ``requests`` module, so every call
    gets its own connection and the client can be shared across worker threads.
    """

    def __init__(self, base_url: str, api_key: Optional[str], project_id: Optional[str],
                 http=None, timeout: float = 10.0,
                 model: Optional[str] = None, embedding: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.project_id = project_id
        self.http = http or requests
        self.timeout = timeout
        self.model = model
        self.embedding = embedding

    @classmethod
    def from_settings(cls, settings: ServiceSettings) -> "TasteMemoryClient":
        return cls(
            settings.letta_api_url,
            settings.letta_api_key,
            settings.letta_project_id,
            timeout=settings.request_timeout_s,
            model=settings.letta_model,
            embedding=settings.letta_embedding,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.project_id)

    def _headers(self) -> Dict[str, str]:
        return {
            "content-type": "application/json",
            "authorization": f"Bearer {self.api_key}",
            "X-Project": self.project_id or "",
        }

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self.http.request(
            method, f"{self.base_url}{path}", headers=self._headers(), timeout=self.timeout, **kwargs
        )
        response.raise_for_status()
        return response.json() if response.content else None

    def get_or_create_taste_agent(self, handle: str) -> Optional[Dict[str, Any]]:
        tag = _taste_tag(handle)
        existing = self._request("GET", "/agents/", params={"tags": tag, "match_all_tags": "true"})
        agents: List[Dict[str, Any]] = existing.get("data", []) if isinstance(existing, dict) else (existing or [])
        if agents:
            return agents[0]

        body: Dict[str, Any] = {
            "name": f"TasteAgent:{handle}",
            "tags": [tag],
            "memory_blocks": [
                {"label": "human", "value": f"handle={handle}", "limit": 1000},
                {"label": "persona", "value": AGENT_PERSONA, "limit": 1000},
                {"label": TASTE_LABEL, "value": "", "limit": TASTE_LIMIT},
            ],
        }
        if self.model:
            body["model"] = self.model
        if self.embedding:
            body["embedding"] = self.embedding
        return self._request("POST", "/agents/", json=body)

    def _taste_block(self, agent_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self._request("GET", f"/agents/{agent_id}/core-memory/blocks/{TASTE_LABEL}")
        except requests.HTTPError as exc:
            if exc.response is not None and exc.response.status_code == 404:
                return None
            raise

    def append_taste_memory(self, agent_id: str, memo: Dict[str, Any]) -> Any:
        entry = json.dumps({**memo, "ts": memo.get("ts") or int(time.time() * 1000)})
        block = self._taste_block(agent_id)
        if block is None:
            # Agents created without a taste block get a standalone one attached.
            created = self._request(
                "POST", "/blocks/", json={"label": TASTE_LABEL, "value": entry, "limit": TASTE_LIMIT}
            )
            block_id = _resource_id(created)
            if not block_id:
                raise ValueError("memory block was created without an id")
            return self._request("PATCH", f"/agents/{agent_id}/core-memory/blocks/attach/{block_id}")

        value = append_entry(block.get("value") or "", entry, block.get("limit") or TASTE_LIMIT)
        return self._request(
            "PATCH", f"/agents/{agent_id}/core-memory/blocks/{TASTE_LABEL}", json={"value": value}
        )

    def record_review(self, handle: str, memo: Dict[str, Any]) -> bool:
        """Fire-and-forget hook run after a review is stored.

        Returns whether the memory was written; failures are logged, never raised.
        """
        if not self.enabled or not handle:
            return False
        try:
            agent = self.get_or_create_taste_agent(handle)
            agent_id = _resource_id(agent)
            if not agent_id:
                LOGGER.warning("No taste agent id returned for %s", handle)
                return False
            self.append_taste_memory(agent_id, memo)
            return True
        except (requests.RequestException, ValueError) as exc:
            LOGGER.warning("Taste memory update for %s failed: %s", handle, exc)
            return False
