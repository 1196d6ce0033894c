"""
Client for the xAI Responses API search tools (``web_search`` and ``x_search``).
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional, Sequence

from pydantic import ValidationError

from deep_research.http_client import HttpClient
from deep_research.schemas import SearchToolResponse

logger = logging.getLogger(__name__)

RESPONSES_URL = "https://api.x.ai/v1/responses"
MAX_ALLOWED_HANDLES = 10


class SearchToolClient:
    def __init__(self, api_key: str, model: str, http: Optional[HttpClient] = None) -> None:
        self.api_key = api_key
        self.model = model
        self.http = http or HttpClient()

    def web_search(
        self,
        prompt: str,
        *,
        timeout: float,
        excluded_domains: Sequence[str] = (),
    ) -> Optional[SearchToolResponse]:
        tool: Dict[str, Any] = {"type": "web_search"}
        if excluded_domains:
            tool["filters"] = {"excluded_domains": list(excluded_domains)}
        return self._call(prompt, tool, timeout)

    def x_search(
        self,
        prompt: str,
        *,
        timeout: float,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        allowed_handles: Sequence[str] = (),
    ) -> Optional[SearchToolResponse]:
        tool: Dict[str, Any] = {"type": "x_search"}
        if from_date:
            tool["from_date"] = from_date.isoformat()
        if to_date:
            tool["to_date"] = to_date.isoformat()
        if allowed_handles:
            tool["allowed_x_handles"] = list(allowed_handles)[:MAX_ALLOWED_HANDLES]
        return self._call(prompt, tool, timeout)

    def _call(self, prompt: str, tool: Dict[str, Any], timeout: float) -> Optional[SearchToolResponse]:
        payload = {"model": self.model, "tools": [tool], "input": prompt}
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        data = self.http.post_json(RESPONSES_URL, payload, headers=headers, timeout=timeout)
        if data is None:
            return None
        try:
            return SearchToolResponse.model_validate(data)
        except ValidationError as exc:
            logger.warning("Unexpected %s response shape: %s", tool["type"], exc.errors()[:2])
            return None

