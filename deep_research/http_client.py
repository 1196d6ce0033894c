"""
HTTP helper with polite headers and per-call timeouts, reused by connectors.

Every method returns ``None`` instead of raising so callers can treat a failed
upstream as "no signal".
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from deep_research.security import redact_secrets

logger = logging.getLogger(__name__)


class HttpClient:
    def __init__(
        self,
        timeout: float = 10,
        max_retries: int = 0,
        user_agent: str | None = None,
        accept: str = "application/json",
    ):
        self.timeout = timeout
        self.session = requests.Session()
        retry = Retry(
            total=max_retries,
            backoff_factor=0.6,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.session.headers.update(
            {
                "User-Agent": user_agent or "DeepResearch/1.0",
                "Accept": accept,
            }
        )

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Any]:
        resp = self._request("GET", url, params=params, timeout=timeout)
        return self._decode(resp, url)

    def get_text(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        resp = self._request("GET", url, params=params, headers=headers, timeout=timeout)
        return resp.text if resp is not None else None

    def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Any]:
        resp = self._request("POST", url, json=payload, headers=headers, timeout=timeout)
        return self._decode(resp, url)

    def _request(self, method: str, url: str, timeout: Optional[float] = None, **kwargs) -> Optional[requests.Response]:
        try:
            resp = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
        except requests.Timeout:
            logger.warning("HTTP %s timed out after %ss: %s", method, timeout or self.timeout, redact_secrets(url))
            return None
        except requests.RequestException as exc:
            logger.warning("HTTP %s exception %s", method, redact_secrets(str(exc)))
            return None
        if resp.status_code != 200:
            logger.warning(
                "HTTP %s failed %s %s %s",
                method,
                resp.status_code,
                redact_secrets(url),
                redact_secrets(resp.text[:200]),
            )
            return None
        return resp

    @staticmethod
    def _decode(resp: Optional[requests.Response], url: str) -> Optional[Any]:
        if resp is None:
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning("Malformed JSON payload from %s", redact_secrets(url))
            return None
