"""
Connector base class: every source search is wrapped so it can never raise.
"""
from __future__ import annotations

import abc
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from deep_research.http_client import HttpClient
from deep_research.models import ConnectorRun, HealthStatus, Post, QueryType, SearchContext, Source
from deep_research.security import redact_secrets
from deep_research.settings import ResearchSettings

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Raised inside a connector when an upstream produced no usable response."""


class SourceConnector(abc.ABC):
    source: Source
    name: str

    def __init__(self, settings: ResearchSettings, http: Optional[HttpClient] = None) -> None:
        self.settings = settings
        self.http = http or HttpClient(user_agent=settings.user_agent)

    def search(
        self,
        topic: str,
        query_type: QueryType,
        context: Optional[SearchContext] = None,
        *,
        now: Optional[datetime] = None,
    ) -> List[Post]:
        return self.run(topic, query_type, context, now=now).posts

    def run(
        self,
        topic: str,
        query_type: QueryType,
        context: Optional[SearchContext] = None,
        *,
        now: Optional[datetime] = None,
    ) -> ConnectorRun:
        now = now or datetime.now(timezone.utc)
        return self._guarded(self.name, lambda: self._collect(topic, query_type, context, now))

    def cutoff(self, now: datetime) -> datetime:
        return now - timedelta(days=self.settings.recency.window_days)

    @abc.abstractmethod
    def _collect(
        self,
        topic: str,
        query_type: QueryType,
        context: Optional[SearchContext],
        now: datetime,
    ) -> List[Post]:
        ...

    @staticmethod
    def _guarded(name: str, collect: Callable[[], List[Post]]) -> ConnectorRun:
        start = time.time()
        last_error: Optional[str] = None
        try:
            posts = list(collect())
        except Exception as exc:
            last_error = redact_secrets(str(exc)) or exc.__class__.__name__
            logger.warning("Connector %s failed: %s", name, last_error)
            posts = []
        latency_ms = (time.time() - start) * 1000
        logger.debug("Connector %s returned %d posts in %.0fms", name, len(posts), latency_ms)
        return ConnectorRun(
            posts=posts,
            status=HealthStatus(
                name=name,
                healthy=last_error is None,
                last_error=last_error,
                items_last_fetch=len(posts),
                latency_ms=latency_ms,
            ),
        )
