"""
Link-aggregator connector backed by Reddit's public JSON search.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from pydantic import ValidationError

from deep_research.connectors.base import SourceConnector, UpstreamError
from deep_research.connectors.search_tools import SearchToolClient
from deep_research.http_client import HttpClient
from deep_research.models import ConnectorRun, Post, QueryType, SearchContext, Source
from deep_research.parsing import parse_search_blocks
from deep_research.query import expand_queries
from deep_research.ranking import dedupe
from deep_research.schemas import RedditPost
from deep_research.settings import ResearchSettings

logger = logging.getLogger(__name__)

REDDIT_BASE = "https://www.reddit.com"
MAX_COMMUNITY_QUERIES = 5
PAGE_LIMIT = 25


def canonical_thread_url(permalink: str) -> str:
    return f"{REDDIT_BASE}{permalink}" if permalink.startswith("/") else canonical_reddit_url(permalink)


def canonical_reddit_url(url: str) -> str:
    """Rewrite any reddit.com host (old., np., bare) to the www form used for listing permalinks."""
    parts = urlsplit(url)
    host = parts.netloc.lower()
    if host != "reddit.com" and not host.endswith(".reddit.com"):
        return url
    return f"{REDDIT_BASE}{parts.path or '/'}"


def _is_reddit_url(url: str) -> bool:
    return "reddit.com" in url.lower()


class LinkAggregatorConnector(SourceConnector):
    """
    Searches Reddit once per expanded query in phase 1, and once per
    discovered subreddit in phase 2.
    """

    source = Source.LINK_AGGREGATOR
    name = "reddit"
    search_url = f"{REDDIT_BASE}/search.json"

    def __init__(
        self,
        settings: ResearchSettings,
        http: Optional[HttpClient] = None,
        search_tool: Optional[SearchToolClient] = None,
    ) -> None:
        super().__init__(settings, http)
        self.search_tool = search_tool

    def _collect(
        self,
        topic: str,
        query_type: QueryType,
        context: Optional[SearchContext],
        now: datetime,
    ) -> List[Post]:
        if context is not None:
            queries = [f"{topic} subreddit:{name}" for name in context.communities[:MAX_COMMUNITY_QUERIES]]
        else:
            queries = expand_queries(topic, query_type, year=now.year)
        if not queries:
            return []

        cutoff = self.cutoff(now)
        collected: List[Post] = []
        failures = 0
        for query in queries:
            payload = self.http.get_json(
                self.search_url,
                params={"q": query, "sort": "top", "t": "month", "limit": PAGE_LIMIT},
                timeout=self.settings.link_timeout_seconds,
            )
            if payload is None:
                failures += 1
                continue
            collected.extend(self._parse_listing(payload, cutoff, query))

        if failures == len(queries):
            raise UpstreamError(f"all {failures} Reddit search requests failed")
        return collected

    def discover(self, topic: str, *, now: Optional[datetime] = None) -> ConnectorRun:
        """Ask the web-search model for Reddit threads the native search misses."""
        now = now or datetime.now(timezone.utc)
        return self._guarded(f"{self.name}-discovery", lambda: self._discover(topic, now))

    def _discover(self, topic: str, now: datetime) -> List[Post]:
        if self.search_tool is None:
            return []
        prompt = (
            f'Find Reddit discussion threads about "{topic}" from the last '
            f'{self.settings.recency.window_days} days. Search: "{topic} site:reddit.com". '
            "List each result as:\nTITLE: ...\nURL: [full reddit.com URL]\nSUBREDDIT: ...\n"
            "SCORE: [number or 0]\n---\nFind 15-25 threads."
        )
        response = self.search_tool.web_search(prompt, timeout=self.settings.link_discovery_timeout_seconds)
        if response is None:
            raise UpstreamError("Reddit discovery search returned no response")
        posts = parse_search_blocks(
            response.message_texts(),
            response.all_citations(),
            Source.LINK_AGGREGATOR,
            keep=_is_reddit_url,
            now=now,
            provider="xai-web-search",
        )
        return dedupe(post.with_updates(url=canonical_reddit_url(post.url)) for post in posts)

    def _parse_listing(self, payload: Any, cutoff: datetime, query: str) -> List[Post]:
        children = (payload.get("data") or {}).get("children") if isinstance(payload, dict) else None
        posts: List[Post] = []
        for child in children or []:
            raw: Dict[str, Any] = child.get("data") if isinstance(child, dict) else None
            if not raw:
                continue
            try:
                row = RedditPost.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed Reddit listing row for query %r", query)
                continue
            if not row.title or row.created_at < cutoff:
                continue
            posts.append(
                Post(
                    title=row.title,
                    url=canonical_thread_url(row.permalink),
                    source=Source.LINK_AGGREGATOR,
                    created_at=row.created_at,
                    engagement_score=row.score,
                    comment_count=row.num_comments,
                    community=row.subreddit,
                    body=row.selftext or None,
                    engagement_ratio=row.upvote_ratio,
                    metadata={"provider": "reddit", "query": query},
                )
            )
        return posts
