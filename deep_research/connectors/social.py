"""
Social-network connector: X/Twitter posts through the xAI ``x_search`` tool.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from deep_research.connectors.base import SourceConnector, UpstreamError
from deep_research.connectors.search_tools import MAX_ALLOWED_HANDLES, SearchToolClient
from deep_research.http_client import HttpClient
from deep_research.models import Post, QueryType, SearchContext, Source
from deep_research.parsing import parse_social_posts
from deep_research.settings import ResearchSettings

logger = logging.getLogger(__name__)


class SocialConnector(SourceConnector):
    """
    Phase 1 asks for the most engaged posts on the topic; phase 2 narrows the
    same search to the handles discovered in phase 1.
    """

    source = Source.SOCIAL
    name = "x"

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
        if self.search_tool is None:
            logger.info("X connector disabled (missing xAI API key).")
            return []

        window = self.settings.recency.window_days
        handles = list(context.handles[:MAX_ALLOWED_HANDLES]) if context is not None else []
        if context is not None and not handles:
            return []

        if handles:
            mentions = ", ".join(f"@{handle}" for handle in handles)
            prompt = (
                f'Find posts from these X accounts about "{topic}" from the last {window} days: '
                f"{mentions}. Return the most engaged-with posts with full text, engagement "
                "metrics, and URLs."
            )
        else:
            prompt = (
                f'Search X/Twitter for discussions about "{topic}" from the last {window} days. '
                "Find the most engaged-with posts (highest likes, reposts, replies). For each post, "
                "extract: the author's handle, the post text, engagement metrics (likes, reposts, "
                "replies), and the post URL. Return up to 25 of the most relevant and engaged posts. "
                "Focus on substantive discussions, not spam or promotional content."
            )

        response = self.search_tool.x_search(
            prompt,
            timeout=self.settings.social_timeout_seconds,
            from_date=self.cutoff(now).date(),
            to_date=now.date(),
            allowed_handles=handles,
        )
        if response is None:
            raise UpstreamError("X search returned no response")

        citations = response.all_citations()
        posts: List[Post] = []
        for text in response.message_texts():
            posts.extend(parse_social_posts(text, citations, now))
        return posts
