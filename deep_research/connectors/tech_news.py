"""
Tech-news connector backed by the Hacker News Algolia story index.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from deep_research.connectors.base import SourceConnector, UpstreamError
from deep_research.models import Post, QueryType, SearchContext, Source
from deep_research.schemas import HackerNewsHit

logger = logging.getLogger(__name__)

ITEM_URL = "https://news.ycombinator.com/item?id={}"


class TechNewsConnector(SourceConnector):
    source = Source.TECH_NEWS
    name = "hackernews"
    search_url = "https://hn.algolia.com/api/v1/search"
    hits_per_page = 30

    def _collect(
        self,
        topic: str,
        query_type: QueryType,
        context: Optional[SearchContext],
        now: datetime,
    ) -> List[Post]:
        params = {
            "query": topic,
            "tags": "story",
            "hitsPerPage": self.hits_per_page,
            "numericFilters": f"created_at_i>{int(self.cutoff(now).timestamp())}",
        }
        payload = self.http.get_json(self.search_url, params=params, timeout=self.settings.tech_news_timeout_seconds)
        if payload is None:
            raise UpstreamError("Hacker News search returned no response")

        posts: List[Post] = []
        for raw in payload.get("hits", []) if isinstance(payload, dict) else []:
            try:
                hit = HackerNewsHit.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed Hacker News hit")
                continue
            posts.append(
                Post(
                    title=hit.title or "",
                    url=hit.url or ITEM_URL.format(hit.objectID),
                    source=Source.TECH_NEWS,
                    created_at=hit.created_at or now,
                    engagement_score=hit.points,
                    comment_count=hit.num_comments,
                    metadata={"provider": "hn-algolia", "item_id": hit.objectID},
                )
            )
        return posts
