"""
Video connector backed by the YouTube Data API search endpoint.
"""
from __future__ import annotations

import html
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from deep_research.connectors.base import SourceConnector, UpstreamError
from deep_research.models import Post, QueryType, SearchContext, Source
from deep_research.schemas import YouTubeSearchItem

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={}"


class VideoConnector(SourceConnector):
    source = Source.VIDEO
    name = "youtube"
    search_url = "https://www.googleapis.com/youtube/v3/search"
    max_results = 10

    def _collect(
        self,
        topic: str,
        query_type: QueryType,
        context: Optional[SearchContext],
        now: datetime,
    ) -> List[Post]:
        api_key = self.settings.youtube_api_key
        if not api_key:
            logger.info("YouTube connector disabled (missing API key).")
            return []

        params = {
            "part": "snippet",
            "q": topic,
            "type": "video",
            "order": "viewCount",
            "publishedAfter": self.cutoff(now).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "maxResults": self.max_results,
            "key": api_key,
        }
        payload = self.http.get_json(self.search_url, params=params, timeout=self.settings.video_timeout_seconds)
        if payload is None:
            raise UpstreamError("YouTube search returned no response")

        posts: List[Post] = []
        for raw in payload.get("items", []) if isinstance(payload, dict) else []:
            try:
                item = YouTubeSearchItem.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed YouTube search item")
                continue
            metadata = {"provider": "youtube", "video_id": item.id.videoId}
            if item.snippet.channelTitle:
                metadata["channel"] = item.snippet.channelTitle
            posts.append(
                Post(
                    title=html.unescape(item.snippet.title),
                    url=WATCH_URL.format(item.id.videoId),
                    source=Source.VIDEO,
                    created_at=item.snippet.publishedAt or now,
                    body=html.unescape(item.snippet.description) or None,
                    metadata=metadata,
                )
            )
        return posts[: self.max_results]
