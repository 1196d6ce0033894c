"""
Best-effort enrichment of Reddit threads with authoritative engagement and top comments.
"""
from __future__ import annotations

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from deep_research.http_client import HttpClient
from deep_research.models import BODY_MAX_CHARS, MAX_COMMENT_INSIGHTS, Post
from deep_research.schemas import RedditComment, RedditPost

logger = logging.getLogger(__name__)

MIN_COMMENT_LENGTH = 30
INSIGHT_MAX_CHARS = 200
DELETED_AUTHOR = "[deleted]"
LOW_SIGNAL_PATTERNS = (
    re.compile(r"^(this|same|agreed|exactly|yep|nope|yes|no|thanks)\.?$", re.IGNORECASE),
    re.compile(r"^(lol|lmao|haha)", re.IGNORECASE),
)


def thread_json_url(url: str) -> str:
    return url.rstrip("/") + ".json"


def select_comment_insights(children: Any) -> List[str]:
    """Pick up to five substantive top-level comments from a thread listing."""
    insights: List[str] = []
    for child in children if isinstance(children, list) else []:
        if not isinstance(child, dict) or child.get("kind") != "t1":
            continue
        try:
            comment = RedditComment.model_validate(child.get("data") or {})
        except ValidationError:
            continue
        body = (comment.body or "").strip()
        if len(body) < MIN_COMMENT_LENGTH or comment.author == DELETED_AUTHOR:
            continue
        if any(pattern.search(body) for pattern in LOW_SIGNAL_PATTERNS):
            continue
        insights.append(body[:INSIGHT_MAX_CHARS] + "..." if len(body) > INSIGHT_MAX_CHARS else body)
        if len(insights) >= MAX_COMMENT_INSIGHTS:
            break
    return insights


class Enricher:
    """
    Fetches each thread's JSON representation and returns an updated copy.

    Posts are processed in batches of ``batch_size`` concurrent requests,
    batches one after another, to cap open connections to Reddit.
    """

    def __init__(self, http: HttpClient, timeout: float = 8.0, batch_size: int = 5) -> None:
        self.http = http
        self.timeout = timeout
        self.batch_size = max(1, batch_size)

    def enrich(self, posts: Sequence[Post], deadline: Optional[float] = None) -> List[Post]:
        """
        ``deadline`` is a ``time.monotonic()`` value; batches not started by
        then are returned unenriched.
        """
        enriched: List[Post] = []
        for start in range(0, len(posts), self.batch_size):
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning("Enrichment deadline reached; %d threads left unenriched", len(posts) - start)
                enriched.extend(posts[start:])
                break
            batch = list(posts[start : start + self.batch_size])
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                enriched.extend(executor.map(self.enrich_post, batch))
        updated = sum(1 for before, after in zip(posts, enriched) if before is not after)
        logger.info("Enriched %d of %d Reddit threads", updated, len(posts))
        return enriched

    def enrich_post(self, post: Post) -> Post:
        try:
            return self._enrich(post) or post
        except Exception as exc:
            logger.warning("Enrichment failed for %s: %s", post.url, exc)
            return post

    def _enrich(self, post: Post) -> Optional[Post]:
        data = self.http.get_json(thread_json_url(post.url), timeout=self.timeout)
        if not isinstance(data, list) or len(data) < 2:
            return None

        changes: dict = {}
        submissions = ((data[0] or {}).get("data") or {}).get("children") or []
        if submissions:
            try:
                submission = RedditPost.model_validate(submissions[0].get("data") or {})
            except ValidationError:
                submission = None
            if submission is not None:
                changes["engagement_score"] = submission.score or post.engagement_score
                changes["comment_count"] = submission.num_comments or post.comment_count
                changes["engagement_ratio"] = submission.upvote_ratio
                if submission.selftext:
                    changes["body"] = submission.selftext[:BODY_MAX_CHARS]

        comments = ((data[1] or {}).get("data") or {}).get("children")
        changes["comment_insights"] = tuple(select_comment_insights(comments))
        return post.with_updates(**changes)
