"""
Cross-source deduplication and engagement/recency ranking.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from deep_research.models import Post, RecencyPolicy

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_POLICY = RecencyPolicy()


def normalize_url(url: str) -> str:
    return url.strip().rstrip("/").lower()


def dedupe(posts: Iterable[Post]) -> List[Post]:
    """Keep the first occurrence of every normalized URL, preserving input order."""
    seen = set()
    result: List[Post] = []
    for post in posts:
        key = normalize_url(post.url)
        if key in seen:
            continue
        seen.add(key)
        result.append(post)
    return result


def age_in_days(created_at: datetime, now: datetime) -> float:
    if not created_at.tzinfo:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if not now.tzinfo:
        now = now.replace(tzinfo=timezone.utc)
    return (now - created_at).total_seconds() / SECONDS_PER_DAY


def recency_multiplier(created_at: datetime, now: datetime, policy: RecencyPolicy = DEFAULT_POLICY) -> float:
    days = age_in_days(created_at, now)
    for max_days, multiplier in policy.boost_tiers:
        if days <= max_days:
            return multiplier
    return policy.default_multiplier


def score_post(post: Post, now: datetime, policy: RecencyPolicy = DEFAULT_POLICY) -> float:
    engagement = post.engagement_score + post.comment_count * 2
    return engagement * recency_multiplier(post.created_at, now, policy)


def rank(posts: Sequence[Post], now: Optional[datetime] = None, policy: RecencyPolicy = DEFAULT_POLICY) -> List[Post]:
    now = now or datetime.now(timezone.utc)
    # sorted() is stable, so equal scores keep their input order.
    return sorted(posts, key=lambda post: score_post(post, now, policy), reverse=True)


def dedupe_and_rank(
    preferred: Iterable[Post],
    *others: Iterable[Post],
    now: Optional[datetime] = None,
    policy: RecencyPolicy = DEFAULT_POLICY,
) -> List[Post]:
    """
    Merge every collection, drop duplicate URLs, then rank.

    ``preferred`` is consumed first, so its posts win over later duplicates.
    Pass enriched posts here so they replace their unenriched copies.
    """
    merged: List[Post] = list(preferred)
    for collection in others:
        merged.extend(collection)
    return rank(dedupe(merged), now=now, policy=policy)
