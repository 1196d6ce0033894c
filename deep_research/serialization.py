"""
JSON-ready dictionaries for research results, for API and CLI consumers.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from deep_research.models import HealthStatus, Post, ResearchResult, ResearchStats, Source


def _by_source(values: Mapping[Source, int]) -> Dict[str, int]:
    return {source.value: count for source, count in values.items()}


def post_to_dict(post: Post) -> Dict[str, Any]:
    return {
        "title": post.title,
        "url": post.url,
        "source": post.source.value,
        "community": post.community,
        "engagementScore": post.engagement_score,
        "commentCount": post.comment_count,
        "createdAt": post.created_at.isoformat(),
        "body": post.body,
        "commentInsights": list(post.comment_insights) if post.comment_insights is not None else None,
        "engagementRatio": post.engagement_ratio,
        "metadata": dict(post.metadata),
    }


def stats_to_dict(stats: ResearchStats) -> Dict[str, Any]:
    return {
        "perSourceCounts": _by_source(stats.per_source_counts),
        "perSourceEngagementTotals": _by_source(stats.per_source_engagement_totals),
        "perSourceCommentTotals": _by_source(stats.per_source_comment_totals),
    }


def health_to_dict(status: HealthStatus) -> Dict[str, Any]:
    return {
        "name": status.name,
        "healthy": status.healthy,
        "last_error": status.last_error,
        "items_last_fetch": status.items_last_fetch,
        "latency_ms": status.latency_ms,
        "timed_out": status.timed_out,
    }


def result_to_dict(result: ResearchResult) -> Dict[str, Any]:
    return {
        "topic": result.topic,
        "queryType": result.query_type.value,
        "persona": result.persona,
        "brief": result.brief,
        "sources": [post_to_dict(post) for post in result.sources],
        "stats": stats_to_dict(result.stats),
        "health": [health_to_dict(status) for status in result.health],
        "partial": result.partial,
        "synthesized": result.synthesized,
        "generatedAt": result.generated_at.isoformat(),
    }


def result_to_json(result: ResearchResult, indent: int | None = None) -> str:
    return json.dumps(result_to_dict(result), ensure_ascii=False, indent=indent)
