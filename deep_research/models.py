"""
Core data structures shared by the deep-research pipeline.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

BODY_MAX_CHARS = 500
MAX_COMMENT_INSIGHTS = 5


class Source(str, Enum):
    LINK_AGGREGATOR = "link_aggregator"
    TECH_NEWS = "tech_news"
    VIDEO = "video"
    WEB = "web"
    SOCIAL = "social"


class QueryType(str, Enum):
    RECOMMENDATIONS = "recommendations"
    NEWS = "news"
    HOWTO = "howto"
    GENERAL = "general"


@dataclass(frozen=True)
class Post:
    """
    Normalized representation of one piece of content from any upstream source.

    Posts flow through concurrent stages, so they are frozen. Use
    ``with_updates`` to derive an enriched copy.
    """

    title: str
    url: str
    source: Source
    created_at: datetime
    engagement_score: int = 0
    comment_count: int = 0
    community: Optional[str] = None
    body: Optional[str] = None
    comment_insights: Optional[Tuple[str, ...]] = None
    engagement_ratio: Optional[float] = None
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=timezone.utc))
        if self.body and len(self.body) > BODY_MAX_CHARS:
            object.__setattr__(self, "body", self.body[:BODY_MAX_CHARS])
        if self.comment_insights is not None:
            object.__setattr__(self, "comment_insights", tuple(self.comment_insights)[:MAX_COMMENT_INSIGHTS])

    def with_updates(self, **changes) -> "Post":
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class ExtractedEntities:
    communities: Tuple[str, ...] = ()
    key_terms: Tuple[str, ...] = ()
    handles: Tuple[str, ...] = ()

    @property
    def empty(self) -> bool:
        return not (self.communities or self.key_terms or self.handles)


@dataclass(frozen=True)
class SearchContext:
    """Phase-2 narrowing hints handed to connectors."""

    communities: Tuple[str, ...] = ()
    handles: Tuple[str, ...] = ()

    @classmethod
    def from_entities(cls, entities: ExtractedEntities) -> "SearchContext":
        return cls(communities=entities.communities, handles=entities.handles)


@dataclass(frozen=True)
class RecencyPolicy:
    """
    One place for the "last N days" window used by connectors and the
    score boosts applied by the ranker.
    """

    window_days: int = 30
    boost_tiers: Tuple[Tuple[int, float], ...] = ((7, 1.5), (14, 1.2))
    default_multiplier: float = 1.0


@dataclass
class HealthStatus:
    name: str
    healthy: bool
    last_error: Optional[str] = None
    items_last_fetch: int = 0
    latency_ms: Optional[float] = None
    timed_out: bool = False


@dataclass
class ConnectorRun:
    posts: List[Post]
    status: HealthStatus


@dataclass
class ResearchStats:
    per_source_counts: Dict[Source, int] = field(default_factory=dict)
    per_source_engagement_totals: Dict[Source, int] = field(default_factory=dict)
    per_source_comment_totals: Dict[Source, int] = field(default_factory=dict)

    @classmethod
    def from_collections(cls, collected: Mapping[Source, List[Post]]) -> "ResearchStats":
        stats = cls()
        for source in Source:
            posts = collected.get(source, [])
            stats.per_source_counts[source] = len(posts)
            stats.per_source_engagement_totals[source] = sum(p.engagement_score for p in posts)
            stats.per_source_comment_totals[source] = sum(p.comment_count for p in posts)
        return stats

    @property
    def total_posts(self) -> int:
        return sum(self.per_source_counts.values())


@dataclass
class ResearchResult:
    topic: str
    query_type: QueryType
    brief: str
    sources: List[Post]
    stats: ResearchStats
    persona: Optional[str] = None
    health: List[HealthStatus] = field(default_factory=list)
    partial: bool = False
    synthesized: bool = False
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_results(self) -> bool:
        return bool(self.sources)
