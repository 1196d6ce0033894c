"""
Public API for the deep-research pipeline.
"""
from __future__ import annotations

from typing import Optional

from deep_research.exceptions import InvalidTopicError, NoResultsError, ResearchError
from deep_research.models import Post, QueryType, ResearchResult, Source
from deep_research.pipeline import ResearchPipeline
from deep_research.settings import ResearchSettings, load_settings

__all__ = [
    "InvalidTopicError",
    "NoResultsError",
    "Post",
    "QueryType",
    "ResearchError",
    "ResearchPipeline",
    "ResearchResult",
    "ResearchSettings",
    "Source",
    "load_settings",
    "research_topic",
]

_pipeline: Optional[ResearchPipeline] = None


def _get_pipeline() -> ResearchPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = ResearchPipeline(load_settings())
    return _pipeline


def research_topic(
    topic: str,
    model_credential: Optional[str] = None,
    persona: Optional[str] = None,
    deadline_seconds: Optional[float] = None,
) -> ResearchResult:
    """
    Research a topic across every source and return a ranked, synthesized result.

    Raises ``InvalidTopicError`` for empty or oversized topics and
    ``NoResultsError`` (carrying the result) when no source returned anything.
    """
    result = _get_pipeline().run(
        topic,
        model_credential=model_credential,
        persona=persona,
        deadline_seconds=deadline_seconds,
    )
    if not result.has_results:
        raise NoResultsError(result)
    return result
