"""
Errors surfaced to callers of the research pipeline.

Connector, enrichment and synthesis failures never escape the pipeline; only
caller mistakes and the explicit "nothing found" condition do.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from deep_research.models import ResearchResult


class ResearchError(Exception):
    pass


class InvalidTopicError(ResearchError, ValueError):
    pass


class NoResultsError(ResearchError):
    def __init__(self, result: "ResearchResult") -> None:
        super().__init__(f"No sources found for topic '{result.topic}'")
        self.result = result
