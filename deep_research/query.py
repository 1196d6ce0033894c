"""
Query intent detection and expansion.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import List, Optional, Pattern, Sequence, Tuple

from deep_research.models import QueryType

# Ordered: the first matching rule wins.
_RULES: Sequence[Tuple[QueryType, Sequence[Pattern[str]]]] = (
    (
        QueryType.RECOMMENDATIONS,
        (
            re.compile(r"^(best|top|recommended|favorite|which)\b"),
            re.compile(r"should i (use|buy|try|get)"),
            re.compile(r"alternatives to"),
            re.compile(r"\bvs\b"),
        ),
    ),
    (
        QueryType.NEWS,
        (re.compile(r"\b(news|update|announce|launch|release|happening|latest)\b"),),
    ),
    (
        QueryType.HOWTO,
        (re.compile(r"\b(prompt|prompting|techniques|tips|practices|how to)\b"),),
    ),
)


def classify_query(topic: str) -> QueryType:
    lower = topic.strip().lower()
    for query_type, patterns in _RULES:
        if any(pattern.search(lower) for pattern in patterns):
            return query_type
    return QueryType.GENERAL


def expand_queries(topic: str, query_type: QueryType, year: Optional[int] = None) -> List[str]:
    """Return the topic followed by category-specific variants (2-3 queries)."""
    year = year or datetime.now(timezone.utc).year
    queries = [topic]
    if query_type == QueryType.RECOMMENDATIONS:
        queries.append(f"best {topic}")
        queries.append(f"{topic} recommendations")
    elif query_type == QueryType.NEWS:
        queries.append(f"{topic} {year}")
        queries.append(f"{topic} announcement")
    elif query_type == QueryType.HOWTO:
        queries.append(f"{topic} examples")
        queries.append(f"{topic} techniques tips")
    else:
        queries.append(f"{topic} discussion")
    return queries
