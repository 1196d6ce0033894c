"""
Frequency analysis over phase-1 results, producing phase-2 drill-down targets.
"""
from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, List, Sequence, Tuple

from deep_research.models import ExtractedEntities, Post
from deep_research.parsing import find_handles

TOP_N = 5
MIN_TERM_FREQUENCY = 2
MIN_TERM_LENGTH = 4

_CROSS_REFERENCE = re.compile(r"\br/(\w{2,30})")
_NON_WORD = re.compile(r"[^a-z0-9\s]")

STOPWORDS = frozenset(
    """
    the a an is are was were be been being have has had do does did will would could
    should may might can shall to of in for on with at by from as into through during
    before after and but or not no it its this that these those i you he she we they
    my your his her our their what which who when where why how all each every both
    few more most other some such than too very just about so up out if then also new
    like get
    """.split()
)

GENERIC_HANDLES = frozenset(
    {
        "elonmusk",
        "openai",
        "google",
        "microsoft",
        "apple",
        "meta",
        "github",
        "youtube",
        "x",
        "twitter",
        "reddit",
    }
)


def _top(counts: Counter, limit: int = TOP_N, min_count: int = 1) -> Tuple[str, ...]:
    # Counter preserves insertion order and sorted() is stable, so ties
    # resolve to first-seen.
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return tuple(key for key, count in ranked if count >= min_count)[:limit]


def count_communities(posts: Iterable[Post]) -> Counter:
    counts: Counter = Counter()
    for post in posts:
        if post.community:
            counts[post.community.lower()] += 1
        for ref in _CROSS_REFERENCE.findall(post.body or ""):
            counts[ref.lower()] += 1
    return counts


def count_terms(posts: Iterable[Post]) -> Counter:
    counts: Counter = Counter()
    for post in posts:
        for word in _NON_WORD.sub("", post.title.lower()).split():
            if len(word) >= MIN_TERM_LENGTH and word not in STOPWORDS:
                counts[word] += 1
    return counts


def extract_handles(posts: Iterable[Post], denylist: frozenset = GENERIC_HANDLES) -> Tuple[str, ...]:
    counts: Counter = Counter()
    for post in posts:
        mentions: List[str] = find_handles(post.title)[:1] + find_handles(post.body or "")
        for handle in mentions:
            if handle not in denylist:
                counts[handle] += 1
    return _top(counts)


def extract_entities(
    link_posts: Sequence[Post],
    tech_posts: Sequence[Post],
    social_posts: Sequence[Post] = (),
) -> ExtractedEntities:
    return ExtractedEntities(
        communities=_top(count_communities(link_posts)),
        key_terms=_top(count_terms([*link_posts, *tech_posts]), min_count=MIN_TERM_FREQUENCY),
        handles=extract_handles(social_posts),
    )
