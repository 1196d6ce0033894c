"""
Best-effort parsers that turn free-form model output and citations into Posts.

Search-tool models answer in loosely structured prose. Everything here is a
heuristic; keeping it in one module lets the heuristics change without
touching connectors or the pipeline.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence

from deep_research.models import Post, Source
from deep_research.ranking import normalize_url
from deep_research.schemas import Citation

UrlFilter = Callable[[str], bool]

_BLOCK_SPLIT = re.compile(r"\n---+\n?|\n\n(?=TITLE:)")
_TITLE = re.compile(r"TITLE:\s*(.+?)(?:\n|$)")
_URL = re.compile(r"URL:\s*(https?://\S+?)(?:\n|$|\s)")
_COMMUNITY = re.compile(r"SUBREDDIT:\s*(?:r/|/r/)?(\w+)")
_SCORE = re.compile(r"SCORE:\s*(\d+)")
_SUMMARY = re.compile(r"SUMMARY:\s*(.+?)(?:\n|$)")
_RAW_URL = re.compile(r"https?://[^\s)\]>\"']+")
_TRAILING_PUNCT = re.compile(r"[)\].,;:]+$")
_SUBREDDIT_IN_URL = re.compile(r"/r/(\w+)")

HANDLE_PATTERN = re.compile(r"@(\w{1,15})")
_COUNT = r"(\d[\d,]*(?:\.\d+)?[kKmM]?)"
_LIKES = re.compile(_COUNT + r"\s*(?:likes?|❤️?|♥)", re.IGNORECASE)
_REPOSTS = re.compile(_COUNT + r"\s*(?:reposts?|retweets?|\U0001F501)", re.IGNORECASE)
_REPLIES = re.compile(_COUNT + r"\s*(?:replies|reply|comments?|\U0001F4AC)", re.IGNORECASE)
_METRICS = re.compile(
    _COUNT + r"\s*(?:likes?|reposts?|retweets?|replies|reply|comments?|❤️?|♥|\U0001F501|\U0001F4AC)",
    re.IGNORECASE,
)
_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*", re.MULTILINE)
_SOCIAL_HOSTS = ("x.com/", "twitter.com/")

SOCIAL_TEXT_MAX = 280
SOCIAL_TITLE_MAX = 120
SUMMARY_MAX = 300


def clean_url(raw: str) -> str:
    return _TRAILING_PUNCT.sub("", raw.strip())


def parse_count(raw: Optional[str]) -> int:
    """Parse "1,234", "2.5K" or "3M" into an int; unparseable input is 0."""
    if not raw:
        return 0
    token = raw.replace(",", "").strip()
    scale = 1
    if token[-1:] in {"k", "K"}:
        scale, token = 1_000, token[:-1]
    elif token[-1:] in {"m", "M"}:
        scale, token = 1_000_000, token[:-1]
    try:
        return int(float(token) * scale)
    except ValueError:
        return 0


def find_handles(text: str) -> List[str]:
    return [match.lower() for match in HANDLE_PATTERN.findall(text or "")]


def is_social_url(url: str) -> bool:
    lowered = url.lower()
    return any(host in lowered for host in _SOCIAL_HOSTS)


def community_from_url(url: str) -> Optional[str]:
    match = _SUBREDDIT_IN_URL.search(url)
    return match.group(1) if match else None


def parse_search_blocks(
    texts: Iterable[str],
    citations: Sequence[Citation],
    source: Source,
    keep: UrlFilter,
    now: datetime,
    provider: str,
) -> List[Post]:
    """
    Parse TITLE/URL/SUMMARY blocks requested from a web-search model.

    Falls back to bare URLs in the text when no block parses, then adds any
    citation the text did not already mention.
    """
    posts: List[Post] = []
    seen = set()

    def add(url: str, title: Optional[str] = None, community: Optional[str] = None, score: int = 0, body: Optional[str] = None) -> None:
        key = normalize_url(url)
        if key in seen or not keep(url):
            return
        seen.add(key)
        if source == Source.LINK_AGGREGATOR and not community:
            community = community_from_url(url)
        posts.append(
            Post(
                title=title or url,
                url=url,
                source=source,
                created_at=now,
                engagement_score=score,
                community=community,
                body=body or None,
                metadata={"provider": provider},
            )
        )

    for text in texts:
        parsed_any = False
        for block in _BLOCK_SPLIT.split(text):
            url_match = _URL.search(block)
            if not url_match:
                continue
            parsed_any = True
            title_match = _TITLE.search(block)
            community_match = _COMMUNITY.search(block)
            score_match = _SCORE.search(block)
            summary_match = _SUMMARY.search(block)
            add(
                clean_url(url_match.group(1)),
                title=title_match.group(1).strip() if title_match else None,
                community=community_match.group(1) if community_match else None,
                score=int(score_match.group(1)) if score_match else 0,
                body=summary_match.group(1).strip()[:SUMMARY_MAX] if summary_match else None,
            )
        if not parsed_any:
            for raw in _RAW_URL.findall(text):
                add(clean_url(raw))

    for citation in citations:
        add(clean_url(citation.url), title=citation.title)
    return posts


def _clean_social_text(block: str) -> str:
    text = _LIST_MARKER.sub("", block)
    text = HANDLE_PATTERN.sub("", text)
    text = _METRICS.sub("", text)
    text = _RAW_URL.sub("", text)
    text = text.replace("**", "")
    return re.sub(r"\s+", " ", text).strip(" -:|,")[:SOCIAL_TEXT_MAX]


def _resolve_social_url(block: str, handle: str, citations: Sequence[Citation], used: set) -> str:
    for raw in _RAW_URL.findall(block):
        url = clean_url(raw)
        if is_social_url(url):
            return url
    if handle:
        marker = f"/{handle.lower()}/"
        for citation in citations:
            url = clean_url(citation.url)
            if marker in url.lower() and url not in used:
                return url
        return f"https://x.com/{handle}"
    return ""


def parse_social_posts(text: str, citations: Sequence[Citation], now: datetime) -> List[Post]:
    """
    Split a social-search answer into per-post blocks and pull out the author
    handle, engagement numbers and a link.
    """
    posts: List[Post] = []
    used_urls: set = set()
    blocks = [block for block in re.split(r"\n{2,}", text or "") if len(block.strip()) > 20]

    for block in blocks:
        handle_match = HANDLE_PATTERN.search(block)
        handle = handle_match.group(1) if handle_match else ""
        likes = parse_count(_LIKES.search(block).group(1)) if _LIKES.search(block) else 0
        reposts = parse_count(_REPOSTS.search(block).group(1)) if _REPOSTS.search(block) else 0
        replies = parse_count(_REPLIES.search(block).group(1)) if _REPLIES.search(block) else 0

        clean_text = _clean_social_text(block)
        if len(clean_text) < 10:
            continue
        url = _resolve_social_url(block, handle, citations, used_urls)
        if not url:
            continue
        used_urls.add(url)

        title = f"@{handle}: {clean_text[:SOCIAL_TITLE_MAX]}" if handle else clean_text[:SOCIAL_TITLE_MAX]
        metadata = {"provider": "xai-x-search"}
        if handle:
            metadata["author"] = handle
        posts.append(
            Post(
                title=title,
                url=url,
                source=Source.SOCIAL,
                created_at=now,
                engagement_score=likes + reposts,
                comment_count=replies,
                body=clean_text,
                metadata=metadata,
            )
        )

    if len(posts) < 5:
        known = {normalize_url(post.url) for post in posts}
        for citation in citations:
            url = clean_url(citation.url)
            if not is_social_url(url) or normalize_url(url) in known:
                continue
            known.add(normalize_url(url))
            posts.append(
                Post(
                    title=citation.title or url,
                    url=url,
                    source=Source.SOCIAL,
                    created_at=now,
                    metadata={"provider": "xai-x-search"},
                )
            )
    return posts
