"""
General-web connector: a web-search model first, DuckDuckGo's HTML page as backup.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional
from urllib.parse import parse_qs, urljoin, urlsplit

from bs4 import BeautifulSoup

from deep_research.connectors.base import SourceConnector, UpstreamError
from deep_research.connectors.search_tools import SearchToolClient
from deep_research.http_client import HttpClient
from deep_research.models import Post, QueryType, SearchContext, Source
from deep_research.parsing import SUMMARY_MAX, parse_search_blocks
from deep_research.query import expand_queries
from deep_research.settings import ResearchSettings

logger = logging.getLogger(__name__)

EXCLUDED_DOMAINS = ("reddit.com", "news.ycombinator.com")
FALLBACK_URL = "https://html.duckduckgo.com/html/"
FALLBACK_QUERIES = 2
FALLBACK_RESULTS_PER_QUERY = 8
BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def is_excluded(url: str) -> bool:
    lowered = url.lower()
    return any(domain in lowered for domain in EXCLUDED_DOMAINS)


def unwrap_redirect(href: str) -> str:
    """Resolve DuckDuckGo's ``/l/?uddg=`` redirect links to the target URL."""
    absolute = urljoin("https://duckduckgo.com", href)
    parts = urlsplit(absolute)
    if parts.path.startswith("/l/"):
        target = parse_qs(parts.query).get("uddg")
        if target:
            return target[0]
    return absolute


def parse_fallback_results(html: str, now: datetime, query: str) -> List[Post]:
    soup = BeautifulSoup(html, "lxml")
    posts: List[Post] = []
    for link in soup.select("a.result__a")[:FALLBACK_RESULTS_PER_QUERY]:
        href = link.get("href")
        title = link.get_text(" ", strip=True)
        if not href or not title:
            continue
        url = unwrap_redirect(href)
        if not url.startswith("http") or is_excluded(url):
            continue
        container = link.find_parent(class_="result")
        snippet_tag = container.select_one(".result__snippet") if container else None
        snippet = snippet_tag.get_text(" ", strip=True)[:SUMMARY_MAX] if snippet_tag else None
        posts.append(
            Post(
                title=title,
                url=url,
                source=Source.WEB,
                created_at=now,
                body=snippet or None,
                metadata={"provider": "duckduckgo-html", "query": query},
            )
        )
    return posts


class GeneralWebConnector(SourceConnector):
    source = Source.WEB
    name = "web"

    def __init__(
        self,
        settings: ResearchSettings,
        http: Optional[HttpClient] = None,
        search_tool: Optional[SearchToolClient] = None,
    ) -> None:
        super().__init__(settings, http)
        self.search_tool = search_tool

    def _collect(
        self,
        topic: str,
        query_type: QueryType,
        context: Optional[SearchContext],
        now: datetime,
    ) -> List[Post]:
        posts = self._search_with_model(topic, query_type, now)
        if posts:
            return posts
        logger.info("Web search model yielded nothing for %r; using HTML fallback.", topic)
        return self._search_fallback(topic, query_type, now)

    def _search_with_model(self, topic: str, query_type: QueryType, now: datetime) -> List[Post]:
        if self.search_tool is None:
            return []
        prompt = (
            f'Find 10-15 recent high-quality articles about "{topic}" ({query_type.value} focus, last '
            f"{self.settings.recency.window_days} days). Skip Reddit and Hacker News. For each:\n"
            "TITLE: ...\nURL: ...\nSUMMARY: [1 sentence]\n---"
        )
        response = self.search_tool.web_search(
            prompt,
            timeout=self.settings.web_timeout_seconds,
            excluded_domains=EXCLUDED_DOMAINS,
        )
        if response is None:
            return []
        return parse_search_blocks(
            response.message_texts(),
            response.all_citations(),
            Source.WEB,
            keep=lambda url: not is_excluded(url),
            now=now,
            provider="xai-web-search",
        )

    def _search_fallback(self, topic: str, query_type: QueryType, now: datetime) -> List[Post]:
        queries = expand_queries(topic, query_type, year=now.year)[:FALLBACK_QUERIES]
        posts: List[Post] = []
        failures = 0
        for query in queries:
            html = self.http.get_text(
                FALLBACK_URL,
                params={"q": query},
                headers=BROWSER_HEADERS,
                timeout=self.settings.web_fallback_timeout_seconds,
            )
            if html is None:
                failures += 1
                continue
            posts.extend(parse_fallback_results(html, now, query))
        if failures == len(queries):
            raise UpstreamError("web search fallback requests all failed")
        return posts
