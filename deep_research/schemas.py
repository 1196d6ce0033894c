"""
Pydantic models for upstream payloads.

They capture only the fields the connectors read. A row that fails validation
is skipped by the caller, never fatal.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, field_validator


def _zero_if_missing(value: Any) -> Any:
    return 0 if value is None else value


class RedditPost(BaseModel):
    title: str
    permalink: str
    created_utc: float
    subreddit: Optional[str] = None
    score: int = 0
    num_comments: int = 0
    selftext: str = ""
    upvote_ratio: Optional[float] = None

    @field_validator("title", mode="before")
    @classmethod
    def _trim_title(cls, value: str) -> str:
        return (value or "").strip()

    @field_validator("score", "num_comments", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> Any:
        return _zero_if_missing(value)

    @field_validator("selftext", mode="before")
    @classmethod
    def _selftext(cls, value: Any) -> str:
        return value or ""

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.created_utc, tz=timezone.utc)


class RedditComment(BaseModel):
    body: str = ""
    author: Optional[str] = None


class HackerNewsHit(BaseModel):
    objectID: str
    title: Optional[str] = None
    url: Optional[str] = None
    points: int = 0
    num_comments: int = 0
    created_at: Optional[datetime] = None

    @field_validator("points", "num_comments", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> Any:
        return _zero_if_missing(value)


class YouTubeVideoId(BaseModel):
    videoId: str


class YouTubeSnippet(BaseModel):
    title: str = ""
    description: str = ""
    channelTitle: Optional[str] = None
    publishedAt: Optional[datetime] = None


class YouTubeSearchItem(BaseModel):
    id: YouTubeVideoId
    snippet: YouTubeSnippet


class Citation(BaseModel):
    url: str
    title: Optional[str] = None
    type: Optional[str] = None


class ResponseContent(BaseModel):
    type: str
    text: Optional[str] = None
    annotations: List[Citation] = []

    @field_validator("annotations", mode="before")
    @classmethod
    def _keep_url_annotations(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict) and item.get("url")]


class ResponseOutput(BaseModel):
    type: str
    content: List[ResponseContent] = []

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []


class SearchToolResponse(BaseModel):
    """Subset of the xAI Responses API payload used by the search tools."""

    output: List[ResponseOutput] = []
    citations: List[Citation] = []

    @field_validator("citations", mode="before")
    @classmethod
    def _citations(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        normalized = []
        for item in value:
            if isinstance(item, str):
                normalized.append({"url": item})
            elif isinstance(item, dict) and item.get("url"):
                normalized.append(item)
        return normalized

    def message_texts(self) -> List[str]:
        texts: List[str] = []
        for output in self.output:
            if output.type != "message":
                continue
            for content in output.content:
                if content.type in {"output_text", "text"} and content.text:
                    texts.append(content.text)
        return texts

    def all_citations(self) -> List[Citation]:
        collected: List[Citation] = list(self.citations)
        for output in self.output:
            if output.type != "message":
                continue
            for content in output.content:
                collected.extend(content.annotations)
        return collected
