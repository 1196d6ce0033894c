"""
Brief synthesis with an Anthropic model, plus a deterministic offline formatter.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import anthropic

from deep_research.models import Post, QueryType, ResearchStats, Source
from deep_research.security import redact_secrets

logger = logging.getLogger(__name__)

FALLBACK_TOP_N = 10
PROMPT_BODY_CHARS = 200
DEFAULT_AUDIENCE = "marketing and sales teams"

SOURCE_LABELS: Dict[Source, str] = {
    Source.LINK_AGGREGATOR: "Reddit",
    Source.TECH_NEWS: "Hacker News",
    Source.VIDEO: "YouTube",
    Source.WEB: "Web",
    Source.SOCIAL: "X",
}

QUERY_TYPE_INSTRUCTIONS: Dict[QueryType, str] = {
    QueryType.RECOMMENDATIONS: (
        "The user is looking for SPECIFIC RECOMMENDATIONS. Focus on naming specific tools, products, "
        'or solutions. Compare options. Give a clear "best for X" verdict.'
    ),
    QueryType.NEWS: (
        "The user wants NEWS and UPDATES. Focus on what happened recently, key announcements, and "
        "what it means. Timeline the events."
    ),
    QueryType.HOWTO: (
        "The user wants TECHNIQUES and BEST PRACTICES. Focus on specific methods, examples, and "
        "copy-paste-ready advice."
    ),
    QueryType.GENERAL: (
        "The user wants a BROAD UNDERSTANDING of this topic. Cover all angles: what people are "
        "saying, debating, and predicting."
    ),
}

BRIEF_SECTIONS = """Write a trend brief with these sections:

## Key Themes
3-5 major themes with 1-2 sentence explanations. Reference specific posts [by number].

## Sentiment
Overall positive/negative/mixed with percentage estimate. What's driving the sentiment?

## Top Posts
The 8-10 most important posts. For each: title, source, why it matters (one line). Include links.

## Viral Hooks
Actual phrases, framings, or angles getting engagement. These are content goldmines.

## Content Ideas
5 specific, ready-to-use content angles. Not generic, based on what's actually trending.

Be concise but specific. Every claim should reference a source."""


@dataclass
class SynthesisOutcome:
    brief: str
    synthesized: bool


def _community_suffix(post: Post) -> str:
    if not post.community:
        return ""
    if post.source == Source.LINK_AGGREGATOR:
        return f" (r/{post.community})"
    return f" ({post.community})"


def format_stats(stats: ResearchStats) -> str:
    counts = stats.per_source_counts
    engagement = stats.per_source_engagement_totals
    comments = stats.per_source_comment_totals
    return (
        f"{counts.get(Source.LINK_AGGREGATOR, 0)} Reddit threads "
        f"({engagement.get(Source.LINK_AGGREGATOR, 0)} upvotes, {comments.get(Source.LINK_AGGREGATOR, 0)} comments) + "
        f"{counts.get(Source.TECH_NEWS, 0)} HN stories ({engagement.get(Source.TECH_NEWS, 0)} points) + "
        f"{counts.get(Source.SOCIAL, 0)} X/Twitter posts ({engagement.get(Source.SOCIAL, 0)} likes and reposts) + "
        f"{counts.get(Source.VIDEO, 0)} YouTube videos + "
        f"{counts.get(Source.WEB, 0)} web pages."
    )


def build_system_prompt(query_type: QueryType, persona: Optional[str] = None) -> str:
    audience = persona.strip() if persona and persona.strip() else DEFAULT_AUDIENCE
    return (
        "You are an expert trend intelligence analyst. You create concise, actionable trend briefs "
        f"for {audience}.\n\n"
        "Your briefs are structured, cite specific posts, and give people content they can act on "
        "immediately. Be specific: reference actual posts, actual numbers, actual patterns. No generic "
        f"filler.\n\n{QUERY_TYPE_INSTRUCTIONS[query_type]}"
    )


def format_source_line(index: int, post: Post) -> str:
    text = (
        f'[{index}] "{post.title}" | {SOURCE_LABELS[post.source]}{_community_suffix(post)} '
        f"| Score: {post.engagement_score} | Comments: {post.comment_count} "
        f"| {post.created_at.date().isoformat()}"
    )
    if post.body:
        text += f"\n    Body: {post.body[:PROMPT_BODY_CHARS]}"
    if post.comment_insights:
        insights = "\n".join(f"      - {insight}" for insight in post.comment_insights)
        text += f"\n    Top comments:\n{insights}"
    return text


def build_user_prompt(
    topic: str,
    posts: Sequence[Post],
    stats: ResearchStats,
    query_type: QueryType,
    window_days: int = 30,
) -> str:
    sources_text = "\n\n".join(format_source_line(i, post) for i, post in enumerate(posts, 1))
    return (
        f'Research "{topic}" (last {window_days} days).\n\n'
        f"Stats: {format_stats(stats)}\n"
        f"Query type: {query_type.value}\n\n"
        f"Sources:\n{sources_text}\n\n"
        f"{BRIEF_SECTIONS}"
    )


def format_fallback_brief(topic: str, posts: Sequence[Post], stats: ResearchStats) -> str:
    """Plain listing of the top posts. Never raises and never returns an empty string."""
    counts = stats.per_source_counts
    lines: List[str] = [f'# Trend Brief: "{topic}"', "", "## Sources Found"]
    for source, label in SOURCE_LABELS.items():
        lines.append(f"- {label}: {counts.get(source, 0)}")
    lines.extend(["", "## Top Posts"])
    top = list(posts)[:FALLBACK_TOP_N]
    if top:
        for i, post in enumerate(top, 1):
            lines.append(
                f"{i}. **{post.title or post.url}** | {SOURCE_LABELS.get(post.source, str(post.source))}"
                f"{_community_suffix(post)} | Score: {post.engagement_score} | [Link]({post.url})"
            )
    else:
        lines.append("No sources were found for this topic in the research window.")
    lines.extend(["", "*Note: AI analysis unavailable. Showing raw results.*"])
    return "\n".join(lines)


class Synthesizer:
    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        max_tokens: int = 4000,
        timeout: float = 90.0,
        window_days: int = 30,
        client_factory: Callable[..., anthropic.Anthropic] = anthropic.Anthropic,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.window_days = window_days
        self.client_factory = client_factory

    def synthesize(
        self,
        topic: str,
        posts: Sequence[Post],
        stats: ResearchStats,
        query_type: QueryType,
        *,
        persona: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SynthesisOutcome:
        key = api_key or self.api_key
        if not key:
            logger.info("No model credential configured; using fallback brief.")
            return SynthesisOutcome(format_fallback_brief(topic, posts, stats), synthesized=False)

        try:
            brief = self._call_model(key, topic, posts, stats, query_type, persona, timeout or self.timeout)
        except Exception as exc:
            logger.warning("Brief synthesis failed, using fallback: %s", redact_secrets(str(exc)))
            brief = None
        if not brief:
            return SynthesisOutcome(format_fallback_brief(topic, posts, stats), synthesized=False)
        return SynthesisOutcome(brief, synthesized=True)

    def _call_model(
        self,
        key: str,
        topic: str,
        posts: Sequence[Post],
        stats: ResearchStats,
        query_type: QueryType,
        persona: Optional[str],
        timeout: float,
    ) -> Optional[str]:
        client = self.client_factory(api_key=key, timeout=timeout, max_retries=0)
        response = client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=build_system_prompt(query_type, persona),
            messages=[
                {
                    "role": "user",
                    "content": build_user_prompt(topic, posts, stats, query_type, self.window_days),
                }
            ],
        )
        for block in response.content:
            if getattr(block, "type", None) == "text" and getattr(block, "text", ""):
                return block.text
        logger.warning("Model response for %r contained no text block", topic)
        return None
