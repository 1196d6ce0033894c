"""
High-level orchestration for the four-phase research pipeline.

Phase 1 fans out to every source, phase 2 drills into entities found in
phase 1, phase 3 enriches the strongest Reddit threads, and phase 4 ranks
everything and writes the brief.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from deep_research.connectors import ConnectorSet, build_connectors
from deep_research.enrichment import Enricher
from deep_research.entities import extract_entities
from deep_research.exceptions import InvalidTopicError
from deep_research.http_client import HttpClient
from deep_research.models import (
    ConnectorRun,
    HealthStatus,
    Post,
    QueryType,
    ResearchResult,
    ResearchStats,
    SearchContext,
    Source,
)
from deep_research.query import classify_query
from deep_research.ranking import dedupe_and_rank
from deep_research.settings import ResearchSettings, load_settings
from deep_research.synthesis import SynthesisOutcome, Synthesizer, format_fallback_brief

logger = logging.getLogger(__name__)

MAX_TOPIC_LENGTH = 200
MIN_SYNTHESIS_SECONDS = 1.0


class Deadline:
    """Monotonic outer time budget for a single research call."""

    def __init__(self, seconds: float) -> None:
        self.expires_at = time.monotonic() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0


def validate_topic(topic: str) -> str:
    if not isinstance(topic, str):
        raise InvalidTopicError("Topic is required and must be a string")
    trimmed = topic.strip()
    if not trimmed:
        raise InvalidTopicError("Topic cannot be empty")
    if len(trimmed) > MAX_TOPIC_LENGTH:
        raise InvalidTopicError(f"Topic must be {MAX_TOPIC_LENGTH} characters or less")
    return trimmed


class ResearchPipeline:
    def __init__(
        self,
        settings: Optional[ResearchSettings] = None,
        connectors: Optional[ConnectorSet] = None,
        enricher: Optional[Enricher] = None,
        synthesizer: Optional[Synthesizer] = None,
    ) -> None:
        self.settings = settings or load_settings()
        http = HttpClient(user_agent=self.settings.user_agent)
        self.connectors = connectors or build_connectors(self.settings, http)
        self.enricher = enricher or Enricher(
            http,
            timeout=self.settings.enrich_timeout_seconds,
            batch_size=self.settings.enrich_batch_size,
        )
        self.synthesizer = synthesizer or Synthesizer(
            api_key=self.settings.anthropic_api_key,
            model=self.settings.synthesis_model,
            max_tokens=self.settings.synthesis_max_tokens,
            timeout=self.settings.synthesis_timeout_seconds,
            window_days=self.settings.recency.window_days,
        )

    def run(
        self,
        topic: str,
        model_credential: Optional[str] = None,
        persona: Optional[str] = None,
        deadline_seconds: Optional[float] = None,
    ) -> ResearchResult:
        topic = validate_topic(topic)
        deadline = Deadline(self.settings.deadline_seconds if deadline_seconds is None else deadline_seconds)
        query_type = classify_query(topic)
        now = datetime.now(timezone.utc)
        health: List[HealthStatus] = []
        logger.info("Researching %r as %s", topic, query_type.value)

        # Phase 1: broad fan-out
        phase1, partial = self._fan_out(self._phase1_tasks(topic, query_type, now), deadline)
        health.extend(run.status for run in phase1.values())
        link_posts = self._posts(phase1, "reddit-discovery") + self._posts(phase1, "reddit")
        tech_posts = self._posts(phase1, "hackernews")
        video_posts = self._posts(phase1, "youtube")
        web_posts = self._posts(phase1, "web")
        social_posts = self._posts(phase1, "x")

        # Phase 2: drill into discovered entities
        entities = extract_entities(link_posts, tech_posts, social_posts)
        logger.info(
            "Phase 1 entities: communities=%s terms=%s handles=%s",
            list(entities.communities),
            list(entities.key_terms),
            list(entities.handles),
        )
        phase2_tasks: Dict[str, Callable[[], ConnectorRun]] = {}
        if entities.communities:
            context = SearchContext(communities=entities.communities)
            phase2_tasks["reddit-phase2"] = lambda: self.connectors.link_aggregator.run(
                topic, query_type, context, now=now
            )
        if entities.handles:
            context_x = SearchContext(handles=entities.handles)
            phase2_tasks["x-phase2"] = lambda: self.connectors.social.run(topic, query_type, context_x, now=now)
        if phase2_tasks and deadline.expired:
            logger.warning("Deadline reached after phase 1; skipping phase 2 for %r", topic)
            partial = True
        elif phase2_tasks:
            phase2, timed_out = self._fan_out(phase2_tasks, deadline)
            partial = partial or timed_out
            health.extend(run.status for run in phase2.values())
            link_posts = link_posts + self._posts(phase2, "reddit-phase2")
            social_posts = social_posts + self._posts(phase2, "x-phase2")
        else:
            logger.info("No entities found for %r; phase 2 skipped", topic)

        # Phase 3: enrich the strongest Reddit threads
        policy = self.settings.recency
        ranked_links = dedupe_and_rank(link_posts, policy=policy)
        candidates = ranked_links[: self.settings.enrich_limit]
        remaining_links = ranked_links[self.settings.enrich_limit :]
        if candidates and deadline.expired:
            logger.warning("Deadline reached before enrichment; keeping raw Reddit threads for %r", topic)
            partial = True
            enriched = candidates
        else:
            enriched = self.enricher.enrich(candidates, deadline=deadline.expires_at)
            partial = partial or (bool(candidates) and deadline.expired)

        # Phase 4: rank everything, then synthesize
        ranked = dedupe_and_rank(
            enriched,
            remaining_links,
            tech_posts,
            video_posts,
            web_posts,
            social_posts,
            policy=policy,
        )
        stats = ResearchStats.from_collections(
            {
                Source.LINK_AGGREGATOR: link_posts,
                Source.TECH_NEWS: tech_posts,
                Source.VIDEO: video_posts,
                Source.WEB: web_posts,
                Source.SOCIAL: social_posts,
            }
        )
        outcome, synthesis_cut = self._synthesize(topic, ranked, stats, query_type, persona, model_credential, deadline)
        partial = partial or synthesis_cut
        logger.info(
            "Research for %r finished: %d ranked sources, synthesized=%s, partial=%s",
            topic,
            len(ranked),
            outcome.synthesized,
            partial,
        )
        return ResearchResult(
            topic=topic,
            query_type=query_type,
            brief=outcome.brief,
            sources=ranked[: self.settings.sources_limit],
            stats=stats,
            persona=persona,
            health=health,
            partial=partial,
            synthesized=outcome.synthesized,
        )

    def _phase1_tasks(self, topic: str, query_type: QueryType, now: datetime) -> Dict[str, Callable[[], ConnectorRun]]:
        c = self.connectors
        tasks: Dict[str, Callable[[], ConnectorRun]] = {
            "reddit": lambda: c.link_aggregator.run(topic, query_type, now=now),
            "hackernews": lambda: c.tech_news.run(topic, query_type, now=now),
            "youtube": lambda: c.video.run(topic, query_type, now=now),
            "web": lambda: c.web.run(topic, query_type, now=now),
            "x": lambda: c.social.run(topic, query_type, now=now),
        }
        if c.link_aggregator.search_tool is not None:
            tasks["reddit-discovery"] = lambda: c.link_aggregator.discover(topic, now=now)
        return tasks

    def _synthesize(
        self,
        topic: str,
        ranked: List[Post],
        stats: ResearchStats,
        query_type: QueryType,
        persona: Optional[str],
        model_credential: Optional[str],
        deadline: Deadline,
    ) -> Tuple[SynthesisOutcome, bool]:
        top = ranked[: self.settings.synthesis_sources_limit]
        if not ranked:
            return SynthesisOutcome(format_fallback_brief(topic, top, stats), synthesized=False), False
        remaining = deadline.remaining()
        if remaining < MIN_SYNTHESIS_SECONDS:
            logger.warning("Deadline reached before synthesis; using fallback brief for %r", topic)
            return SynthesisOutcome(format_fallback_brief(topic, top, stats), synthesized=False), True
        outcome = self.synthesizer.synthesize(
            topic,
            top,
            stats,
            query_type,
            persona=persona,
            api_key=model_credential,
            timeout=min(self.settings.synthesis_timeout_seconds, remaining),
        )
        return outcome, False

    @staticmethod
    def _fan_out(
        tasks: Dict[str, Callable[[], ConnectorRun]],
        deadline: Deadline,
    ) -> Tuple[Dict[str, ConnectorRun], bool]:
        """
        Run every task concurrently and wait until all finish or the deadline
        passes. Tasks still running at the deadline contribute no posts.
        """
        results: Dict[str, ConnectorRun] = {}
        executor = ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="research")
        future_map = {executor.submit(task): name for name, task in tasks.items()}
        done, pending = wait(future_map, timeout=deadline.remaining())
        for future in done:
            name = future_map[future]
            try:
                run = future.result()
            except Exception as exc:  # pragma: no cover - connectors already guard
                logger.error("Connector task %s failed: %s", name, exc)
                run = ConnectorRun(posts=[], status=HealthStatus(name=name, healthy=False, last_error=str(exc)))
            run.status.name = name
            results[name] = run
        for future in pending:
            name = future_map[future]
            logger.warning("Connector task %s exceeded the research deadline", name)
            results[name] = ConnectorRun(
                posts=[],
                status=HealthStatus(name=name, healthy=False, last_error="deadline exceeded", timed_out=True),
            )
        # Abandon stragglers; their own request timeouts bound the threads.
        executor.shutdown(wait=False, cancel_futures=True)
        return results, bool(pending)

    @staticmethod
    def _posts(runs: Dict[str, ConnectorRun], name: str) -> List[Post]:
        run = runs.get(name)
        return list(run.posts) if run else []
