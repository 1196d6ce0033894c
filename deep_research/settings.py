"""
Centralised settings for the research pipeline (env-first, optional YAML overrides).

Settings are resolved once and injected into the pipeline; connectors never
read the environment themselves.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from deep_research.config_loader import load_overrides
from deep_research.models import RecencyPolicy
from deep_research.security import is_configured_key

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "DeepResearch/1.0 (trend research)"


@dataclass(frozen=True)
class ResearchSettings:
    anthropic_api_key: Optional[str] = None
    synthesis_model: str = "claude-sonnet-4-20250514"
    synthesis_max_tokens: int = 4000
    synthesis_timeout_seconds: float = 90.0
    xai_api_key: Optional[str] = None
    search_model: str = "grok-4"
    youtube_api_key: Optional[str] = None
    recency: RecencyPolicy = field(default_factory=RecencyPolicy)
    deadline_seconds: float = 60.0
    enrich_limit: int = 15
    enrich_batch_size: int = 5
    sources_limit: int = 50
    synthesis_sources_limit: int = 40
    user_agent: str = DEFAULT_USER_AGENT
    link_timeout_seconds: float = 10.0
    tech_news_timeout_seconds: float = 10.0
    video_timeout_seconds: float = 10.0
    web_timeout_seconds: float = 60.0
    web_fallback_timeout_seconds: float = 8.0
    social_timeout_seconds: float = 120.0
    enrich_timeout_seconds: float = 8.0
    link_discovery_timeout_seconds: float = 90.0

    def with_overrides(self, **changes: Any) -> "ResearchSettings":
        return replace(self, **changes)


def _key_from_env(name: str) -> Optional[str]:
    raw = os.getenv(name)
    return raw.strip() if is_configured_key(raw) else None


def _int_from_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(raw)
        return value if value > 0 else default
    except ValueError:
        logger.warning("Invalid int value for %s=%s; using default %s", key, raw, default)
        return default


def _float_from_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = float(raw)
        return value if value > 0 else default
    except ValueError:
        logger.warning("Invalid float value for %s=%s; using default %s", key, raw, default)
        return default


def _apply_overrides(settings: ResearchSettings, overrides: Mapping[str, Any]) -> ResearchSettings:
    known = {f.name for f in fields(ResearchSettings)}
    changes: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key == "recency" and isinstance(value, dict):
            changes["recency"] = _recency_from_mapping(settings.recency, value)
        elif key in known:
            changes[key] = value
        else:
            logger.warning("Unknown research setting '%s' in config file; skipping.", key)
    for key in ("anthropic_api_key", "xai_api_key", "youtube_api_key"):
        if key in changes and not is_configured_key(changes[key]):
            changes[key] = None
    return replace(settings, **changes)


def _recency_from_mapping(base: RecencyPolicy, raw: Mapping[str, Any]) -> RecencyPolicy:
    tiers = raw.get("boost_tiers")
    return RecencyPolicy(
        window_days=int(raw.get("window_days", base.window_days)),
        boost_tiers=tuple((int(days), float(mult)) for days, mult in tiers) if tiers else base.boost_tiers,
        default_multiplier=float(raw.get("default_multiplier", base.default_multiplier)),
    )


def load_settings() -> ResearchSettings:
    settings = ResearchSettings(
        anthropic_api_key=_key_from_env("ANTHROPIC_API_KEY"),
        synthesis_model=os.getenv("RESEARCH_SYNTHESIS_MODEL") or ResearchSettings.synthesis_model,
        xai_api_key=_key_from_env("XAI_API_KEY"),
        search_model=os.getenv("RESEARCH_SEARCH_MODEL") or ResearchSettings.search_model,
        youtube_api_key=_key_from_env("YOUTUBE_API_KEY"),
        recency=RecencyPolicy(window_days=_int_from_env("RESEARCH_WINDOW_DAYS", 30)),
        deadline_seconds=_float_from_env("RESEARCH_DEADLINE_SECONDS", 60.0),
        enrich_limit=_int_from_env("RESEARCH_ENRICH_LIMIT", 15),
        enrich_batch_size=_int_from_env("RESEARCH_ENRICH_BATCH", 5),
        user_agent=os.getenv("RESEARCH_USER_AGENT") or DEFAULT_USER_AGENT,
    )
    config_path = os.getenv("RESEARCH_CONFIG_PATH")
    if config_path:
        settings = _apply_overrides(settings, load_overrides(Path(config_path)))
    return settings
