"""
Load optional YAML overrides for the research settings, expanding ``${ENV}`` values.
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def load_overrides(path: Optional[Path]) -> Dict[str, Any]:
    if path is None:
        return {}
    if not path.exists():
        logger.warning("Research config file not found at %s", path)
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        logger.error("Could not parse research config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Research config %s must be a mapping; ignoring.", path)
        return {}
    return _expand_env(data)


def _expand_env(data: Dict[str, Any]) -> Dict[str, Any]:
    """Substitute every `${VAR}` occurrence in string values, warning about unset variables."""

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        value = os.getenv(name)
        if value is None:
            logger.warning("Research config references unset environment variable %s", name)
            return ""
        return value

    def expand(value: Any) -> Any:
        if isinstance(value, str):
            return _ENV_REFERENCE.sub(substitute, value)
        if isinstance(value, dict):
            return {key: expand(item) for key, item in value.items()}
        if isinstance(value, list):
            return [expand(item) for item in value]
        return value

    return expand(data)
