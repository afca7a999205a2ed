"""Policy constants for the analytics engine and their YAML loader.

Every threshold and weight the scoring formulas use lives on
:class:`AnalyticsConfig`, so tests and callers can substitute their own
values instead of relying on module-level constants.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

LETTER_DRILL = "letter_drill"
WORD_PRACTICE = "word_practice"
SENTENCE_PRACTICE = "sentence_practice"
PATTERN_PRACTICE = "pattern_practice"

EXERCISE_TYPES = (LETTER_DRILL, WORD_PRACTICE, SENTENCE_PRACTICE)


# Baseline words per minute by exercise kind, as (kind, wpm) pairs.
DEFAULT_MIN_WPM: Tuple[Tuple[str, float], ...] = (
    ("single_letter", 15.0),
    ("combination", 18.0),
    ("multi_letter", 22.0),
    (WORD_PRACTICE, 20.0),
    (SENTENCE_PRACTICE, 25.0),
    (PATTERN_PRACTICE, 20.0),
)


@dataclass(frozen=True)
class AnalyticsConfig:
    # Difficulty score: weighted inaccuracy, latency and error rate.
    accuracy_weight: float = 0.4
    speed_weight: float = 0.3
    error_weight: float = 0.3
    latency_normalization_ms: float = 500.0

    # Recommendation tiers, evaluated high first.
    high_difficulty: float = 70.0
    high_min_accuracy: float = 80.0
    high_error_rate: float = 20.0
    medium_difficulty: float = 40.0
    medium_min_accuracy: float = 90.0
    medium_error_rate: float = 10.0

    top_mistakes_per_letter: int = 5
    retain_orphan_mistakes: bool = False

    strong_key_accuracy: float = 95.0
    weak_key_accuracy: float = 85.0
    finger_key_limit: int = 3

    advanced_pattern_frequency: int = 10
    intermediate_pattern_frequency: int = 5

    heatmap_error_rate_ceiling: float = 50.0
    heatmap_latency_ceiling_ms: float = 1000.0
    heatmap_good_below: float = 0.2
    heatmap_moderate_below: float = 0.4
    heatmap_attention_below: float = 0.6

    focus_count: int = 8
    exercise_types: Tuple[str, ...] = EXERCISE_TYPES
    include_pattern_exercises: bool = True
    pattern_exercise_limit: int = 5
    word_count: int = 20
    sentence_count: int = 5
    min_accuracy_floor: float = 80.0
    min_wpm: Tuple[Tuple[str, float], ...] = DEFAULT_MIN_WPM
    max_errors_base: float = 10.0
    max_errors_attempt_scale: float = 50.0

    def wpm_baseline(self, kind: str) -> float:
        return dict(self.min_wpm).get(kind, 0.0)


def _safe_float(value: Any, default: float) -> float:
    """Convert value to float, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _safe_int(value: Any, default: int) -> int:
    """Convert value to int, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on")
    return bool(value)


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        return _parse_bool(value, default)
    if isinstance(default, int):
        return _safe_int(value, default)
    if isinstance(default, float):
        return _safe_float(value, default)
    if name == "min_wpm":
        if not isinstance(value, dict):
            logger.warning("Config '%s' must be a mapping, keeping default", name)
            return default
        merged = dict(default)
        for key, item in value.items():
            merged[str(key)] = _safe_float(item, merged.get(str(key), 0.0))
        return tuple(merged.items())
    if isinstance(default, tuple):
        if not isinstance(value, (list, tuple)):
            logger.warning("Config '%s' must be a list, keeping default", name)
            return default
        unknown = [item for item in value if item not in EXERCISE_TYPES]
        if unknown:
            logger.warning("Config '%s' has unknown entries %s, ignoring them", name, unknown)
        return tuple(str(item) for item in value if item in EXERCISE_TYPES)
    return value


def config_from_mapping(raw: Dict[str, Any], base: Optional[AnalyticsConfig] = None) -> AnalyticsConfig:
    """Overlay ``raw`` on ``base`` (defaults when omitted)."""
    base = base or AnalyticsConfig()
    known = {f.name for f in fields(AnalyticsConfig)}
    updates: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Ignoring unknown config key '%s'", key)
            continue
        updates[key] = _coerce(key, value, getattr(base, key))
    return replace(base, **updates)


def load_config(path: Optional[Path] = None) -> AnalyticsConfig:
    """Load configuration from a YAML file, falling back to defaults.

    A missing or unreadable file is not an error: the defaults are returned
    and the problem is logged.
    """
    if path is None:
        return AnalyticsConfig()
    path = Path(path)
    if not path.exists():
        logger.info("Config file %s not found, using defaults", path)
        return AnalyticsConfig()
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Could not load config from %s: %s", path, e)
        return AnalyticsConfig()
    if raw is None:
        return AnalyticsConfig()
    if not isinstance(raw, dict):
        logger.warning("Config file %s must contain a mapping, using defaults", path)
        return AnalyticsConfig()
    return config_from_mapping(raw)
