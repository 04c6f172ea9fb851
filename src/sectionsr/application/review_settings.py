"""
Review settings normalizer.

Turns an arbitrary, possibly malformed settings payload into a complete,
internally consistent ReviewConfig. ``normalize_config`` never raises.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from sectionsr.domain.constants import EASE_FLOOR, REVIEW_RATINGS
from sectionsr.domain.models import ReviewConfig
from sectionsr.domain.section_state import round_half_up

_DEFAULTS = ReviewConfig()

# Legacy camelCase keys written by older settings payloads
_LEGACY_KEYS = {
    "learning_steps": "learningSteps",
    "relearning_steps": "relearningSteps",
    "graduating_good": "graduatingGood",
    "graduating_easy": "graduatingEasy",
    "starting_ease": "startingEase",
    "minimum_ease": "minimumEase",
    "ease_bonus": "easeBonus",
    "ease_penalty": "easePenalty",
    "hard_ease_penalty": "hardEasePenalty",
    "hard_interval_multiplier": "hardIntervalMultiplier",
    "easy_interval_bonus": "easyIntervalBonus",
    "interval_modifier": "intervalModifier",
    "lapse_interval_multiplier": "lapseIntervalMultiplier",
}

_STEP_KEYS = ("learning_steps", "relearning_steps")
_GRADUATING_KEYS = ("graduating_good", "graduating_easy")
_EASE_KEYS = ("minimum_ease", "starting_ease")
_FACTOR_KEYS = (
    "ease_bonus",
    "ease_penalty",
    "hard_ease_penalty",
    "hard_interval_multiplier",
    "easy_interval_bonus",
    "interval_modifier",
    "lapse_interval_multiplier",
)

# Smallest accepted value for multipliers and deltas
FACTOR_MIN = 0.0001

DURATION_UNIT_FACTORS = {
    "m": 1,
    "min": 1,
    "mins": 1,
    "minute": 1,
    "minutes": 1,
    "h": 60,
    "hr": 60,
    "hrs": 60,
    "hour": 60,
    "hours": 60,
    "d": 1440,
    "day": 1440,
    "days": 1440,
    "w": 10080,
    "wk": 10080,
    "wks": 10080,
    "week": 10080,
    "weeks": 10080,
}

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([a-zA-Z]+)?$")
_STEP_SPLIT_RE = re.compile(r"[;,\n]+")


def _to_minutes(minutes: float, allow_zero: bool) -> int | None:
    if not math.isfinite(minutes) or minutes < 0 or (minutes == 0 and not allow_zero):
        return None
    return round_half_up(max(0 if allow_zero else 1, minutes))


def parse_duration(raw: Any, fallback: int | None = None, allow_zero: bool = False) -> int | None:
    """
    Parse a duration into whole minutes.

    Accepts numbers (minutes), numeric strings and strings with a unit
    suffix such as ``"1.5h"``, ``"2 days"`` or ``"1w"``.
    """
    if raw is None or isinstance(raw, bool):
        return fallback

    if isinstance(raw, (int, float)):
        try:
            minutes = _to_minutes(float(raw), allow_zero)
        except OverflowError:
            return fallback
        return fallback if minutes is None else minutes

    if not isinstance(raw, str):
        return fallback

    text = raw.strip()
    if not text:
        return fallback

    try:
        numeric = float(text)
    except ValueError:
        numeric = None
    if numeric is not None:
        minutes = _to_minutes(numeric, allow_zero)
        return fallback if minutes is None else minutes

    match = _DURATION_RE.match(text)
    if not match:
        return fallback
    factor = DURATION_UNIT_FACTORS.get((match.group(2) or "minutes").lower())
    if not factor:
        return fallback
    minutes = _to_minutes(float(match.group(1)) * factor, allow_zero)
    return fallback if minutes is None else minutes


def parse_step_list(raw: Any, fallback: tuple[int, ...]) -> tuple[int, ...]:
    """Parse a list (or ``;``/``,``/newline separated string) of step durations."""
    if isinstance(raw, str):
        entries: list[Any] = _STEP_SPLIT_RE.split(raw)
    elif isinstance(raw, (list, tuple)):
        entries = list(raw)
    else:
        return fallback

    steps = []
    for entry in entries:
        minutes = parse_duration(entry)
        if minutes is not None and minutes > 0:
            steps.append(minutes)
    return tuple(steps) if steps else fallback


def _to_number(raw: Any, minimum: float, fallback: float) -> float:
    if isinstance(raw, bool) or raw is None:
        return fallback
    try:
        num = float(raw)
    except (OverflowError, TypeError, ValueError):
        return fallback
    if not math.isfinite(num) or num < minimum:
        return fallback
    return num


def _get(raw: Mapping[str, Any], key: str) -> Any:
    if key in raw:
        return raw[key]
    legacy = _LEGACY_KEYS.get(key)
    if legacy is not None:
        return raw.get(legacy)
    return None


def normalize_config(raw: Any = None) -> ReviewConfig:
    """
    Merge a possibly partial settings payload over the defaults.

    Args:
        raw: None, a mapping (snake_case or legacy camelCase keys), or an
            existing ReviewConfig (normalizing twice is a no-op).

    Returns:
        A complete ReviewConfig with ``minimum_ease <= starting_ease``.
    """
    if isinstance(raw, ReviewConfig):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        return _DEFAULTS

    values: dict[str, Any] = {}

    for key in REVIEW_RATINGS:
        minutes = parse_duration(raw.get(key))
        if minutes is not None and minutes > 0:
            values[key] = minutes

    for key in _STEP_KEYS:
        values[key] = parse_step_list(_get(raw, key), getattr(_DEFAULTS, key))

    for key in _GRADUATING_KEYS:
        default = getattr(_DEFAULTS, key)
        values[key] = parse_duration(_get(raw, key), default) or default

    for key in _EASE_KEYS:
        values[key] = _to_number(_get(raw, key), 0.0, getattr(_DEFAULTS, key))

    for key in _FACTOR_KEYS:
        raw_value = _get(raw, key)
        if key == "interval_modifier" and _to_number(raw_value, 0.0, -1.0) == 0:
            # Zero is accepted as input and means "no modifier"
            values[key] = _DEFAULTS.interval_modifier
            continue
        values[key] = _to_number(raw_value, FACTOR_MIN, getattr(_DEFAULTS, key))

    config = replace(_DEFAULTS, **values)

    minimum_ease = max(EASE_FLOOR, config.minimum_ease)
    starting_ease = max(minimum_ease, config.starting_ease)
    return replace(config, minimum_ease=minimum_ease, starting_ease=starting_ease)
