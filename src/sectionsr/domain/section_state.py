"""
Untrusted-to-canonical constructors for scheduling records.

Storage hands us arbitrary shapes (older camelCase payloads, hand-edited YAML,
partial dicts). Everything here is total: bad fields fall back to defaults and
nothing raises.
"""

import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sectionsr.domain.constants import ALL_RATINGS, PHASES, SR_VERSION
from sectionsr.domain.models import ItemSrRecord, ReviewConfig, SectionState

if TYPE_CHECKING:
    from sectionsr.domain.models import StudyItem

# Canonical field -> accepted storage keys (first match wins)
_FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "streak": ("streak",),
    "last_rating": ("last_rating", "lastRating"),
    "last_reviewed_at": ("last_reviewed_at", "lastReviewedAt", "last"),
    "due_at": ("due_at", "dueAt", "due"),
    "retired": ("retired",),
    "suspended": ("suspended",),
    "content_digest": ("content_digest", "contentDigest"),
    "lecture_scope": ("lecture_scope", "lectureScope"),
    "interval": ("interval",),
    "ease": ("ease",),
    "lapses": ("lapses",),
    "learning_step_index": ("learning_step_index", "learningStepIndex"),
    "phase": ("phase",),
    "pending_interval": ("pending_interval", "pendingInterval"),
}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (``round`` is banker's)."""
    return int(math.floor(value + 0.5))


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        if not math.isfinite(value):
            return None
    except OverflowError:
        return None
    return value


def _non_negative_int(value: Any) -> int | None:
    num = _number(value)
    if num is None or num < 0:
        return None
    return num if isinstance(num, int) else round_half_up(num)


def _lookup(record: Mapping[str, Any], name: str) -> Any:
    for key in _FIELD_KEYS[name]:
        if key in record:
            return record[key]
    return None


def normalize_scope(scope: Any) -> list[str]:
    """Trim, deduplicate and sort scope tokens. Non-lists become empty."""
    if not isinstance(scope, (list, tuple)) or not scope:
        return []
    tokens = {entry.strip() for entry in scope if isinstance(entry, str)}
    tokens.discard("")
    return sorted(tokens)


def default_state(config: ReviewConfig | None = None) -> SectionState:
    """The canonical zero-value section record."""
    config = config or ReviewConfig()
    return SectionState(ease=config.starting_ease)


def normalize_section(record: Any, config: ReviewConfig | None = None) -> SectionState:
    """
    Build a SectionState from an untrusted record.

    Known, well-typed, in-range fields are kept; everything else falls back
    to the defaults of ``default_state``.
    """
    base = default_state(config)
    if isinstance(record, SectionState):
        record = record.to_dict()
    if not isinstance(record, Mapping):
        return base

    streak = _number(_lookup(record, "streak"))
    if streak is not None and streak > 0:
        base.streak = round_half_up(streak)

    rating = _lookup(record, "last_rating")
    if isinstance(rating, str) and rating in ALL_RATINGS:
        base.last_rating = rating  # type: ignore[assignment]

    base.last_reviewed_at = _non_negative_int(_lookup(record, "last_reviewed_at")) or 0
    base.due_at = _non_negative_int(_lookup(record, "due_at")) or 0
    base.retired = bool(_lookup(record, "retired"))

    suspended = _lookup(record, "suspended")
    if isinstance(suspended, bool):
        base.suspended = suspended

    digest = _lookup(record, "content_digest")
    if isinstance(digest, str) and digest:
        base.content_digest = digest

    base.lecture_scope = normalize_scope(_lookup(record, "lecture_scope"))

    interval = _non_negative_int(_lookup(record, "interval"))
    if interval is not None:
        base.interval = interval

    ease = _number(_lookup(record, "ease"))
    if ease is not None and ease > 0:
        base.ease = float(ease)

    lapses = _non_negative_int(_lookup(record, "lapses"))
    if lapses is not None:
        base.lapses = lapses

    step_index = _non_negative_int(_lookup(record, "learning_step_index"))
    if step_index is not None:
        base.learning_step_index = step_index

    phase = _lookup(record, "phase")
    if isinstance(phase, str) and phase.strip() in PHASES:
        base.phase = phase.strip()  # type: ignore[assignment]

    pending = _non_negative_int(_lookup(record, "pending_interval"))
    if pending is not None:
        base.pending_interval = pending

    return base


def normalize_record(raw: Any) -> ItemSrRecord:
    """
    Build an ItemSrRecord from storage.

    A version mismatch is a blanket reset: the result is an empty record at
    the current version. There is no incremental upgrade path.
    """
    if isinstance(raw, ItemSrRecord):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        return ItemSrRecord()

    sections = raw.get("sections")
    if raw.get("version") != SR_VERSION or not isinstance(sections, Mapping):
        return ItemSrRecord()

    record = ItemSrRecord()
    for key, value in sections.items():
        if not key or not isinstance(key, str):
            continue
        record.sections[key] = normalize_section(value)
    return record


def ensure_item_record(item: "StudyItem") -> ItemSrRecord:
    """Return the item's scheduling record, resetting it on version mismatch."""
    sr = item.sr
    if not isinstance(sr, ItemSrRecord) or sr.version != SR_VERSION:
        item.sr = normalize_record(sr)
    return item.sr


def ensure_section_state(
    item: "StudyItem", key: str, config: ReviewConfig | None = None
) -> SectionState:
    """Return the (normalized) state for ``key``, creating it lazily."""
    sr = ensure_item_record(item)
    existing = sr.sections.get(key)
    if existing is None:
        state = default_state(config)
    else:
        state = normalize_section(existing, config)
    sr.sections[key] = state
    return state
