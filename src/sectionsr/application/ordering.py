"""
Review queue ordering.

Either groups entries by category in a configurable priority order, or
shuffles them.
"""

import random
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from sectionsr.domain.constants import REVIEW_ORDER_CATEGORIES
from sectionsr.domain.models import OrderingSpec

T = TypeVar("T")

DEFAULT_ORDERING = OrderingSpec()


def normalize_category(value: Any) -> str:
    """Known categories pass through; anything else counts as new."""
    if value in REVIEW_ORDER_CATEGORIES:
        return value
    return "new"


def normalize_ordering(raw: Any) -> OrderingSpec:
    """
    Build an OrderingSpec from an untrusted payload.

    Unknown or duplicate priorities are dropped; categories missing from a
    partial list are appended in the default order.
    """
    if isinstance(raw, OrderingSpec):
        raw = {"mode": raw.mode, "priorities": list(raw.priorities)}
    if not isinstance(raw, Mapping):
        return DEFAULT_ORDERING

    mode = "mixed" if raw.get("mode") == "mixed" else "prioritized"

    priorities: list[str] = []
    raw_priorities = raw.get("priorities")
    if isinstance(raw_priorities, (list, tuple)):
        for value in raw_priorities:
            if not isinstance(value, str):
                continue
            category = value.strip().lower()
            if category in REVIEW_ORDER_CATEGORIES and category not in priorities:
                priorities.append(category)

    for category in DEFAULT_ORDERING.priorities:
        if category not in priorities:
            priorities.append(category)

    return OrderingSpec(mode=mode, priorities=tuple(priorities))  # type: ignore[arg-type]


def _category_of(entry: Any) -> Any:
    if isinstance(entry, Mapping):
        return entry.get("category")
    return getattr(entry, "category", None)


def order_entries(
    entries: Sequence[T],
    spec: Any = None,
    rng: random.Random | None = None,
) -> list[T]:
    """
    Reorder a queue.

    ``mixed`` returns a uniformly random permutation. ``prioritized`` is a
    stable partition by category, concatenated in priority order.

    Args:
        entries: QueueEntry objects or mappings with a ``category`` key.
        spec: Raw or normalized ordering; defaults to review, learning, new.
        rng: Random source for ``mixed`` mode (module random if omitted).
    """
    if not entries:
        return list(entries or [])

    ordering = normalize_ordering(spec) if spec is not None else DEFAULT_ORDERING

    if ordering.mode == "mixed":
        shuffled = list(entries)
        (rng or random).shuffle(shuffled)
        return shuffled

    buckets: dict[str, list[T]] = {}
    for entry in entries:
        buckets.setdefault(normalize_category(_category_of(entry)), []).append(entry)

    ordered: list[T] = []
    for category in ordering.priorities:
        ordered.extend(buckets.pop(category, []))
    for remaining in buckets.values():
        ordered.extend(remaining)
    return ordered
