"""
Queue builder for review sessions.

Builds due/upcoming queues by:
1. Walking every content section of every item
2. Reading each section through the invalidation-aware snapshot
3. Dropping retired and suspended sections, then filtering by due time
4. Sorting ascending by due time
"""

import logging
from collections.abc import Callable, Iterable

from sectionsr.application.invalidation import get_snapshot, is_reset_marker, now_ms
from sectionsr.domain.constants import DEFAULT_UPCOMING_LIMIT, NEVER_DUE
from sectionsr.domain.models import (
    Category,
    QueueEntry,
    ReviewConfig,
    SectionRef,
    SectionState,
    StudyItem,
)
from sectionsr.domain.ports import ContentResolver

logger = logging.getLogger(__name__)

EntryPredicate = Callable[[SectionState, int, StudyItem, SectionRef], bool]


def classify_category(state: SectionState | None) -> Category:
    """
    Coarse new/learning/review label used for queue priorities.

    Distinct from the phase: a learning-phase section that was just failed
    is grouped with new material.
    """
    if state is None:
        return "new"
    phase = state.phase
    last_rating = state.last_rating
    if phase == "review":
        return "review"
    if phase == "relearning":
        return "learning"
    if phase == "learning":
        if not last_rating or last_rating == "again":
            return "new"
        return "learning"
    if last_rating in ("easy", "good", "hard"):
        return "learning"
    return "new"


def collect_entries(
    items: Iterable[StudyItem],
    resolver: ContentResolver,
    now: int | None = None,
    predicate: EntryPredicate | None = None,
    config: ReviewConfig | None = None,
) -> list[QueueEntry]:
    """
    Collect live sections across ``items``, optionally filtered.

    Sections without a stored state, retired sections and suspended
    sections are never included.
    """
    now = now_ms() if now is None else now
    results: list[QueueEntry] = []

    for item in items:
        if item is None:
            continue
        for section in resolver.sections_for_item(item):
            snapshot = get_snapshot(item, section.key, resolver, config, now)
            if snapshot is None or snapshot.retired or snapshot.suspended:
                continue
            if predicate is not None and not predicate(snapshot, now, item, section):
                continue
            results.append(
                QueueEntry(
                    item=item,
                    item_id=item.id,
                    section_key=section.key,
                    section_label=section.label,
                    due=snapshot.due_at,
                    phase=snapshot.phase,
                    category=classify_category(snapshot),
                    state=snapshot,
                )
            )

    results.sort(key=lambda entry: entry.due)
    return results


def _is_due(state: SectionState, now: int, *_: object) -> bool:
    # Never-rated sections enter through new-card intake, not this queue
    if not state.last_reviewed_at or is_reset_marker(state):
        return False
    return state.due_at <= now


def _is_upcoming(state: SectionState, now: int, *_: object) -> bool:
    if not state.last_reviewed_at:
        return False
    if state.due_at >= NEVER_DUE:
        return False
    return state.due_at > now


def collect_due(
    items: Iterable[StudyItem],
    resolver: ContentResolver,
    now: int | None = None,
    config: ReviewConfig | None = None,
) -> list[QueueEntry]:
    """Sections rated at least once whose due time has passed."""
    entries = collect_entries(items, resolver, now, _is_due, config)
    logger.debug(f"Collected {len(entries)} due sections")
    return entries


def collect_upcoming(
    items: Iterable[StudyItem],
    resolver: ContentResolver,
    now: int | None = None,
    limit: int = DEFAULT_UPCOMING_LIMIT,
    config: ReviewConfig | None = None,
) -> list[QueueEntry]:
    """
    Rated sections due in the future, soonest first.

    Args:
        limit: Maximum entries to return; ``<= 0`` means no cap.
    """
    entries = collect_entries(items, resolver, now, _is_upcoming, config)
    if limit and limit > 0:
        return entries[:limit]
    return entries


def collect_all(
    items: Iterable[StudyItem],
    resolver: ContentResolver,
    now: int | None = None,
    config: ReviewConfig | None = None,
) -> list[QueueEntry]:
    """Every live (not retired, not suspended) section with a stored state."""
    return collect_entries(items, resolver, now, None, config)
