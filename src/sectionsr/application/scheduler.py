"""
Rating state machine.

``transition`` is the pure core: (state, rating, config, now) -> new state.
The item-level helpers (``apply_rating``, ``project_rating``, suspend/resume)
load the live snapshot, run the transition, and (except for projections)
assign the result back into the item. Persisting the item is the caller's job.

Phases:
    new/learning  -> learning steps, graduate to review
    relearning    -> relearning steps, graduate back to review
    review        -> ease-scaled intervals; again/hard drop into learning steps
"""

import logging
from dataclasses import replace

from sectionsr.application.invalidation import (
    compute_lecture_scope,
    compute_section_digest,
    get_snapshot,
    now_ms,
)
from sectionsr.domain.constants import MS_PER_MINUTE, NEVER_DUE, RETIRE_RATING, REVIEW_RATINGS
from sectionsr.domain.models import ReviewConfig, SectionState, StudyItem
from sectionsr.domain.ports import ContentResolver
from sectionsr.domain.section_state import default_state, ensure_item_record, round_half_up

logger = logging.getLogger(__name__)


def _copy(state: SectionState) -> SectionState:
    return replace(state, lecture_scope=list(state.lecture_scope))


def _retire(section: SectionState, now: int) -> SectionState:
    section.streak = 0
    section.last_rating = RETIRE_RATING
    section.last_reviewed_at = now
    section.interval = NEVER_DUE
    section.pending_interval = 0
    section.phase = "review"
    section.due_at = NEVER_DUE
    section.retired = True
    section.suspended = False
    return section


def transition(state: SectionState, rating: str, config: ReviewConfig, now: int) -> SectionState:
    """
    Apply ``rating`` to a copy of ``state`` and return the copy.

    Unknown ratings are treated as ``good``. A retired section is terminal:
    further non-retire ratings return it unchanged.
    """
    section = _copy(state)

    if rating == RETIRE_RATING:
        return _retire(section, now)

    if section.retired:
        logger.debug(f"Ignoring rating '{rating}' on retired section")
        return section

    if rating not in REVIEW_RATINGS:
        logger.debug(f"Unknown rating '{rating}', treating as 'good'")
        rating = "good"

    learning_steps = config.learning_steps
    relearning_steps = config.relearning_steps
    min_ease = config.minimum_ease

    if section.phase == "suspended":
        section.phase = "review" if section.interval > 0 else "learning"
    section.suspended = False
    section.retired = False
    section.ease = max(min_ease, section.ease)

    def schedule_due(minutes: float) -> int:
        clamped = max(1, round_half_up(minutes))
        section.due_at = now + clamped * MS_PER_MINUTE
        return clamped

    def graduate(minutes: float) -> None:
        section.interval = schedule_due(minutes)
        section.pending_interval = 0
        section.learning_step_index = 0
        section.phase = "review"
        section.streak = max(1, section.streak + 1)

    def schedule_steps(phase: str, minutes: float, index: int) -> None:
        section.phase = phase  # type: ignore[assignment]
        section.learning_step_index = index
        section.streak = 0
        schedule_due(minutes)

    def hard_step(steps: tuple[int, ...], index: int) -> int:
        step = steps[index]
        return max(step, round_half_up(step * config.hard_interval_multiplier))

    current_interval = max(1, round_half_up(section.interval)) if section.interval else 0

    if section.phase in ("new", "learning"):
        index = min(section.learning_step_index, len(learning_steps) - 1)
        if rating == "again":
            schedule_steps("learning", learning_steps[0], 0)
        elif rating == "hard":
            schedule_steps("learning", hard_step(learning_steps, index), index)
        elif rating == "good":
            next_index = index + 1
            if next_index < len(learning_steps):
                schedule_steps("learning", learning_steps[next_index], next_index)
            else:
                section.ease = max(min_ease, config.starting_ease)
                graduate(config.graduating_good * config.interval_modifier)
        else:
            section.ease = max(min_ease, config.starting_ease + config.ease_bonus)
            graduate(config.graduating_easy * config.interval_modifier)

    elif section.phase == "relearning":
        index = min(section.learning_step_index, len(relearning_steps) - 1)
        next_index = index + 1
        if rating == "again":
            schedule_steps("relearning", relearning_steps[0], 0)
        elif rating == "hard":
            schedule_steps("relearning", hard_step(relearning_steps, index), index)
        elif next_index < len(relearning_steps) and rating != "easy":
            schedule_steps("relearning", relearning_steps[next_index], next_index)
        else:
            pending = section.pending_interval
            if pending <= 0:
                base = current_interval or config.graduating_good
                pending = max(1, round_half_up(base * config.lapse_interval_multiplier))
            if rating == "easy":
                pending = max(pending, round_half_up(pending * config.easy_interval_bonus))
                section.ease = max(min_ease, section.ease + config.ease_bonus)
            graduate(max(1, round_half_up(pending * config.interval_modifier)))

    else:
        if rating == "again":
            section.ease = max(min_ease, section.ease - config.ease_penalty)
            section.lapses += 1
            section.interval = 0
            section.pending_interval = 0
            schedule_steps("learning", learning_steps[0], 0)
        elif rating == "hard":
            section.ease = max(min_ease, section.ease - config.hard_ease_penalty)
            section.interval = 0
            section.pending_interval = 0
            # Skip the shortest step: a hard recall still shows partial retention
            hard_index = 1 if len(learning_steps) > 1 else 0
            schedule_steps("learning", learning_steps[hard_index], hard_index)
        elif rating == "good":
            base = current_interval or config.good
            raw_interval = max(base, round_half_up(base * section.ease))
            graduate(max(1, round_half_up(raw_interval * config.interval_modifier)))
        else:
            base = current_interval or config.easy
            section.ease = max(min_ease, section.ease + config.ease_bonus)
            raw_interval = max(
                base, round_half_up(base * section.ease * config.easy_interval_bonus)
            )
            graduate(max(1, round_half_up(raw_interval * config.interval_modifier)))

    section.last_rating = rating  # type: ignore[assignment]
    section.last_reviewed_at = now
    return section


def _load_state(
    item: StudyItem,
    key: str,
    resolver: ContentResolver,
    config: ReviewConfig,
    now: int,
) -> SectionState:
    """Live snapshot, or a fresh state stamped with the current digest and scope."""
    snapshot = get_snapshot(item, key, resolver, config, now)
    if snapshot is not None:
        return snapshot
    state = default_state(config)
    state.content_digest = compute_section_digest(item, key, resolver)
    state.lecture_scope = compute_lecture_scope(item)
    return state


def _commit(item: StudyItem, key: str, state: SectionState) -> SectionState:
    ensure_item_record(item).sections[key] = state
    return state


def apply_rating(
    item: StudyItem | None,
    key: str | None,
    rating: str,
    config: ReviewConfig,
    resolver: ContentResolver,
    now: int | None = None,
) -> SectionState | None:
    """
    Rate a section and store the new state on the item.

    Returns:
        The new state, or None when the item or key is missing.
    """
    if item is None or not key:
        return None
    now = now_ms() if now is None else now
    state = _load_state(item, key, resolver, config, now)
    updated = transition(state, rating, config, now)
    logger.debug(
        f"Rated {item.id}:{key} '{rating}': {state.phase} -> {updated.phase}, "
        f"interval={updated.interval}"
    )
    return _commit(item, key, updated)


def project_rating(
    item: StudyItem | None,
    key: str | None,
    rating: str,
    config: ReviewConfig,
    resolver: ContentResolver,
    now: int | None = None,
) -> SectionState | None:
    """
    Preview what ``rating`` would do without committing it.

    The item's stored state is left as the live snapshot would leave it.
    """
    if item is None or not key:
        return None
    now = now_ms() if now is None else now
    return transition(_load_state(item, key, resolver, config, now), rating, config, now)


def retire_section(
    item: StudyItem | None,
    key: str | None,
    resolver: ContentResolver,
    now: int | None = None,
    config: ReviewConfig | None = None,
) -> SectionState | None:
    """Retire a section for good (the ``retire`` rating)."""
    return apply_rating(item, key, RETIRE_RATING, config or ReviewConfig(), resolver, now)


def suspend_section(
    item: StudyItem | None,
    key: str | None,
    resolver: ContentResolver,
    now: int | None = None,
    config: ReviewConfig | None = None,
) -> SectionState | None:
    """Park a section: never due until resumed. Retired sections are left as they are."""
    if item is None or not key:
        return None
    now = now_ms() if now is None else now
    section = _load_state(item, key, resolver, config or ReviewConfig(), now)
    if section.retired:
        return _commit(item, key, section)
    section.suspended = True
    section.last_reviewed_at = now
    section.phase = "suspended"
    section.due_at = NEVER_DUE
    return _commit(item, key, section)


def resume_section(
    item: StudyItem | None,
    key: str | None,
    resolver: ContentResolver,
    now: int | None = None,
    config: ReviewConfig | None = None,
) -> SectionState | None:
    """
    Lift a suspension. The phase falls back to review (if the section had
    graduated) or learning, and a parked due time becomes ``now``.

    Retired sections stay retired and parked; only a stale suspension is cleared.
    """
    if item is None or not key:
        return None
    now = now_ms() if now is None else now
    section = _load_state(item, key, resolver, config or ReviewConfig(), now)
    if section.retired:
        section.suspended = False
        if section.phase == "suspended":
            section.phase = "review"
        return _commit(item, key, section)
    section.suspended = False
    section.last_reviewed_at = now
    if section.phase == "suspended":
        section.phase = "review" if section.interval > 0 else "learning"
    if section.due_at >= NEVER_DUE or section.due_at < 0:
        section.due_at = now
    return _commit(item, key, section)
