"""
Content and lecture-scope invalidation.

A section's scheduling history only makes sense for the content it was
earned on. ``get_snapshot`` is the single read path for stored section
states: it fingerprints the current content and scope, discards progress
when either moved out from under the record, and writes the refreshed
state back into the item.
"""

import json
import logging
import time
from typing import Any

from sectionsr.domain.constants import UNASSIGNED_LECTURE_TOKEN
from sectionsr.domain.models import ReviewConfig, SectionState, StudyItem
from sectionsr.domain.ports import ContentResolver
from sectionsr.domain.section_state import ensure_item_record, normalize_scope, normalize_section

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def digest_content(value: Any) -> str | None:
    """
    Deterministic 32-bit rolling hash of rendered content, as lowercase hex.

    Hashes UTF-16 code units so digests stay stable with records written by
    earlier (browser-based) versions of the app.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value
    else:
        # Dates and other YAML scalars JSON can't encode hash by their str()
        text = json.dumps(value, separators=(",", ":"), default=str)
    if not text:
        return None

    encoded = text.encode("utf-16-le", errors="surrogatepass")
    hash_value = 0
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        hash_value = (hash_value * 31 + unit) & 0xFFFFFFFF
    return format(hash_value, "x")


def compute_lecture_scope(item: StudyItem) -> list[str]:
    """Sorted ``block|lecture`` tokens, or the unassigned token when unfiled."""
    if not item.lectures:
        return [UNASSIGNED_LECTURE_TOKEN]
    return normalize_scope([lecture.scope_token for lecture in item.lectures])


def compute_section_digest(item: StudyItem, key: str, resolver: ContentResolver) -> str | None:
    if not key:
        return None
    return digest_content(resolver.section_content(item, key))


def needs_reset(
    stored_digest: str | None,
    current_digest: str | None,
    stored_scope: list[str],
    current_scope: list[str],
) -> bool:
    """
    True when accumulated progress no longer applies.

    Content changed, or the scope shrank (a lecture the section was studied
    under is gone). A growing scope is fine.
    """
    content_changed = stored_digest is not None and stored_digest != current_digest
    current = set(current_scope)
    scope_shrank = any(token not in current for token in stored_scope)
    return content_changed or scope_shrank


def is_reset_marker(state: SectionState) -> bool:
    """
    True for a section freshly reset by invalidation and not rated since.

    Every rating schedules ``due_at`` at least a minute after
    ``last_reviewed_at``, so an unrated ``new`` state with both stamps equal
    can only come from ``reset_progress``.
    """
    return (
        state.phase == "new"
        and state.last_rating is None
        and state.last_reviewed_at > 0
        and state.due_at == state.last_reviewed_at
    )


def reset_progress(state: SectionState, config: ReviewConfig, now: int) -> None:
    state.streak = 0
    state.last_rating = None
    state.last_reviewed_at = now
    state.due_at = now
    state.retired = False
    state.suspended = False
    state.phase = "new"
    state.learning_step_index = 0
    state.interval = 0
    state.pending_interval = 0
    state.ease = config.starting_ease
    state.lapses = 0


def get_snapshot(
    item: StudyItem | None,
    key: str | None,
    resolver: ContentResolver,
    config: ReviewConfig | None = None,
    now: int | None = None,
) -> SectionState | None:
    """
    Live, invalidation-aware state for one section.

    Side effect: the refreshed state (digest and scope always updated) is
    stored back on ``item.sr``.

    Returns:
        The snapshot, or None when the item, key, or stored record is missing.
    """
    if item is None or not key:
        return None
    sr = ensure_item_record(item)
    stored = sr.sections.get(key)
    if stored is None:
        return None

    config = config or ReviewConfig()
    state = normalize_section(stored, config)
    digest = compute_section_digest(item, key, resolver)
    scope = compute_lecture_scope(item)

    if needs_reset(state.content_digest, digest, state.lecture_scope, scope):
        now = now_ms() if now is None else now
        logger.info(f"Resetting progress for {item.id}:{key} (content or lecture scope changed)")
        reset_progress(state, config, now)

    state.content_digest = digest
    state.lecture_scope = scope
    sr.sections[key] = state
    return state
