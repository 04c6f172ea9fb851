"""
Domain models for section scheduling.

These are pure data structures with no I/O or external dependencies.
Untrusted payloads become models through the normalizers in
``sectionsr.domain.section_state`` and ``sectionsr.application.review_settings``.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from sectionsr.domain.constants import (
    DEFAULT_AGAIN,
    DEFAULT_EASE_BONUS,
    DEFAULT_EASE_PENALTY,
    DEFAULT_EASY,
    DEFAULT_EASY_INTERVAL_BONUS,
    DEFAULT_GOOD,
    DEFAULT_GRADUATING_EASY,
    DEFAULT_GRADUATING_GOOD,
    DEFAULT_HARD,
    DEFAULT_HARD_EASE_PENALTY,
    DEFAULT_HARD_INTERVAL_MULTIPLIER,
    DEFAULT_INTERVAL_MODIFIER,
    DEFAULT_LAPSE_INTERVAL_MULTIPLIER,
    DEFAULT_LEARNING_STEPS,
    DEFAULT_MINIMUM_EASE,
    DEFAULT_RELEARNING_STEPS,
    DEFAULT_STARTING_EASE,
    REVIEW_ORDER_CATEGORIES,
    SR_VERSION,
)

Rating = Literal["again", "hard", "good", "easy", "retire"]
Phase = Literal["new", "learning", "review", "relearning", "suspended"]
Category = Literal["new", "learning", "review"]
OrderMode = Literal["prioritized", "mixed"]


@dataclass(frozen=True)
class ReviewConfig:
    """
    Scheduling parameters. All durations are whole minutes.

    Build through ``normalize_config``; the defaults here are the canonical
    "Anki-like" workflow.
    """

    again: int = DEFAULT_AGAIN
    hard: int = DEFAULT_HARD
    good: int = DEFAULT_GOOD
    easy: int = DEFAULT_EASY
    learning_steps: tuple[int, ...] = DEFAULT_LEARNING_STEPS
    relearning_steps: tuple[int, ...] = DEFAULT_RELEARNING_STEPS
    graduating_good: int = DEFAULT_GRADUATING_GOOD
    graduating_easy: int = DEFAULT_GRADUATING_EASY
    starting_ease: float = DEFAULT_STARTING_EASE
    minimum_ease: float = DEFAULT_MINIMUM_EASE
    ease_bonus: float = DEFAULT_EASE_BONUS
    ease_penalty: float = DEFAULT_EASE_PENALTY
    hard_ease_penalty: float = DEFAULT_HARD_EASE_PENALTY
    hard_interval_multiplier: float = DEFAULT_HARD_INTERVAL_MULTIPLIER
    easy_interval_bonus: float = DEFAULT_EASY_INTERVAL_BONUS
    interval_modifier: float = DEFAULT_INTERVAL_MODIFIER
    lapse_interval_multiplier: float = DEFAULT_LAPSE_INTERVAL_MULTIPLIER

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["learning_steps"] = list(self.learning_steps)
        data["relearning_steps"] = list(self.relearning_steps)
        return data


@dataclass
class SectionState:
    """
    Scheduling record for one content section of an item.

    Attributes:
        streak: Consecutive successful reviews.
        last_rating: Last applied rating, None before the first one.
        last_reviewed_at: Epoch ms of the last rating (0 = never rated).
        due_at: Epoch ms when the section is next due (NEVER_DUE when parked).
        interval: Minutes until due at the time of last scheduling.
        ease: Growth factor for mature intervals.
        lapses: Regressions out of the review phase.
        learning_step_index: Position in the active (re)learning step list.
        pending_interval: Minutes reserved for a relearning graduation.
    """

    streak: int = 0
    last_rating: Rating | None = None
    last_reviewed_at: int = 0
    due_at: int = 0
    retired: bool = False
    suspended: bool = False
    content_digest: str | None = None
    lecture_scope: list[str] = field(default_factory=list)
    interval: int = 0
    ease: float = DEFAULT_STARTING_EASE
    lapses: int = 0
    learning_step_index: int = 0
    phase: Phase = "new"
    pending_interval: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["lecture_scope"] = list(self.lecture_scope)
        return data


@dataclass
class ItemSrRecord:
    """Per-item scheduling record: a version tag plus section states."""

    version: int = SR_VERSION
    sections: dict[str, SectionState] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "sections": {key: state.to_dict() for key, state in self.sections.items()},
        }


@dataclass(frozen=True)
class LectureRef:
    """A lecture an item is filed under."""

    block_id: str | None
    lecture_id: str | None
    name: str | None = None
    week: int | None = None

    @property
    def scope_token(self) -> str:
        block = "" if self.block_id is None else str(self.block_id)
        lecture = "" if self.lecture_id is None else str(self.lecture_id)
        return f"{block}|{lecture}".strip()


@dataclass
class StudyItem:
    """
    A knowledge item (disease, drug, concept) with per-section content.

    ``fields`` maps section keys to rendered content; ``sr`` is the
    scheduling record the core reads and writes.
    """

    id: str
    kind: str = "concept"
    name: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)
    lectures: list[LectureRef] = field(default_factory=list)
    sr: ItemSrRecord = field(default_factory=ItemSrRecord)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StudyItem":
        from sectionsr.domain.section_state import normalize_record

        lectures = []
        for raw in data.get("lectures") or []:
            if not isinstance(raw, dict):
                continue
            week = raw.get("week")
            lectures.append(
                LectureRef(
                    block_id=_opt_str(raw.get("block_id", raw.get("blockId"))),
                    lecture_id=_opt_str(raw.get("lecture_id", raw.get("id"))),
                    name=_opt_str(raw.get("name")),
                    week=week if isinstance(week, int) and not isinstance(week, bool) else None,
                )
            )

        fields = data.get("fields")
        return cls(
            id=str(data.get("id", "")),
            kind=str(data.get("kind") or "concept"),
            name=_opt_str(data.get("name")),
            fields=dict(fields) if isinstance(fields, dict) else {},
            lectures=lectures,
            sr=normalize_record(data.get("sr")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "fields": dict(self.fields),
            "lectures": [
                {
                    "block_id": lec.block_id,
                    "lecture_id": lec.lecture_id,
                    "name": lec.name,
                    "week": lec.week,
                }
                for lec in self.lectures
            ],
            "sr": self.sr.to_dict(),
        }


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class SectionRef:
    """A content section offered by an item (key plus human label)."""

    key: str
    label: str


@dataclass
class QueueEntry:
    """One row of a due/upcoming queue. Derived, never persisted."""

    item: StudyItem
    item_id: str
    section_key: str
    section_label: str
    due: int
    phase: Phase
    category: Category
    state: SectionState


@dataclass(frozen=True)
class OrderingSpec:
    """How a review queue is ordered."""

    mode: OrderMode = "prioritized"
    priorities: tuple[Category, ...] = REVIEW_ORDER_CATEGORIES  # type: ignore[assignment]
