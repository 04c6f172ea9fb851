"""
Review Service: application layer orchestrator.

Coordinates loading items from the store, running the scheduling core, and
persisting the result. The core itself never touches storage.
"""

import logging
import random

from sectionsr.application.config_cache import REVIEW_ORDERING_KEYS, ReviewConfigCache, pick
from sectionsr.application.invalidation import now_ms
from sectionsr.application.ordering import normalize_ordering, order_entries
from sectionsr.application.queue_builder import collect_due, collect_upcoming
from sectionsr.application.scheduler import (
    apply_rating,
    project_rating,
    resume_section,
    suspend_section,
)
from sectionsr.domain.constants import ALL_RATINGS, DEFAULT_UPCOMING_LIMIT
from sectionsr.domain.models import OrderingSpec, QueueEntry, SectionState, StudyItem
from sectionsr.domain.ports import ContentResolver, ItemStore, SettingsStore

logger = logging.getLogger(__name__)


class ItemNotFoundError(LookupError):
    """Raised when an item id is not in the store."""


class ReviewService:
    """
    Application service for review sessions.

    Follows Dependency Inversion: depends on the store and resolver ports,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        item_store: ItemStore,
        settings_store: SettingsStore,
        resolver: ContentResolver,
        config_cache: ReviewConfigCache | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            item_store: Port for loading and saving items.
            settings_store: Port for the raw settings payload.
            resolver: Port for section discovery and content.
            config_cache: Optional shared cache; one is built over settings_store if omitted.
            rng: Random source for mixed ordering.
        """
        self._items = item_store
        self._settings = settings_store
        self._resolver = resolver
        self._config = config_cache or ReviewConfigCache(settings_store)
        self._rng = rng

    @property
    def config_cache(self) -> ReviewConfigCache:
        return self._config

    async def _require_item(self, item_id: str) -> StudyItem:
        item = await self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(f"Unknown item: {item_id}")
        return item

    async def get_ordering(self, override: object = None) -> OrderingSpec:
        """The ordering from ``override`` if given, else from settings."""
        if override is not None:
            return normalize_ordering(override)
        try:
            settings = await self._settings.get()
        except Exception as e:
            logger.warning(f"Failed to load review ordering, using defaults: {e}")
            settings = {}
        return normalize_ordering(pick(settings, REVIEW_ORDERING_KEYS))

    async def due_queue(self, ordering: object = None, now: int | None = None) -> list[QueueEntry]:
        """Due sections across all items, in session order."""
        now = now_ms() if now is None else now
        config = await self._config.get()
        items = await self._items.list_items()
        entries = collect_due(items, self._resolver, now, config)
        spec = await self.get_ordering(ordering)
        return order_entries(entries, spec, self._rng)

    async def upcoming_queue(
        self, limit: int = DEFAULT_UPCOMING_LIMIT, now: int | None = None
    ) -> list[QueueEntry]:
        now = now_ms() if now is None else now
        config = await self._config.get()
        items = await self._items.list_items()
        return collect_upcoming(items, self._resolver, now, limit, config)

    async def rate(
        self, item_id: str, section_key: str, rating: str, now: int | None = None
    ) -> SectionState | None:
        """Apply a rating and persist the item."""
        item = await self._require_item(item_id)
        config = await self._config.get()
        state = apply_rating(item, section_key, rating, config, self._resolver, now)
        if state is not None:
            await self._items.put(item)
            logger.info(
                f"Rated {item_id}:{section_key} '{rating}' -> {state.phase}, due {state.due_at}"
            )
        return state

    async def preview(
        self, item_id: str, section_key: str, rating: str, now: int | None = None
    ) -> SectionState | None:
        """What ``rating`` would do. Nothing is persisted."""
        item = await self._require_item(item_id)
        config = await self._config.get()
        return project_rating(item, section_key, rating, config, self._resolver, now)

    async def preview_all(
        self, item_id: str, section_key: str, now: int | None = None
    ) -> dict[str, SectionState]:
        """Projected state for every rating, keyed by rating."""
        item = await self._require_item(item_id)
        config = await self._config.get()
        now = now_ms() if now is None else now
        projections: dict[str, SectionState] = {}
        for rating in ALL_RATINGS:
            state = project_rating(item, section_key, rating, config, self._resolver, now)
            if state is not None:
                projections[rating] = state
        return projections

    async def suspend(
        self, item_id: str, section_key: str, now: int | None = None
    ) -> SectionState | None:
        item = await self._require_item(item_id)
        config = await self._config.get()
        state = suspend_section(item, section_key, self._resolver, now, config)
        if state is not None:
            await self._items.put(item)
        return state

    async def resume(
        self, item_id: str, section_key: str, now: int | None = None
    ) -> SectionState | None:
        item = await self._require_item(item_id)
        config = await self._config.get()
        state = resume_section(item, section_key, self._resolver, now, config)
        if state is not None:
            await self._items.put(item)
        return state

    async def update_review_settings(self, review_steps: dict) -> None:
        """Store new review steps and drop the cached config."""
        settings = await self._settings.get()
        settings = dict(settings or {})
        settings["review_steps"] = review_steps
        settings.pop("reviewSteps", None)
        await self._settings.set(settings)
        self._config.invalidate()
