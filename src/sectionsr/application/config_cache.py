"""Process-lifetime cache for the normalized review configuration."""

import logging
from typing import Any

from sectionsr.application.review_settings import normalize_config
from sectionsr.domain.models import ReviewConfig
from sectionsr.domain.ports import SettingsStore

logger = logging.getLogger(__name__)

# Settings payload keys (legacy camelCase first written by older versions)
REVIEW_STEPS_KEYS = ("review_steps", "reviewSteps")
REVIEW_ORDERING_KEYS = ("review_ordering", "reviewOrdering")


def pick(payload: Any, keys: tuple[str, ...]) -> Any:
    if not isinstance(payload, dict):
        return None
    for key in keys:
        if key in payload:
            return payload[key]
    return None


class ReviewConfigCache:
    """
    Caches the ReviewConfig read from a SettingsStore.

    No automatic expiry: call ``invalidate()`` after settings change. If the
    store fails, the defaults are cached (and used) until invalidated.
    """

    def __init__(self, settings_store: SettingsStore):
        self._store = settings_store
        self._cached: ReviewConfig | None = None

    async def get(self) -> ReviewConfig:
        if self._cached is not None:
            return self._cached
        try:
            settings = await self._store.get()
            self._cached = normalize_config(pick(settings, REVIEW_STEPS_KEYS))
        except Exception as e:
            logger.warning(f"Failed to load review settings, using defaults: {e}")
            self._cached = ReviewConfig()
        return self._cached

    def invalidate(self) -> None:
        self._cached = None
