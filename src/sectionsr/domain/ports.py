"""
Ports (interfaces) for the scheduler's collaborators.

These define the contract that infrastructure adapters must implement.
The scheduling core never persists anything itself; application services
depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import SectionRef, StudyItem


class ContentResolver(ABC):
    """
    Port for discovering an item's sections and their rendered content.

    Implementations:
        - FieldContentResolver: Reads sections from ``StudyItem.fields`` by item kind.
    """

    @abstractmethod
    def sections_for_item(self, item: StudyItem) -> list[SectionRef]:
        """
        List the sections of ``item`` that can be reviewed.

        Returns:
            SectionRef objects in display order.
        """
        pass

    @abstractmethod
    def section_content(self, item: StudyItem, key: str) -> Any | None:
        """
        Return the current rendered content of a section, or None if absent.
        """
        pass


class SettingsStore(ABC):
    """
    Port for the raw settings payload.

    The payload may carry ``review_steps`` (scheduling config) and
    ``review_ordering`` sub-objects, in any shape; callers normalize.
    """

    @abstractmethod
    async def get(self) -> dict[str, Any]:
        pass

    @abstractmethod
    async def set(self, payload: dict[str, Any]) -> None:
        pass


class ItemStore(ABC):
    """
    Port for whole-item persistence.

    Implementations:
        - YamlItemStore: A single YAML document holding every item.
    """

    @abstractmethod
    async def get(self, item_id: str) -> StudyItem | None:
        pass

    @abstractmethod
    async def put(self, item: StudyItem) -> None:
        pass

    @abstractmethod
    async def list_items(self) -> list[StudyItem]:
        pass
