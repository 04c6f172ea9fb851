"""
YAML Stores: infrastructure adapters for items and settings.

Each store keeps a single YAML document on disk. Writes replace the file
atomically (temp file + rename). Last write wins.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from sectionsr.domain.models import StudyItem
from sectionsr.domain.ports import ItemStore, SettingsStore

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A store file exists but cannot be parsed."""


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        return None
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise StoreError(f"Invalid YAML in {path}: {e}") from e


def _write_yaml(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class YamlItemStore(ItemStore):
    """
    Stores items as a YAML list under an ``items`` key.

    Items are rebuilt through ``StudyItem.from_dict`` on every read, so
    hand-edited or outdated scheduling records are normalized on load.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load_raw(self) -> list[dict[str, Any]]:
        data = _read_yaml(self.path)
        if data is None:
            return []
        raw_items = data.get("items") if isinstance(data, dict) else data
        if not isinstance(raw_items, list):
            logger.warning(f"Ignoring {self.path}: expected a list of items")
            return []
        return [entry for entry in raw_items if isinstance(entry, dict) and entry.get("id")]

    async def list_items(self) -> list[StudyItem]:
        return [StudyItem.from_dict(raw) for raw in self._load_raw()]

    async def get(self, item_id: str) -> StudyItem | None:
        for raw in self._load_raw():
            if str(raw.get("id")) == item_id:
                return StudyItem.from_dict(raw)
        return None

    async def put(self, item: StudyItem) -> None:
        raw_items = self._load_raw()
        payload = item.to_dict()
        for i, raw in enumerate(raw_items):
            if str(raw.get("id")) == item.id:
                raw_items[i] = payload
                break
        else:
            raw_items.append(payload)
        _write_yaml(self.path, {"items": raw_items})
        logger.debug(f"Saved item {item.id} to {self.path}")


class YamlSettingsStore(SettingsStore):
    """Stores the raw settings payload as a YAML mapping."""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def get(self) -> dict[str, Any]:
        data = _read_yaml(self.path)
        return data if isinstance(data, dict) else {}

    async def set(self, payload: dict[str, Any]) -> None:
        _write_yaml(self.path, dict(payload))
