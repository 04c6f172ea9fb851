"""
Review Service Factory
Centralizes wiring of stores and resolver from the app configuration.
"""

from sectionsr.application.config import AppConfig
from sectionsr.application.review_service import ReviewService
from sectionsr.domain.ports import ItemStore, SettingsStore
from sectionsr.infrastructure.adapters.yaml_store import YamlItemStore, YamlSettingsStore
from sectionsr.infrastructure.content import FieldContentResolver


def get_item_store(config: AppConfig) -> ItemStore:
    return YamlItemStore(config.items_file or config.data_dir / "items.yaml")


def get_settings_store(config: AppConfig) -> SettingsStore:
    return YamlSettingsStore(config.settings_file or config.data_dir / "settings.yaml")


def get_review_service(config: AppConfig) -> ReviewService:
    """
    Returns a ReviewService over the YAML stores and the field content resolver.
    """
    return ReviewService(
        item_store=get_item_store(config),
        settings_store=get_settings_store(config),
        resolver=FieldContentResolver(),
    )
