# Infrastructure Store Adapters Package
from .yaml_store import StoreError, YamlItemStore, YamlSettingsStore

__all__ = ["YamlItemStore", "YamlSettingsStore", "StoreError"]
