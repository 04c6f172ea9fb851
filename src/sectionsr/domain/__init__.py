# Domain Package
from .models import (
    ItemSrRecord,
    LectureRef,
    OrderingSpec,
    QueueEntry,
    ReviewConfig,
    SectionRef,
    SectionState,
    StudyItem,
)
from .ports import ContentResolver, ItemStore, SettingsStore

__all__ = [
    "ItemSrRecord",
    "LectureRef",
    "OrderingSpec",
    "QueueEntry",
    "ReviewConfig",
    "SectionRef",
    "SectionState",
    "StudyItem",
    "ContentResolver",
    "ItemStore",
    "SettingsStore",
]
