"""
Field Content Resolver: infrastructure adapter for section discovery.

Sections are defined per item kind; content lives in ``StudyItem.fields``.
"""

import re
from typing import Any

from sectionsr.domain.models import SectionRef, StudyItem
from sectionsr.domain.ports import ContentResolver

SECTION_DEFS: dict[str, list[SectionRef]] = {
    "disease": [
        SectionRef("etiology", "Etiology"),
        SectionRef("pathophys", "Pathophys"),
        SectionRef("clinical", "Clinical Presentation"),
        SectionRef("diagnosis", "Diagnosis"),
        SectionRef("treatment", "Treatment"),
        SectionRef("complications", "Complications"),
        SectionRef("mnemonic", "Mnemonic"),
    ],
    "drug": [
        SectionRef("moa", "Mechanism"),
        SectionRef("uses", "Uses"),
        SectionRef("sideEffects", "Side Effects"),
        SectionRef("contraindications", "Contraindications"),
        SectionRef("mnemonic", "Mnemonic"),
    ],
    "concept": [
        SectionRef("definition", "Definition"),
        SectionRef("mechanism", "Mechanism"),
        SectionRef("clinicalRelevance", "Clinical Relevance"),
        SectionRef("example", "Example"),
        SectionRef("mnemonic", "Mnemonic"),
    ],
}

_TAG_RE = re.compile(r"<[^>]*>")


def section_defs_for_kind(kind: str) -> list[SectionRef]:
    return SECTION_DEFS.get(kind, [])


def has_rich_text(value: Any) -> bool:
    """True if ``value`` holds visible text once HTML tags and nbsp are stripped."""
    if value is None:
        return False
    if not isinstance(value, str):
        return bool(value)
    text = _TAG_RE.sub("", value).replace("&nbsp;", " ").replace("\u00a0", " ")
    return bool(text.strip())


class FieldContentResolver(ContentResolver):
    """
    Resolves sections from item fields using the kind's section definitions.

    Only sections with visible content are offered for review.
    """

    def __init__(self, section_defs: dict[str, list[SectionRef]] | None = None):
        self.section_defs = section_defs if section_defs is not None else SECTION_DEFS

    def sections_for_item(self, item: StudyItem) -> list[SectionRef]:
        return [
            section
            for section in self.section_defs.get(item.kind, [])
            if has_rich_text(item.fields.get(section.key))
        ]

    def section_content(self, item: StudyItem, key: str) -> Any | None:
        return item.fields.get(key)
