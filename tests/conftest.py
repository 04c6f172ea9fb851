import pytest

from sectionsr.application.review_settings import normalize_config
from sectionsr.domain.models import LectureRef, StudyItem
from sectionsr.infrastructure.content import FieldContentResolver


def _make_item(
    item_id: str = "alpha",
    kind: str = "disease",
    fields: dict | None = None,
    lectures: list[LectureRef] | None = None,
) -> StudyItem:
    """A disease item with an etiology section unless told otherwise."""
    return StudyItem(
        id=item_id,
        kind=kind,
        name=item_id,
        fields={"etiology": "<p>cause</p>"} if fields is None else fields,
        lectures=lectures or [],
    )


@pytest.fixture
def make_item():
    return _make_item


@pytest.fixture
def resolver():
    return FieldContentResolver()


@pytest.fixture
def config():
    """Short, easy-to-reason-about steps."""
    return normalize_config(
        {
            "again": 5,
            "hard": 10,
            "good": 60,
            "easy": 120,
            "learning_steps": [5, 10],
            "relearning_steps": [5],
            "graduating_good": 30,
            "graduating_easy": 60,
            "interval_modifier": 1,
            "hard_interval_multiplier": 1.5,
            "easy_interval_bonus": 2,
            "lapse_interval_multiplier": 0.5,
            "ease_bonus": 0.2,
            "ease_penalty": 0.3,
            "hard_ease_penalty": 0.1,
        }
    )


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home
