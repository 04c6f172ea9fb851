import random
from types import SimpleNamespace

from sectionsr.application.ordering import normalize_ordering, order_entries
from sectionsr.domain.models import OrderingSpec


def _entries(*pairs):
    return [SimpleNamespace(id=entry_id, category=category) for entry_id, category in pairs]


QUEUE = _entries(("a", "new"), ("b", "learning"), ("c", "review"), ("d", "new"), ("e", "review"))


class TestNormalizeOrdering:
    def test_defaults(self):
        assert normalize_ordering(None) == OrderingSpec()
        assert normalize_ordering("mixed") == OrderingSpec()

    def test_drops_duplicates_and_unknowns(self):
        spec = normalize_ordering({"priorities": ["review", "review", "invalid", "learning", 3]})
        assert spec.mode == "prioritized"
        assert spec.priorities == ("review", "learning", "new")

    def test_appends_missing_categories(self):
        spec = normalize_ordering({"mode": "mixed", "priorities": [" NEW "]})
        assert spec.mode == "mixed"
        assert spec.priorities == ("new", "review", "learning")

    def test_unknown_mode_is_prioritized(self):
        assert normalize_ordering({"mode": "random"}).mode == "prioritized"

    def test_accepts_spec(self):
        spec = OrderingSpec(mode="mixed", priorities=("new", "learning", "review"))
        assert normalize_ordering(spec) == spec


class TestOrderEntries:
    def test_prioritized_is_stable_partition(self):
        ordered = order_entries(QUEUE, {"priorities": ["review", "new", "learning"]})
        assert [e.id for e in ordered] == ["c", "e", "a", "d", "b"]

    def test_default_priorities(self):
        assert [e.id for e in order_entries(QUEUE)] == ["c", "e", "b", "a", "d"]

    def test_unknown_category_counts_as_new(self):
        queue = _entries(("x", "mystery"), ("y", "review"))
        assert [e.id for e in order_entries(queue)] == ["y", "x"]

    def test_mappings(self):
        queue = [{"id": "a", "category": "new"}, {"id": "b", "category": "review"}]
        assert [e["id"] for e in order_entries(queue)] == ["b", "a"]

    def test_mixed_is_seeded_permutation(self):
        expected = list(QUEUE)
        random.Random(7).shuffle(expected)

        ordered = order_entries(QUEUE, {"mode": "mixed"}, rng=random.Random(7))

        assert ordered == expected
        assert sorted(e.id for e in ordered) == ["a", "b", "c", "d", "e"]

    def test_input_is_not_mutated(self):
        before = list(QUEUE)
        order_entries(QUEUE, {"mode": "mixed"}, rng=random.Random(1))
        order_entries(QUEUE, {"priorities": ["new"]})
        assert QUEUE == before

    def test_empty(self):
        assert order_entries([]) == []
        assert order_entries([], {"mode": "mixed"}) == []
