import pytest

from sectionsr.application.invalidation import digest_content
from sectionsr.application.scheduler import (
    apply_rating,
    project_rating,
    resume_section,
    retire_section,
    suspend_section,
    transition,
)
from sectionsr.domain.constants import ALL_RATINGS, NEVER_DUE, PHASES
from sectionsr.domain.models import SectionState

T0 = 1_700_000_000_000
MINUTE = 60_000


class TestLearningPhase:
    def test_again_on_fresh_section_starts_learning(self, make_item, resolver, config):
        item = make_item()
        state = apply_rating(item, "etiology", "again", config, resolver, T0)

        assert state.phase == "learning"
        assert state.learning_step_index == 0
        assert state.due_at == T0 + 5 * MINUTE
        assert state.last_rating == "again"
        assert state.last_reviewed_at == T0
        assert state.streak == 0
        assert item.sr.sections["etiology"] is state

    def test_walks_steps_then_graduates(self, make_item, resolver, config):
        item = make_item()
        apply_rating(item, "etiology", "again", config, resolver, T0)

        t1 = T0 + 5 * MINUTE
        state = apply_rating(item, "etiology", "good", config, resolver, t1)
        assert state.phase == "learning"
        assert state.learning_step_index == 1
        assert state.due_at == t1 + 10 * MINUTE

        t2 = t1 + 10 * MINUTE
        state = apply_rating(item, "etiology", "good", config, resolver, t2)
        assert state.phase == "review"
        assert state.interval == 30
        assert state.due_at == t2 + 30 * MINUTE
        assert state.ease == 2.5
        assert state.streak == 1
        assert state.learning_step_index == 0

    def test_hard_repeats_step_with_multiplier(self, make_item, resolver, config):
        item = make_item()
        apply_rating(item, "etiology", "again", config, resolver, T0)
        state = apply_rating(item, "etiology", "hard", config, resolver, T0 + MINUTE)

        # 5 * 1.5 = 7.5 rounds half up
        assert state.due_at == T0 + MINUTE + 8 * MINUTE
        assert state.learning_step_index == 0
        assert state.phase == "learning"

    def test_easy_graduates_immediately(self, make_item, resolver, config):
        state = apply_rating(make_item(), "etiology", "easy", config, resolver, T0)

        assert state.phase == "review"
        assert state.interval == 60
        assert state.due_at == T0 + 60 * MINUTE
        assert state.ease == pytest.approx(2.7)
        assert state.streak == 1

    def test_fresh_state_is_stamped(self, make_item, resolver, config):
        item = make_item()
        state = apply_rating(item, "etiology", "good", config, resolver, T0)
        assert state.content_digest == digest_content("<p>cause</p>")
        assert state.lecture_scope == ["__unassigned|__none"]


class TestReviewPhase:
    def _review(self, **overrides):
        values = dict(
            phase="review", interval=30, ease=2.5, streak=2, last_reviewed_at=T0 - MINUTE
        )
        values.update(overrides)
        return SectionState(**values)

    def test_good_multiplies_by_ease(self, config):
        state = transition(self._review(), "good", config, T0)
        assert state.interval == 75
        assert state.due_at == T0 + 75 * MINUTE
        assert state.streak == 3

    def test_easy_adds_bonus(self, config):
        state = transition(self._review(), "easy", config, T0)
        assert state.ease == pytest.approx(2.7)
        assert state.interval == 162

    def test_good_without_interval_uses_good_base(self, config):
        state = transition(self._review(interval=0), "good", config, T0)
        assert state.interval == 150

    def test_again_is_a_lapse(self, config):
        state = transition(self._review(), "again", config, T0)
        assert state.phase == "learning"
        assert state.lapses == 1
        assert state.interval == 0
        assert state.ease == pytest.approx(2.2)
        assert state.learning_step_index == 0
        assert state.due_at == T0 + 5 * MINUTE
        assert state.streak == 0

    def test_hard_skips_first_step(self, config):
        state = transition(self._review(), "hard", config, T0)
        assert state.phase == "learning"
        assert state.ease == pytest.approx(2.4)
        assert state.interval == 0
        assert state.learning_step_index == 1
        assert state.due_at == T0 + 10 * MINUTE
        assert state.lapses == 0

    def test_ease_never_drops_below_minimum(self, config):
        state = self._review(ease=1.4)
        for i in range(5):
            state = transition(state, "again", config, T0 + i * MINUTE)
            assert state.ease >= config.minimum_ease
            state.phase = "review"
        assert state.ease == pytest.approx(config.minimum_ease)

    def test_suspended_with_interval_is_treated_as_review(self, config):
        state = transition(self._review(phase="suspended", suspended=True), "good", config, T0)
        assert state.phase == "review"
        assert state.interval == 75
        assert state.suspended is False


class TestRelearningPhase:
    def _relearning(self, **overrides):
        values = dict(phase="relearning", learning_step_index=0, last_reviewed_at=T0 - MINUTE)
        values.update(overrides)
        return SectionState(**values)

    def test_good_graduates_with_lapse_interval(self, config):
        state = transition(self._relearning(), "good", config, T0)
        assert state.phase == "review"
        # graduating_good (30) * lapse multiplier (0.5)
        assert state.interval == 15

    def test_good_uses_current_interval(self, config):
        state = transition(self._relearning(interval=100), "good", config, T0)
        assert state.interval == 50

    def test_pending_interval_wins(self, config):
        state = transition(self._relearning(pending_interval=40), "good", config, T0)
        assert state.interval == 40
        assert state.pending_interval == 0

    def test_easy_applies_bonus(self, config):
        state = transition(self._relearning(pending_interval=40), "easy", config, T0)
        assert state.interval == 80
        assert state.ease == pytest.approx(2.7)

    def test_again_restarts_relearning(self, config):
        state = transition(self._relearning(learning_step_index=0), "again", config, T0)
        assert state.phase == "relearning"
        assert state.due_at == T0 + 5 * MINUTE

    def test_hard_stays_in_relearning(self, config):
        state = transition(self._relearning(), "hard", config, T0)
        assert state.phase == "relearning"
        assert state.due_at == T0 + 8 * MINUTE


class TestRetire:
    def test_retire_parks_section(self, make_item, resolver, config):
        item = make_item()
        apply_rating(item, "etiology", "easy", config, resolver, T0)
        state = retire_section(item, "etiology", resolver, T0 + MINUTE, config)

        assert state.retired is True
        assert state.due_at == NEVER_DUE
        assert state.interval == NEVER_DUE
        assert state.phase == "review"
        assert state.last_rating == "retire"
        assert state.streak == 0

    @pytest.mark.parametrize("rating", ["again", "hard", "good", "easy"])
    def test_retired_is_absorbing(self, config, rating):
        retired = transition(SectionState(), "retire", config, T0)
        after = transition(retired, rating, config, T0 + MINUTE)
        assert after == retired


class TestTransitionContract:
    @pytest.mark.parametrize("phase", PHASES)
    @pytest.mark.parametrize("rating", ALL_RATINGS)
    def test_due_is_at_least_a_minute_out(self, config, phase, rating):
        for interval in (0, 30):
            state = SectionState(phase=phase, interval=interval, learning_step_index=1)
            updated = transition(state, rating, config, T0)
            assert updated.due_at >= T0 + MINUTE
            assert updated.last_reviewed_at == T0
            assert updated.ease >= config.minimum_ease

    def test_input_is_not_mutated(self, config):
        state = SectionState(phase="review", interval=30, lecture_scope=["a|1"])
        before = state.to_dict()
        transition(state, "again", config, T0)
        assert state.to_dict() == before

    def test_unknown_rating_counts_as_good(self, config):
        state = SectionState(phase="review", interval=30)
        assert transition(state, "meh", config, T0) == transition(state, "good", config, T0)


class TestItemHelpers:
    def test_missing_item_or_key(self, make_item, resolver, config):
        assert apply_rating(None, "etiology", "good", config, resolver, T0) is None
        assert apply_rating(make_item(), "", "good", config, resolver, T0) is None
        assert project_rating(None, "etiology", "good", config, resolver, T0) is None
        assert suspend_section(make_item(), None, resolver, T0) is None

    def test_projection_does_not_commit(self, make_item, resolver, config):
        item = make_item()
        apply_rating(item, "etiology", "good", config, resolver, T0)
        before = item.sr.to_dict()

        projected = project_rating(item, "etiology", "easy", config, resolver, T0 + MINUTE)

        assert projected.phase == "review"
        assert item.sr.to_dict() == before

    def test_projection_of_untouched_section(self, make_item, resolver, config):
        item = make_item()
        projected = project_rating(item, "etiology", "again", config, resolver, T0)
        assert projected.phase == "learning"
        assert item.sr.sections == {}

    def test_suspend_then_resume_learning(self, make_item, resolver, config):
        item = make_item()
        apply_rating(item, "etiology", "again", config, resolver, T0)

        state = suspend_section(item, "etiology", resolver, T0 + MINUTE, config)
        assert state.suspended is True
        assert state.phase == "suspended"
        assert state.due_at == NEVER_DUE

        later = T0 + 60 * MINUTE
        state = resume_section(item, "etiology", resolver, later, config)
        assert state.suspended is False
        assert state.phase == "learning"
        assert state.due_at == later

    def test_resume_graduated_section(self, make_item, resolver, config):
        item = make_item()
        apply_rating(item, "etiology", "easy", config, resolver, T0)
        suspend_section(item, "etiology", resolver, T0 + MINUTE, config)

        state = resume_section(item, "etiology", resolver, T0 + 2 * MINUTE, config)
        assert state.phase == "review"
        assert state.interval == 60

    def test_resume_leaves_retired_alone(self, make_item, resolver, config):
        item = make_item()
        retire_section(item, "etiology", resolver, T0, config)
        state = resume_section(item, "etiology", resolver, T0 + MINUTE, config)
        assert state.retired is True
        assert state.due_at == NEVER_DUE

    def test_suspend_leaves_retired_alone(self, make_item, resolver, config):
        item = make_item()
        retired = retire_section(item, "etiology", resolver, T0, config)

        state = suspend_section(item, "etiology", resolver, T0 + MINUTE, config)

        assert state == retired
        assert state.suspended is False
        assert state.phase == "review"

    def test_resume_clears_stale_suspension_on_retired(self, make_item, resolver, config):
        item = make_item()
        retire_section(item, "etiology", resolver, T0, config)
        stored = item.sr.sections["etiology"]
        stored.suspended = True
        stored.phase = "suspended"

        state = resume_section(item, "etiology", resolver, T0 + MINUTE, config)

        assert state.suspended is False
        assert state.phase == "review"
        assert state.retired is True
        assert state.due_at == NEVER_DUE
