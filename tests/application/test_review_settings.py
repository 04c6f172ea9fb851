from dataclasses import replace

import pytest

from sectionsr.application.review_settings import normalize_config, parse_duration, parse_step_list
from sectionsr.domain.models import ReviewConfig


class TestParseDuration:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (15, 15),
            (2.5, 3),
            ("15", 15),
            ("1.5h", 90),
            ("2 days", 2880),
            ("1w", 10080),
            ("45 min", 45),
        ],
    )
    def test_valid(self, raw, expected):
        assert parse_duration(raw) == expected

    @pytest.mark.parametrize("raw", [None, True, "", "  ", "3 fortnights", "abc", -5, "inf", []])
    def test_invalid_falls_back(self, raw):
        assert parse_duration(raw, fallback=7) == 7

    def test_zero(self):
        assert parse_duration(0) is None
        assert parse_duration("0", allow_zero=True) == 0


class TestParseStepList:
    def test_delimited_string(self):
        assert parse_step_list("1, 5;10\n20", (9,)) == (1, 5, 10, 20)

    def test_list_skips_bad_entries(self):
        assert parse_step_list(["1h", "bad", 0, 30], (9,)) == (60, 30)

    @pytest.mark.parametrize("raw", [[], "x, -1", None, 12])
    def test_nothing_usable_falls_back(self, raw):
        assert parse_step_list(raw, (10, 60)) == (10, 60)


class TestNormalizeConfig:
    def test_defaults(self):
        assert normalize_config() == ReviewConfig()
        assert normalize_config("garbage") == ReviewConfig()
        assert normalize_config({}) == ReviewConfig()

    def test_rating_durations(self):
        config = normalize_config({"again": "15", "hard": 0, "good": -5, "easy": "2h"})
        assert config.again == 15
        assert config.hard == 60
        assert config.good == 720
        assert config.easy == 120

    def test_booleans_are_rejected(self):
        assert normalize_config({"again": True, "ease_bonus": True}) == ReviewConfig()

    def test_step_lists(self):
        config = normalize_config({"learning_steps": "1m, 10m", "relearning_steps": []})
        assert config.learning_steps == (1, 10)
        assert config.relearning_steps == (10,)

    def test_graduating(self):
        config = normalize_config({"graduating_good": "1d", "graduating_easy": 0})
        assert config.graduating_good == 1440
        assert config.graduating_easy == 2880

    def test_legacy_keys(self):
        config = normalize_config({"learningSteps": [1, 2], "startingEase": 3, "easeBonus": 0.3})
        assert config.learning_steps == (1, 2)
        assert config.starting_ease == 3.0
        assert config.ease_bonus == 0.3

    def test_snake_case_wins_over_legacy(self):
        config = normalize_config({"starting_ease": 2.0, "startingEase": 3.0})
        assert config.starting_ease == 2.0

    def test_minimum_ease_floor(self):
        assert normalize_config({"minimum_ease": 0.1}).minimum_ease == 0.5

    def test_starting_ease_not_below_minimum(self):
        config = normalize_config({"minimum_ease": 2.0, "starting_ease": 1.5})
        assert config.minimum_ease == 2.0
        assert config.starting_ease == 2.0

    def test_factor_bounds(self):
        config = normalize_config(
            {"ease_bonus": 0, "ease_penalty": -1, "lapse_interval_multiplier": "x"}
        )
        assert config.ease_bonus == 0.15
        assert config.ease_penalty == 0.2
        assert config.lapse_interval_multiplier == 0.5

    def test_interval_modifier(self):
        assert normalize_config({"interval_modifier": 0}).interval_modifier == 1.0
        assert normalize_config({"interval_modifier": 0.8}).interval_modifier == 0.8

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            {"again": "1.5h", "learning_steps": "1, 5"},
            {"minimum_ease": 0.1, "starting_ease": 0.2},
            {"intervalModifier": 0, "graduatingGood": "2d"},
        ],
    )
    def test_idempotent(self, raw):
        once = normalize_config(raw)
        assert normalize_config(once) == once
        assert normalize_config(once.to_dict()) == once


class TestOversizedNumbers:
    def test_parse_duration(self):
        assert parse_duration(10**400, fallback=7) == 7

    def test_normalize_config_keeps_defaults(self):
        huge = 10**400
        config = normalize_config(
            {
                "again": huge,
                "graduating_good": huge,
                "learning_steps": [huge, 5],
                "starting_ease": huge,
                "ease_bonus": huge,
                "interval_modifier": huge,
            }
        )
        assert config == replace(ReviewConfig(), learning_steps=(5,))
