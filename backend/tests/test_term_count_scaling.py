"""Tests for comfort-driven term-count scaling."""

import copy
import json

import pytest

from curriculum_engine.core.app_exceptions import ConfigValidationError
from curriculum_engine.learning_engine.config import TERM_COUNT_DEFAULTS
from curriculum_engine.learning_engine.constants import PartType
from curriculum_engine.learning_engine.contracts import TermCountBounds
from curriculum_engine.learning_engine.term_count.scaling import (
    apply_term_count_override,
    build_term_count_config,
    compute_term_count_range,
    default_term_count_config,
    explain_term_count,
    parse_term_count_config,
    round_half_up,
    validate_term_count_config,
)


def _bounds(lo: int, hi: int) -> TermCountBounds:
    return TermCountBounds(min=lo, max=hi)


class TestComputeRange:
    """Test interpolation between floor and ceiling."""

    def test_abacus_low_comfort(self):
        """Comfort 0.3 on abacus: min 2 + 2*0.3 = 2.6 -> 3, max 3 + 5*0.3 = 4.5 -> 5."""
        assert compute_term_count_range(PartType.ABACUS, 0.3) == _bounds(3, 5)

    def test_endpoints(self):
        assert compute_term_count_range(PartType.ABACUS, 0.0) == _bounds(2, 3)
        assert compute_term_count_range(PartType.ABACUS, 1.0) == _bounds(4, 8)
        assert compute_term_count_range(PartType.LINEAR, 0.0) == _bounds(2, 2)

    def test_visualization_midpoint(self):
        assert compute_term_count_range("visualization", 0.5) == _bounds(3, 5)

    def test_out_of_range_comfort_clamped(self):
        assert compute_term_count_range(PartType.ABACUS, -1.0) == _bounds(2, 3)
        assert compute_term_count_range(PartType.ABACUS, 7.0) == _bounds(4, 8)
        assert compute_term_count_range(PartType.ABACUS, float("nan")) == _bounds(2, 3)

    def test_round_half_up(self):
        assert round_half_up(4.5) == 5
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2


class TestOverride:
    """Overrides act as a ceiling only."""

    def test_override_lowers_max(self):
        assert apply_term_count_override(_bounds(3, 5), _bounds(2, 4)) == _bounds(3, 4)

    def test_override_lowers_both(self):
        assert apply_term_count_override(_bounds(3, 5), _bounds(2, 2)) == _bounds(2, 2)

    def test_override_never_lengthens(self):
        assert apply_term_count_override(_bounds(3, 5), _bounds(6, 10)) == _bounds(3, 5)

    def test_no_override(self):
        assert apply_term_count_override(_bounds(3, 5), None) == _bounds(3, 5)

    def test_explanation(self):
        explanation = explain_term_count(PartType.ABACUS, 0.3, override=_bounds(2, 4))
        assert explanation.floor == _bounds(2, 3)
        assert explanation.ceiling == _bounds(4, 8)
        assert explanation.computed == _bounds(3, 5)
        assert explanation.final == _bounds(3, 4)


class TestConfigValidation:
    """Test write-time validation and lenient read-time parsing."""

    def test_defaults_valid(self):
        assert validate_term_count_config(TERM_COUNT_DEFAULTS.value) == []
        assert build_term_count_config(TERM_COUNT_DEFAULTS.value) == default_term_count_config()

    def test_missing_mode(self):
        raw = copy.deepcopy(TERM_COUNT_DEFAULTS.value)
        del raw["linear"]
        assert validate_term_count_config(raw) == ["linear: missing"]

    def test_bound_below_two(self):
        raw = copy.deepcopy(TERM_COUNT_DEFAULTS.value)
        raw["abacus"]["floor"]["min"] = 1
        with pytest.raises(ConfigValidationError) as exc_info:
            build_term_count_config(raw)
        assert "abacus.floor.min: must be >= 2" in exc_info.value.errors

    def test_non_integer_bound(self):
        raw = copy.deepcopy(TERM_COUNT_DEFAULTS.value)
        raw["abacus"]["ceiling"]["max"] = 7.5
        assert "abacus.ceiling.max: must be an integer" in validate_term_count_config(raw)

    def test_min_above_max(self):
        raw = copy.deepcopy(TERM_COUNT_DEFAULTS.value)
        raw["visualization"]["ceiling"] = {"min": 6, "max": 5}
        assert "visualization.ceiling: min must be <= max" in validate_term_count_config(raw)

    def test_floor_above_ceiling(self):
        raw = copy.deepcopy(TERM_COUNT_DEFAULTS.value)
        raw["linear"]["floor"] = {"min": 5, "max": 5}
        raw["linear"]["ceiling"] = {"min": 4, "max": 8}
        assert validate_term_count_config(raw) == ["linear: floor.min must be <= ceiling.min"]

    def test_not_an_object(self):
        assert validate_term_count_config([1, 2]) == ["Config must be an object keyed by mode"]

    @pytest.mark.parametrize("raw_json", [None, "", "{not json", json.dumps({"abacus": {}})])
    def test_parse_falls_back_to_defaults(self, raw_json):
        """Planning never fails on a bad stored config."""
        assert parse_term_count_config(raw_json) == default_term_count_config()

    def test_parse_valid_config(self):
        raw = copy.deepcopy(TERM_COUNT_DEFAULTS.value)
        raw["abacus"]["ceiling"] = {"min": 5, "max": 10}
        config = parse_term_count_config(json.dumps(raw))
        assert compute_term_count_range(PartType.ABACUS, 1.0, config) == _bounds(5, 10)
