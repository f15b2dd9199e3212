"""Tests for session time estimation."""

from types import SimpleNamespace

from curriculum_engine.learning_engine.constants import PartType
from curriculum_engine.learning_engine.planner.time_estimation import (
    calculate_seconds_per_term,
    estimate_problem_time_ms,
    estimate_problem_time_seconds,
    estimate_session_duration_minutes,
    estimate_session_problem_count,
)


def _result(response_time_ms, terms=(1, 2, 3)):
    return SimpleNamespace(response_time_ms=response_time_ms, problem=SimpleNamespace(terms=list(terms)))


class TestProblemTime:
    """Test per-problem estimates."""

    def test_default_pace(self):
        # 3 terms * 8 s + 2 s overhead
        assert estimate_problem_time_seconds(3) == 26.0
        assert estimate_problem_time_ms([1, 2, 3]) == 26000.0

    def test_part_multipliers(self):
        assert estimate_problem_time_seconds(3, part_type=PartType.VISUALIZATION) == 32.0
        assert abs(estimate_problem_time_seconds(3, part_type="linear") - 21.2) < 0.01

    def test_learner_pace(self):
        assert estimate_problem_time_seconds(4, seconds_per_term=5.0) == 22.0


class TestSessionEstimates:
    def test_problem_count(self):
        assert estimate_session_problem_count(10) == 23

    def test_minimum_problem_count(self):
        """Very short sessions still get the per-part minimum."""
        assert estimate_session_problem_count(0.5) == 2
        assert estimate_session_problem_count(0) == 2

    def test_duration_inverse(self):
        assert abs(estimate_session_duration_minutes(23) - 23 * 26 / 60) < 0.01


class TestSecondsPerTerm:
    """Test measuring a learner's pace."""

    def test_insufficient_data(self):
        assert calculate_seconds_per_term([_result(12000)] * 4) is None

    def test_zero_and_missing_times_dropped(self):
        results = [_result(12000)] * 5 + [_result(0), _result(None)]
        assert calculate_seconds_per_term(results) == 4.0
        assert calculate_seconds_per_term([_result(0)] * 10) is None

    def test_clamped(self):
        assert calculate_seconds_per_term([_result(3000)] * 5) == 3.0
        assert calculate_seconds_per_term([_result(300000)] * 5) == 30.0

    def test_outliers_excluded(self):
        """A single very slow answer does not skew the estimate."""
        results = [_result(12000)] * 10 + [_result(90000)]
        assert calculate_seconds_per_term(results) == 4.0
        assert abs(calculate_seconds_per_term(results, exclude_outliers=False) - 70 / 11) < 0.01

    def test_custom_min_results(self):
        assert calculate_seconds_per_term([_result(12000)], min_results=1) == 4.0
