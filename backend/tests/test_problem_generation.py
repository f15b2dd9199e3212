"""Tests for abacus skill detection and problem generation."""

import random

import pytest

from curriculum_engine.learning_engine.contracts import TermCountBounds
from curriculum_engine.learning_engine.planner.problems import (
    analyze_problem,
    analyze_term,
    generate_problem,
    number_range_for,
)

ADD = "basic.directAddition"


class TestAnalyzeTerm:
    """Test bead-move skill detection."""

    @pytest.mark.parametrize(
        "total,term,expected_total,expected_skills",
        [
            (0, 3, 3, {ADD}),
            (3, 2, 5, {"fiveComplements.2=5-3"}),
            (4, 1, 5, {"fiveComplements.1=5-4"}),
            (0, 5, 5, {"basic.heavenBead"}),
            (2, 6, 8, {"basic.simpleCombinations"}),
            (7, 5, 12, {"tenComplements.5=10-5", ADD}),
            (5, -3, 2, {"fiveComplementsSub.-3=-5+2"}),
            (8, -2, 6, {"basic.directSubtraction"}),
            (7, -5, 2, {"basic.heavenBeadSubtraction"}),
            (12, -5, 7, {"tenComplementsSub.-5=+5-10", "basic.directSubtraction"}),
        ],
    )
    def test_single_column_moves(self, total, term, expected_total, expected_skills):
        new_total, skills = analyze_term(total, term)
        assert new_total == expected_total
        assert skills == frozenset(expected_skills)

    def test_cascading_carry(self):
        """A carry into a full column carries again."""
        new_total, skills = analyze_term(99, 1)
        assert new_total == 100
        assert "advanced.cascadingCarry" in skills
        assert "tenComplements.1=10-9" in skills

    def test_cascading_borrow(self):
        new_total, skills = analyze_term(100, -1)
        assert new_total == 99
        assert "advanced.cascadingBorrow" in skills

    def test_multi_digit_term(self):
        new_total, skills = analyze_term(11, 23)
        assert new_total == 34
        assert skills == frozenset({ADD})

    def test_negative_result_rejected(self):
        with pytest.raises(ValueError):
            analyze_term(3, -4)

    def test_analyze_problem(self):
        assert analyze_problem([3, 2]) == frozenset({ADD, "fiveComplements.2=5-3"})
        assert analyze_problem([1, 1, 1]) == frozenset({ADD})


class TestGenerateProblem:
    """Test bounded problem search."""

    def test_basic_target_always_hit(self):
        """Only direct moves are allowed, and any first term of 1-4 uses them."""
        for seed in range(20):
            problem = generate_problem(random.Random(seed), ADD, TermCountBounds(min=2, max=3), {ADD})
            assert problem.target_skill_hit
            assert 2 <= len(problem.terms) <= 3
            assert problem.answer == sum(problem.terms)
            assert set(problem.skills_required) == {ADD}

    def test_only_allowed_skills_used(self):
        allowed = {ADD, "basic.heavenBead", "fiveComplements.4=5-1"}
        for seed in range(20):
            problem = generate_problem(
                random.Random(seed), "fiveComplements.4=5-1", TermCountBounds(min=3, max=5), allowed
            )
            assert set(problem.skills_required) <= allowed
            assert analyze_problem(problem.terms) == frozenset(problem.skills_required)

    def test_deterministic_for_seed(self):
        bounds = TermCountBounds(min=3, max=5)
        allowed = {ADD, "basic.heavenBead", "basic.simpleCombinations"}
        first = generate_problem(random.Random(7), "basic.heavenBead", bounds, allowed)
        second = generate_problem(random.Random(7), "basic.heavenBead", bounds, allowed)
        assert first == second

    def test_unreachable_target_falls_back(self):
        """When no candidate can be built the search gives up with a marked fallback."""
        problem = generate_problem(
            random.Random(1), "basic.heavenBeadSubtraction", TermCountBounds(min=2, max=2), set()
        )
        assert problem.target_skill_hit is False
        assert problem.terms == [1, 1]

    def test_number_ranges(self):
        assert number_range_for(ADD).max == 9
        assert number_range_for("tenComplements.9=10-1").max == 99
