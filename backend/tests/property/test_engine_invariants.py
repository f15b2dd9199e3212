"""Property-based tests for mastery, term-count and planning invariants."""

import math

from hypothesis import given, settings, strategies as st

from curriculum_engine.learning_engine.bkt.core import BKTParams, bkt_update, clamp_probability, update_on_correct
from curriculum_engine.learning_engine.bkt.simulation import simulate_sequence
from curriculum_engine.learning_engine.constants import PART_ORDER, LengthPreference, ModeType
from curriculum_engine.learning_engine.planner.composer import allocate_counts, normalize_weights
from curriculum_engine.learning_engine.session_mode.comfort import compute_comfort_level
from curriculum_engine.learning_engine.term_count.scaling import compute_term_count_range
from tests.helpers.factories import make_state

probabilities = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)
params_strategy = st.builds(
    BKTParams,
    p_init=probabilities,
    p_learn=st.floats(min_value=0.0, max_value=0.5),
    p_guess=st.floats(min_value=0.0, max_value=0.3),
    p_slip=st.floats(min_value=0.0, max_value=0.3),
)


@settings(max_examples=200, deadline=None)
@given(p_known=probabilities, is_correct=st.booleans(), params=params_strategy)
def test_update_stays_in_unit_interval(p_known: float, is_correct: bool, params: BKTParams) -> None:
    """
    Property: a single observation never leaves [0, 1].
    """
    result = bkt_update(p_known, is_correct, params)
    assert 0.0 <= result <= 1.0
    assert not math.isnan(result)


@settings(max_examples=100, deadline=None)
@given(p_known=probabilities, params=params_strategy)
def test_correct_answer_never_lowers_mastery_when_informative(p_known: float, params: BKTParams) -> None:
    """
    Property: with guess + slip < 1, a correct answer cannot decrease pKnown.
    """
    if params.p_guess + params.p_slip >= 1:
        return
    assert update_on_correct(p_known, params) >= p_known - 1e-9


@settings(max_examples=100, deadline=None)
@given(sequence=st.lists(st.booleans(), max_size=40))
def test_replay_bounded(sequence: list[bool]) -> None:
    p = simulate_sequence("fiveComplements.4=5-1", sequence)
    assert 0.0 <= p <= 1.0


@given(value=st.floats(allow_nan=True, allow_infinity=True))
def test_clamp_probability(value: float) -> None:
    assert 0.0 <= clamp_probability(value) <= 1.0


@settings(max_examples=200, deadline=None)
@given(
    mode=st.sampled_from(PART_ORDER),
    comfort=st.floats(min_value=-2.0, max_value=3.0) | st.just(float("nan")),
)
def test_term_count_range_well_formed(mode, comfort: float) -> None:
    """
    Property: every term-count range is usable.

    Invariants:
    - min <= max
    - both at least two terms
    """
    bounds = compute_term_count_range(mode, comfort)
    assert 2 <= bounds.min <= bounds.max


@given(mode=st.sampled_from(PART_ORDER), low=st.floats(0, 1), high=st.floats(0, 1))
def test_term_count_monotone_in_comfort(mode, low: float, high: float) -> None:
    low, high = sorted((low, high))
    a = compute_term_count_range(mode, low)
    b = compute_term_count_range(mode, high)
    assert a.min <= b.min
    assert a.max <= b.max


@settings(max_examples=200, deadline=None)
@given(
    total=st.integers(min_value=0, max_value=200),
    weights=st.lists(st.floats(min_value=0.0, max_value=10.0), min_size=3, max_size=3).filter(
        lambda w: sum(w) > 0.01
    ),
)
def test_allocate_counts_sums_to_total(total: int, weights: list[float]) -> None:
    """
    Property: largest-remainder allocation never loses or invents slots.
    """
    shares = normalize_weights(dict(zip(PART_ORDER, weights)), PART_ORDER)
    counts = allocate_counts(total, shares, list(PART_ORDER))
    assert sum(counts.values()) == total
    assert all(count >= 0 for count in counts.values())


@settings(max_examples=100, deadline=None)
@given(
    masteries=st.lists(st.tuples(probabilities, probabilities), max_size=8),
    mode=st.sampled_from(list(ModeType)),
    preference=st.sampled_from(list(LengthPreference)),
)
def test_comfort_in_unit_interval(masteries, mode: ModeType, preference: LengthPreference) -> None:
    states = {
        f"basic.skill{i}": make_state(f"basic.skill{i}", p_known, confidence=confidence)
        for i, (p_known, confidence) in enumerate(masteries)
    }
    level = compute_comfort_level(states, list(states), mode, preference)
    assert 0.0 <= level.comfort <= 1.0
    assert 0.0 <= level.raw_comfort <= 1.0
