"""
BKT Core Math - Pure functions for Bayesian Knowledge Tracing.

Implements the 4-parameter BKT model used by the curriculum:
- pInit:  Prior probability the skill is known
- pLearn: Probability of learning during a successful attempt
- pSlip:  Probability of a wrong answer although the skill is known
- pGuess: Probability of a right answer although the skill is unknown

Unlike the textbook model, the learning transition is applied only after a
correct answer. A wrong answer conditions the belief and nothing else.

All functions clamp inputs so results stay in [0, 1] and never divide by zero.
"""

import math
from dataclasses import asdict, dataclass
from typing import Mapping, Tuple

from curriculum_engine.learning_engine.config import (
    BKT_DEGENERACY_MIN_GAP,
    BKT_EPSILON,
    BKT_GUESS_SOFT_MAX,
    BKT_MAX_PROB,
    BKT_MIN_PROB,
    BKT_PARAM_MAX,
    BKT_PARAM_MIN,
    BKT_SLIP_SOFT_MAX,
)


@dataclass(frozen=True)
class BKTParams:
    """Container for BKT parameters of one skill."""

    p_init: float
    p_learn: float
    p_guess: float
    p_slip: float

    def to_dict(self) -> dict:
        return asdict(self)


def clamp_probability(p: float) -> float:
    """
    Clamp a probability value to valid range [BKT_MIN_PROB, BKT_MAX_PROB].

    NaN is treated as the minimum so a corrupted value never reads as mastery.

    Args:
        p: Probability value

    Returns:
        Clamped probability in valid range
    """
    if math.isnan(p):
        return BKT_MIN_PROB.value
    return max(BKT_MIN_PROB.value, min(BKT_MAX_PROB.value, p))


def predict_correct(p_known: float, p_slip: float, p_guess: float) -> float:
    """
    Predict probability of a correct answer given current mastery.

    Formula:
        P(Correct) = P(L) * (1 - P(S)) + (1 - P(L)) * P(G)

    Args:
        p_known: Current probability of mastery
        p_slip: Probability of slip
        p_guess: Probability of guess

    Returns:
        Probability of correct answer
    """
    p_known = clamp_probability(p_known)
    p_slip = clamp_probability(p_slip)
    p_guess = clamp_probability(p_guess)

    return clamp_probability(p_known * (1.0 - p_slip) + (1.0 - p_known) * p_guess)


def bkt_update(p_known: float, is_correct: bool, params: BKTParams) -> float:
    """
    Condition mastery on one observed answer (Bayes' rule).

    Formulas:
        P(L | Correct) = [P(L) * (1 - P(S))] / P(Correct)
        P(L | Wrong)   = [P(L) * P(S)] / (1 - P(Correct))

    Args:
        p_known: Prior probability of mastery
        is_correct: Whether the answer was correct
        params: Skill parameters (guess and slip are used)

    Returns:
        Posterior probability of mastery
    """
    p_known = clamp_probability(p_known)
    p_slip = clamp_probability(params.p_slip)
    p_guess = clamp_probability(params.p_guess)

    p_correct = predict_correct(p_known, p_slip, p_guess)

    if is_correct:
        numerator = p_known * (1.0 - p_slip)
        denominator = p_correct
    else:
        numerator = p_known * p_slip
        denominator = 1.0 - p_correct

    # Observation impossible under the model: keep the prior
    if denominator < BKT_EPSILON.value:
        return p_known

    return clamp_probability(numerator / denominator)


def apply_learning(p_known: float, p_learn: float) -> float:
    """
    Apply the learning transition.

    Formula:
        P(L_next) = P(L) + (1 - P(L)) * P(T)

    Args:
        p_known: Probability of mastery after the observation
        p_learn: Probability of learning

    Returns:
        Updated probability of mastery
    """
    p_known = clamp_probability(p_known)
    p_learn = clamp_probability(p_learn)

    return clamp_probability(p_known + (1.0 - p_known) * p_learn)


def update_on_correct(p_known: float, params: BKTParams) -> float:
    """Posterior given a correct answer, followed by the learning transition."""
    return apply_learning(bkt_update(p_known, True, params), params.p_learn)


def update_on_incorrect(p_known: float, params: BKTParams) -> float:
    """Posterior given a wrong answer. No learning transition on failure."""
    return bkt_update(p_known, False, params)


def update_mastery(
    p_known: float, is_correct: bool, params: BKTParams, weight: float = 1.0
) -> Tuple[float, dict]:
    """
    Complete single-skill update for one observation.

    A weight below 1 (retries) moves the prior only part of the way toward
    the fully updated value; weight 0 leaves it unchanged.

    Args:
        p_known: Current mastery probability
        is_correct: Whether the answer was correct
        params: Skill parameters
        weight: Fraction of the update to apply, in [0, 1]

    Returns:
        Tuple of (new_mastery, metadata_dict)
    """
    prior = clamp_probability(p_known)
    p_correct_predicted = predict_correct(prior, params.p_slip, params.p_guess)

    if is_correct:
        updated = update_on_correct(prior, params)
    else:
        updated = update_on_incorrect(prior, params)

    weight = clamp_probability(weight)
    p_next = clamp_probability(prior + (updated - prior) * weight)

    metadata = {
        "p_prior": prior,
        "p_correct_predicted": p_correct_predicted,
        "p_updated": updated,
        "p_next": p_next,
        "weight": weight,
        "observation": "correct" if is_correct else "wrong",
    }

    return p_next, metadata


def update_conjunctive(
    priors: Mapping[str, float],
    is_correct: bool,
    params_by_skill: Mapping[str, BKTParams],
    weight: float = 1.0,
) -> dict[str, float]:
    """
    Update every skill exercised by one problem from the same observation.

    Each skill is conditioned independently on the shared correctness, so a
    wrong answer lowers every exercised skill and a right answer raises every one.

    Args:
        priors: Current pKnown per exercised skill
        is_correct: Observed correctness of the problem
        params_by_skill: Parameters for each skill in priors
        weight: Update weight applied to every skill

    Returns:
        New pKnown per skill
    """
    return {
        skill_id: update_mastery(p_known, is_correct, params_by_skill[skill_id], weight)[0]
        for skill_id, p_known in priors.items()
    }


def validate_bkt_params(params: BKTParams) -> Tuple[bool, str]:
    """
    Validate BKT parameters for conceptual soundness.

    Checks:
    1. All parameters in (0, 1)
    2. P(Correct | Known) > P(Correct | Unknown), i.e. (1 - S) > G
    3. Slip and guess below their soft maxima

    Args:
        params: Parameters to check

    Returns:
        Tuple of (is_valid, error_message)
    """
    lo, hi = BKT_PARAM_MIN.value, BKT_PARAM_MAX.value
    for name, value in params.to_dict().items():
        if not (lo < value < hi):
            return False, f"{name} must be in ({lo}, {hi}), got {value}"

    if (1.0 - params.p_slip) <= params.p_guess:
        return False, (
            f"Known performance (1-S={1.0 - params.p_slip:.3f}) must be better than "
            f"unknown performance (G={params.p_guess:.3f})"
        )

    if params.p_slip > BKT_SLIP_SOFT_MAX.value:
        return False, f"Slip probability too high: {params.p_slip} > {BKT_SLIP_SOFT_MAX.value}"
    if params.p_guess > BKT_GUESS_SOFT_MAX.value:
        return False, f"Guess probability too high: {params.p_guess} > {BKT_GUESS_SOFT_MAX.value}"

    return True, ""


def check_degeneracy(params: BKTParams, min_learning_gain: float = 0.01) -> Tuple[bool, str]:
    """
    Check for BKT parameter degeneracy.

    Degeneracy occurs when known and unknown states are indistinguishable or
    when a correct answer barely moves the estimate.

    Args:
        params: Parameters to check
        min_learning_gain: Minimum gain in pKnown after one correct answer from pInit

    Returns:
        Tuple of (is_non_degenerate, warning_message)
    """
    performance_gap = (1.0 - params.p_slip) - params.p_guess
    if performance_gap < BKT_DEGENERACY_MIN_GAP.value:
        return False, (
            f"Performance gap too small: (1-S)-G={performance_gap:.3f} "
            f"< {BKT_DEGENERACY_MIN_GAP.value} (indistinguishable states)"
        )

    gain = update_on_correct(params.p_init, params) - params.p_init
    if gain < min_learning_gain:
        return False, f"Expected learning gain too small: {gain:.3f} < {min_learning_gain}"

    return True, ""
