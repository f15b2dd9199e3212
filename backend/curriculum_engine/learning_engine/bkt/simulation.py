"""
BKT sequence simulation and design for synthetic learner histories.

Used to seed demo and test learners whose replayed mastery lands in a chosen
classification band. Order matters more than ratio: ending on correct answers
pushes pKnown up, ending on wrong answers pulls it down.

The developing band is narrow relative to how far one answer moves pKnown,
so the search tries several pattern shapes over a fixed grid of correct
ratios, then a linear sweep, then a documented fallback. It is bounded by
construction: at most len(ratios) * 3 + n simulations.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Mapping

from curriculum_engine.core.config import settings
from curriculum_engine.learning_engine.bkt.core import BKTParams, update_on_correct, update_on_incorrect
from curriculum_engine.learning_engine.bkt.priors import get_default_params
from curriculum_engine.learning_engine.config import (
    SIMULATION_CORRECT_RATIOS,
    SIMULATION_STRONG_INCORRECT_FRACTION,
    SIMULATION_WEAK_CORRECT_FRACTION,
)
from curriculum_engine.learning_engine.constants import MasteryClassification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbabilityBands:
    """Cut points for weak / developing / strong, retunable per deployment."""

    weak: float
    strong: float

    @classmethod
    def from_settings(cls) -> "ProbabilityBands":
        return cls(weak=settings.SIMULATION_WEAK_BAND, strong=settings.SIMULATION_STRONG_BAND)

    def contains_developing(self, p_known: float) -> bool:
        return self.weak <= p_known < self.strong


def simulate_sequence(
    skill_id: str,
    sequence: list[bool],
    params: BKTParams | None = None,
    overrides: Mapping[str, BKTParams] | None = None,
) -> float:
    """
    Final pKnown after replaying a correct/incorrect sequence from the prior.

    Mirrors history replay: correct answers condition then learn, wrong answers
    only condition.
    """
    params = params or get_default_params(skill_id, overrides)
    p_known = params.p_init
    for is_correct in sequence:
        if is_correct:
            p_known = update_on_correct(p_known, params)
        else:
            p_known = update_on_incorrect(p_known, params)
    return p_known


def _end_with_one_correct(n: int, correct: int) -> list[bool]:
    return [True] * (correct - 1) + [False] * (n - correct) + [True]


def _alternating_end_correct(n: int, correct: int) -> list[bool]:
    seq: list[bool] = []
    remaining_correct, remaining_incorrect = correct, n - correct
    while remaining_correct > 0 or remaining_incorrect > 0:
        if remaining_incorrect > 0 and (
            remaining_incorrect > remaining_correct or remaining_correct == 0
        ):
            seq.append(False)
            remaining_incorrect -= 1
        else:
            seq.append(True)
            remaining_correct -= 1
    return seq


def _sandwich(n: int, correct: int) -> list[bool]:
    lead = (n - correct) // 2
    return [False] * lead + [True] * correct + [False] * (n - correct - lead)


PATTERN_GENERATORS: tuple[Callable[[int, int], list[bool]], ...] = (
    _end_with_one_correct,
    _alternating_end_correct,
    _sandwich,
)


def design_sequence_for_classification(
    skill_id: str,
    problem_count: int,
    target: MasteryClassification,
    bands: ProbabilityBands | None = None,
    params: BKTParams | None = None,
) -> list[bool]:
    """
    Design an answer sequence whose replay lands in the target band.

    Args:
        skill_id: Skill whose prior drives the simulation
        problem_count: Sequence length
        target: Desired classification
        bands: Band cut points (defaults from settings)
        params: Explicit BKT parameters (defaults to the skill prior)

    Returns:
        List of correctness values, length problem_count
    """
    if problem_count <= 0:
        return []

    bands = bands or ProbabilityBands.from_settings()
    params = params or get_default_params(skill_id)

    if problem_count <= 3:
        # Short histories: developing is approximated by all-correct since
        # conjunctive updates on multi-skill problems pull it down
        return [target != MasteryClassification.WEAK] * problem_count

    if target == MasteryClassification.STRONG:
        incorrect = max(1, int(problem_count * SIMULATION_STRONG_INCORRECT_FRACTION.value))
        return [False] * incorrect + [True] * (problem_count - incorrect)

    if target == MasteryClassification.WEAK:
        correct = max(1, int(problem_count * SIMULATION_WEAK_CORRECT_FRACTION.value))
        return [True] * correct + [False] * (problem_count - correct)

    for ratio in SIMULATION_CORRECT_RATIOS.value:
        correct = max(1, int(problem_count * ratio + 0.5))
        for generate in PATTERN_GENERATORS:
            sequence = generate(problem_count, correct)
            if len(sequence) != problem_count:
                continue
            if bands.contains_developing(simulate_sequence(skill_id, sequence, params)):
                return sequence

    for correct in range(1, problem_count):
        sequence = _end_with_one_correct(problem_count, correct)
        if bands.contains_developing(simulate_sequence(skill_id, sequence, params)):
            return sequence

    logger.warning(
        f"No developing sequence found for {skill_id} with {problem_count} problems; "
        "using all-wrong-then-one-correct fallback"
    )
    return [False] * (problem_count - 1) + [True]
