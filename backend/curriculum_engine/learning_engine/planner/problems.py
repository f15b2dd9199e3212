"""
Problem generation for plan slots.

Skills are detected by simulating bead moves column by column on a soroban
(one heaven bead worth 5, four earth beads worth 1):

    adding d to column value v
      v + d <= 9, d < 5, earth beads suffice  -> basic.directAddition
      v + d <= 9, d < 5, earth beads overflow -> fiveComplements.d=5-(5-d)
      v + d <= 9, d == 5                      -> basic.heavenBead
      v + d <= 9, d > 5                       -> basic.simpleCombinations
      v + d >= 10                             -> tenComplements.d=10-(10-d), carry 1
    subtraction mirrors this with borrows. A carry into a 9 (borrow from a 0)
    also marks a cascading carry (borrow).

Generation is a bounded random search: at most ``max_attempts`` candidate
problems are built and the first that exercises the target skill while using
only allowed skills wins.
"""

import logging
import random
from dataclasses import dataclass
from typing import AbstractSet

from curriculum_engine.learning_engine.contracts import TermCountBounds
from curriculum_engine.learning_engine.skills.catalog import SkillCategory, parse_skill_id
from curriculum_engine.schemas.session_plan import GeneratedProblem

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 20
TARGET_PREFERENCE = 0.7


@dataclass(frozen=True)
class NumberRange:
    min: int
    max: int
    max_sum: int


def number_range_for(skill_id: str) -> NumberRange:
    """Term magnitudes suited to a skill's category."""
    category, _ = parse_skill_id(skill_id)
    if category in (
        SkillCategory.TEN_COMPLEMENTS,
        SkillCategory.TEN_COMPLEMENTS_SUB,
        SkillCategory.ADVANCED,
    ):
        return NumberRange(1, 99, 200)
    return NumberRange(1, 9, 20)


def _digits(value: int) -> list[int]:
    """Little-endian decimal digits."""
    digits = []
    while value:
        value, digit = divmod(value, 10)
        digits.append(digit)
    return digits


def _add_digit(digits: list[int], col: int, d: int, skills: set[str]) -> None:
    while len(digits) <= col:
        digits.append(0)
    v = digits[col]
    earth = v % 5
    if v + d <= 9:
        if d < 5:
            if earth + d <= 4:
                skills.add("basic.directAddition")
            else:
                skills.add(f"fiveComplements.{d}=5-{5 - d}")
        elif d == 5:
            skills.add("basic.heavenBead")
        else:
            skills.add("basic.simpleCombinations")
        digits[col] = v + d
        return

    skills.add(f"tenComplements.{d}=10-{10 - d}")
    digits[col] = v + d - 10
    if col + 1 < len(digits) and digits[col + 1] == 9:
        skills.add("advanced.cascadingCarry")
    _add_digit(digits, col + 1, 1, skills)


def _sub_digit(digits: list[int], col: int, d: int, skills: set[str]) -> None:
    v = digits[col]
    earth = v % 5
    if v >= d:
        if d < 5:
            if earth >= d:
                skills.add("basic.directSubtraction")
            else:
                skills.add(f"fiveComplementsSub.-{d}=-5+{5 - d}")
        elif d == 5:
            skills.add("basic.heavenBeadSubtraction")
        else:
            skills.add("basic.simpleCombinationsSub")
        digits[col] = v - d
        return

    skills.add(f"tenComplementsSub.-{d}=+{10 - d}-10")
    digits[col] = v + 10 - d
    if digits[col + 1] == 0:
        skills.add("advanced.cascadingBorrow")
    _sub_digit(digits, col + 1, 1, skills)


def analyze_term(total: int, term: int) -> tuple[int, frozenset[str]]:
    """
    Apply one term to a running total on the abacus.

    Columns are worked most-significant first, as on a physical soroban.

    Args:
        total: Current non-negative value on the abacus
        term: Signed term; subtraction must not go below zero

    Returns:
        Tuple of (new_total, skills_used)

    Raises:
        ValueError: If the result would be negative
    """
    if total + term < 0:
        raise ValueError(f"Cannot subtract {-term} from {total}")

    digits = _digits(total)
    skills: set[str] = set()
    term_digits = _digits(abs(term))
    for col in range(len(term_digits) - 1, -1, -1):
        d = term_digits[col]
        if d == 0:
            continue
        if term > 0:
            _add_digit(digits, col, d, skills)
        else:
            _sub_digit(digits, col, d, skills)

    new_total = sum(digit * 10**i for i, digit in enumerate(digits))
    return new_total, frozenset(skills)


def analyze_problem(terms: list[int]) -> frozenset[str]:
    """All skills exercised by a sequence of terms starting from zero."""
    total = 0
    used: set[str] = set()
    for term in terms:
        total, skills = analyze_term(total, term)
        used |= skills
    return frozenset(used)


def _build_candidate(
    rng: random.Random,
    target_skill_id: str,
    term_count: int,
    allowed: AbstractSet[str],
    numbers: NumberRange,
    allow_subtraction: bool,
) -> tuple[list[int], set[str]] | None:
    total = 0
    terms: list[int] = []
    used: set[str] = set()
    for position in range(term_count):
        signs = (1, -1) if allow_subtraction and position > 0 else (1,)
        options = []
        for magnitude in range(numbers.min, numbers.max + 1):
            for sign in signs:
                term = sign * magnitude
                if not 0 <= total + term <= numbers.max_sum:
                    continue
                new_total, skills = analyze_term(total, term)
                if skills <= allowed:
                    options.append((term, new_total, skills))
        if not options:
            return None
        targeted = [o for o in options if target_skill_id in o[2]]
        pool = targeted if targeted and rng.random() < TARGET_PREFERENCE else options
        term, total, skills = rng.choice(pool)
        terms.append(term)
        used |= skills
    return terms, used


def generate_problem(
    rng: random.Random,
    target_skill_id: str,
    term_count: TermCountBounds,
    allowed_skill_ids: AbstractSet[str],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> GeneratedProblem:
    """
    Generate a problem exercising ``target_skill_id`` using only allowed skills.

    Args:
        rng: Seeded random generator
        target_skill_id: Skill the problem should exercise
        term_count: Inclusive term-count range
        allowed_skill_ids: Skills the learner may be asked to use
        max_attempts: Upper bound on candidate problems built

    Returns:
        GeneratedProblem; ``target_skill_hit`` is False when the search ran out
    """
    allowed = frozenset(allowed_skill_ids) | {target_skill_id}
    numbers = number_range_for(target_skill_id)
    allow_subtraction = any(
        "Sub" in skill_id or skill_id == "advanced.cascadingBorrow" for skill_id in allowed
    )

    fallback: tuple[list[int], set[str]] | None = None
    for _ in range(max(1, max_attempts)):
        n = rng.randint(term_count.min, term_count.max)
        candidate = _build_candidate(rng, target_skill_id, n, allowed, numbers, allow_subtraction)
        if candidate is None:
            continue
        terms, used = candidate
        if target_skill_id in used:
            return GeneratedProblem(
                terms=terms, answer=sum(terms), skills_required=sorted(used), target_skill_hit=True
            )
        fallback = fallback or candidate

    if fallback is None:
        fallback = ([1] * term_count.min, {"basic.directAddition"})
    terms, used = fallback
    logger.debug(f"Target {target_skill_id} not reached in {max_attempts} attempts; using fallback")
    return GeneratedProblem(
        terms=terms, answer=sum(terms), skills_required=sorted(used), target_skill_hit=False
    )
