"""
Learning Engine Configuration - Central Constants Registry.

All constants used by curriculum algorithms MUST be defined here with proper provenance.
No magic numbers allowed in algorithm implementations.

Each constant includes:
- value: The actual constant value
- source: Citation (paper, product calibration, classroom observation, etc.)
- notes: Rationale and context
- validated: Whether the value has been validated against source
"""

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SourcedValue:
    """
    A constant value with documented provenance.

    All curriculum algorithm constants must use this type to enforce documentation.
    """

    value: Any
    source: str
    notes: str = ""
    validated: bool = False

    def __post_init__(self):
        if not self.source or self.source.strip() == "":
            raise ValueError(f"SourcedValue must have non-empty source. Got: {self.source}")


# =============================================================================
# BKT (Bayesian Knowledge Tracing) Constants
# =============================================================================

# Numerical stability: denominators below this are treated as zero
BKT_EPSILON = SourcedValue(
    value=1e-10,
    source="Numerical stability guard",
    notes="Posterior updates with P(obs) below epsilon return the prior unchanged.",
    validated=True,
)

BKT_MIN_PROB = SourcedValue(
    value=0.0,
    source="Probability axioms",
    notes="pKnown may legitimately reach 0 (never-practiced skill with zero prior).",
    validated=True,
)

BKT_MAX_PROB = SourcedValue(
    value=1.0,
    source="Probability axioms",
    validated=True,
)

# Generic defaults used when a skill has no category-specific prior
BKT_DEFAULT_P_INIT = SourcedValue(
    value=0.3,
    source="Abacus curriculum calibration (seed-student simulation)",
    notes="Prior mastery before any observed attempt.",
)

BKT_DEFAULT_P_LEARN = SourcedValue(
    value=0.1,
    source="Corbett & Anderson (1995) typical range 0.05-0.2",
    notes="Applied only after a correct answer.",
)

BKT_DEFAULT_P_SLIP = SourcedValue(
    value=0.1,
    source="Corbett & Anderson (1995) typical range 0.05-0.15",
)

BKT_DEFAULT_P_GUESS = SourcedValue(
    value=0.15,
    source="Free-response arithmetic: guessing the exact sum is unlikely",
    notes="Lower than the 0.25 MCQ default because answers are typed numbers.",
)

# Parameter validation bounds (exclusive)
BKT_PARAM_MIN = SourcedValue(
    value=0.0,
    source="BKT identifiability constraints (Baker et al. 2008)",
)

BKT_PARAM_MAX = SourcedValue(
    value=1.0,
    source="BKT identifiability constraints (Baker et al. 2008)",
)

BKT_SLIP_SOFT_MAX = SourcedValue(
    value=0.3,
    source="Baker et al. (2008) degeneracy analysis",
    notes="Slip above 0.3 makes 'known' indistinguishable from 'unknown'.",
)

BKT_GUESS_SOFT_MAX = SourcedValue(
    value=0.3,
    source="Baker et al. (2008) degeneracy analysis",
)

BKT_DEGENERACY_MIN_GAP = SourcedValue(
    value=0.1,
    source="Baker et al. (2008) degeneracy analysis",
    notes="(1 - slip) - guess must exceed this gap.",
)

# Confidence grows linearly with opportunities until this count
BKT_CONFIDENCE_FULL_OPPORTUNITIES = SourcedValue(
    value=25,
    source="Product heuristic: ~5 sessions of 5 attempts per skill",
    notes="confidence = min(1, opportunities / 25). 10 opportunities -> 0.4.",
)

BKT_UNCERTAINTY_SCALE = SourcedValue(
    value=0.5,
    source="Product heuristic for mastery bars",
    notes="Uncertainty half-width = 0.5 * (1 - confidence).",
)

# =============================================================================
# BKT Integration (classification + slot weighting)
# =============================================================================

BKT_STRONG_THRESHOLD = SourcedValue(
    value=0.8,
    source="Abacus curriculum calibration",
    notes="pKnown at or above this classifies the skill as strong.",
)

BKT_WEAK_THRESHOLD = SourcedValue(
    value=0.5,
    source="Abacus curriculum calibration",
    notes="pKnown below this classifies the skill as weak.",
)

BKT_CLASSIFICATION_CONFIDENCE = SourcedValue(
    value=0.3,
    source="Abacus curriculum calibration",
    notes="Below this confidence the classification is provisional (None).",
)

BKT_MULTIPLIER_MIN = SourcedValue(
    value=1.0,
    source="Slot complexity weighting",
    notes="Multiplier for a fully mastered skill.",
)

BKT_MULTIPLIER_MAX = SourcedValue(
    value=4.0,
    source="Slot complexity weighting",
    notes="Multiplier for an unknown skill; multiplier = 4 - 3 * p^2.",
)

BKT_SESSION_HISTORY_DEPTH = SourcedValue(
    value=50,
    source="Product heuristic",
    notes="Number of recent sessions a caller should load when replaying history.",
)

# =============================================================================
# Readiness Constants
# =============================================================================

READINESS_MIN_OPPORTUNITIES = SourcedValue(
    value=20,
    source="Classroom observation: fluency needs ~20 reps",
)

READINESS_MIN_SESSIONS = SourcedValue(
    value=3,
    source="Spacing effect (Cepeda et al. 2006): practice across sessions",
)

READINESS_P_KNOWN_THRESHOLD = SourcedValue(
    value=0.85,
    source="Abacus curriculum calibration",
)

READINESS_CONFIDENCE_THRESHOLD = SourcedValue(
    value=0.5,
    source="Abacus curriculum calibration",
)

READINESS_MAX_MEDIAN_SECONDS_PER_TERM = SourcedValue(
    value=4.0,
    source="Soroban fluency norms for single-digit terms",
)

READINESS_SPEED_WINDOW_SIZE = SourcedValue(
    value=10,
    source="Product heuristic",
    notes="Median is taken over the most recent timed attempts.",
)

READINESS_NO_HELP_IN_LAST_N = SourcedValue(
    value=5,
    source="Product heuristic",
)

READINESS_ACCURACY_WINDOW_SIZE = SourcedValue(
    value=15,
    source="Product heuristic",
    notes="A full window is required before consistency can be met.",
)

READINESS_MIN_ACCURACY = SourcedValue(
    value=0.85,
    source="Abacus curriculum calibration",
)

READINESS_LAST_N_ALL_CORRECT = SourcedValue(
    value=5,
    source="Product heuristic",
)

# =============================================================================
# Session Mode Constants
# =============================================================================

MODE_MAX_WEAK_SKILLS = SourcedValue(
    value=3,
    source="Product design: remediation targets at most three skills",
)

MODE_REMEDIATION_SEVERITY_FLOOR = SourcedValue(
    value=0.5,
    source="Matches BKT weak threshold",
    notes="A not-solid practicing skill below this pKnown triggers remediation.",
)

MODE_MAX_TUTORIAL_SKIPS = SourcedValue(
    value=3,
    source="Product design",
    notes="After this many deferrals the tutorial can no longer be skipped.",
)

# =============================================================================
# Comfort Level Constants
# =============================================================================

COMFORT_DEFAULT = SourcedValue(
    value=0.3,
    source="Product heuristic for learners without mastery data",
)

COMFORT_MODE_MULTIPLIERS = SourcedValue(
    value={"remediation": 0.6, "progression": 0.85, "maintenance": 1.0},
    source="Product design: shorter problems while remediating or learning",
)

COMFORT_SKILL_BONUS_MAX = SourcedValue(
    value=0.15,
    source="Product heuristic",
    notes="bonus = min(0.15, ln(n + 1) / 20)",
)

COMFORT_SKILL_BONUS_DIVISOR = SourcedValue(
    value=20.0,
    source="Product heuristic",
)

COMFORT_LENGTH_PREFERENCE_SHIFT = SourcedValue(
    value={"shorter": -0.3, "recommended": 0.0, "longer": 0.2},
    source="Learner settings UI",
)

# =============================================================================
# Term-Count Scaling Constants
# =============================================================================

TERM_COUNT_MIN_TERMS = SourcedValue(
    value=2,
    source="A problem needs at least two terms",
)

TERM_COUNT_DEFAULTS = SourcedValue(
    value={
        "abacus": {"floor": {"min": 2, "max": 3}, "ceiling": {"min": 4, "max": 8}},
        "visualization": {"floor": {"min": 2, "max": 2}, "ceiling": {"min": 4, "max": 8}},
        "linear": {"floor": {"min": 2, "max": 2}, "ceiling": {"min": 4, "max": 8}},
    },
    source="Abacus curriculum calibration",
)

# =============================================================================
# Time Estimation Constants
# =============================================================================

TIME_DEFAULT_SECONDS_PER_TERM = SourcedValue(
    value=8.0,
    source="Observed median for early learners",
)

TIME_MIN_SECONDS_PER_TERM = SourcedValue(value=3.0, source="Observed fastest sustainable pace")

TIME_MAX_SECONDS_PER_TERM = SourcedValue(value=30.0, source="Observed slowest engaged pace")

TIME_OVERHEAD_SECONDS = SourcedValue(
    value=2.0,
    source="Observed answer-entry overhead",
)

TIME_PART_MULTIPLIERS = SourcedValue(
    value={"abacus": 1.0, "visualization": 1.25, "linear": 0.8},
    source="Observed: mental visualization slower, linear format faster",
)

TIME_MIN_RESULTS = SourcedValue(
    value=5,
    source="Product heuristic",
    notes="Fewer valid timed results than this yields no learner-specific estimate.",
)

TIME_OUTLIER_MIN_SAMPLES = SourcedValue(
    value=10,
    source="Tukey fences need a minimally populated sample",
)

TIME_MIN_PROBLEMS_PER_PART = SourcedValue(value=2, source="Product design")

# =============================================================================
# Plan Composition Constants
# =============================================================================

PLAN_PURPOSE_WEIGHTS = SourcedValue(
    value={"focus": 0.6, "reinforce": 0.2, "review": 0.15, "challenge": 0.05},
    source="Curriculum design",
    notes="Focus dominates; challenge receives the remainder.",
)

PLAN_PART_WEIGHTS = SourcedValue(
    value={"abacus": 0.5, "visualization": 0.3, "linear": 0.2},
    source="Curriculum design: new skills are built on the physical abacus",
)

PLAN_CHALLENGE_RATIO_BY_PART = SourcedValue(
    value={"abacus": 0.25, "visualization": 0.15, "linear": 0.2},
    source="Curriculum design",
    notes="Caps the fraction of challenge slots per part.",
)

PLAN_MAX_RETRY_EPOCHS = SourcedValue(
    value=2,
    source="Product design",
    notes="Incorrect answers are retried at most twice; retry weight = 1 / 2^epoch.",
)

PLAN_REVIEW_AGE_DAYS = SourcedValue(
    value=7,
    source="Spacing effect heuristic",
    notes="Mastered skills not practiced for this many days are preferred for review.",
)

PLAN_CHALLENGE_COMFORT_BOOST = SourcedValue(
    value=0.2,
    source="Product design: challenge slots stretch problem length",
    notes="Added to comfort (capped at 1) before scaling challenge-slot term counts.",
)

# Session health thresholds
HEALTH_STRUGGLING_ACCURACY = SourcedValue(value=0.6, source="Product heuristic")
HEALTH_WARNING_ACCURACY = SourcedValue(value=0.8, source="Product heuristic")
HEALTH_STRUGGLING_PACE = SourcedValue(value=70, source="Product heuristic", notes="Percent of expected pace.")
HEALTH_WARNING_PACE = SourcedValue(value=90, source="Product heuristic")
HEALTH_STRUGGLING_STREAK = SourcedValue(value=-3, source="Product heuristic")
HEALTH_WARNING_STREAK = SourcedValue(value=-2, source="Product heuristic")

# =============================================================================
# Sequence Design (synthetic histories)
# =============================================================================

SIMULATION_CORRECT_RATIOS = SourcedValue(
    value=[0.35, 0.4, 0.45, 0.5, 0.55, 0.6, 0.65, 0.7],
    source="Empirical tuning against default priors",
)

SIMULATION_STRONG_INCORRECT_FRACTION = SourcedValue(value=0.15, source="Empirical tuning")
SIMULATION_WEAK_CORRECT_FRACTION = SourcedValue(value=0.1, source="Empirical tuning")


def _check_probability(name: str, value: float, errors: list[str]) -> None:
    if not (0.0 <= value <= 1.0) or math.isnan(value):
        errors.append(f"{name} must be in [0, 1], got {value}")


def validate_all_constants():
    """
    Validate all constants at import time.

    Raises ValueError if any constant is invalid.
    """
    errors: list[str] = []

    for name in (
        "BKT_DEFAULT_P_INIT",
        "BKT_DEFAULT_P_LEARN",
        "BKT_DEFAULT_P_SLIP",
        "BKT_DEFAULT_P_GUESS",
        "BKT_STRONG_THRESHOLD",
        "BKT_WEAK_THRESHOLD",
        "BKT_CLASSIFICATION_CONFIDENCE",
        "READINESS_P_KNOWN_THRESHOLD",
        "READINESS_CONFIDENCE_THRESHOLD",
        "READINESS_MIN_ACCURACY",
        "COMFORT_DEFAULT",
        "MODE_REMEDIATION_SEVERITY_FLOOR",
    ):
        _check_probability(name, globals()[name].value, errors)

    if BKT_MIN_PROB.value >= BKT_MAX_PROB.value:
        errors.append("BKT_MIN_PROB must be < BKT_MAX_PROB")

    if BKT_WEAK_THRESHOLD.value >= BKT_STRONG_THRESHOLD.value:
        errors.append("BKT_WEAK_THRESHOLD must be < BKT_STRONG_THRESHOLD")

    if BKT_MULTIPLIER_MIN.value > BKT_MULTIPLIER_MAX.value:
        errors.append("BKT_MULTIPLIER_MIN must be <= BKT_MULTIPLIER_MAX")

    for name in (
        "BKT_CONFIDENCE_FULL_OPPORTUNITIES",
        "READINESS_SPEED_WINDOW_SIZE",
        "READINESS_ACCURACY_WINDOW_SIZE",
        "READINESS_NO_HELP_IN_LAST_N",
        "READINESS_LAST_N_ALL_CORRECT",
        "TIME_MIN_RESULTS",
    ):
        if globals()[name].value <= 0:
            errors.append(f"{name} must be positive")

    if READINESS_LAST_N_ALL_CORRECT.value > READINESS_ACCURACY_WINDOW_SIZE.value:
        errors.append("READINESS_LAST_N_ALL_CORRECT must fit inside the accuracy window")

    if TIME_MIN_SECONDS_PER_TERM.value > TIME_MAX_SECONDS_PER_TERM.value:
        errors.append("TIME_MIN_SECONDS_PER_TERM must be <= TIME_MAX_SECONDS_PER_TERM")

    for name in ("PLAN_PURPOSE_WEIGHTS", "PLAN_PART_WEIGHTS"):
        weights = globals()[name].value
        if any(w < 0 for w in weights.values()) or sum(weights.values()) <= 0:
            errors.append(f"{name} must be non-negative with a positive total")

    for part, ratio in PLAN_CHALLENGE_RATIO_BY_PART.value.items():
        if not (0.0 < ratio < 1.0):
            errors.append(f"PLAN_CHALLENGE_RATIO_BY_PART[{part}] must be in (0, 1)")

    min_terms = TERM_COUNT_MIN_TERMS.value
    for mode, levels in TERM_COUNT_DEFAULTS.value.items():
        floor, ceiling = levels["floor"], levels["ceiling"]
        if min(floor["min"], floor["max"], ceiling["min"], ceiling["max"]) < min_terms:
            errors.append(f"TERM_COUNT_DEFAULTS[{mode}] bounds must be >= {min_terms}")
        if floor["min"] > floor["max"] or ceiling["min"] > ceiling["max"]:
            errors.append(f"TERM_COUNT_DEFAULTS[{mode}] min must be <= max")
        if floor["min"] > ceiling["min"] or floor["max"] > ceiling["max"]:
            errors.append(f"TERM_COUNT_DEFAULTS[{mode}] floor must not exceed ceiling")

    if errors:
        raise ValueError("Constant validation failed:\n" + "\n".join(f"  - {e}" for e in errors))


# Run validation on import
validate_all_constants()


# =============================================================================
# Convenience Accessors
# =============================================================================


def get_bkt_defaults() -> dict:
    """Get default BKT parameters as dict."""
    return {
        "p_init": BKT_DEFAULT_P_INIT.value,
        "p_learn": BKT_DEFAULT_P_LEARN.value,
        "p_guess": BKT_DEFAULT_P_GUESS.value,
        "p_slip": BKT_DEFAULT_P_SLIP.value,
    }


def get_bkt_integration_thresholds() -> dict:
    """Get classification and multiplier thresholds."""
    return {
        "strong": BKT_STRONG_THRESHOLD.value,
        "weak": BKT_WEAK_THRESHOLD.value,
        "confidence": BKT_CLASSIFICATION_CONFIDENCE.value,
        "min_multiplier": BKT_MULTIPLIER_MIN.value,
        "max_multiplier": BKT_MULTIPLIER_MAX.value,
        "session_history_depth": BKT_SESSION_HISTORY_DEPTH.value,
    }


def get_readiness_thresholds() -> dict:
    """Get readiness gate thresholds."""
    return {
        "min_opportunities": READINESS_MIN_OPPORTUNITIES.value,
        "min_sessions": READINESS_MIN_SESSIONS.value,
        "p_known_threshold": READINESS_P_KNOWN_THRESHOLD.value,
        "confidence_threshold": READINESS_CONFIDENCE_THRESHOLD.value,
        "max_median_seconds_per_term": READINESS_MAX_MEDIAN_SECONDS_PER_TERM.value,
        "speed_window_size": READINESS_SPEED_WINDOW_SIZE.value,
        "no_help_in_last_n": READINESS_NO_HELP_IN_LAST_N.value,
        "accuracy_window_size": READINESS_ACCURACY_WINDOW_SIZE.value,
        "min_accuracy": READINESS_MIN_ACCURACY.value,
        "last_n_all_correct": READINESS_LAST_N_ALL_CORRECT.value,
    }


def get_time_estimation_defaults() -> dict:
    """Get time estimation defaults."""
    return {
        "default_seconds_per_term": TIME_DEFAULT_SECONDS_PER_TERM.value,
        "min_seconds_per_term": TIME_MIN_SECONDS_PER_TERM.value,
        "max_seconds_per_term": TIME_MAX_SECONDS_PER_TERM.value,
        "overhead_seconds": TIME_OVERHEAD_SECONDS.value,
        "part_multipliers": dict(TIME_PART_MULTIPLIERS.value),
        "min_results": TIME_MIN_RESULTS.value,
        "outlier_min_samples": TIME_OUTLIER_MIN_SAMPLES.value,
        "min_problems_per_part": TIME_MIN_PROBLEMS_PER_PART.value,
    }


def get_plan_defaults() -> dict:
    """Get plan composition defaults."""
    return {
        "purpose_weights": dict(PLAN_PURPOSE_WEIGHTS.value),
        "part_weights": dict(PLAN_PART_WEIGHTS.value),
        "challenge_ratio_by_part": dict(PLAN_CHALLENGE_RATIO_BY_PART.value),
        "max_retry_epochs": PLAN_MAX_RETRY_EPOCHS.value,
        "review_age_days": PLAN_REVIEW_AGE_DAYS.value,
    }
