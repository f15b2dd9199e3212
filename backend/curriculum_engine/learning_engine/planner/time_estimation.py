"""
Time estimation for session planning.

Formula:
    seconds_per_problem = terms * secondsPerTerm * partMultiplier + overhead

A learner's seconds-per-term is measured from recent results (zero times
dropped, Tukey-fence outliers removed when enough samples exist) and clamped
to a sane range.
"""

import math
from typing import Any, Mapping, Sequence

import numpy as np

from curriculum_engine.learning_engine.config import get_time_estimation_defaults
from curriculum_engine.learning_engine.constants import PartType

TIME_ESTIMATION_DEFAULTS = get_time_estimation_defaults()


def _part_multiplier(part_type: PartType | str | None, defaults: Mapping[str, Any]) -> float:
    if part_type is None:
        return 1.0
    return defaults["part_multipliers"].get(PartType(part_type).value, 1.0)


def calculate_seconds_per_term(
    results: Sequence[Any],
    min_results: int | None = None,
    exclude_outliers: bool = True,
    defaults: Mapping[str, Any] = TIME_ESTIMATION_DEFAULTS,
) -> float | None:
    """
    Measure a learner's average seconds per term from slot results.

    Args:
        results: Objects with ``response_time_ms`` and ``problem.terms``
        min_results: Minimum valid results required (default from config)
        exclude_outliers: Drop values outside 1.5 IQR when enough samples exist
        defaults: Time estimation defaults

    Returns:
        Clamped seconds per term, or None with insufficient data
    """
    min_results = defaults["min_results"] if min_results is None else min_results
    samples = [
        (r.response_time_ms / 1000.0) / len(r.problem.terms)
        for r in results
        if r.response_time_ms and r.response_time_ms > 0 and r.problem.terms
    ]
    if len(samples) < min_results:
        return None

    values = np.array(samples, dtype=float)
    if exclude_outliers and len(values) >= defaults["outlier_min_samples"]:
        q1, q3 = np.percentile(values, [25, 75])
        iqr = q3 - q1
        kept = values[(values >= q1 - 1.5 * iqr) & (values <= q3 + 1.5 * iqr)]
        if len(kept) > 0:
            values = kept

    spt = float(values.mean())
    return max(defaults["min_seconds_per_term"], min(defaults["max_seconds_per_term"], spt))


def estimate_problem_time_seconds(
    term_count: float,
    seconds_per_term: float | None = None,
    part_type: PartType | str | None = None,
    defaults: Mapping[str, Any] = TIME_ESTIMATION_DEFAULTS,
) -> float:
    """Expected seconds to answer a problem with ``term_count`` terms."""
    spt = defaults["default_seconds_per_term"] if seconds_per_term is None else seconds_per_term
    return term_count * spt * _part_multiplier(part_type, defaults) + defaults["overhead_seconds"]


def estimate_problem_time_ms(
    terms: Sequence[int],
    seconds_per_term: float | None = None,
    part_type: PartType | str | None = None,
) -> float:
    return estimate_problem_time_seconds(len(terms), seconds_per_term, part_type) * 1000.0


def estimate_session_problem_count(
    duration_minutes: float,
    avg_terms: float = 3,
    seconds_per_term: float | None = None,
    part_type: PartType | str | None = None,
    defaults: Mapping[str, Any] = TIME_ESTIMATION_DEFAULTS,
) -> int:
    """Problems that fit in a duration, never fewer than the per-part minimum."""
    per_problem = estimate_problem_time_seconds(avg_terms, seconds_per_term, part_type, defaults)
    count = math.floor(duration_minutes * 60 / per_problem) if per_problem > 0 else 0
    return max(defaults["min_problems_per_part"], count)


def estimate_session_duration_minutes(
    problem_count: int,
    avg_terms: float = 3,
    seconds_per_term: float | None = None,
    part_type: PartType | str | None = None,
) -> float:
    """Inverse of estimate_session_problem_count."""
    return problem_count * estimate_problem_time_seconds(avg_terms, seconds_per_term, part_type) / 60
