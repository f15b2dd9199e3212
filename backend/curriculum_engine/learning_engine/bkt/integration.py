"""
BKT integration helpers: turn raw pKnown into classifications and weights.

Classification bands:
    weak        pKnown <  weak threshold
    developing  weak threshold <= pKnown < strong threshold
    strong      pKnown >= strong threshold

Below the classification confidence a skill is unclassified (None) and must
not drive targeting decisions.
"""

import math
from typing import Mapping

from curriculum_engine.learning_engine.config import (
    BKT_CONFIDENCE_FULL_OPPORTUNITIES,
    BKT_UNCERTAINTY_SCALE,
    get_bkt_integration_thresholds,
)
from curriculum_engine.learning_engine.constants import MasteryClassification


def compute_confidence(
    opportunities: int, full_at: int = BKT_CONFIDENCE_FULL_OPPORTUNITIES.value
) -> float:
    """
    Confidence in a mastery estimate from its sample count.

    Formula:
        confidence = min(1, opportunities / full_at)
    """
    if opportunities <= 0:
        return 0.0
    return min(1.0, opportunities / full_at)


def uncertainty_range(
    p_known: float, confidence: float, scale: float = BKT_UNCERTAINTY_SCALE.value
) -> tuple[float, float]:
    """Plausible interval around pKnown, wider when confidence is low."""
    half_width = scale * (1.0 - max(0.0, min(1.0, confidence)))
    return max(0.0, p_known - half_width), min(1.0, p_known + half_width)


def band_for(p_known: float, thresholds: Mapping[str, float] | None = None) -> MasteryClassification:
    """Classification band ignoring confidence."""
    thresholds = thresholds or get_bkt_integration_thresholds()
    if p_known >= thresholds["strong"]:
        return MasteryClassification.STRONG
    if p_known >= thresholds["weak"]:
        return MasteryClassification.DEVELOPING
    return MasteryClassification.WEAK


def classify_skill(
    p_known: float, confidence: float, thresholds: Mapping[str, float] | None = None
) -> MasteryClassification | None:
    """
    Classify a skill, or return None when the estimate is not yet trustworthy.

    Args:
        p_known: Current mastery estimate
        confidence: Confidence in the estimate
        thresholds: Optional override of get_bkt_integration_thresholds()

    Returns:
        Classification, or None below the confidence threshold
    """
    thresholds = thresholds or get_bkt_integration_thresholds()
    if confidence < thresholds["confidence"]:
        return None
    return band_for(p_known, thresholds)


def should_target_skill(
    p_known: float, confidence: float, thresholds: Mapping[str, float] | None = None
) -> bool:
    """A skill is targeted for extra practice only when confidently weak."""
    return classify_skill(p_known, confidence, thresholds) == MasteryClassification.WEAK


def calculate_bkt_multiplier(p_known: float, thresholds: Mapping[str, float] | None = None) -> float:
    """
    Complexity multiplier for a skill: unknown skills cost more.

    Formula:
        multiplier = clamp(4 - 3 * p^2, min_multiplier, max_multiplier)

    Non-finite input returns the maximum multiplier.
    """
    thresholds = thresholds or get_bkt_integration_thresholds()
    lo, hi = thresholds["min_multiplier"], thresholds["max_multiplier"]
    if not math.isfinite(p_known):
        return hi
    p = max(0.0, min(1.0, p_known))
    return max(lo, min(hi, hi - (hi - lo) * p * p))
