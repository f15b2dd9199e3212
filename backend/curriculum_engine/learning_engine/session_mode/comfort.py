"""
Comfort level - a [0, 1] scalar that scales problem length.

Formula:
    avg       = sum(pKnown_i * confidence_i) / sum(confidence_i)   over practicing skills
    raw       = clamp(avg * modeMultiplier + min(0.15, ln(n + 1) / 20))
    comfort   = clamp(raw + lengthPreferenceShift)

Without usable mastery data the learner starts at the default comfort.
"""

import math
from typing import Mapping, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict

from curriculum_engine.learning_engine.config import (
    COMFORT_DEFAULT,
    COMFORT_LENGTH_PREFERENCE_SHIFT,
    COMFORT_MODE_MULTIPLIERS,
    COMFORT_SKILL_BONUS_DIVISOR,
    COMFORT_SKILL_BONUS_MAX,
)
from curriculum_engine.learning_engine.constants import LengthPreference, ModeType
from curriculum_engine.learning_engine.contracts import MasteryState


class ComfortLevel(BaseModel):
    """Comfort value plus the terms that produced it."""

    model_config = ConfigDict(frozen=True)

    comfort: float
    raw_comfort: float
    avg_mastery: float | None
    mode_multiplier: float
    skill_count_bonus: float
    length_preference: LengthPreference
    adjustment: float
    skill_count: int


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def compute_comfort_level(
    states: Mapping[str, MasteryState],
    practicing_skill_ids: Sequence[str],
    mode_type: ModeType | str,
    length_preference: LengthPreference | str = LengthPreference.RECOMMENDED,
) -> ComfortLevel:
    """
    Compute comfort for a learner in a session mode.

    Args:
        states: Replayed mastery per skill
        practicing_skill_ids: Skills enabled for practice
        mode_type: Session mode type (scales comfort down while remediating/learning)
        length_preference: Learner's problem-length preference

    Returns:
        ComfortLevel with explanation fields
    """
    mode_type = ModeType(mode_type)
    length_preference = LengthPreference(length_preference)
    multiplier = COMFORT_MODE_MULTIPLIERS.value[mode_type.value]
    adjustment = COMFORT_LENGTH_PREFERENCE_SHIFT.value[length_preference.value]

    with_data = [states[s] for s in practicing_skill_ids if s in states]
    weights = np.array([s.confidence for s in with_data], dtype=float)
    n = len(with_data)

    if n == 0 or weights.sum() <= 0:
        raw = COMFORT_DEFAULT.value
        return ComfortLevel(
            comfort=_clamp01(raw + adjustment),
            raw_comfort=raw,
            avg_mastery=None,
            mode_multiplier=multiplier,
            skill_count_bonus=0.0,
            length_preference=length_preference,
            adjustment=adjustment,
            skill_count=n,
        )

    avg = float(np.average([s.p_known for s in with_data], weights=weights))
    bonus = min(COMFORT_SKILL_BONUS_MAX.value, math.log(n + 1) / COMFORT_SKILL_BONUS_DIVISOR.value)
    raw = _clamp01(avg * multiplier + bonus)

    return ComfortLevel(
        comfort=_clamp01(raw + adjustment),
        raw_comfort=raw,
        avg_mastery=avg,
        mode_multiplier=multiplier,
        skill_count_bonus=bonus,
        length_preference=length_preference,
        adjustment=adjustment,
        skill_count=n,
    )
