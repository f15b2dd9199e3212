"""
Term-Count Scaler - map comfort to a problem-length range per part mode.

Formula (independently for min and max):
    bound = round_half_up(floor.bound + (ceiling.bound - floor.bound) * comfort)

Config invariants, checked when a config is written (not when evaluated):
- all three modes present
- every bound an integer >= 2
- min <= max within floor and within ceiling
- floor.min <= ceiling.min and floor.max <= ceiling.max
"""

import json
import logging
import math
from typing import Any

from pydantic import BaseModel, ConfigDict

from curriculum_engine.core.app_exceptions import ConfigValidationError
from curriculum_engine.learning_engine.config import TERM_COUNT_DEFAULTS, TERM_COUNT_MIN_TERMS
from curriculum_engine.learning_engine.constants import PartType
from curriculum_engine.learning_engine.contracts import TermCountBounds

logger = logging.getLogger(__name__)

MIN_TERMS = TERM_COUNT_MIN_TERMS.value


class TermCountLevels(BaseModel):
    model_config = ConfigDict(frozen=True)

    floor: TermCountBounds
    ceiling: TermCountBounds


class TermCountScalingConfig(BaseModel):
    """Per-mode floor/ceiling pairs."""

    model_config = ConfigDict(frozen=True)

    abacus: TermCountLevels
    visualization: TermCountLevels
    linear: TermCountLevels

    def for_mode(self, mode: PartType | str) -> TermCountLevels:
        return getattr(self, PartType(mode).value)


class TermCountExplanation(BaseModel):
    """How a slot's term-count range was derived."""

    model_config = ConfigDict(frozen=True)

    mode: PartType
    comfort: float
    floor: TermCountBounds
    ceiling: TermCountBounds
    computed: TermCountBounds
    override: TermCountBounds | None = None
    final: TermCountBounds


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (5.5 -> 6), unlike banker's round()."""
    return math.floor(value + 0.5)


def validate_term_count_config(raw: Any) -> list[str]:
    """
    Validate a raw (decoded JSON) term-count config.

    Returns:
        List of error messages; empty when valid
    """
    if not isinstance(raw, dict):
        return ["Config must be an object keyed by mode"]

    errors: list[str] = []
    for mode in PartType:
        levels = raw.get(mode.value)
        if not isinstance(levels, dict):
            errors.append(f"{mode.value}: missing")
            continue

        values: dict[str, dict[str, int]] = {}
        for level in ("floor", "ceiling"):
            bounds = levels.get(level)
            if not isinstance(bounds, dict):
                errors.append(f"{mode.value}.{level}: missing")
                continue
            for key in ("min", "max"):
                value = bounds.get(key)
                if isinstance(value, bool) or not isinstance(value, int):
                    errors.append(f"{mode.value}.{level}.{key}: must be an integer")
                elif value < MIN_TERMS:
                    errors.append(f"{mode.value}.{level}.{key}: must be >= {MIN_TERMS}")
                else:
                    values.setdefault(level, {})[key] = value

        for level, bounds in values.items():
            if len(bounds) == 2 and bounds["min"] > bounds["max"]:
                errors.append(f"{mode.value}.{level}: min must be <= max")

        floor, ceiling = values.get("floor", {}), values.get("ceiling", {})
        for key in ("min", "max"):
            if key in floor and key in ceiling and floor[key] > ceiling[key]:
                errors.append(f"{mode.value}: floor.{key} must be <= ceiling.{key}")

    return errors


def build_term_count_config(raw: Any) -> TermCountScalingConfig:
    """
    Build a config for storage, rejecting invalid input.

    Raises:
        ConfigValidationError: If the config violates any invariant
    """
    errors = validate_term_count_config(raw)
    if errors:
        raise ConfigValidationError(errors)
    return TermCountScalingConfig.model_validate(raw)


def default_term_count_config() -> TermCountScalingConfig:
    return TermCountScalingConfig.model_validate(TERM_COUNT_DEFAULTS.value)


def parse_term_count_config(raw_json: str | None) -> TermCountScalingConfig:
    """
    Parse a stored config leniently.

    Missing, malformed or invalid configs fall back to the defaults so that
    planning never fails on a bad stored value.
    """
    if not raw_json:
        return default_term_count_config()
    try:
        raw = json.loads(raw_json)
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid term-count config JSON, using defaults: {e}")
        return default_term_count_config()

    errors = validate_term_count_config(raw)
    if errors:
        logger.warning(f"Invalid term-count config, using defaults: {errors}")
        return default_term_count_config()
    return TermCountScalingConfig.model_validate(raw)


def compute_term_count_range(
    mode: PartType | str,
    comfort: float,
    config: TermCountScalingConfig | None = None,
) -> TermCountBounds:
    """
    Interpolate the term-count range for a mode at a comfort level.

    Args:
        mode: Part mode
        comfort: Comfort in [0, 1] (clamped)
        config: Scaling config (defaults when omitted)

    Returns:
        TermCountBounds with min <= max and both >= 2
    """
    config = config or default_term_count_config()
    levels = config.for_mode(mode)
    c = 0.0 if math.isnan(comfort) else max(0.0, min(1.0, comfort))

    lo = round_half_up(levels.floor.min + (levels.ceiling.min - levels.floor.min) * c)
    hi = round_half_up(levels.floor.max + (levels.ceiling.max - levels.floor.max) * c)

    lo = max(MIN_TERMS, lo)
    hi = max(MIN_TERMS, hi)
    if lo > hi:
        lo = hi
    return TermCountBounds(min=lo, max=hi)


def apply_term_count_override(
    computed: TermCountBounds, override: TermCountBounds | None
) -> TermCountBounds:
    """Apply a teacher/learner override as a ceiling only; it never lengthens problems."""
    if override is None:
        return computed
    final_max = max(MIN_TERMS, min(computed.max, override.max))
    final_min = max(MIN_TERMS, min(computed.min, override.max, final_max))
    return TermCountBounds(min=final_min, max=final_max)


def explain_term_count(
    mode: PartType | str,
    comfort: float,
    config: TermCountScalingConfig | None = None,
    override: TermCountBounds | None = None,
) -> TermCountExplanation:
    """Range for a mode plus the inputs that produced it."""
    config = config or default_term_count_config()
    levels = config.for_mode(mode)
    computed = compute_term_count_range(mode, comfort, config)
    return TermCountExplanation(
        mode=PartType(mode),
        comfort=comfort,
        floor=levels.floor,
        ceiling=levels.ceiling,
        computed=computed,
        override=override,
        final=apply_term_count_override(computed, override),
    )
