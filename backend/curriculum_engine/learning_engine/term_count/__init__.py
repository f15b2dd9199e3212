"""Comfort-driven term-count scaling."""

from curriculum_engine.learning_engine.term_count.scaling import (
    TermCountScalingConfig,
    apply_term_count_override,
    build_term_count_config,
    compute_term_count_range,
    default_term_count_config,
    explain_term_count,
    parse_term_count_config,
    validate_term_count_config,
)

__all__ = [
    "TermCountScalingConfig",
    "apply_term_count_override",
    "build_term_count_config",
    "compute_term_count_range",
    "default_term_count_config",
    "explain_term_count",
    "parse_term_count_config",
    "validate_term_count_config",
]
