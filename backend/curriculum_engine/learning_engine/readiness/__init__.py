"""Skill readiness gates (mastery, volume, speed, consistency)."""

from curriculum_engine.learning_engine.readiness.core import (
    AggregateReadiness,
    ReadinessResult,
    ReadinessThresholds,
    aggregate_readiness,
    evaluate,
    evaluate_skills,
)

__all__ = [
    "AggregateReadiness",
    "ReadinessResult",
    "ReadinessThresholds",
    "aggregate_readiness",
    "evaluate",
    "evaluate_skills",
]
