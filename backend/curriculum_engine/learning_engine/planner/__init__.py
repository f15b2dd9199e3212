"""
Session planning.

Composes time-boxed plans from mastery, session mode and comfort, and
estimates how long problems take.
"""

from curriculum_engine.learning_engine.planner.composer import (
    ComposeRequest,
    compose,
    create_deterministic_seed,
    create_seeded_rng,
)
from curriculum_engine.learning_engine.planner.problems import analyze_problem, analyze_term, generate_problem
from curriculum_engine.learning_engine.planner.time_estimation import (
    calculate_seconds_per_term,
    estimate_problem_time_ms,
    estimate_problem_time_seconds,
    estimate_session_duration_minutes,
    estimate_session_problem_count,
)

__all__ = [
    "ComposeRequest",
    "analyze_problem",
    "analyze_term",
    "calculate_seconds_per_term",
    "compose",
    "create_deterministic_seed",
    "create_seeded_rng",
    "estimate_problem_time_ms",
    "estimate_problem_time_seconds",
    "estimate_session_duration_minutes",
    "estimate_session_problem_count",
    "generate_problem",
]
