"""
Adaptive Curriculum Engine Module.

This module contains all curriculum algorithm logic including:
- Mastery tracking (BKT replay over problem history)
- Readiness gates (mastery, volume, speed, consistency)
- Session mode selection (remediation / progression / maintenance)
- Term-count scaling and session plan composition
- Session progress recording

Every function is pure; configuration is threaded explicitly and defaults to
the sourced constants in ``learning_engine.config``.
"""

from curriculum_engine.learning_engine.config import (
    get_bkt_defaults,
    get_bkt_integration_thresholds,
    get_plan_defaults,
    get_readiness_thresholds,
    get_time_estimation_defaults,
)
from curriculum_engine.learning_engine.constants import (
    MasteryClassification,
    ModeType,
    PartType,
    PlanStatus,
    SlotPurpose,
)

__all__ = [
    # Constants
    "MasteryClassification",
    "ModeType",
    "PartType",
    "PlanStatus",
    "SlotPurpose",
    # Config accessors
    "get_bkt_defaults",
    "get_bkt_integration_thresholds",
    "get_plan_defaults",
    "get_readiness_thresholds",
    "get_time_estimation_defaults",
]
