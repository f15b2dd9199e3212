"""
Session mode selection.

Remediation, progression and maintenance are modelled as separate variants of a
discriminated union so a payload can only appear on the variant it belongs to.
"""

from curriculum_engine.learning_engine.session_mode.comfort import ComfortLevel, compute_comfort_level
from curriculum_engine.learning_engine.session_mode.selector import (
    LearnerCurriculumContext,
    select_session_mode,
)
from curriculum_engine.learning_engine.session_mode.types import (
    MaintenanceMode,
    ProgressionMode,
    RemediationMode,
    SessionMode,
    get_weak_skill_ids,
    is_maintenance_mode,
    is_progression_mode,
    is_remediation_mode,
)

__all__ = [
    "ComfortLevel",
    "LearnerCurriculumContext",
    "MaintenanceMode",
    "ProgressionMode",
    "RemediationMode",
    "SessionMode",
    "compute_comfort_level",
    "get_weak_skill_ids",
    "is_maintenance_mode",
    "is_progression_mode",
    "is_remediation_mode",
    "select_session_mode",
]
