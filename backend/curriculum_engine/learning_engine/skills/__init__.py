"""Skill catalog and curriculum phase graph."""

from curriculum_engine.learning_engine.skills.catalog import (
    DEFAULT_REGISTRY,
    Skill,
    SkillCategory,
    SkillDefinition,
    SkillRegistry,
    SkillSet,
    skill_set_for_target,
)
from curriculum_engine.learning_engine.skills.phases import (
    DEFAULT_PHASE_GRAPH,
    CurriculumPhase,
    PhaseGraph,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "DEFAULT_PHASE_GRAPH",
    "CurriculumPhase",
    "PhaseGraph",
    "Skill",
    "SkillCategory",
    "SkillDefinition",
    "SkillRegistry",
    "SkillSet",
    "skill_set_for_target",
]
