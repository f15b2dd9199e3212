"""
Skill-prior table: default BKT parameters per skill.

Priors are static configuration keyed by skill category. Basic bead moves are
easy to pick up (high pInit/pLearn); complement rules take longer; advanced
multi-column carries are hardest. Callers may pass per-skill overrides.
"""

from typing import Mapping

from curriculum_engine.core.app_exceptions import SkillGraphError
from curriculum_engine.learning_engine.bkt.core import BKTParams
from curriculum_engine.learning_engine.config import get_bkt_defaults
from curriculum_engine.learning_engine.skills.catalog import SkillCategory, parse_skill_id

CATEGORY_PRIORS: dict[SkillCategory, BKTParams] = {
    SkillCategory.BASIC: BKTParams(p_init=0.5, p_learn=0.25, p_guess=0.15, p_slip=0.1),
    SkillCategory.FIVE_COMPLEMENTS: BKTParams(p_init=0.3, p_learn=0.15, p_guess=0.1, p_slip=0.1),
    SkillCategory.FIVE_COMPLEMENTS_SUB: BKTParams(p_init=0.3, p_learn=0.15, p_guess=0.1, p_slip=0.1),
    SkillCategory.TEN_COMPLEMENTS: BKTParams(p_init=0.2, p_learn=0.1, p_guess=0.05, p_slip=0.1),
    SkillCategory.TEN_COMPLEMENTS_SUB: BKTParams(p_init=0.2, p_learn=0.1, p_guess=0.05, p_slip=0.1),
    SkillCategory.ADVANCED: BKTParams(p_init=0.1, p_learn=0.08, p_guess=0.05, p_slip=0.15),
}


def get_default_params(
    skill_id: str, overrides: Mapping[str, BKTParams] | None = None
) -> BKTParams:
    """
    Get BKT parameters for a skill.

    Lookup order: explicit override, category prior, global defaults.

    Args:
        skill_id: Skill id (``category.key``)
        overrides: Optional per-skill parameter overrides

    Returns:
        BKTParams for the skill
    """
    if overrides and skill_id in overrides:
        return overrides[skill_id]

    try:
        category, _ = parse_skill_id(skill_id)
    except SkillGraphError:
        # Unregistered categories fall back to the global defaults
        return BKTParams(**get_bkt_defaults())

    if category in CATEGORY_PRIORS:
        return CATEGORY_PRIORS[category]

    return BKTParams(**get_bkt_defaults())
