"""Curriculum phase graph: the ordered path a learner walks through the skills."""

import logging
from typing import Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field

from curriculum_engine.core.app_exceptions import SkillGraphError
from curriculum_engine.learning_engine.skills.catalog import (
    DEFAULT_REGISTRY,
    SkillCategory,
    SkillRegistry,
)

logger = logging.getLogger(__name__)


class CurriculumPhase(BaseModel):
    """One step on the curriculum path, introducing a primary skill."""

    model_config = ConfigDict(frozen=True)

    id: str
    level_id: int
    operation: Literal["addition", "subtraction"]
    target_number: int | None = None
    uses_five_complement: bool = False
    uses_ten_complement: bool = False
    name: str
    description: str
    primary_skill_id: str
    order: int
    prerequisite_skill_ids: tuple[str, ...] = Field(default=())
    tutorial_id: str | None = None


class PhaseGraph:
    """Read-only ordered phase list with prerequisite edges."""

    def __init__(self, phases: Iterable[CurriculumPhase]):
        self._phases = sorted(phases, key=lambda p: p.order)
        self._by_id = {phase.id: phase for phase in self._phases}
        self._by_skill = {phase.primary_skill_id: phase for phase in self._phases}

    def __iter__(self):
        return iter(self._phases)

    def __len__(self) -> int:
        return len(self._phases)

    def get(self, phase_id: str) -> CurriculumPhase | None:
        return self._by_id.get(phase_id)

    def for_skill(self, skill_id: str) -> CurriculumPhase | None:
        return self._by_skill.get(skill_id)

    def next_unlearned(self, learned_skill_ids: Iterable[str]) -> CurriculumPhase | None:
        """First phase, in order, whose primary skill is not yet being practiced."""
        learned = set(learned_skill_ids)
        for phase in self._phases:
            if phase.primary_skill_id not in learned:
                return phase
        return None

    def validate(self, registry: SkillRegistry = DEFAULT_REGISTRY) -> list[str]:
        """Return a list of problems with this graph (empty when valid)."""
        errors = []
        if len(self._by_id) != len(self._phases):
            errors.append("Duplicate phase ids")
        for phase in self._phases:
            if phase.primary_skill_id not in registry:
                errors.append(f"Phase {phase.id} references unknown skill {phase.primary_skill_id}")
            for prereq in phase.prerequisite_skill_ids:
                if prereq not in registry:
                    errors.append(f"Phase {phase.id} has unknown prerequisite {prereq}")
        return errors


def build_default_phase_graph(registry: SkillRegistry = DEFAULT_REGISTRY) -> PhaseGraph:
    """
    One phase per registered skill, in registry topological order.

    Level 1 covers basic and five-complement skills, level 2 ten complements,
    level 3 advanced skills. Prerequisites come from the skill DAG.

    Raises:
        SkillGraphError: If the derived graph is inconsistent with the registry
    """
    levels = {
        SkillCategory.BASIC: 1,
        SkillCategory.FIVE_COMPLEMENTS: 1,
        SkillCategory.FIVE_COMPLEMENTS_SUB: 1,
        SkillCategory.TEN_COMPLEMENTS: 2,
        SkillCategory.TEN_COMPLEMENTS_SUB: 2,
        SkillCategory.ADVANCED: 3,
    }
    phases = []
    for skill in registry:
        subtraction = skill.category in (
            SkillCategory.FIVE_COMPLEMENTS_SUB,
            SkillCategory.TEN_COMPLEMENTS_SUB,
        ) or "Sub" in skill.key or skill.key.endswith("Borrow")
        operation = "subtraction" if subtraction else "addition"
        target = None
        if "=" in skill.key:
            target = abs(int(skill.key.split("=")[0]))
        five = skill.category in (SkillCategory.FIVE_COMPLEMENTS, SkillCategory.FIVE_COMPLEMENTS_SUB)
        ten = skill.category in (SkillCategory.TEN_COMPLEMENTS, SkillCategory.TEN_COMPLEMENTS_SUB)
        technique = "five" if five else "ten" if ten else skill.category.value
        sign = "-" if subtraction else "+"
        suffix = f"{sign}{target}" if target is not None else skill.key
        level = levels[skill.category]
        phases.append(
            CurriculumPhase(
                id=f"L{level}.{operation[:3]}.{suffix}.{technique}",
                level_id=level,
                operation=operation,
                target_number=target,
                uses_five_complement=five,
                uses_ten_complement=ten,
                name=skill.display_name,
                description=f"{skill.display_name} on the abacus",
                primary_skill_id=skill.id,
                order=skill.order,
                prerequisite_skill_ids=tuple(sorted(skill.prerequisites)),
                tutorial_id=None if skill.category == SkillCategory.BASIC else f"tutorial.{skill.id}",
            )
        )

    graph = PhaseGraph(phases)
    errors = graph.validate(registry)
    if errors:
        raise SkillGraphError("Invalid default phase graph", {"errors": errors})
    return graph


DEFAULT_PHASE_GRAPH = build_default_phase_graph()
