"""
Skill catalog - typed registry over the abacus skill prerequisite DAG.

Skill ids have the form ``category.key`` (e.g. ``fiveComplements.4=5-1``).
The registry is resolved once from its definitions: unknown prerequisite ids
and cycles are rejected up front, so the rest of the engine works with
validated ``Skill`` references instead of string lookups.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from curriculum_engine.core.app_exceptions import SkillGraphError

logger = logging.getLogger(__name__)


class SkillCategory(str, Enum):
    """Skill families, in curriculum order."""

    BASIC = "basic"
    FIVE_COMPLEMENTS = "fiveComplements"
    TEN_COMPLEMENTS = "tenComplements"
    FIVE_COMPLEMENTS_SUB = "fiveComplementsSub"
    TEN_COMPLEMENTS_SUB = "tenComplementsSub"
    ADVANCED = "advanced"


# Relative cognitive cost of a skill, used when weighting slot skill choice
CATEGORY_COMPLEXITY = {
    SkillCategory.BASIC: 0,
    SkillCategory.FIVE_COMPLEMENTS: 1,
    SkillCategory.FIVE_COMPLEMENTS_SUB: 1,
    SkillCategory.TEN_COMPLEMENTS: 2,
    SkillCategory.TEN_COMPLEMENTS_SUB: 2,
    SkillCategory.ADVANCED: 3,
}
DEFAULT_COMPLEXITY = 1


@dataclass(frozen=True)
class Skill:
    """An immutable, validated skill reference."""

    id: str
    category: SkillCategory
    key: str
    display_name: str
    prerequisites: frozenset[str] = field(default_factory=frozenset)
    order: int = 0

    @property
    def complexity(self) -> int:
        return CATEGORY_COMPLEXITY.get(self.category, DEFAULT_COMPLEXITY)

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class SkillDefinition:
    """Raw skill declaration prior to validation."""

    id: str
    display_name: str
    prerequisites: tuple[str, ...] = ()


def parse_skill_id(skill_id: str) -> tuple[SkillCategory, str]:
    """
    Split a skill id into category and key.

    Raises:
        SkillGraphError: If the id is malformed or the category is unknown
    """
    category, sep, key = skill_id.partition(".")
    if not sep or not key:
        raise SkillGraphError(f"Malformed skill id: {skill_id!r}", {"skill_id": skill_id})
    try:
        return SkillCategory(category), key
    except ValueError:
        raise SkillGraphError(
            f"Unknown skill category {category!r}", {"skill_id": skill_id}
        ) from None


def _default_definitions() -> list[SkillDefinition]:
    basic_add = [
        ("basic.directAddition", "Direct addition"),
        ("basic.heavenBead", "Heaven bead"),
        ("basic.simpleCombinations", "Simple combinations"),
    ]
    basic_sub = [
        ("basic.directSubtraction", "Direct subtraction"),
        ("basic.heavenBeadSubtraction", "Heaven bead subtraction"),
        ("basic.simpleCombinationsSub", "Simple combinations subtraction"),
    ]
    five_add = [f"fiveComplements.{n}=5-{5 - n}" for n in (4, 3, 2, 1)]
    five_sub = [f"fiveComplementsSub.-{n}=-5+{5 - n}" for n in (4, 3, 2, 1)]
    ten_add = [f"tenComplements.{n}=10-{10 - n}" for n in range(9, 0, -1)]
    ten_sub = [f"tenComplementsSub.-{n}=+{10 - n}-10" for n in range(9, 0, -1)]

    defs: list[SkillDefinition] = []
    for skill_id, name in basic_add + basic_sub:
        prereqs = () if skill_id == "basic.directAddition" else ("basic.directAddition",)
        defs.append(SkillDefinition(skill_id, name, prereqs))

    for skill_id in five_add:
        n, rest = skill_id.split(".")[1].split("=")
        defs.append(
            SkillDefinition(
                skill_id,
                f"Add {n} ({rest})",
                ("basic.directAddition", "basic.heavenBead"),
            )
        )
    for skill_id in five_sub:
        n, rest = skill_id.split(".")[1].split("=")
        defs.append(
            SkillDefinition(
                skill_id,
                f"Subtract {n.lstrip('-')} ({rest})",
                ("basic.directSubtraction", "basic.heavenBeadSubtraction"),
            )
        )

    ten_add_prereqs = (
        "basic.directAddition",
        "basic.heavenBead",
        "basic.simpleCombinations",
        *five_add,
    )
    for skill_id in ten_add:
        n, rest = skill_id.split(".")[1].split("=")
        defs.append(SkillDefinition(skill_id, f"Add {n} ({rest})", ten_add_prereqs))

    ten_sub_prereqs = (
        "basic.directSubtraction",
        "basic.heavenBeadSubtraction",
        "basic.simpleCombinationsSub",
        *five_sub,
    )
    for skill_id in ten_sub:
        n, rest = skill_id.split(".")[1].split("=")
        defs.append(
            SkillDefinition(skill_id, f"Subtract {n.lstrip('-')} ({rest})", ten_sub_prereqs)
        )

    defs.append(SkillDefinition("advanced.cascadingCarry", "Cascading carry"))
    defs.append(SkillDefinition("advanced.cascadingBorrow", "Cascading borrow"))
    return defs


DEFAULT_SKILL_DEFINITIONS: tuple[SkillDefinition, ...] = tuple(_default_definitions())


class SkillRegistry:
    """Validated, read-only mapping from skill id to Skill."""

    def __init__(self, skills: dict[str, Skill], order: list[str]):
        self._skills = skills
        self._order = order

    @classmethod
    def from_definitions(cls, definitions: Iterable[SkillDefinition]) -> "SkillRegistry":
        """
        Resolve definitions into a registry.

        Raises:
            SkillGraphError: On duplicate ids, unknown prerequisites, or cycles
        """
        defs: dict[str, SkillDefinition] = {}
        for definition in definitions:
            if definition.id in defs:
                raise SkillGraphError(
                    f"Duplicate skill id {definition.id!r}", {"skill_id": definition.id}
                )
            parse_skill_id(definition.id)
            defs[definition.id] = definition

        for definition in defs.values():
            missing = [p for p in definition.prerequisites if p not in defs]
            if missing:
                raise SkillGraphError(
                    f"Skill {definition.id!r} has unknown prerequisites",
                    {"skill_id": definition.id, "missing": missing},
                )

        order = _topological_order(defs)
        skills = {}
        for position, skill_id in enumerate(order):
            definition = defs[skill_id]
            category, key = parse_skill_id(skill_id)
            skills[skill_id] = Skill(
                id=skill_id,
                category=category,
                key=key,
                display_name=definition.display_name,
                prerequisites=frozenset(definition.prerequisites),
                order=position,
            )

        logger.debug(f"Resolved skill registry with {len(skills)} skills")
        return cls(skills, order)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    def __iter__(self) -> Iterator[Skill]:
        return (self._skills[skill_id] for skill_id in self._order)

    def __len__(self) -> int:
        return len(self._skills)

    def get(self, skill_id: str) -> Skill:
        """
        Look up a skill by id.

        Raises:
            SkillGraphError: If the id is not registered
        """
        try:
            return self._skills[skill_id]
        except KeyError:
            raise SkillGraphError(f"Unknown skill {skill_id!r}", {"skill_id": skill_id}) from None

    def find(self, skill_id: str) -> Skill | None:
        return self._skills.get(skill_id)

    def display_name(self, skill_id: str) -> str:
        skill = self._skills.get(skill_id)
        return skill.display_name if skill else skill_id

    def transitive_prerequisites(self, skill_id: str) -> frozenset[str]:
        """All skills that must be known before ``skill_id``."""
        seen: set[str] = set()
        stack = list(self.get(skill_id).prerequisites)
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._skills[current].prerequisites)
        return frozenset(seen)

    def topological_order(self) -> list[str]:
        return list(self._order)

    def by_category(self, category: SkillCategory) -> list[Skill]:
        return [skill for skill in self if skill.category == category]


def _topological_order(defs: dict[str, SkillDefinition]) -> list[str]:
    """Kahn's algorithm, stable with respect to declaration order."""
    indegree = {skill_id: len(set(d.prerequisites)) for skill_id, d in defs.items()}
    dependents: dict[str, list[str]] = {skill_id: [] for skill_id in defs}
    for skill_id, definition in defs.items():
        for prereq in set(definition.prerequisites):
            dependents[prereq].append(skill_id)

    position = {skill_id: i for i, skill_id in enumerate(defs)}
    ready = sorted((s for s, d in indegree.items() if d == 0), key=position.__getitem__)
    order: list[str] = []
    while ready:
        current = ready.pop(0)
        order.append(current)
        for dependent in dependents[current]:
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                ready.append(dependent)
        ready.sort(key=position.__getitem__)

    if len(order) != len(defs):
        cyclic = sorted(s for s, d in indegree.items() if d > 0)
        raise SkillGraphError("Skill prerequisite graph contains a cycle", {"skills": cyclic})
    return order


@dataclass(frozen=True)
class SkillSet:
    """Immutable selection of enabled skills drawn from a registry."""

    registry: SkillRegistry
    enabled: frozenset[str] = field(default_factory=frozenset)

    def enable(self, skill: Skill | str) -> "SkillSet":
        skill_id = skill.id if isinstance(skill, Skill) else self.registry.get(skill).id
        return SkillSet(self.registry, self.enabled | {skill_id})

    def enable_with_prerequisites(self, skill: Skill | str) -> "SkillSet":
        skill_id = skill.id if isinstance(skill, Skill) else skill
        closure = self.registry.transitive_prerequisites(skill_id) | {skill_id}
        return SkillSet(self.registry, self.enabled | closure)

    def is_enabled(self, skill_id: str) -> bool:
        return skill_id in self.enabled

    def enabled_ids(self) -> list[str]:
        """Enabled skill ids in curriculum order."""
        return [skill.id for skill in self.registry if skill.id in self.enabled]

    def __len__(self) -> int:
        return len(self.enabled)


DEFAULT_REGISTRY = SkillRegistry.from_definitions(DEFAULT_SKILL_DEFINITIONS)


def skill_set_for_target(target: str, registry: SkillRegistry = DEFAULT_REGISTRY) -> SkillSet:
    """Skill set enabling the target skill plus everything it depends on."""
    return SkillSet(registry).enable_with_prerequisites(target)
