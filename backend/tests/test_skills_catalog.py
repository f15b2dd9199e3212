"""Tests for the skill registry and curriculum phase graph."""

import pytest

from curriculum_engine.core.app_exceptions import SkillGraphError
from curriculum_engine.learning_engine.skills.catalog import (
    DEFAULT_REGISTRY,
    SkillCategory,
    SkillDefinition,
    SkillRegistry,
    SkillSet,
    parse_skill_id,
    skill_set_for_target,
)
from curriculum_engine.learning_engine.skills.phases import (
    DEFAULT_PHASE_GRAPH,
    CurriculumPhase,
    PhaseGraph,
)


class TestSkillRegistry:
    """Test registry construction and validation."""

    def test_default_registry_size(self):
        # 6 basic + 4 + 4 five complements + 9 + 9 ten complements + 2 advanced
        assert len(DEFAULT_REGISTRY) == 34

    def test_topological_order_respects_prerequisites(self):
        """Every skill appears after all of its prerequisites."""
        order = DEFAULT_REGISTRY.topological_order()
        position = {skill_id: i for i, skill_id in enumerate(order)}
        for skill in DEFAULT_REGISTRY:
            for prereq in skill.prerequisites:
                assert position[prereq] < position[skill.id]

    def test_curriculum_order(self):
        order = DEFAULT_REGISTRY.topological_order()
        assert order[:3] == ["basic.directAddition", "basic.heavenBead", "basic.simpleCombinations"]
        assert order[6] == "fiveComplements.4=5-1"
        assert order.index("tenComplements.9=10-1") > order.index("fiveComplements.1=5-4")

    def test_duplicate_id_rejected(self):
        defs = [SkillDefinition("basic.directAddition", "A"), SkillDefinition("basic.directAddition", "B")]
        with pytest.raises(SkillGraphError, match="Duplicate"):
            SkillRegistry.from_definitions(defs)

    def test_unknown_prerequisite_rejected(self):
        defs = [SkillDefinition("basic.heavenBead", "Heaven", ("basic.missing",))]
        with pytest.raises(SkillGraphError) as exc_info:
            SkillRegistry.from_definitions(defs)
        assert exc_info.value.details["missing"] == ["basic.missing"]

    def test_cycle_rejected(self):
        defs = [
            SkillDefinition("basic.a", "A", ("basic.b",)),
            SkillDefinition("basic.b", "B", ("basic.a",)),
            SkillDefinition("basic.c", "C"),
        ]
        with pytest.raises(SkillGraphError) as exc_info:
            SkillRegistry.from_definitions(defs)
        assert exc_info.value.details["skills"] == ["basic.a", "basic.b"]

    def test_malformed_id_rejected(self):
        with pytest.raises(SkillGraphError):
            parse_skill_id("noCategory")
        with pytest.raises(SkillGraphError):
            parse_skill_id("juggling.threeBall")

    def test_parse_skill_id(self):
        assert parse_skill_id("tenComplementsSub.-9=+1-10") == (SkillCategory.TEN_COMPLEMENTS_SUB, "-9=+1-10")

    def test_get_unknown_raises_find_returns_none(self):
        with pytest.raises(SkillGraphError):
            DEFAULT_REGISTRY.get("basic.unknown")
        assert DEFAULT_REGISTRY.find("basic.unknown") is None
        assert DEFAULT_REGISTRY.display_name("basic.unknown") == "basic.unknown"

    def test_transitive_prerequisites(self):
        prereqs = DEFAULT_REGISTRY.transitive_prerequisites("tenComplements.9=10-1")
        assert "basic.directAddition" in prereqs
        assert "fiveComplements.4=5-1" in prereqs
        assert "tenComplements.9=10-1" not in prereqs
        assert DEFAULT_REGISTRY.transitive_prerequisites("basic.directAddition") == frozenset()

    def test_complexity_by_category(self):
        assert DEFAULT_REGISTRY.get("basic.heavenBead").complexity == 0
        assert DEFAULT_REGISTRY.get("tenComplements.9=10-1").complexity == 2
        assert len(DEFAULT_REGISTRY.by_category(SkillCategory.ADVANCED)) == 2


class TestSkillSet:
    """Test enabled-skill selections."""

    def test_enable_is_immutable(self):
        empty = SkillSet(DEFAULT_REGISTRY)
        one = empty.enable("basic.heavenBead")
        assert len(empty) == 0
        assert one.is_enabled("basic.heavenBead")

    def test_enable_unknown_raises(self):
        with pytest.raises(SkillGraphError):
            SkillSet(DEFAULT_REGISTRY).enable("basic.unknown")

    def test_target_closure_in_curriculum_order(self):
        skill_set = skill_set_for_target("fiveComplements.3=5-2")
        assert skill_set.enabled_ids() == [
            "basic.directAddition",
            "basic.heavenBead",
            "fiveComplements.3=5-2",
        ]


class TestPhaseGraph:
    """Test the default curriculum path."""

    def test_one_phase_per_skill(self):
        assert len(DEFAULT_PHASE_GRAPH) == len(DEFAULT_REGISTRY)
        assert DEFAULT_PHASE_GRAPH.validate() == []

    def test_basic_phases_have_no_tutorial(self):
        basic = DEFAULT_PHASE_GRAPH.for_skill("basic.directAddition")
        assert basic.tutorial_id is None
        five = DEFAULT_PHASE_GRAPH.for_skill("fiveComplements.4=5-1")
        assert five.tutorial_id == "tutorial.fiveComplements.4=5-1"
        assert five.uses_five_complement is True
        assert five.target_number == 4

    def test_subtraction_phases(self):
        phase = DEFAULT_PHASE_GRAPH.for_skill("tenComplementsSub.-9=+1-10")
        assert phase.operation == "subtraction"
        assert phase.uses_ten_complement is True
        assert DEFAULT_PHASE_GRAPH.for_skill("basic.directSubtraction").operation == "subtraction"

    def test_next_unlearned(self):
        phase = DEFAULT_PHASE_GRAPH.next_unlearned(["basic.directAddition"])
        assert phase.primary_skill_id == "basic.heavenBead"
        assert DEFAULT_PHASE_GRAPH.next_unlearned([]).primary_skill_id == "basic.directAddition"
        assert DEFAULT_PHASE_GRAPH.next_unlearned(DEFAULT_REGISTRY.topological_order()) is None

    def test_validate_reports_unknown_skills(self):
        graph = PhaseGraph(
            [
                CurriculumPhase(
                    id="L9.add.x",
                    level_id=9,
                    operation="addition",
                    name="X",
                    description="X",
                    primary_skill_id="basic.unknown",
                    order=0,
                    prerequisite_skill_ids=("basic.missing",),
                )
            ]
        )
        errors = graph.validate()
        assert len(errors) == 2
        assert graph.get("L9.add.x") is not None
