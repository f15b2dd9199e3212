"""Tests for session plan composition."""

from datetime import timedelta

import pytest

from curriculum_engine.core.app_exceptions import ActiveSessionExistsError, NoSkillsEnabledError
from curriculum_engine.learning_engine.constants import (
    PART_ORDER,
    PartType,
    PlanStatus,
    ProblemFormat,
    SlotPurpose,
)
from curriculum_engine.learning_engine.contracts import SkillProgressInfo, TermCountBounds
from curriculum_engine.learning_engine.planner.composer import (
    ComposeRequest,
    allocate_counts,
    compose,
    create_deterministic_seed,
    create_seeded_rng,
    normalize_weights,
)
from curriculum_engine.learning_engine.planner.problems import analyze_problem
from curriculum_engine.learning_engine.session_mode.types import (
    MaintenanceMode,
    ProgressionMode,
    RemediationMode,
)
from curriculum_engine.learning_engine.skills.catalog import DEFAULT_REGISTRY
from curriculum_engine.learning_engine.skills.phases import DEFAULT_PHASE_GRAPH
from curriculum_engine.schemas.session_plan import GameBreakSettings, SessionPlan
from tests.helpers.factories import make_state

ADD = "basic.directAddition"
HEAVEN = "basic.heavenBead"
SIMPLE = "basic.simpleCombinations"


def _request(now, **overrides) -> ComposeRequest:
    values = dict(
        learner_id="learner-1",
        duration_minutes=10,
        enabled_skill_ids=[ADD, HEAVEN],
        session_mode=MaintenanceMode(skill_count=2),
        states={ADD: make_state(ADD, 0.9), HEAVEN: make_state(HEAVEN, 0.6)},
        seed="abc123",
        now=now,
    )
    values.update(overrides)
    return ComposeRequest(**values)


def _progression_to(skill_id: str) -> ProgressionMode:
    return ProgressionMode(
        next_skill=SkillProgressInfo(skill_id=skill_id, display_name=DEFAULT_REGISTRY.display_name(skill_id)),
        phase=DEFAULT_PHASE_GRAPH.for_skill(skill_id),
        tutorial_required=False,
        focus_description="Learning",
        can_skip_tutorial=True,
    )


def _all_slots(plan: SessionPlan):
    return [slot for part in plan.parts for slot in part.slots]


class TestComposeStructure:
    """Test parts, slot counts and formats."""

    def test_default_parts(self, now):
        """Ten minutes at comfort 0.3 splits 5/3/2 minutes across the three parts."""
        plan = compose(_request(now))
        assert plan.status == PlanStatus.DRAFT
        assert [p.type for p in plan.parts] == list(PART_ORDER)
        assert [p.part_number for p in plan.parts] == [1, 2, 3]
        # abacus 300 s / 34 s, visualization 180 s / 37 s, linear 120 s / 24.4 s
        assert [len(p.slots) for p in plan.parts] == [8, 4, 4]
        assert plan.estimated_problem_count == 16

    def test_part_formats(self, now):
        abacus, visualization, linear = compose(_request(now)).parts
        assert (abacus.format, abacus.use_abacus) == (ProblemFormat.VERTICAL, True)
        assert (visualization.format, visualization.use_abacus) == (ProblemFormat.VERTICAL, False)
        assert (linear.format, linear.use_abacus) == (ProblemFormat.LINEAR, False)

    def test_zero_weight_part_disabled(self, now):
        plan = compose(_request(now, part_weights={"abacus": 1, "visualization": 0, "linear": 0}))
        assert [p.type for p in plan.parts] == [PartType.ABACUS]

    def test_minimum_slots_per_part(self, now):
        plan = compose(_request(now, duration_minutes=0.5))
        assert all(len(p.slots) >= 2 for p in plan.parts)

    def test_slot_indices_sequential(self, now):
        for part in compose(_request(now)).parts:
            assert [s.index for s in part.slots] == list(range(len(part.slots)))

    def test_term_counts_follow_comfort(self, now):
        plan = compose(_request(now, comfort=0.3, purpose_weights={"focus": 1}))
        assert plan.parts[0].slots[0].term_count == TermCountBounds(min=3, max=5)
        for slot in _all_slots(plan):
            assert slot.term_count.min <= len(slot.problem.terms) <= slot.term_count.max

    def test_term_count_override(self, now):
        override = {"abacus": TermCountBounds(min=2, max=3)}
        plan = compose(_request(now, term_count_overrides=override))
        assert all(s.term_count.max <= 3 for s in plan.parts[0].slots)

    def test_problems_use_allowed_skills(self, now):
        plan = compose(_request(now))
        for slot in _all_slots(plan):
            assert slot.problem.answer == sum(slot.problem.terms)
            assert set(slot.problem.skills_required) <= {ADD, HEAVEN}
            assert analyze_problem(slot.problem.terms) == frozenset(slot.problem.skills_required)


class TestComposeErrors:
    def test_all_parts_disabled(self, now):
        with pytest.raises(NoSkillsEnabledError):
            compose(_request(now, part_weights={"abacus": 0, "visualization": 0, "linear": 0}))

    def test_no_enabled_parts(self, now):
        with pytest.raises(NoSkillsEnabledError):
            compose(_request(now, enabled_parts=[]))

    def test_no_known_skills(self, now):
        with pytest.raises(NoSkillsEnabledError) as exc_info:
            compose(_request(now, enabled_skill_ids=["basic.unknown"]))
        assert exc_info.value.code == "NO_SKILLS_ENABLED"

    def test_active_session_exists(self, now):
        """An open plan is handed back in the error for recovery."""
        existing = compose(_request(now)).model_copy(update={"status": PlanStatus.ACTIVE})
        with pytest.raises(ActiveSessionExistsError) as exc_info:
            compose(_request(now), existing_active_plan=existing)
        assert exc_info.value.existing_plan is existing
        assert exc_info.value.details == {"existing_plan_id": existing.id}

    def test_finished_plan_does_not_block(self, now):
        finished = compose(_request(now)).model_copy(update={"status": PlanStatus.COMPLETED})
        assert compose(_request(now), existing_active_plan=finished).status == PlanStatus.DRAFT


class TestPurposes:
    """Test purpose allocation and skill choice."""

    def test_default_allocation_on_abacus(self, now):
        # 8 slots at 0.6/0.2/0.15/0.05 -> 5 focus, 2 reinforce, 1 review, 0 challenge
        purposes = [s.purpose for s in compose(_request(now)).parts[0].slots]
        assert purposes.count(SlotPurpose.FOCUS) == 5
        assert purposes.count(SlotPurpose.REINFORCE) == 2
        assert purposes.count(SlotPurpose.REVIEW) == 1

    def test_challenge_capped_per_part(self, now):
        """Excess challenge slots become focus slots."""
        plan = compose(_request(now, purpose_weights={"challenge": 1}))
        abacus, visualization, linear = plan.parts
        assert sum(s.purpose == SlotPurpose.CHALLENGE for s in abacus.slots) == 2
        assert sum(s.purpose == SlotPurpose.CHALLENGE for s in visualization.slots) == 0
        assert sum(s.purpose == SlotPurpose.CHALLENGE for s in linear.slots) == 0
        assert sum(s.purpose == SlotPurpose.FOCUS for s in abacus.slots) == 6

    def test_challenge_slots_are_longer(self, now):
        plan = compose(_request(now, purpose_weights={"challenge": 1}, comfort=0.3))
        challenge = [s for s in plan.parts[0].slots if s.purpose == SlotPurpose.CHALLENGE]
        assert challenge[0].term_count == TermCountBounds(min=3, max=6)

    def test_zero_purpose_weights_mean_all_focus(self, now):
        plan = compose(_request(now, purpose_weights={"focus": 0, "review": 0}))
        assert all(s.purpose == SlotPurpose.FOCUS for s in _all_slots(plan))

    def test_unshuffled_purposes_in_order(self, now):
        purposes = [s.purpose for s in compose(_request(now, shuffle_purposes=False)).parts[0].slots]
        assert purposes == [SlotPurpose.FOCUS] * 5 + [SlotPurpose.REINFORCE] * 2 + [SlotPurpose.REVIEW]

    def test_remediation_focuses_weak_skill(self, now):
        mode = RemediationMode(
            weak_skills=[SkillProgressInfo(skill_id=HEAVEN, display_name="Heaven bead", p_known=0.3)],
            focus_description="Strengthening: Heaven bead",
        )
        states = {ADD: make_state(ADD, 0.9), HEAVEN: make_state(HEAVEN, 0.3)}
        plan = compose(_request(now, session_mode=mode, states=states))
        focus = [s for s in _all_slots(plan) if s.purpose == SlotPurpose.FOCUS]
        assert focus and all(s.skill_id == HEAVEN for s in focus)

    def test_progression_targets_next_skill(self, now):
        """The skill being learned is practiced even though it is not yet enabled."""
        plan = compose(
            _request(
                now,
                enabled_skill_ids=[ADD],
                session_mode=_progression_to(HEAVEN),
                states={ADD: make_state(ADD, 0.95)},
                purpose_weights={"focus": 0.5, "challenge": 0.5},
            )
        )
        for slot in _all_slots(plan):
            if slot.purpose in (SlotPurpose.FOCUS, SlotPurpose.CHALLENGE):
                assert slot.skill_id == HEAVEN
            assert set(slot.problem.skills_required) <= {ADD, HEAVEN}

    def test_review_prefers_stale_strong_skills(self, now):
        states = {
            ADD: make_state(ADD, 0.95, last_practiced_at=now - timedelta(days=30)),
            HEAVEN: make_state(HEAVEN, 0.95, last_practiced_at=now),
            SIMPLE: make_state(SIMPLE, 0.95, last_practiced_at=now),
        }
        plan = compose(
            _request(now, enabled_skill_ids=[ADD, HEAVEN, SIMPLE], states=states, purpose_weights={"review": 1})
        )
        assert {s.skill_id for s in _all_slots(plan)} == {ADD}

    def test_complexity_multiplier_from_mastery(self, now):
        plan = compose(_request(now, purpose_weights={"focus": 1}))
        for slot in _all_slots(plan):
            assert slot.complexity_multiplier >= 1.0


class TestDeterminism:
    def test_same_seed_same_plan(self, now):
        first = compose(_request(now))
        second = compose(_request(now))
        assert first.id != second.id
        assert first.parts == second.parts
        assert first.seed == second.seed == "abc123"

    def test_derived_seed_is_stable_within_a_day(self, now):
        first = compose(_request(now, seed=None))
        second = compose(_request(now + timedelta(hours=1), seed=None))
        assert first.seed == second.seed
        assert first.parts == second.parts

    def test_seed_inputs(self):
        seed = create_deterministic_seed("learner-1", 10, list(PART_ORDER), [ADD], "2026-03-03")
        assert seed == create_deterministic_seed("learner-1", 10, list(PART_ORDER), [ADD], "2026-03-03")
        assert seed != create_deterministic_seed("learner-1", 10, list(PART_ORDER), [ADD], "2026-03-04")
        assert seed != create_deterministic_seed("learner-1", 15, list(PART_ORDER), [ADD], "2026-03-03")
        assert len(seed) == 64

    def test_seeded_rng_accepts_any_string(self):
        assert create_seeded_rng("not hex!").random() == create_seeded_rng("not hex!").random()
        assert create_seeded_rng("ff").random() == create_seeded_rng("ff").random()


class TestGameBreaks:
    def test_break_between_every_part(self, now):
        assert compose(_request(now)).break_after_parts == [1, 2]

    def test_breaks_disabled(self, now):
        plan = compose(_request(now, game_break_settings=GameBreakSettings(enabled=False)))
        assert plan.break_after_parts == []

    def test_interval_accumulates(self, now):
        """A break is only scheduled once enough active time has passed."""
        plan = compose(_request(now, game_break_settings=GameBreakSettings(interval_minutes=6)))
        assert plan.break_after_parts == [2]

    def test_single_part_has_no_breaks(self, now):
        plan = compose(_request(now, enabled_parts=[PartType.LINEAR]))
        assert plan.break_after_parts == []


class TestWeightHelpers:
    def test_normalize_weights(self):
        shares = normalize_weights({"abacus": 2, PartType.LINEAR: 2, "visualization": -1}, list(PART_ORDER))
        assert shares == {PartType.ABACUS: 0.5, PartType.VISUALIZATION: 0.0, PartType.LINEAR: 0.5}
        assert sum(normalize_weights({}, list(PART_ORDER)).values()) == 0

    def test_allocate_counts_largest_remainder(self):
        order = ["a", "b", "c"]
        assert allocate_counts(10, {"a": 0.55, "b": 0.25, "c": 0.2}, order) == {"a": 6, "b": 2, "c": 2}
        counts = allocate_counts(7, {"a": 1 / 3, "b": 1 / 3, "c": 1 / 3}, order)
        assert counts == {"a": 3, "b": 2, "c": 2}
