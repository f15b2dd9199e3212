"""
Session Mode Selector.

Pure function of current mastery, readiness and the curriculum phase graph;
recomputed for every planning request and never persisted as authority.

Decision order (first match wins):
1. Remediation: a practiced skill is not solid and below the severity floor.
   Enabled skills with no attempts yet never count as weak.
2. Progression: the next unlearned phase has all prerequisites solid and the
   learner has not deferred it.
3. Maintenance: everything else, carrying a deferred progression if one exists.

A phase graph that cannot resolve the learner's phase fails closed to
Maintenance.
"""

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Mapping, Sequence

from curriculum_engine.learning_engine.config import (
    MODE_MAX_TUTORIAL_SKIPS,
    MODE_MAX_WEAK_SKILLS,
    MODE_REMEDIATION_SEVERITY_FLOOR,
)
from curriculum_engine.learning_engine.contracts import MasteryState, SkillProgressInfo
from curriculum_engine.learning_engine.readiness.core import (
    ReadinessResult,
    ReadinessThresholds,
    aggregate_readiness,
    evaluate,
)
from curriculum_engine.learning_engine.session_mode.types import (
    BlockedPromotion,
    DeferredProgression,
    MaintenanceMode,
    ProgressionMode,
    RemediationMode,
    SessionMode,
)
from curriculum_engine.learning_engine.skills.catalog import DEFAULT_REGISTRY, SkillRegistry
from curriculum_engine.learning_engine.skills.phases import (
    DEFAULT_PHASE_GRAPH,
    CurriculumPhase,
    PhaseGraph,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LearnerCurriculumContext:
    """Read-only learner facts supplied by collaborators."""

    tutorial_completed: Mapping[str, bool] = field(default_factory=dict)
    skip_counts: Mapping[str, int] = field(default_factory=dict)
    deferred_skill_ids: AbstractSet[str] = frozenset()
    current_phase_id: str | None = None


@dataclass(frozen=True)
class ModeSelectorConfig:
    severity_floor: float = MODE_REMEDIATION_SEVERITY_FLOOR.value
    max_weak_skills: int = MODE_MAX_WEAK_SKILLS.value
    max_tutorial_skips: int = MODE_MAX_TUTORIAL_SKIPS.value


def join_names(names: Sequence[str]) -> str:
    """'A', 'A and B', 'A, B and C'."""
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " and " + names[-1]


def _progress_info(
    skill_id: str, states: Mapping[str, MasteryState], registry: SkillRegistry
) -> SkillProgressInfo:
    state = states.get(skill_id)
    return SkillProgressInfo(
        skill_id=skill_id,
        display_name=registry.display_name(skill_id),
        p_known=state.p_known if state else 0.0,
    )


def _readiness_for(
    skill_ids: Sequence[str],
    states: Mapping[str, MasteryState],
    readiness: Mapping[str, ReadinessResult],
    thresholds: ReadinessThresholds | None,
) -> dict[str, ReadinessResult]:
    return {
        skill_id: readiness.get(skill_id)
        or evaluate(skill_id, states.get(skill_id), thresholds=thresholds)
        for skill_id in skill_ids
    }


def _resolve_next_phase(
    graph: PhaseGraph,
    practicing: Sequence[str],
    context: LearnerCurriculumContext,
    registry: SkillRegistry,
) -> tuple[CurriculumPhase | None, bool]:
    """Next phase to learn and whether the graph could be resolved at all."""
    if context.current_phase_id is not None and graph.get(context.current_phase_id) is None:
        logger.warning(
            f"Phase {context.current_phase_id} missing from curriculum graph; "
            "falling back to maintenance"
        )
        return None, False

    phase = graph.next_unlearned(practicing)
    if phase is None:
        return None, True

    unknown = [
        skill_id
        for skill_id in (phase.primary_skill_id, *phase.prerequisite_skill_ids)
        if skill_id not in registry
    ]
    if unknown:
        logger.warning(
            f"Phase {phase.id} references unknown skills {unknown}; falling back to maintenance"
        )
        return None, False
    return phase, True


def select_session_mode(
    states: Mapping[str, MasteryState],
    practicing_skill_ids: Sequence[str],
    readiness: Mapping[str, ReadinessResult] | None = None,
    phase_graph: PhaseGraph = DEFAULT_PHASE_GRAPH,
    context: LearnerCurriculumContext | None = None,
    registry: SkillRegistry = DEFAULT_REGISTRY,
    thresholds: ReadinessThresholds | None = None,
    config: ModeSelectorConfig | None = None,
) -> SessionMode:
    """
    Decide the session mode for the next plan.

    Args:
        states: Replayed mastery per skill
        practicing_skill_ids: Skills currently enabled for practice
        readiness: Precomputed readiness per skill (computed on demand otherwise)
        phase_graph: Curriculum phase graph
        context: Tutorial completion, skip counts, deferrals, current phase
        registry: Skill registry used for display names and validation
        thresholds: Readiness thresholds
        config: Selector tuning

    Returns:
        One of RemediationMode, ProgressionMode, MaintenanceMode
    """
    context = context or LearnerCurriculumContext()
    config = config or ModeSelectorConfig()
    readiness = dict(readiness or {})
    practicing = list(dict.fromkeys(practicing_skill_ids))

    practicing_readiness = _readiness_for(practicing, states, readiness, thresholds)

    def p_known(skill_id: str) -> float:
        state = states.get(skill_id)
        return state.p_known if state else 0.0

    # Enabled but never attempted skills carry no evidence either way
    weak = [
        skill_id
        for skill_id in practicing
        if practicing_readiness[skill_id].volume.opportunities > 0
        and not practicing_readiness[skill_id].is_solid
        and p_known(skill_id) < config.severity_floor
    ]
    solid_count = sum(1 for skill_id in practicing if practicing_readiness[skill_id].is_solid)

    next_phase, resolvable = _resolve_next_phase(phase_graph, practicing, context, registry)
    if not resolvable:
        return MaintenanceMode(skill_count=solid_count)

    prereq_readiness = None
    prereq_results: dict[str, ReadinessResult] = {}
    if next_phase is not None:
        prereq_results = _readiness_for(
            list(next_phase.prerequisite_skill_ids), states, readiness, thresholds
        )
        prereq_readiness = aggregate_readiness(prereq_results.values(), thresholds)

    if weak:
        weakest = sorted(weak, key=lambda s: (p_known(s), practicing.index(s)))
        weakest = weakest[: config.max_weak_skills]
        weak_infos = [_progress_info(s, states, registry) for s in weakest]

        blocked = None
        if next_phase is not None and prereq_readiness is not None and prereq_readiness.is_solid:
            next_name = registry.display_name(next_phase.primary_skill_id)
            blocked = BlockedPromotion(
                next_skill=_progress_info(next_phase.primary_skill_id, states, registry),
                phase=next_phase,
                reason=(
                    f"Ready to learn {next_name}, but "
                    f"{join_names([i.display_name for i in weak_infos])} need strengthening first"
                ),
                prerequisite_readiness=prereq_readiness,
            )

        mode: SessionMode = RemediationMode(
            weak_skills=weak_infos,
            focus_description="Strengthening: " + join_names([i.display_name for i in weak_infos]),
            blocked_promotion=blocked,
        )
        logger.debug(f"Selected remediation for {[i.skill_id for i in weak_infos]}")
        return mode

    if next_phase is not None and prereq_readiness is not None and prereq_readiness.is_solid:
        next_skill = _progress_info(next_phase.primary_skill_id, states, registry)

        if next_phase.primary_skill_id in context.deferred_skill_ids:
            logger.debug(f"Progression to {next_skill.skill_id} deferred by learner")
            return MaintenanceMode(
                skill_count=solid_count,
                deferred_progression=DeferredProgression(
                    next_skill=next_skill,
                    readiness=prereq_results,
                    phase=next_phase,
                ),
            )

        skip_count = context.skip_counts.get(next_phase.primary_skill_id, 0)
        tutorial_required = next_phase.tutorial_id is not None and not context.tutorial_completed.get(
            next_phase.primary_skill_id, False
        )
        logger.debug(f"Selected progression to {next_skill.skill_id}")
        return ProgressionMode(
            next_skill=next_skill,
            phase=next_phase,
            tutorial_required=tutorial_required,
            skip_count=skip_count,
            focus_description=f"Learning: {next_skill.display_name}",
            can_skip_tutorial=skip_count < config.max_tutorial_skips,
        )

    return MaintenanceMode(skill_count=solid_count)
