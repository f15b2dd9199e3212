"""Session mode variants. Exactly one is active; each carries only its own payload."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from curriculum_engine.learning_engine.contracts import SkillProgressInfo
from curriculum_engine.learning_engine.readiness.core import AggregateReadiness, ReadinessResult
from curriculum_engine.learning_engine.skills.phases import CurriculumPhase


class _ModeModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class BlockedPromotion(_ModeModel):
    """Next skill that would be unlocked once the weak skills are solid."""

    next_skill: SkillProgressInfo
    phase: CurriculumPhase
    reason: str
    prerequisite_readiness: AggregateReadiness | None = None


class DeferredProgression(_ModeModel):
    """Progression the learner chose to postpone."""

    next_skill: SkillProgressInfo
    readiness: dict[str, ReadinessResult] = Field(default_factory=dict)
    phase: CurriculumPhase


class RemediationMode(_ModeModel):
    type: Literal["remediation"] = "remediation"
    weak_skills: list[SkillProgressInfo]
    focus_description: str
    blocked_promotion: BlockedPromotion | None = None


class ProgressionMode(_ModeModel):
    type: Literal["progression"] = "progression"
    next_skill: SkillProgressInfo
    phase: CurriculumPhase
    tutorial_required: bool
    skip_count: int = Field(default=0, ge=0)
    focus_description: str
    can_skip_tutorial: bool


class MaintenanceMode(_ModeModel):
    type: Literal["maintenance"] = "maintenance"
    focus_description: str = "Mixed practice"
    skill_count: int = Field(default=0, ge=0, description="Practicing skills that are solid")
    deferred_progression: DeferredProgression | None = None


SessionMode = Annotated[
    Union[RemediationMode, ProgressionMode, MaintenanceMode],
    Field(discriminator="type"),
]

session_mode_adapter: TypeAdapter = TypeAdapter(SessionMode)


def is_remediation_mode(mode: SessionMode) -> bool:
    return isinstance(mode, RemediationMode)


def is_progression_mode(mode: SessionMode) -> bool:
    return isinstance(mode, ProgressionMode)


def is_maintenance_mode(mode: SessionMode) -> bool:
    return isinstance(mode, MaintenanceMode)


def get_weak_skill_ids(mode: SessionMode) -> list[str]:
    """Weak skill ids in remediation order; empty for other modes."""
    if isinstance(mode, RemediationMode):
        return [skill.skill_id for skill in mode.weak_skills]
    return []


def focus_skill_ids(mode: SessionMode) -> list[str]:
    """Headline skills a plan should focus on for this mode."""
    if isinstance(mode, RemediationMode):
        return get_weak_skill_ids(mode)
    if isinstance(mode, ProgressionMode):
        return [mode.next_skill.skill_id]
    return []
