"""Session plan schemas."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field

from curriculum_engine.learning_engine.constants import (
    BreakEndReason,
    BreakSelectionMode,
    EndReason,
    FlowState,
    PartType,
    PlanStatus,
    ProblemFormat,
    RecordSource,
    SlotPurpose,
)
from curriculum_engine.learning_engine.contracts import ProblemRecord, TermCountBounds
from curriculum_engine.learning_engine.session_mode.comfort import ComfortLevel
from curriculum_engine.learning_engine.session_mode.types import SessionMode
from curriculum_engine.learning_engine.term_count.scaling import TermCountExplanation


class GeneratedProblem(BaseModel):
    """A concrete problem: terms, answer and the skills it exercises."""

    terms: list[int] = Field(..., min_length=1)
    answer: int
    skills_required: list[str] = Field(default_factory=list)
    target_skill_hit: bool = Field(default=True, description="Whether the slot's skill is exercised")


class ProblemSlot(BaseModel):
    """One planned problem position within a part."""

    index: int = Field(..., ge=0)
    purpose: SlotPurpose
    skill_id: str
    target_skill_ids: list[str] = Field(default_factory=list)
    term_count: TermCountBounds
    term_count_explanation: TermCountExplanation | None = None
    complexity_multiplier: float = 1.0
    problem: GeneratedProblem | None = None


class SessionPart(BaseModel):
    """A block of slots practiced in one modality."""

    part_number: int = Field(..., ge=1)
    type: PartType
    format: ProblemFormat
    use_abacus: bool
    slots: list[ProblemSlot] = Field(default_factory=list)
    estimated_minutes: float = Field(default=0.0, ge=0)


class SlotResult(BaseModel):
    """Answer to one slot. Results are append-only."""

    part_number: int = Field(..., ge=1)
    slot_index: int = Field(..., ge=0)
    problem: GeneratedProblem
    student_answer: int | None = None
    is_correct: bool
    response_time_ms: float = Field(default=0, ge=0)
    skills_exercised: list[str] = Field(default_factory=list)
    timestamp: datetime
    had_help: bool = False
    incorrect_attempts: int = Field(default=0, ge=0)
    source: RecordSource = RecordSource.PRACTICE
    is_retry: bool = False
    epoch_number: int = Field(default=0, ge=0)
    original_slot_index: int | None = None
    is_manual_redo: bool = False

    @computed_field  # type: ignore[misc]
    @property
    def mastery_weight(self) -> float:
        if not self.is_retry:
            return 1.0
        return 1.0 / (2**self.epoch_number) if self.is_correct else 0.0

    def to_problem_record(self, session_id: str | None = None) -> ProblemRecord:
        """History record for mastery replay."""
        return ProblemRecord(
            terms=self.problem.terms,
            answer=self.problem.answer,
            student_answer=self.student_answer,
            is_correct=self.is_correct,
            skills_exercised=self.skills_exercised or self.problem.skills_required,
            response_time_ms=self.response_time_ms,
            had_help=self.had_help,
            timestamp=self.timestamp,
            session_id=session_id,
            source=self.source,
            is_retry=self.is_retry,
            epoch_number=self.epoch_number,
        )


class RedoContext(BaseModel):
    """Identifies the earlier attempt a manual redo re-answers."""

    part_number: int = Field(..., ge=1)
    slot_index: int = Field(..., ge=0)
    original_was_correct: bool


class GameBreakSettings(BaseModel):
    """Game break configuration; the game itself is a black box."""

    enabled: bool = True
    max_duration_minutes: float = Field(default=5, gt=0)
    selection_mode: BreakSelectionMode = BreakSelectionMode.KID_CHOOSES
    selected_game: str | None = None
    interval_minutes: float = Field(
        default=0, ge=0, description="Active minutes that must accumulate before a break"
    )


class RetryItem(BaseModel):
    original_slot_index: int
    epoch_number: int = Field(..., ge=1)


class PartRetryState(BaseModel):
    """Retry bookkeeping for one part."""

    current_epoch: int = 0
    pending_retries: list[RetryItem] = Field(default_factory=list)
    current_epoch_items: list[RetryItem] = Field(default_factory=list)
    current_retry_index: int = 0
    redeemed_slots: list[int] = Field(default_factory=list)

    @property
    def in_retry(self) -> bool:
        return self.current_epoch > 0 and self.current_retry_index < len(self.current_epoch_items)


class SessionFlow(BaseModel):
    """Sub-state of an active plan."""

    state: FlowState = FlowState.PRACTICING
    version: int = 0
    updated_at: datetime | None = None
    break_started_at: datetime | None = None
    break_reason: BreakEndReason | None = None
    break_selected_game: str | None = None
    break_results: dict[str, Any] | None = None
    completed_transition_parts: list[int] = Field(default_factory=list)


class SessionPlan(BaseModel):
    """A time-boxed sequence of slots grouped into parts."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    learner_id: str
    status: PlanStatus = PlanStatus.DRAFT
    target_duration_minutes: float = Field(..., gt=0)
    estimated_minutes: float = Field(default=0, ge=0)
    parts: list[SessionPart] = Field(default_factory=list)
    current_part_index: int = 0
    current_slot_index: int = 0
    results: list[SlotResult] = Field(default_factory=list)
    session_mode: SessionMode | None = None
    comfort_level: ComfortLevel | None = None
    game_break_settings: GameBreakSettings = Field(default_factory=GameBreakSettings)
    break_after_parts: list[int] = Field(
        default_factory=list, description="Part numbers followed by a game break"
    )
    retry_states: dict[int, PartRetryState] = Field(default_factory=dict)
    flow: SessionFlow = Field(default_factory=SessionFlow)
    seed: str = ""
    created_at: datetime | None = None
    approved_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    end_reason: EndReason | None = None
    end_note: str | None = None

    @computed_field  # type: ignore[misc]
    @property
    def estimated_problem_count(self) -> int:
        return sum(len(part.slots) for part in self.parts)
