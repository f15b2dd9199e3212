"""Typed contracts for learning engine inputs/outputs."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from curriculum_engine.learning_engine.constants import MasteryClassification, RecordSource


# ============================================================================
# History Input
# ============================================================================


class ProblemRecord(BaseModel):
    """One answered problem. Immutable once recorded; the atomic unit of history."""

    model_config = ConfigDict(frozen=True)

    terms: list[int] = Field(..., min_length=1, description="Ordered signed terms")
    answer: int = Field(..., description="Correct answer")
    student_answer: int | None = Field(default=None, description="Submitted answer")
    is_correct: bool
    skills_exercised: list[str] = Field(..., min_length=1, description="Skills (conjunctive)")
    response_time_ms: float | None = Field(default=None, ge=0)
    had_help: bool = False
    timestamp: datetime
    session_id: str | None = None
    source: RecordSource = RecordSource.PRACTICE
    is_retry: bool = False
    epoch_number: int = Field(default=0, ge=0)

    @computed_field  # type: ignore[misc]
    @property
    def mastery_weight(self) -> float:
        """Weight of this record in the mastery update (1 for first attempts)."""
        if not self.is_retry:
            return 1.0
        return 1.0 / (2**self.epoch_number) if self.is_correct else 0.0

    @property
    def seconds_per_term(self) -> float | None:
        """Response time normalized by problem length, or None without timing."""
        if self.response_time_ms is None or self.response_time_ms <= 0:
            return None
        return (self.response_time_ms / 1000.0) / len(self.terms)

    @property
    def updates_mastery(self) -> bool:
        """Whether this record feeds the BKT replay."""
        return self.source not in (RecordSource.RECENCY_REFRESH, RecordSource.TEACHER_EXCLUDED)

    @property
    def counts_for_readiness(self) -> bool:
        """Whether this record belongs in readiness windows."""
        return self.updates_mastery and not self.is_retry


# ============================================================================
# Mastery Output
# ============================================================================


class AttemptSample(BaseModel):
    """Compact per-skill attempt kept in the rolling readiness window."""

    model_config = ConfigDict(frozen=True)

    is_correct: bool
    had_help: bool = False
    seconds_per_term: float | None = None
    timestamp: datetime


class MasteryState(BaseModel):
    """Per-skill mastery estimate produced by history replay."""

    model_config = ConfigDict(frozen=True)

    skill_id: str
    p_known: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    opportunities: int = Field(default=0, ge=0)
    successes: int = Field(default=0, ge=0)
    session_ids: tuple[str, ...] = ()
    last_practiced_at: datetime | None = None
    classification: MasteryClassification = MasteryClassification.WEAK
    provisional: bool = True
    recent_attempts: tuple[AttemptSample, ...] = ()

    @computed_field  # type: ignore[misc]
    @property
    def session_count(self) -> int:
        return len(self.session_ids)

    @property
    def accuracy(self) -> float | None:
        if self.opportunities == 0:
            return None
        return self.successes / self.opportunities


class SkillProgressInfo(BaseModel):
    """Display-oriented view of one skill (used in session modes)."""

    model_config = ConfigDict(frozen=True)

    skill_id: str
    display_name: str
    p_known: float = Field(default=0.0, ge=0.0, le=1.0)


class TermCountBounds(BaseModel):
    """Inclusive {min, max} term-count range."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min: int
    max: int

    @model_validator(mode="after")
    def check_order(self) -> "TermCountBounds":
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must be <= max ({self.max})")
        return self
