"""
History Aggregator - replay problem history into per-skill mastery.

Mastery is path-dependent, so replay is strictly chronological: records must
arrive in ascending timestamp order (ties allowed) and out-of-order input is
rejected rather than re-sorted.

Record handling:
- practice / teacher-corrected: full conjunctive BKT update for every exercised skill
- retries: update weighted by the record's mastery weight (1 / 2^epoch, 0 if wrong)
- recency-refresh: only refreshes last_practiced_at of skills already tracked
- teacher-excluded: ignored
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from curriculum_engine.core.app_exceptions import HistoryOrderError
from curriculum_engine.learning_engine.bkt.core import BKTParams, update_conjunctive
from curriculum_engine.learning_engine.bkt.integration import band_for, compute_confidence
from curriculum_engine.learning_engine.bkt.priors import get_default_params
from curriculum_engine.learning_engine.config import (
    BKT_CLASSIFICATION_CONFIDENCE,
    READINESS_ACCURACY_WINDOW_SIZE,
    READINESS_SPEED_WINDOW_SIZE,
)
from curriculum_engine.learning_engine.constants import RecordSource
from curriculum_engine.learning_engine.contracts import AttemptSample, MasteryState, ProblemRecord

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = max(READINESS_ACCURACY_WINDOW_SIZE.value, READINESS_SPEED_WINDOW_SIZE.value)


@dataclass
class _SkillAccumulator:
    """Mutable working state for one skill during a single replay call."""

    skill_id: str
    p_known: float
    opportunities: int = 0
    successes: int = 0
    session_ids: dict[str, None] = field(default_factory=dict)
    last_practiced_at: datetime | None = None
    window: deque = field(default_factory=deque)

    @classmethod
    def from_state(cls, state: MasteryState, window_size: int) -> "_SkillAccumulator":
        return cls(
            skill_id=state.skill_id,
            p_known=state.p_known,
            opportunities=state.opportunities,
            successes=state.successes,
            session_ids=dict.fromkeys(state.session_ids),
            last_practiced_at=state.last_practiced_at,
            window=deque(state.recent_attempts, maxlen=window_size),
        )

    def to_state(self, confidence_threshold: float) -> MasteryState:
        confidence = compute_confidence(self.opportunities)
        return MasteryState(
            skill_id=self.skill_id,
            p_known=self.p_known,
            confidence=confidence,
            opportunities=self.opportunities,
            successes=self.successes,
            session_ids=tuple(self.session_ids),
            last_practiced_at=self.last_practiced_at,
            classification=band_for(self.p_known),
            provisional=confidence < confidence_threshold,
            recent_attempts=tuple(self.window),
        )


def _session_key(record: ProblemRecord) -> str:
    return record.session_id or record.timestamp.date().isoformat()


def check_chronological(
    history: Sequence[ProblemRecord], not_before: datetime | None = None
) -> None:
    """
    Ensure history is in ascending timestamp order.

    Raises:
        HistoryOrderError: At the first record earlier than its predecessor
    """
    previous = not_before
    for index, record in enumerate(history):
        if previous is not None and record.timestamp < previous:
            raise HistoryOrderError(index, previous, record.timestamp)
        previous = record.timestamp


def compute_mastery(
    history: Sequence[ProblemRecord],
    confidence_threshold: float = BKT_CLASSIFICATION_CONFIDENCE.value,
    *,
    initial_states: Mapping[str, MasteryState] | None = None,
    param_overrides: Mapping[str, BKTParams] | None = None,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> dict[str, MasteryState]:
    """
    Replay history through the mastery model.

    Passing the result of an earlier replay as ``initial_states`` continues
    from it, so replaying a prefix then the suffix equals replaying the whole.

    Args:
        history: Problem records in ascending timestamp order
        confidence_threshold: Below this confidence a classification is provisional
        initial_states: Mastery to resume from (e.g. a previous replay result)
        param_overrides: Per-skill BKT parameter overrides
        window_size: Number of recent attempts kept per skill

    Returns:
        Mapping of skill id to MasteryState

    Raises:
        HistoryOrderError: If records are not time-ordered, or precede the
            latest practice in ``initial_states``
    """
    initial_states = initial_states or {}
    resume_from = max(
        (s.last_practiced_at for s in initial_states.values() if s.last_practiced_at),
        default=None,
    )
    check_chronological(history, not_before=resume_from)

    skills: dict[str, _SkillAccumulator] = {
        skill_id: _SkillAccumulator.from_state(state, window_size)
        for skill_id, state in initial_states.items()
    }

    for record in history:
        if record.source == RecordSource.TEACHER_EXCLUDED:
            continue

        if record.source == RecordSource.RECENCY_REFRESH:
            for skill_id in record.skills_exercised:
                if skill_id in skills:
                    skills[skill_id].last_practiced_at = record.timestamp
            continue

        for skill_id in record.skills_exercised:
            if skill_id not in skills:
                params = get_default_params(skill_id, param_overrides)
                skills[skill_id] = _SkillAccumulator(
                    skill_id=skill_id,
                    p_known=params.p_init,
                    window=deque(maxlen=window_size),
                )

        exercised = list(dict.fromkeys(record.skills_exercised))
        priors = {skill_id: skills[skill_id].p_known for skill_id in exercised}
        params_by_skill = {
            skill_id: get_default_params(skill_id, param_overrides) for skill_id in exercised
        }
        posteriors = update_conjunctive(
            priors, record.is_correct, params_by_skill, weight=record.mastery_weight
        )

        for skill_id in exercised:
            acc = skills[skill_id]
            acc.p_known = posteriors[skill_id]
            acc.last_practiced_at = record.timestamp
            acc.session_ids[_session_key(record)] = None
            if record.is_retry:
                continue
            acc.opportunities += 1
            if record.is_correct:
                acc.successes += 1
            acc.window.append(
                AttemptSample(
                    is_correct=record.is_correct,
                    had_help=record.had_help,
                    seconds_per_term=record.seconds_per_term,
                    timestamp=record.timestamp,
                )
            )

    logger.debug(f"Replayed {len(history)} records into {len(skills)} skill states")

    return {skill_id: acc.to_state(confidence_threshold) for skill_id, acc in skills.items()}


def replay(
    history: Sequence[ProblemRecord],
    prior_states: Mapping[str, MasteryState],
    confidence_threshold: float = BKT_CLASSIFICATION_CONFIDENCE.value,
) -> dict[str, MasteryState]:
    """Continue an earlier replay with newer records."""
    return compute_mastery(history, confidence_threshold, initial_states=prior_states)


def practicing_skill_ids(states: Mapping[str, MasteryState]) -> list[str]:
    """Skills with at least one counted opportunity."""
    return [skill_id for skill_id, state in states.items() if state.opportunities > 0]


def merge_histories(*histories: Iterable[ProblemRecord]) -> list[ProblemRecord]:
    """
    Concatenate already-ordered history chunks, checking the seams.

    Raises:
        HistoryOrderError: If a chunk starts before the previous chunk ended
    """
    merged: list[ProblemRecord] = []
    for chunk in histories:
        merged.extend(chunk)
    check_chronological(merged)
    return merged
