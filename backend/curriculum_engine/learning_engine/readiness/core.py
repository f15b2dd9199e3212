"""
Readiness Evaluator - is a skill solid enough to stop remediating it?

Four independent gates, each with its own threshold:
- Mastery:     pKnown >= pKnownThreshold AND confidence >= confidenceThreshold
- Volume:      opportunities >= minOpportunities AND sessions >= minSessions
- Speed:       median seconds/term over the recent timed window <= max;
               not met when there is no timing data
- Consistency: accuracy over a full recent window >= minAccuracy AND the
               last N attempts all correct AND no help in the last N attempts

A skill is solid iff all four gates are met. Aggregating a set of skills takes
the worst value per dimension before applying the gates, so one weak member
blocks the whole set.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, computed_field

from curriculum_engine.learning_engine.config import get_readiness_thresholds
from curriculum_engine.learning_engine.contracts import AttemptSample, MasteryState, ProblemRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadinessThresholds:
    """Gate thresholds; defaults come from the constants registry."""

    min_opportunities: int
    min_sessions: int
    p_known_threshold: float
    confidence_threshold: float
    max_median_seconds_per_term: float
    speed_window_size: int
    no_help_in_last_n: int
    accuracy_window_size: int
    min_accuracy: float
    last_n_all_correct: int

    @classmethod
    def defaults(cls) -> "ReadinessThresholds":
        return cls(**get_readiness_thresholds())


class MasteryDimension(BaseModel):
    model_config = ConfigDict(frozen=True)

    met: bool
    p_known: float
    confidence: float


class VolumeDimension(BaseModel):
    model_config = ConfigDict(frozen=True)

    met: bool
    opportunities: int
    sessions: int


class SpeedDimension(BaseModel):
    model_config = ConfigDict(frozen=True)

    met: bool
    median_seconds_per_term: float | None = None


class ConsistencyDimension(BaseModel):
    model_config = ConfigDict(frozen=True)

    met: bool
    recent_accuracy: float | None = None
    window_filled: bool = False
    last_n_all_correct: bool = False
    recent_help_count: int = 0


class _DimensionVerdicts(BaseModel):
    model_config = ConfigDict(frozen=True)

    mastery: MasteryDimension
    volume: VolumeDimension
    speed: SpeedDimension
    consistency: ConsistencyDimension

    @computed_field  # type: ignore[misc]
    @property
    def is_solid(self) -> bool:
        return self.mastery.met and self.volume.met and self.speed.met and self.consistency.met


class ReadinessResult(_DimensionVerdicts):
    """Readiness of a single skill."""

    skill_id: str


class AggregateReadiness(_DimensionVerdicts):
    """Worst-case readiness across a set of skills."""

    skill_ids: list[str]
    blocking_skill_ids: list[str] = []


def _mastery(p_known: float, confidence: float, t: ReadinessThresholds) -> MasteryDimension:
    return MasteryDimension(
        met=p_known >= t.p_known_threshold and confidence >= t.confidence_threshold,
        p_known=p_known,
        confidence=confidence,
    )


def _volume(opportunities: int, sessions: int, t: ReadinessThresholds) -> VolumeDimension:
    return VolumeDimension(
        met=opportunities >= t.min_opportunities and sessions >= t.min_sessions,
        opportunities=opportunities,
        sessions=sessions,
    )


def _speed(median: float | None, t: ReadinessThresholds) -> SpeedDimension:
    return SpeedDimension(
        met=median is not None and median <= t.max_median_seconds_per_term,
        median_seconds_per_term=median,
    )


def _consistency(
    accuracy: float | None,
    window_filled: bool,
    last_n_all_correct: bool,
    help_count: int,
    t: ReadinessThresholds,
) -> ConsistencyDimension:
    met = (
        window_filled
        and accuracy is not None
        and accuracy >= t.min_accuracy
        and last_n_all_correct
        and help_count == 0
    )
    return ConsistencyDimension(
        met=met,
        recent_accuracy=accuracy,
        window_filled=window_filled,
        last_n_all_correct=last_n_all_correct,
        recent_help_count=help_count,
    )


def median_seconds_per_term(window: Sequence[AttemptSample], size: int) -> float | None:
    """Median seconds/term over the most recent ``size`` timed attempts."""
    timed = [s.seconds_per_term for s in window if s.seconds_per_term is not None]
    if not timed:
        return None
    return float(np.median(timed[-size:]))


def window_from_history(skill_id: str, history: Iterable[ProblemRecord]) -> list[AttemptSample]:
    """Readiness window for one skill built directly from problem records."""
    return [
        AttemptSample(
            is_correct=record.is_correct,
            had_help=record.had_help,
            seconds_per_term=record.seconds_per_term,
            timestamp=record.timestamp,
        )
        for record in history
        if record.counts_for_readiness and skill_id in record.skills_exercised
    ]


def evaluate(
    skill_id: str,
    mastery_state: MasteryState | None,
    recent_window: Sequence[AttemptSample] | None = None,
    thresholds: ReadinessThresholds | None = None,
) -> ReadinessResult:
    """
    Evaluate readiness of one skill.

    Args:
        skill_id: Skill to evaluate
        mastery_state: Replayed mastery, or None if never practiced
        recent_window: Recent attempts, oldest first (defaults to the state's window)
        thresholds: Gate thresholds (defaults from registry)

    Returns:
        ReadinessResult with all four dimension verdicts
    """
    t = thresholds or ReadinessThresholds.defaults()

    if recent_window is None:
        recent_window = mastery_state.recent_attempts if mastery_state else ()

    p_known = mastery_state.p_known if mastery_state else 0.0
    confidence = mastery_state.confidence if mastery_state else 0.0
    opportunities = mastery_state.opportunities if mastery_state else 0
    sessions = mastery_state.session_count if mastery_state else 0

    accuracy_window = list(recent_window)[-t.accuracy_window_size :]
    accuracy = (
        sum(1 for s in accuracy_window if s.is_correct) / len(accuracy_window)
        if accuracy_window
        else None
    )
    last_n = list(recent_window)[-t.last_n_all_correct :]
    help_window = list(recent_window)[-t.no_help_in_last_n :]

    return ReadinessResult(
        skill_id=skill_id,
        mastery=_mastery(p_known, confidence, t),
        volume=_volume(opportunities, sessions, t),
        speed=_speed(median_seconds_per_term(recent_window, t.speed_window_size), t),
        consistency=_consistency(
            accuracy,
            len(accuracy_window) >= t.accuracy_window_size,
            len(last_n) >= t.last_n_all_correct and all(s.is_correct for s in last_n),
            sum(1 for s in help_window if s.had_help),
            t,
        ),
    )


def evaluate_skills(
    skill_ids: Iterable[str],
    states: Mapping[str, MasteryState],
    history: Sequence[ProblemRecord] | None = None,
    thresholds: ReadinessThresholds | None = None,
) -> dict[str, ReadinessResult]:
    """
    Evaluate each skill against its replayed state.

    With ``history``, each skill's window is rebuilt from the full record list
    instead of the bounded window kept on the state.
    """
    return {
        skill_id: evaluate(
            skill_id,
            states.get(skill_id),
            window_from_history(skill_id, history) if history is not None else None,
            thresholds=thresholds,
        )
        for skill_id in skill_ids
    }


def aggregate_readiness(
    results: Iterable[ReadinessResult],
    thresholds: ReadinessThresholds | None = None,
    skip_unpracticed: bool = True,
) -> AggregateReadiness:
    """
    Combine per-skill readiness using the worst value per dimension.

    Skills with zero opportunities are skipped by default: a prerequisite the
    learner has never been asked to practice does not block the set.

    Args:
        results: Per-skill readiness results
        thresholds: Gate thresholds (defaults from registry)
        skip_unpracticed: Ignore skills with no opportunities

    Returns:
        AggregateReadiness; vacuously solid when no skill participates
    """
    t = thresholds or ReadinessThresholds.defaults()
    all_results = list(results)
    considered = [
        r for r in all_results if not (skip_unpracticed and r.volume.opportunities == 0)
    ]

    if not considered:
        return AggregateReadiness(
            skill_ids=[r.skill_id for r in all_results],
            mastery=MasteryDimension(met=True, p_known=1.0, confidence=1.0),
            volume=VolumeDimension(met=True, opportunities=0, sessions=0),
            speed=SpeedDimension(met=True),
            consistency=ConsistencyDimension(met=True, window_filled=True, last_n_all_correct=True),
        )

    speeds = [r.speed.median_seconds_per_term for r in considered]
    slowest = None if any(s is None for s in speeds) else max(speeds)  # type: ignore[type-var]
    accuracies = [r.consistency.recent_accuracy for r in considered]
    lowest_accuracy = None if any(a is None for a in accuracies) else min(accuracies)  # type: ignore[type-var]

    aggregate = AggregateReadiness(
        skill_ids=[r.skill_id for r in all_results],
        blocking_skill_ids=[r.skill_id for r in considered if not r.is_solid],
        mastery=_mastery(
            min(r.mastery.p_known for r in considered),
            min(r.mastery.confidence for r in considered),
            t,
        ),
        volume=_volume(
            min(r.volume.opportunities for r in considered),
            min(r.volume.sessions for r in considered),
            t,
        ),
        speed=_speed(slowest, t),
        consistency=_consistency(
            lowest_accuracy,
            all(r.consistency.window_filled for r in considered),
            all(r.consistency.last_n_all_correct for r in considered),
            max(r.consistency.recent_help_count for r in considered),
            t,
        ),
    )
    logger.debug(
        f"Aggregated readiness over {len(considered)} skills: solid={aggregate.is_solid}"
    )
    return aggregate
