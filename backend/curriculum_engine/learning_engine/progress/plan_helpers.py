"""
Read-only helpers over a session plan: cursor lookups, counts and health.
"""

import math
from dataclasses import dataclass

from pydantic import BaseModel

from curriculum_engine.learning_engine.config import (
    HEALTH_STRUGGLING_ACCURACY,
    HEALTH_STRUGGLING_PACE,
    HEALTH_STRUGGLING_STREAK,
    HEALTH_WARNING_ACCURACY,
    HEALTH_WARNING_PACE,
    HEALTH_WARNING_STREAK,
    PLAN_MAX_RETRY_EPOCHS,
    TIME_DEFAULT_SECONDS_PER_TERM,
)
from curriculum_engine.learning_engine.constants import PlanStatus, SessionHealth, SlotPurpose
from curriculum_engine.learning_engine.contracts import ProblemRecord
from curriculum_engine.schemas.session_plan import (
    GeneratedProblem,
    PartRetryState,
    ProblemSlot,
    SessionPart,
    SessionPlan,
)


class SessionHealthReport(BaseModel):
    overall: SessionHealth
    accuracy: float
    pace_percent: float
    current_streak: int
    avg_response_time_ms: float


@dataclass(frozen=True)
class CurrentProblem:
    """The problem the learner should answer next."""

    problem: GeneratedProblem | None
    part_number: int
    slot_index: int
    purpose: SlotPurpose
    is_retry: bool
    epoch_number: int


def get_current_part(plan: SessionPlan) -> SessionPart | None:
    if plan.current_part_index >= len(plan.parts):
        return None
    return plan.parts[plan.current_part_index]


def get_next_slot(plan: SessionPlan) -> ProblemSlot | None:
    part = get_current_part(plan)
    if part is None or plan.current_slot_index >= len(part.slots):
        return None
    return part.slots[plan.current_slot_index]


def get_total_problem_count(plan: SessionPlan) -> int:
    return sum(len(part.slots) for part in plan.parts)


def get_completed_problem_count(plan: SessionPlan) -> int:
    return len(plan.results)


def get_session_plan_accuracy(plan: SessionPlan) -> float:
    """Fraction of recorded results that were correct; 0 with no results."""
    if not plan.results:
        return 0.0
    return sum(1 for r in plan.results if r.is_correct) / len(plan.results)


def is_part_complete(plan: SessionPlan) -> bool:
    part = get_current_part(plan)
    if part is None:
        return True
    return plan.current_slot_index >= len(part.slots)


def is_session_complete(plan: SessionPlan) -> bool:
    if plan.status == PlanStatus.COMPLETED:
        return True
    if plan.current_part_index >= len(plan.parts):
        return True
    if plan.current_part_index == len(plan.parts) - 1:
        return plan.current_slot_index >= len(plan.parts[-1].slots)
    return False


def next_unredeemed_index(retry_state: PartRetryState) -> int:
    """Index of the next retry item whose slot has not been redeemed."""
    index = retry_state.current_retry_index
    redeemed = set(retry_state.redeemed_slots)
    while (
        index < len(retry_state.current_epoch_items)
        and retry_state.current_epoch_items[index].original_slot_index in redeemed
    ):
        index += 1
    return index


def get_current_problem(plan: SessionPlan) -> CurrentProblem | None:
    """
    Problem to show next, from the retry queue when the part is in a retry epoch.

    Returns:
        CurrentProblem, or None when the current part has nothing left to answer
    """
    part = get_current_part(plan)
    if part is None:
        return None

    retry_state = plan.retry_states.get(plan.current_part_index)
    if retry_state is not None and retry_state.current_epoch > 0 and retry_state.current_epoch_items:
        index = next_unredeemed_index(retry_state)
        if index >= len(retry_state.current_epoch_items):
            return None
        item = retry_state.current_epoch_items[index]
        slot = part.slots[item.original_slot_index]
        return CurrentProblem(
            problem=slot.problem,
            part_number=part.part_number,
            slot_index=item.original_slot_index,
            purpose=slot.purpose,
            is_retry=True,
            epoch_number=item.epoch_number,
        )

    if plan.current_slot_index >= len(part.slots):
        return None
    slot = part.slots[plan.current_slot_index]
    return CurrentProblem(
        problem=slot.problem,
        part_number=part.part_number,
        slot_index=plan.current_slot_index,
        purpose=slot.purpose,
        is_retry=False,
        epoch_number=0,
    )


def calculate_total_problems_with_retries(plan: SessionPlan) -> int:
    """Planned slots plus queued retries, for progress display."""
    total = 0
    for index, part in enumerate(plan.parts):
        total += len(part.slots)
        retry_state = plan.retry_states.get(index)
        if retry_state is not None:
            total += len(retry_state.current_epoch_items) + len(retry_state.pending_retries)
    return total


def needs_retry_epoch(plan: SessionPlan) -> bool:
    """True when the current part's main slots are done and a retry epoch should start."""
    part = get_current_part(plan)
    if part is None or plan.current_slot_index < len(part.slots):
        return False
    retry_state = plan.retry_states.get(plan.current_part_index)
    if retry_state is None or not retry_state.pending_retries:
        return False
    epoch_done = next_unredeemed_index(retry_state) >= len(retry_state.current_epoch_items)
    return epoch_done and retry_state.current_epoch < PLAN_MAX_RETRY_EPOCHS.value


def average_seconds_per_problem(plan: SessionPlan) -> float:
    total = get_total_problem_count(plan)
    if total > 0 and plan.estimated_minutes > 0:
        return plan.estimated_minutes * 60 / total
    # Fall back to a three-term problem at the default pace.
    return 3 * TIME_DEFAULT_SECONDS_PER_TERM.value


def current_streak(plan: SessionPlan) -> int:
    """Positive run of trailing correct answers, negative run of trailing misses."""
    streak = 0
    for result in reversed(plan.results):
        step = 1 if result.is_correct else -1
        if streak and (streak > 0) != (step > 0):
            break
        streak += step
    return streak


def calculate_session_health(plan: SessionPlan, elapsed_time_ms: float) -> SessionHealthReport:
    """
    Live health indicator for an in-progress session.

    Struggling if accuracy < 0.6, pace < 70% or a losing streak of 3;
    warning if accuracy < 0.8, pace < 90% or a losing streak of 2.
    """
    results = plan.results
    completed = len(results)
    expected = math.floor(elapsed_time_ms / 1000 / average_seconds_per_problem(plan))

    accuracy = sum(1 for r in results if r.is_correct) / completed if completed else 1.0
    pace_percent = completed / expected * 100 if expected > 0 else 100.0
    avg_response_time_ms = sum(r.response_time_ms for r in results) / completed if completed else 0.0
    streak = current_streak(plan)

    if (
        accuracy < HEALTH_STRUGGLING_ACCURACY.value
        or pace_percent < HEALTH_STRUGGLING_PACE.value
        or streak <= HEALTH_STRUGGLING_STREAK.value
    ):
        overall = SessionHealth.STRUGGLING
    elif (
        accuracy < HEALTH_WARNING_ACCURACY.value
        or pace_percent < HEALTH_WARNING_PACE.value
        or streak <= HEALTH_WARNING_STREAK.value
    ):
        overall = SessionHealth.WARNING
    else:
        overall = SessionHealth.GOOD

    return SessionHealthReport(
        overall=overall,
        accuracy=accuracy,
        pace_percent=pace_percent,
        current_streak=streak,
        avg_response_time_ms=avg_response_time_ms,
    )


def plan_problem_records(plan: SessionPlan) -> list[ProblemRecord]:
    """Plan results as history records, ready to append to a learner's history."""
    return [result.to_problem_record(session_id=plan.id) for result in plan.results]
