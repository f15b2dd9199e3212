"""
Progress Recorder - pure plan actions.

Every action takes a plan and returns a new plan; the input is never
modified. Lifecycle:

    draft --approve--> approved --start--> active --> completed | abandoned

While active, answers move a ``(part, slot)`` cursor. Incorrect answers are
queued for retry; when a part's main slots are done the queue is replayed as
retry epoch 1, then epoch 2 for anything still wrong. A correct retry (or a
correct manual redo of an incorrect original) redeems the slot. Leaving a part
enters the part-transition checkpoint, optionally followed by a game break.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Iterable

from curriculum_engine.core.app_exceptions import InvalidPlanStateError
from curriculum_engine.learning_engine.config import PLAN_MAX_RETRY_EPOCHS
from curriculum_engine.learning_engine.constants import (
    BreakEndReason,
    BreakSelectionMode,
    EndReason,
    FlowEventType,
    FlowState,
    PlanStatus,
)
from curriculum_engine.learning_engine.progress.flow import FlowEvent, apply_flow_event
from curriculum_engine.learning_engine.progress.plan_helpers import next_unredeemed_index
from curriculum_engine.schemas.session_plan import (
    PartRetryState,
    RedoContext,
    RetryItem,
    SessionPlan,
    SlotResult,
)

logger = logging.getLogger(__name__)


def _require_status(plan: SessionPlan, action: str, allowed: Iterable[PlanStatus]) -> None:
    allowed = tuple(allowed)
    if plan.status not in allowed:
        raise InvalidPlanStateError(action, plan.status.value, [s.value for s in allowed])


def _require_practicing(plan: SessionPlan, action: str) -> None:
    _require_status(plan, action, [PlanStatus.ACTIVE])
    if plan.flow.state != FlowState.PRACTICING:
        raise InvalidPlanStateError(action, f"{plan.status.value}/{plan.flow.state.value}")


def _require_slot(plan: SessionPlan, action: str, part_number: int, slot_index: int) -> None:
    part_exists = 1 <= part_number <= len(plan.parts)
    if not part_exists or not 0 <= slot_index < len(plan.parts[part_number - 1].slots):
        raise InvalidPlanStateError(
            action, plan.status.value, reason=f"plan has no slot {part_number}/{slot_index}"
        )


def _apply_flow(plan: SessionPlan, event: FlowEvent, now: datetime) -> None:
    plan.flow = apply_flow_event(plan.flow, event, now).flow


def _retry_state(plan: SessionPlan, part_index: int) -> PartRetryState:
    if part_index not in plan.retry_states:
        plan.retry_states[part_index] = PartRetryState()
    return plan.retry_states[part_index]


def _finish(plan: SessionPlan, reason: EndReason, now: datetime, note: str | None = None) -> None:
    plan.status = PlanStatus.ABANDONED if reason == EndReason.ABANDONED else PlanStatus.COMPLETED
    plan.end_reason = reason
    plan.end_note = note
    plan.completed_at = now
    event_type = (
        FlowEventType.SESSION_ABANDONED if reason == EndReason.ABANDONED else FlowEventType.SESSION_COMPLETED
    )
    _apply_flow(plan, FlowEvent(type=event_type), now)


def _advance(plan: SessionPlan, now: datetime) -> None:
    """Move past finished slots, retry epochs and parts."""
    while plan.current_part_index < len(plan.parts):
        part = plan.parts[plan.current_part_index]
        if plan.current_slot_index < len(part.slots):
            return

        retry_state = _retry_state(plan, plan.current_part_index)
        retry_state.current_retry_index = next_unredeemed_index(retry_state)
        if retry_state.current_retry_index < len(retry_state.current_epoch_items):
            return

        if retry_state.pending_retries and retry_state.current_epoch < PLAN_MAX_RETRY_EPOCHS.value:
            redeemed = set(retry_state.redeemed_slots)
            retry_state.current_epoch += 1
            retry_state.current_epoch_items = [
                item for item in retry_state.pending_retries if item.original_slot_index not in redeemed
            ]
            retry_state.pending_retries = []
            retry_state.current_retry_index = 0
            logger.debug(
                f"Part {part.part_number}: retry epoch {retry_state.current_epoch} "
                f"with {len(retry_state.current_epoch_items)} problems"
            )
            continue

        # Anything still pending after the last epoch is dropped.
        retry_state.pending_retries = []
        plan.current_part_index += 1
        plan.current_slot_index = 0
        if plan.current_part_index >= len(plan.parts):
            _finish(plan, EndReason.FINISHED, now)
            logger.info(f"Plan {plan.id} completed with {len(plan.results)} results")
            return
        _apply_flow(plan, FlowEvent(type=FlowEventType.PART_TRANSITION_STARTED), now)
        return


def approve(plan: SessionPlan, now: datetime | None = None) -> SessionPlan:
    _require_status(plan, "approve", [PlanStatus.DRAFT])
    return plan.model_copy(
        deep=True, update={"status": PlanStatus.APPROVED, "approved_at": now or datetime.now(UTC)}
    )


def start(plan: SessionPlan, now: datetime | None = None) -> SessionPlan:
    _require_status(plan, "start", [PlanStatus.APPROVED])
    updated = plan.model_copy(deep=True)
    updated.status = PlanStatus.ACTIVE
    updated.started_at = now or datetime.now(UTC)
    return updated


def record(plan: SessionPlan, result: SlotResult, now: datetime | None = None) -> SessionPlan:
    """
    Record the answer to the current problem and advance the cursor.

    The result's position and retry fields are taken from the plan's cursor,
    not from the caller.

    Raises:
        InvalidPlanStateError: If the plan is not active and practicing
    """
    _require_practicing(plan, "record")
    now = now or datetime.now(UTC)
    updated = plan.model_copy(deep=True)
    part_index = updated.current_part_index
    part = updated.parts[part_index]
    retry_state = _retry_state(updated, part_index)
    retry_state.current_retry_index = next_unredeemed_index(retry_state)

    if retry_state.current_epoch > 0 and retry_state.current_retry_index < len(
        retry_state.current_epoch_items
    ):
        item = retry_state.current_epoch_items[retry_state.current_retry_index]
        recorded = result.model_copy(
            update={
                "part_number": part.part_number,
                "slot_index": item.original_slot_index,
                "original_slot_index": item.original_slot_index,
                "is_retry": True,
                "epoch_number": item.epoch_number,
            }
        )
        if recorded.is_correct:
            retry_state.redeemed_slots.append(item.original_slot_index)
        elif item.epoch_number < PLAN_MAX_RETRY_EPOCHS.value:
            retry_state.pending_retries.append(
                RetryItem(original_slot_index=item.original_slot_index, epoch_number=item.epoch_number + 1)
            )
        retry_state.current_retry_index += 1
    else:
        slot_index = updated.current_slot_index
        recorded = result.model_copy(
            update={
                "part_number": part.part_number,
                "slot_index": slot_index,
                "original_slot_index": None,
                "is_retry": False,
                "epoch_number": 0,
            }
        )
        if not recorded.is_correct:
            retry_state.pending_retries.append(RetryItem(original_slot_index=slot_index, epoch_number=1))
        updated.current_slot_index += 1

    updated.results.append(recorded)
    _advance(updated, now)
    return updated


def record_redo(plan: SessionPlan, result: SlotResult, redo_context: RedoContext) -> SessionPlan:
    """
    Record a manual redo of an earlier slot without moving the cursor.

    A correct redo of an incorrect original redeems the slot. An incorrect
    redo of a correct original is not recorded at all.
    """
    _require_status(plan, "record_redo", [PlanStatus.ACTIVE])
    _require_slot(plan, "record_redo", redo_context.part_number, redo_context.slot_index)
    if redo_context.original_was_correct and not result.is_correct:
        logger.debug(
            f"Ignoring incorrect redo of correct slot {redo_context.part_number}/{redo_context.slot_index}"
        )
        return plan

    updated = plan.model_copy(deep=True)
    updated.results.append(
        result.model_copy(
            update={
                "part_number": redo_context.part_number,
                "slot_index": redo_context.slot_index,
                "original_slot_index": redo_context.slot_index,
                "is_manual_redo": True,
                "is_retry": False,
                "epoch_number": 0,
            }
        )
    )

    if not redo_context.original_was_correct and result.is_correct:
        retry_state = _retry_state(updated, redo_context.part_number - 1)
        if redo_context.slot_index not in retry_state.redeemed_slots:
            retry_state.redeemed_slots.append(redo_context.slot_index)
        retry_state.pending_retries = [
            item
            for item in retry_state.pending_retries
            if item.original_slot_index != redo_context.slot_index
        ]
    return updated


def end_early(plan: SessionPlan, reason: str | None = None, now: datetime | None = None) -> SessionPlan:
    """Deliberate stop by the learner or teacher; reported apart from abandonment."""
    _require_status(plan, "end_early", [PlanStatus.ACTIVE])
    updated = plan.model_copy(deep=True)
    _finish(updated, EndReason.ENDED_EARLY, now or datetime.now(UTC), note=reason)
    return updated


def abandon(plan: SessionPlan, now: datetime | None = None) -> SessionPlan:
    _require_status(plan, "abandon", [PlanStatus.DRAFT, PlanStatus.APPROVED, PlanStatus.ACTIVE])
    updated = plan.model_copy(deep=True)
    _finish(updated, EndReason.ABANDONED, now or datetime.now(UTC))
    return updated


def should_run_break(plan: SessionPlan, completed_part_number: int) -> bool:
    settings = plan.game_break_settings
    return settings.enabled and completed_part_number in plan.break_after_parts


def part_transition_complete(plan: SessionPlan, now: datetime | None = None) -> SessionPlan:
    """
    Leave the part-transition checkpoint.

    Enters a game break when one is scheduled after the part just finished;
    with auto-start selection and a chosen game the break starts immediately.
    """
    _require_status(plan, "part_transition_complete", [PlanStatus.ACTIVE])
    now = now or datetime.now(UTC)
    updated = plan.model_copy(deep=True)
    completed_part_number = updated.current_part_index
    run_break = should_run_break(updated, completed_part_number)

    applied = apply_flow_event(
        updated.flow,
        FlowEvent(type=FlowEventType.PART_TRANSITION_COMPLETED, should_run_break=run_break),
        now,
    )
    updated.flow = applied.flow
    if not applied.changed:
        return updated

    updated.flow.completed_transition_parts.append(completed_part_number)
    settings = updated.game_break_settings
    if run_break and settings.selection_mode == BreakSelectionMode.AUTO_START and settings.selected_game:
        _apply_flow(updated, FlowEvent(type=FlowEventType.BREAK_STARTED, game=settings.selected_game), now)
    return updated


def start_break(plan: SessionPlan, game: str | None = None, now: datetime | None = None) -> SessionPlan:
    _require_status(plan, "start_break", [PlanStatus.ACTIVE])
    updated = plan.model_copy(deep=True)
    _apply_flow(updated, FlowEvent(type=FlowEventType.BREAK_STARTED, game=game), now or datetime.now(UTC))
    return updated


def break_finished(
    plan: SessionPlan,
    reason: BreakEndReason | str,
    results: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> SessionPlan:
    """End a game break; a finished game waits for its results to be acknowledged."""
    _require_status(plan, "break_finished", [PlanStatus.ACTIVE])
    updated = plan.model_copy(deep=True)
    _apply_flow(
        updated,
        FlowEvent(type=FlowEventType.BREAK_FINISHED, reason=BreakEndReason(reason), results=results),
        now or datetime.now(UTC),
    )
    return updated


def break_results_acked(plan: SessionPlan, now: datetime | None = None) -> SessionPlan:
    _require_status(plan, "break_results_acked", [PlanStatus.ACTIVE])
    updated = plan.model_copy(deep=True)
    _apply_flow(updated, FlowEvent(type=FlowEventType.BREAK_RESULTS_ACKED), now or datetime.now(UTC))
    return updated
