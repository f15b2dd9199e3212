"""
Session flow state machine.

Sub-states of an active plan:

    practicing --PART_TRANSITION_STARTED--> part_transition
    part_transition --PART_TRANSITION_COMPLETED(no break)--> practicing
    part_transition --PART_TRANSITION_COMPLETED(break)--> break_pending
    break_pending --BREAK_STARTED--> break_active
    break_pending | break_active --BREAK_FINISHED(gameFinished)--> break_results
    break_pending | break_active --BREAK_FINISHED(timeout | skipped)--> practicing
    break_results --BREAK_RESULTS_ACKED--> practicing
    * --SESSION_COMPLETED--> completed   (except from abandoned)
    * --SESSION_ABANDONED--> abandoned   (except from completed)

Events are delivered at least once by callers, so an event whose effect is
already applied is a no-op. Every applied change bumps ``version``.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from curriculum_engine.core.app_exceptions import InvalidFlowTransitionError
from curriculum_engine.learning_engine.constants import BreakEndReason, FlowEventType, FlowState
from curriculum_engine.schemas.session_plan import SessionFlow

logger = logging.getLogger(__name__)

_CLEARED_BREAK = {
    "break_started_at": None,
    "break_reason": None,
    "break_selected_game": None,
    "break_results": None,
}


@dataclass(frozen=True)
class FlowEvent:
    """An event for the flow state machine; payload fields depend on ``type``."""

    type: FlowEventType
    should_run_break: bool = False
    game: str | None = None
    reason: BreakEndReason | None = None
    results: dict[str, Any] | None = None


@dataclass(frozen=True)
class AppliedFlowEvent:
    changed: bool
    flow: SessionFlow


def _no_change(flow: SessionFlow) -> AppliedFlowEvent:
    return AppliedFlowEvent(changed=False, flow=flow)


def _reject(flow: SessionFlow, event: FlowEvent) -> InvalidFlowTransitionError:
    return InvalidFlowTransitionError(flow.state.value, event.type.value)


def apply_flow_event(flow: SessionFlow, event: FlowEvent, now: datetime | None = None) -> AppliedFlowEvent:
    """
    Apply one event to a flow.

    Args:
        flow: Current flow (not modified)
        event: Event to apply
        now: Timestamp for the change (defaults to current UTC time)

    Returns:
        AppliedFlowEvent with the resulting flow and whether anything changed

    Raises:
        InvalidFlowTransitionError: If the event is illegal from the current state
    """
    now = now or datetime.now(UTC)
    current = flow.state

    def commit(**patch: Any) -> AppliedFlowEvent:
        patch.update(updated_at=now, version=flow.version + 1)
        updated = flow.model_copy(update=patch)
        logger.debug(f"Flow {current.value} --{event.type.value}--> {updated.state.value}")
        return AppliedFlowEvent(changed=True, flow=updated)

    if event.type == FlowEventType.PART_TRANSITION_STARTED:
        if current == FlowState.PART_TRANSITION:
            return _no_change(flow)
        if current != FlowState.PRACTICING:
            raise _reject(flow, event)
        return commit(state=FlowState.PART_TRANSITION, **_CLEARED_BREAK)

    if event.type == FlowEventType.PART_TRANSITION_COMPLETED:
        if event.should_run_break:
            if current in (FlowState.BREAK_PENDING, FlowState.BREAK_ACTIVE):
                return _no_change(flow)
        elif current == FlowState.PRACTICING:
            return _no_change(flow)
        if current != FlowState.PART_TRANSITION:
            raise _reject(flow, event)
        if not event.should_run_break:
            return commit(state=FlowState.PRACTICING, **_CLEARED_BREAK)
        return commit(
            state=FlowState.BREAK_PENDING,
            break_started_at=flow.break_started_at or now,
            break_reason=None,
            break_selected_game=None,
            break_results=None,
        )

    if event.type == FlowEventType.BREAK_STARTED:
        if current == FlowState.BREAK_ACTIVE:
            if event.game is None or event.game == flow.break_selected_game:
                return _no_change(flow)
            return commit(break_selected_game=event.game)
        if current != FlowState.BREAK_PENDING:
            raise _reject(flow, event)
        return commit(
            state=FlowState.BREAK_ACTIVE,
            break_started_at=flow.break_started_at or now,
            break_selected_game=event.game,
        )

    if event.type == FlowEventType.BREAK_FINISHED:
        if event.reason is None:
            raise _reject(flow, event)
        finished = event.reason == BreakEndReason.GAME_FINISHED
        target = FlowState.BREAK_RESULTS if finished else FlowState.PRACTICING
        results = event.results if finished else None
        if current == target and flow.break_reason == event.reason and flow.break_results == results:
            return _no_change(flow)
        if current not in (FlowState.BREAK_ACTIVE, FlowState.BREAK_PENDING):
            raise _reject(flow, event)
        return commit(state=target, break_reason=event.reason, break_results=results)

    if event.type == FlowEventType.BREAK_RESULTS_ACKED:
        already_applied = (
            current == FlowState.PRACTICING
            and flow.break_reason is None
            and flow.break_selected_game is None
            and flow.break_results is None
        )
        if already_applied:
            return _no_change(flow)
        if current != FlowState.BREAK_RESULTS:
            raise _reject(flow, event)
        return commit(
            state=FlowState.PRACTICING,
            break_reason=None,
            break_selected_game=None,
            break_results=None,
        )

    if event.type == FlowEventType.SESSION_COMPLETED:
        if current == FlowState.COMPLETED:
            return _no_change(flow)
        if current == FlowState.ABANDONED:
            raise _reject(flow, event)
        return commit(state=FlowState.COMPLETED)

    if event.type == FlowEventType.SESSION_ABANDONED:
        if current == FlowState.ABANDONED:
            return _no_change(flow)
        if current == FlowState.COMPLETED:
            raise _reject(flow, event)
        return commit(state=FlowState.ABANDONED)

    raise _reject(flow, event)
