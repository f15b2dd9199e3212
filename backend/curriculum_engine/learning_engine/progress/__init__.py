"""
Session progress.

Pure plan actions (approve, start, record, redo, end, break handling), the
session flow state machine and read-only plan helpers.
"""

from curriculum_engine.learning_engine.progress.flow import AppliedFlowEvent, FlowEvent, apply_flow_event
from curriculum_engine.learning_engine.progress.plan_helpers import (
    SessionHealthReport,
    calculate_session_health,
    get_current_part,
    get_current_problem,
    get_next_slot,
    get_session_plan_accuracy,
    get_total_problem_count,
    is_part_complete,
    is_session_complete,
    plan_problem_records,
)
from curriculum_engine.learning_engine.progress.recorder import (
    abandon,
    approve,
    break_finished,
    break_results_acked,
    end_early,
    part_transition_complete,
    record,
    record_redo,
    start,
    start_break,
)

__all__ = [
    "AppliedFlowEvent",
    "FlowEvent",
    "SessionHealthReport",
    "abandon",
    "apply_flow_event",
    "approve",
    "break_finished",
    "break_results_acked",
    "calculate_session_health",
    "end_early",
    "get_current_part",
    "get_current_problem",
    "get_next_slot",
    "get_session_plan_accuracy",
    "get_total_problem_count",
    "is_part_complete",
    "is_session_complete",
    "part_transition_complete",
    "plan_problem_records",
    "record",
    "record_redo",
    "start",
    "start_break",
]
