"""Engine-specific exceptions for consistent error handling."""

from typing import Any


class EngineError(Exception):
    """Engine error with standardized error code."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        """Initialize engine error."""
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Error payload in the shape callers hand to clients."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ActiveSessionExistsError(EngineError):
    """A learner already has an open plan; carries it for client-side recovery."""

    def __init__(self, existing_plan: Any):
        self.existing_plan = existing_plan
        plan_id = getattr(existing_plan, "id", None)
        super().__init__(
            code="ACTIVE_SESSION_EXISTS",
            message="An active session already exists for this learner",
            details={"existing_plan_id": plan_id},
        )


class NoSkillsEnabledError(EngineError):
    """Composition requested with nothing to practice."""

    def __init__(self, message: str = "No skills or parts are enabled for practice"):
        super().__init__(code="NO_SKILLS_ENABLED", message=message)


class HistoryOrderError(EngineError):
    """Problem history is not in ascending timestamp order."""

    def __init__(self, index: int, previous: Any, current: Any):
        self.index = index
        super().__init__(
            code="HISTORY_OUT_OF_ORDER",
            message=f"History record {index} is earlier than the record before it",
            details={
                "index": index,
                "previous_timestamp": str(previous),
                "timestamp": str(current),
            },
        )


class InvalidFlowTransitionError(EngineError):
    """Event not allowed from the current session-flow state."""

    def __init__(self, state: str, event_type: str):
        self.state = state
        self.event_type = event_type
        super().__init__(
            code="INVALID_FLOW_TRANSITION",
            message=f"Cannot apply {event_type} in flow state {state}",
            details={"state": state, "event_type": event_type},
        )


class InvalidPlanStateError(EngineError):
    """Plan action attempted while the plan is in the wrong status or on a missing slot."""

    def __init__(
        self, action: str, status: str, allowed: list[str] | None = None, reason: str | None = None
    ):
        self.action = action
        self.status = status
        details = {"action": action, "status": status, "allowed": allowed or []}
        message = f"Cannot {action} a plan with status {status}"
        if reason:
            details["reason"] = reason
            message = f"Cannot {action}: {reason}"
        super().__init__(code="INVALID_PLAN_STATE", message=message, details=details)


class ConfigValidationError(EngineError):
    """Configuration rejected at write time."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            code="INVALID_CONFIG",
            message="Invalid configuration: " + "; ".join(errors),
            details=errors,
        )


class SkillGraphError(EngineError):
    """Skill prerequisite graph references unknown skills or contains a cycle."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(code="INVALID_SKILL_GRAPH", message=message, details=details)
