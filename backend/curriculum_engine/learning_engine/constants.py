"""Constants for curriculum engine algorithms."""

from enum import Enum


class PartType(str, Enum):
    """Session part type (practice modality)."""

    ABACUS = "abacus"
    VISUALIZATION = "visualization"
    LINEAR = "linear"


PART_ORDER = (PartType.ABACUS, PartType.VISUALIZATION, PartType.LINEAR)


class ProblemFormat(str, Enum):
    """How a problem is laid out."""

    VERTICAL = "vertical"
    LINEAR = "linear"


class SlotPurpose(str, Enum):
    """Why a slot is in the plan."""

    FOCUS = "focus"
    REINFORCE = "reinforce"
    REVIEW = "review"
    CHALLENGE = "challenge"


class ModeType(str, Enum):
    """Session mode discriminator."""

    REMEDIATION = "remediation"
    PROGRESSION = "progression"
    MAINTENANCE = "maintenance"


class LengthPreference(str, Enum):
    """Learner preference for problem length."""

    SHORTER = "shorter"
    RECOMMENDED = "recommended"
    LONGER = "longer"


class MasteryClassification(str, Enum):
    """BKT classification bands."""

    WEAK = "weak"
    DEVELOPING = "developing"
    STRONG = "strong"


class RecordSource(str, Enum):
    """Origin of a problem record."""

    PRACTICE = "practice"
    RECENCY_REFRESH = "recency-refresh"
    TEACHER_CORRECTED = "teacher-corrected"
    TEACHER_EXCLUDED = "teacher-excluded"


class PlanStatus(str, Enum):
    """Session plan lifecycle status."""

    DRAFT = "draft"
    APPROVED = "approved"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


TERMINAL_PLAN_STATUSES = frozenset({PlanStatus.COMPLETED, PlanStatus.ABANDONED})


class FlowState(str, Enum):
    """Sub-state of an active plan."""

    PRACTICING = "practicing"
    PART_TRANSITION = "part_transition"
    BREAK_PENDING = "break_pending"
    BREAK_ACTIVE = "break_active"
    BREAK_RESULTS = "break_results"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class FlowEventType(str, Enum):
    """Events accepted by the session flow state machine."""

    PART_TRANSITION_STARTED = "PART_TRANSITION_STARTED"
    PART_TRANSITION_COMPLETED = "PART_TRANSITION_COMPLETED"
    BREAK_STARTED = "BREAK_STARTED"
    BREAK_FINISHED = "BREAK_FINISHED"
    BREAK_RESULTS_ACKED = "BREAK_RESULTS_ACKED"
    SESSION_COMPLETED = "SESSION_COMPLETED"
    SESSION_ABANDONED = "SESSION_ABANDONED"


class BreakEndReason(str, Enum):
    """Why a game break ended."""

    TIMEOUT = "timeout"
    GAME_FINISHED = "gameFinished"
    SKIPPED = "skipped"


class BreakSelectionMode(str, Enum):
    """How the break game is chosen."""

    AUTO_START = "auto-start"
    KID_CHOOSES = "kid-chooses"


class EndReason(str, Enum):
    """Why a plan reached a terminal status."""

    FINISHED = "finished"
    ENDED_EARLY = "ended_early"
    ABANDONED = "abandoned"


class SessionHealth(str, Enum):
    """Live session health indicator."""

    GOOD = "good"
    WARNING = "warning"
    STRUGGLING = "struggling"
