"""
Session Plan Composer.

Turns mastery, session mode and comfort into a concrete, time-boxed plan:

1. Normalize part weights (0 disables a part) into a time share per part.
2. Convert each part's share into a slot count using the estimated seconds
   per problem for that part's mode.
3. Allocate purposes per part in proportion to the purpose weights (challenge
   capped by the part's challenge ratio), optionally shuffled per part, then
   pick a skill for each purpose and a term-count range for the part's mode.
4. Mark game breaks between parts once enough active time has accumulated.

Selection is reproducible: the RNG is seeded from the learner, the request and
the date unless an explicit seed is supplied.
"""

import hashlib
import logging
import math
import random
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Mapping, Sequence

from curriculum_engine.core.app_exceptions import ActiveSessionExistsError, NoSkillsEnabledError
from curriculum_engine.learning_engine.bkt.integration import calculate_bkt_multiplier, classify_skill
from curriculum_engine.learning_engine.config import (
    PLAN_CHALLENGE_COMFORT_BOOST,
    TIME_MIN_PROBLEMS_PER_PART,
    get_plan_defaults,
)
from curriculum_engine.learning_engine.constants import (
    PART_ORDER,
    TERMINAL_PLAN_STATUSES,
    MasteryClassification,
    PartType,
    PlanStatus,
    ProblemFormat,
    SlotPurpose,
)
from curriculum_engine.learning_engine.contracts import MasteryState, TermCountBounds
from curriculum_engine.learning_engine.planner.problems import generate_problem
from curriculum_engine.learning_engine.planner.time_estimation import estimate_problem_time_seconds
from curriculum_engine.learning_engine.session_mode.comfort import ComfortLevel
from curriculum_engine.learning_engine.session_mode.types import (
    ProgressionMode,
    SessionMode,
    focus_skill_ids,
)
from curriculum_engine.learning_engine.skills.catalog import DEFAULT_REGISTRY, SkillRegistry
from curriculum_engine.learning_engine.term_count.scaling import (
    TermCountScalingConfig,
    default_term_count_config,
    explain_term_count,
)
from curriculum_engine.schemas.session_plan import (
    GameBreakSettings,
    ProblemSlot,
    SessionPart,
    SessionPlan,
)

logger = logging.getLogger(__name__)

PURPOSE_ORDER = (
    SlotPurpose.FOCUS,
    SlotPurpose.REINFORCE,
    SlotPurpose.REVIEW,
    SlotPurpose.CHALLENGE,
)


@dataclass(frozen=True)
class ComposeRequest:
    """Everything the composer needs for one plan."""

    learner_id: str
    duration_minutes: float
    enabled_skill_ids: Sequence[str]
    session_mode: SessionMode
    states: Mapping[str, MasteryState] = field(default_factory=dict)
    enabled_parts: Sequence[PartType] = PART_ORDER
    part_weights: Mapping[PartType | str, float] | None = None
    purpose_weights: Mapping[SlotPurpose | str, float] | None = None
    comfort: ComfortLevel | float = 0.3
    term_count_config: TermCountScalingConfig | None = None
    term_count_overrides: Mapping[PartType | str, TermCountBounds] = field(default_factory=dict)
    shuffle_purposes: bool = True
    game_break_settings: GameBreakSettings = field(default_factory=GameBreakSettings)
    seconds_per_term: float | None = None
    seed: str | None = None
    now: datetime | None = None


def create_deterministic_seed(
    learner_id: str,
    duration_minutes: float,
    enabled_parts: Sequence[PartType],
    skill_ids: Sequence[str],
    date_bucket: str | None = None,
) -> str:
    """
    Create a deterministic seed for reproducible composition.

    Same inputs on the same day produce the same plan.

    Returns:
        Hex seed string
    """
    if date_bucket is None:
        date_bucket = datetime.now(UTC).strftime("%Y-%m-%d")
    seed_input = "|".join(
        [
            learner_id,
            f"{duration_minutes:g}",
            ",".join(PartType(p).value for p in enabled_parts),
            ",".join(sorted(skill_ids)),
            date_bucket,
        ]
    )
    return hashlib.sha256(seed_input.encode()).hexdigest()


def create_seeded_rng(seed: str) -> random.Random:
    """Seeded RNG; hex seeds are used directly, anything else is hashed first."""
    try:
        seed_int = int(seed, 16)
    except ValueError:
        seed_bytes = hashlib.sha256(seed.encode()).digest()
        seed_int = int.from_bytes(seed_bytes[:8], byteorder="big")
    return random.Random(seed_int)


def _by_value(mapping: Mapping) -> dict:
    """Re-key a mapping by enum value so enum and plain-string keys both match."""
    return {getattr(key, "value", key): value for key, value in mapping.items()}


def normalize_weights(weights: Mapping, keys: Sequence) -> dict:
    """Proportional shares over ``keys``; negative weights count as zero."""
    lookup = _by_value(weights)
    clean = {key: max(0.0, float(lookup.get(key.value, 0))) for key in keys}
    total = sum(clean.values())
    if total <= 0:
        return {key: 0.0 for key in keys}
    return {key: value / total for key, value in clean.items()}


def allocate_counts(total: int, shares: Mapping, order: Sequence) -> dict:
    """Split ``total`` by shares using largest remainder; ties follow ``order``."""
    raw = {key: total * shares.get(key, 0.0) for key in order}
    counts = {key: math.floor(value) for key, value in raw.items()}
    remainder = total - sum(counts.values())
    by_fraction = sorted(order, key=lambda k: (-(raw[k] - counts[k]), order.index(k)))
    for key in by_fraction[:remainder]:
        if shares.get(key, 0.0) > 0:
            counts[key] += 1
        else:
            counts[order[0]] += 1
    return counts


def part_format(part_type: PartType) -> tuple[ProblemFormat, bool]:
    """Layout and whether the physical abacus is used."""
    if part_type == PartType.ABACUS:
        return ProblemFormat.VERTICAL, True
    if part_type == PartType.VISUALIZATION:
        return ProblemFormat.VERTICAL, False
    return ProblemFormat.LINEAR, False


class _SkillPicker:
    """Chooses a skill for each slot purpose with graceful fallback."""

    def __init__(
        self,
        rng: random.Random,
        mode: SessionMode,
        enabled: Sequence[str],
        states: Mapping[str, MasteryState],
        now: datetime,
        review_age_days: int,
    ):
        self.rng = rng
        self.states = states
        self.enabled = list(enabled)

        focus = focus_skill_ids(mode)
        self.focus = focus or list(self.enabled)

        self.reinforce = [
            s
            for s in self.enabled
            if s not in focus
            and states.get(s) is not None
            and classify_skill(states[s].p_known, states[s].confidence)
            in (MasteryClassification.WEAK, MasteryClassification.DEVELOPING)
        ]

        strong = [
            s
            for s in self.enabled
            if states.get(s) is not None
            and classify_skill(states[s].p_known, states[s].confidence) == MasteryClassification.STRONG
        ]
        cutoff = now - timedelta(days=review_age_days)
        aging = [
            s for s in strong if (states[s].last_practiced_at or now) <= cutoff
        ]
        self.review = aging or strong

        developing = [
            s
            for s in self.enabled
            if states.get(s) is not None
            and classify_skill(states[s].p_known, states[s].confidence) == MasteryClassification.DEVELOPING
        ]
        if isinstance(mode, ProgressionMode):
            self.challenge = [mode.next_skill.skill_id]
        else:
            self.challenge = developing

    def _p_known(self, skill_id: str) -> float:
        state = self.states.get(skill_id)
        return state.p_known if state else 0.0

    def _weighted_choice(self, candidates: Sequence[str]) -> str:
        # Weaker skills get proportionally more slots.
        weights = [calculate_bkt_multiplier(self._p_known(s)) for s in candidates]
        return self.rng.choices(list(candidates), weights=weights, k=1)[0]

    def pick(self, purpose: SlotPurpose) -> str:
        pools = {
            SlotPurpose.FOCUS: [self.focus],
            SlotPurpose.REINFORCE: [self.reinforce, self.focus],
            SlotPurpose.REVIEW: [self.review, self.enabled],
            SlotPurpose.CHALLENGE: [self.challenge, self.focus],
        }[purpose]
        for pool in pools:
            if pool:
                return self._weighted_choice(pool)
        return self._weighted_choice(self.enabled)


def _purposes_for_part(
    slot_count: int,
    purpose_shares: Mapping[SlotPurpose, float],
    challenge_ratio: float,
    rng: random.Random,
    shuffle: bool,
) -> list[SlotPurpose]:
    counts = allocate_counts(slot_count, purpose_shares, list(PURPOSE_ORDER))
    cap = math.floor(slot_count * challenge_ratio)
    if counts[SlotPurpose.CHALLENGE] > cap:
        counts[SlotPurpose.FOCUS] += counts[SlotPurpose.CHALLENGE] - cap
        counts[SlotPurpose.CHALLENGE] = cap

    purposes = [purpose for purpose in PURPOSE_ORDER for _ in range(counts[purpose])]
    if shuffle:
        rng.shuffle(purposes)
    return purposes


def _game_break_markers(parts: Sequence[SessionPart], settings: GameBreakSettings) -> list[int]:
    if not settings.enabled or len(parts) < 2:
        return []
    markers = []
    accumulated = 0.0
    for part in parts[:-1]:
        accumulated += part.estimated_minutes
        if accumulated >= settings.interval_minutes:
            markers.append(part.part_number)
            accumulated = 0.0
    return markers


def compose(
    request: ComposeRequest,
    existing_active_plan: SessionPlan | None = None,
    registry: SkillRegistry = DEFAULT_REGISTRY,
) -> SessionPlan:
    """
    Compose a draft session plan.

    Args:
        request: Composition inputs
        existing_active_plan: The learner's open plan, if the caller found one
        registry: Skill registry used to resolve prerequisites for generation

    Returns:
        SessionPlan in draft status

    Raises:
        ActiveSessionExistsError: If ``existing_active_plan`` is still open
        NoSkillsEnabledError: If no part has weight or no skill is enabled
    """
    if existing_active_plan is not None and existing_active_plan.status not in TERMINAL_PLAN_STATUSES:
        raise ActiveSessionExistsError(existing_active_plan)

    defaults = get_plan_defaults()
    now = request.now or datetime.now(UTC)

    enabled_skills = [s for s in dict.fromkeys(request.enabled_skill_ids) if s in registry]
    if not enabled_skills:
        raise NoSkillsEnabledError("No skills are enabled for practice")

    part_weights = request.part_weights if request.part_weights is not None else defaults["part_weights"]
    enabled_parts = [p for p in PART_ORDER if p in {PartType(x) for x in request.enabled_parts}]
    part_shares = normalize_weights(part_weights, enabled_parts)
    active_parts = [p for p in enabled_parts if part_shares[p] > 0]
    if not active_parts:
        raise NoSkillsEnabledError("All session parts are disabled")

    purpose_weights = (
        request.purpose_weights if request.purpose_weights is not None else defaults["purpose_weights"]
    )
    purpose_shares = normalize_weights(purpose_weights, list(PURPOSE_ORDER))
    if sum(purpose_shares.values()) <= 0:
        purpose_shares = {purpose: 0.0 for purpose in PURPOSE_ORDER}
        purpose_shares[SlotPurpose.FOCUS] = 1.0

    mode = request.session_mode
    allowed = set(enabled_skills)
    if isinstance(mode, ProgressionMode):
        allowed.add(mode.next_skill.skill_id)
    for skill_id in [s for s in allowed if s in registry]:
        allowed |= registry.transitive_prerequisites(skill_id)

    seed = request.seed or create_deterministic_seed(
        request.learner_id,
        request.duration_minutes,
        active_parts,
        enabled_skills,
        now.strftime("%Y-%m-%d"),
    )
    rng = create_seeded_rng(seed)

    comfort_value = request.comfort.comfort if isinstance(request.comfort, ComfortLevel) else request.comfort
    term_config = request.term_count_config or default_term_count_config()
    picker = _SkillPicker(rng, mode, enabled_skills, request.states, now, defaults["review_age_days"])
    overrides = _by_value(request.term_count_overrides)
    min_slots = TIME_MIN_PROBLEMS_PER_PART.value

    parts: list[SessionPart] = []
    for part_type in active_parts:
        override = overrides.get(part_type.value)
        base = explain_term_count(part_type, comfort_value, term_config, override)
        challenge = explain_term_count(
            part_type, min(1.0, comfort_value + PLAN_CHALLENGE_COMFORT_BOOST.value), term_config, override
        )

        avg_terms = (base.final.min + base.final.max) / 2
        per_problem = estimate_problem_time_seconds(avg_terms, request.seconds_per_term, part_type)
        part_seconds = request.duration_minutes * 60 * part_shares[part_type]
        slot_count = max(min_slots, math.floor(part_seconds / per_problem) if per_problem > 0 else 0)

        purposes = _purposes_for_part(
            slot_count,
            purpose_shares,
            defaults["challenge_ratio_by_part"][part_type.value],
            rng,
            request.shuffle_purposes,
        )

        slots = []
        for index, purpose in enumerate(purposes):
            explanation = challenge if purpose == SlotPurpose.CHALLENGE else base
            skill_id = picker.pick(purpose)
            state = request.states.get(skill_id)
            slots.append(
                ProblemSlot(
                    index=index,
                    purpose=purpose,
                    skill_id=skill_id,
                    target_skill_ids=[skill_id],
                    term_count=explanation.final,
                    term_count_explanation=explanation,
                    complexity_multiplier=calculate_bkt_multiplier(state.p_known if state else 0.0),
                    problem=generate_problem(rng, skill_id, explanation.final, allowed),
                )
            )

        fmt, use_abacus = part_format(part_type)
        parts.append(
            SessionPart(
                part_number=len(parts) + 1,
                type=part_type,
                format=fmt,
                use_abacus=use_abacus,
                slots=slots,
                estimated_minutes=round(slot_count * per_problem / 60, 2),
            )
        )
        logger.debug(f"Part {part_type.value}: {slot_count} slots at {per_problem:.1f}s/problem")

    plan = SessionPlan(
        learner_id=request.learner_id,
        status=PlanStatus.DRAFT,
        target_duration_minutes=request.duration_minutes,
        estimated_minutes=round(sum(p.estimated_minutes for p in parts), 2),
        parts=parts,
        session_mode=mode,
        comfort_level=request.comfort if isinstance(request.comfort, ComfortLevel) else None,
        game_break_settings=request.game_break_settings,
        break_after_parts=_game_break_markers(parts, request.game_break_settings),
        seed=seed,
        created_at=now,
    )
    logger.info(
        f"Composed plan {plan.id} for learner {request.learner_id}: "
        f"{plan.estimated_problem_count} problems in {len(parts)} parts ({mode.type})"
    )
    return plan
