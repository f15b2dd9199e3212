"""Command-line interface for the curriculum engine."""

import json
import logging
from pathlib import Path

import click
from pydantic import TypeAdapter, ValidationError

from curriculum_engine.core.app_exceptions import EngineError
from curriculum_engine.core.config import settings
from curriculum_engine.core.logging import setup_logging
from curriculum_engine.learning_engine.bkt.history import compute_mastery, practicing_skill_ids
from curriculum_engine.learning_engine.bkt.simulation import (
    design_sequence_for_classification,
    simulate_sequence,
)
from curriculum_engine.learning_engine.constants import (
    PART_ORDER,
    LengthPreference,
    MasteryClassification,
    PartType,
)
from curriculum_engine.learning_engine.contracts import ProblemRecord
from curriculum_engine.learning_engine.planner.composer import ComposeRequest, compose
from curriculum_engine.learning_engine.readiness.core import evaluate_skills
from curriculum_engine.learning_engine.session_mode.comfort import compute_comfort_level
from curriculum_engine.learning_engine.session_mode.selector import select_session_mode
from curriculum_engine.learning_engine.term_count.scaling import parse_term_count_config
from curriculum_engine.schemas.session_plan import GameBreakSettings

logger = logging.getLogger(__name__)

_history_adapter = TypeAdapter(list[ProblemRecord])

STARTER_SKILL_ID = "basic.directAddition"


def _load_history(path: Path) -> list[ProblemRecord]:
    try:
        return _history_adapter.validate_json(path.read_bytes())
    except ValidationError as e:
        raise click.ClickException(f"Invalid history file {path}: {e}") from e


def _echo_json(payload) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
@click.option("--json-logs/--text-logs", default=None, help="Override LOG_JSON")
def cli(log_level: str | None, json_logs: bool | None):
    """Adaptive curriculum engine CLI."""
    setup_logging(level=log_level, json_output=json_logs)


@cli.command()
@click.argument("history_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--confidence-threshold", type=float, default=None, help="Provisional classification cutoff")
def mastery(history_json: Path, confidence_threshold: float | None):
    """
    Replay a history file and print mastery plus readiness per skill.

    Example:
        curriculum-engine mastery history.json
    """
    history = _load_history(history_json)
    kwargs = {} if confidence_threshold is None else {"confidence_threshold": confidence_threshold}
    try:
        states = compute_mastery(history, **kwargs)
    except EngineError as e:
        raise click.ClickException(json.dumps(e.to_dict(), default=str)) from e

    readiness = evaluate_skills(states.keys(), states, history)
    _echo_json(
        {
            skill_id: {
                "mastery": state.model_dump(mode="json", exclude={"recent_attempts"}),
                "readiness": readiness[skill_id].model_dump(mode="json"),
            }
            for skill_id, state in states.items()
        }
    )


@cli.command()
@click.argument("history_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--learner-id", required=True, help="Learner identifier")
@click.option("--minutes", type=float, default=None, help="Session length (default DEFAULT_SESSION_MINUTES)")
@click.option(
    "--part",
    "parts",
    multiple=True,
    type=click.Choice([p.value for p in PartType]),
    help="Enabled part (repeatable; default all)",
)
@click.option("--skill", "skills", multiple=True, help="Enabled skill id (repeatable; default practicing)")
@click.option(
    "--length-preference",
    type=click.Choice([p.value for p in LengthPreference]),
    default=LengthPreference.RECOMMENDED.value,
)
@click.option("--seed", default=None, help="Explicit RNG seed")
@click.option("--no-shuffle", is_flag=True, help="Keep purposes grouped within each part")
def plan(
    history_json: Path,
    learner_id: str,
    minutes: float | None,
    parts: tuple[str, ...],
    skills: tuple[str, ...],
    length_preference: str,
    seed: str | None,
    no_shuffle: bool,
):
    """
    Compose a draft session plan from a history file.

    Example:
        curriculum-engine plan history.json --learner-id kid-1 --minutes 15 --part abacus
    """
    history = _load_history(history_json)
    try:
        states = compute_mastery(history)
        practicing = practicing_skill_ids(states)
        readiness = evaluate_skills(practicing, states, history)
        mode = select_session_mode(states, practicing, readiness)
        comfort = compute_comfort_level(states, practicing, mode.type, length_preference)

        request = ComposeRequest(
            learner_id=learner_id,
            duration_minutes=minutes or settings.DEFAULT_SESSION_MINUTES,
            enabled_skill_ids=list(skills) or practicing or [STARTER_SKILL_ID],
            session_mode=mode,
            states=states,
            enabled_parts=[PartType(p) for p in parts] or list(PART_ORDER),
            comfort=comfort,
            term_count_config=parse_term_count_config(settings.TERM_COUNT_SCALING_JSON),
            shuffle_purposes=not no_shuffle,
            game_break_settings=GameBreakSettings(
                enabled=settings.GAME_BREAK_ENABLED,
                max_duration_minutes=settings.GAME_BREAK_MAX_MINUTES,
            ),
            seed=seed,
        )
        session_plan = compose(request)
    except EngineError as e:
        raise click.ClickException(json.dumps(e.to_dict(), default=str)) from e

    click.echo(session_plan.model_dump_json(indent=2))


@cli.command("design-sequence")
@click.argument("skill_id")
@click.option("--count", type=int, default=10, show_default=True, help="Number of problems")
@click.option(
    "--target",
    type=click.Choice([c.value for c in MasteryClassification]),
    required=True,
    help="Classification band the replay should land in",
)
def design_sequence(skill_id: str, count: int, target: str):
    """
    Design a synthetic answer sequence for a skill and print its simulated pKnown.

    Example:
        curriculum-engine design-sequence fiveComplements.4=5-1 --count 12 --target developing
    """
    sequence = design_sequence_for_classification(skill_id, count, MasteryClassification(target))
    _echo_json(
        {
            "skill_id": skill_id,
            "target": target,
            "sequence": sequence,
            "p_known": simulate_sequence(skill_id, sequence),
        }
    )


if __name__ == "__main__":
    cli()
