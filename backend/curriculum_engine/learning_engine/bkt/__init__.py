"""Bayesian Knowledge Tracing (BKT) module.

This module implements the curriculum mastery model with:
- 4-parameter BKT (pInit, pLearn, pGuess, pSlip) from a skill-prior table
- Learning transition applied only after correct answers
- Conjunctive updates for problems exercising several skills
- Chronological history replay into per-skill mastery state
- Sequence design for synthetic learner histories
"""

from curriculum_engine.learning_engine.bkt.core import (
    BKTParams,
    apply_learning,
    bkt_update,
    update_conjunctive,
    update_on_correct,
    update_on_incorrect,
)
from curriculum_engine.learning_engine.bkt.history import compute_mastery, replay

__all__ = [
    "BKTParams",
    "apply_learning",
    "bkt_update",
    "compute_mastery",
    "replay",
    "update_conjunctive",
    "update_on_correct",
    "update_on_incorrect",
]
