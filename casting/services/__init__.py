"""Invariant checking, transitions and scoring."""

from .constraints import check_state, is_valid_assignment
from .scoring import dancer_score, total_score
from .transitions import Action, apply, assign, stutter, unassign

__all__ = [
    "check_state",
    "is_valid_assignment",
    "dancer_score",
    "total_score",
    "Action",
    "apply",
    "assign",
    "stutter",
    "unassign",
]
