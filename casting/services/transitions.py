"""Transition engine: apply one action to a state.

Actions never mutate their input. A successful ``assign``/``unassign`` returns
a new state in which only the acting dancer's entry differs; every other
dancer's entry is the very same frozenset object. A failed action raises
``PreconditionViolation`` and leaves nothing behind.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from casting.config import AvoidPolicy
from casting.domain.models import AssignmentState, Dancer, Piece, Universe
from casting.exceptions import PreconditionKind, PreconditionViolation

from .constraints import step_violations


class ActionKind(str, Enum):
    STUTTER = "stutter"
    ASSIGN = "assign"
    UNASSIGN = "unassign"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    dancer_id: Optional[str] = None
    piece_id: Optional[str] = None

    @classmethod
    def stutter(cls) -> "Action":
        return cls(ActionKind.STUTTER)

    @classmethod
    def assign(cls, dancer_id: str, piece_id: str) -> "Action":
        return cls(ActionKind.ASSIGN, dancer_id, piece_id)

    @classmethod
    def unassign(cls, dancer_id: str, piece_id: str) -> "Action":
        return cls(ActionKind.UNASSIGN, dancer_id, piece_id)

    def __str__(self) -> str:
        if self.kind is ActionKind.STUTTER:
            return "stutter"
        return f"{self.kind.value}({self.dancer_id}, {self.piece_id})"


def _tier_allows(dancer: Dancer, piece: Piece, state: AssignmentState, headcount: int, universe: Universe) -> bool:
    piece_id = piece.piece_id
    if dancer.wants(piece_id):
        return True
    if piece_id not in dancer.avoid or universe.config.avoid_policy is not AvoidPolicy.NECESSITY:
        return False
    # An avoider only takes a seat the willing dancers can never fill
    if headcount >= piece.min_dancers:
        return False
    avoiders = sum(1 for d in state.dancers_in(piece_id) if piece_id in universe.dancers[d].avoid)
    return avoiders < universe.avoider_allowance(piece_id)


def assign(state: AssignmentState, dancer_id: str, piece_id: str, universe: Universe) -> AssignmentState:
    """
    Add ``piece_id`` to the dancer's assignments.

    Preconditions are checked in a fixed order and the first failure wins:
    availability, schedule conflict, capacity ceiling, tier eligibility.

    Raises:
        PreconditionViolation: Unavailable, Conflict, AtCapacity or NotEligible
    """
    dancer = universe.dancers[dancer_id]
    piece = universe.pieces[piece_id]

    # 1. Every rehearsal slot must be in the dancer's availability
    if not dancer.is_available_for(piece):
        raise PreconditionViolation(PreconditionKind.UNAVAILABLE, dancer_id, piece_id)

    # 2. No held piece may share a slot (a held piece shares all of its own)
    held = state[dancer_id]
    for other_id in held:
        if universe.pieces[other_id].shares_slot_with(piece):
            raise PreconditionViolation(PreconditionKind.CONFLICT, dancer_id, piece_id)

    # 3. Capacity ceiling
    headcount = state.headcount(piece_id)
    if headcount >= piece.max_dancers:
        raise PreconditionViolation(PreconditionKind.AT_CAPACITY, dancer_id, piece_id)

    # 4. Tier eligibility
    if not _tier_allows(dancer, piece, state, headcount, universe):
        raise PreconditionViolation(PreconditionKind.NOT_ELIGIBLE, dancer_id, piece_id)

    return state.with_pieces(dancer_id, held | {piece_id})


def unassign(state: AssignmentState, dancer_id: str, piece_id: str, universe: Universe) -> AssignmentState:
    """
    Remove ``piece_id`` from the dancer's assignments.

    Raises:
        PreconditionViolation: NotAssigned, or BelowMinimum when the piece
            would fall under ``min_dancers``
    """
    held = state[dancer_id]
    if piece_id not in held:
        raise PreconditionViolation(PreconditionKind.NOT_ASSIGNED, dancer_id, piece_id)
    if state.headcount(piece_id) - 1 < universe.pieces[piece_id].min_dancers:
        raise PreconditionViolation(PreconditionKind.BELOW_MINIMUM, dancer_id, piece_id)
    return state.with_pieces(dancer_id, held - {piece_id})


def stutter(state: AssignmentState) -> AssignmentState:
    return state


def apply(state: AssignmentState, action: Action, universe: Universe) -> AssignmentState:
    if action.kind is ActionKind.STUTTER:
        return stutter(state)
    if action.kind is ActionKind.ASSIGN:
        return assign(state, action.dancer_id, action.piece_id, universe)
    if action.kind is ActionKind.UNASSIGN:
        return unassign(state, action.dancer_id, action.piece_id, universe)
    raise ValueError(f"Unknown action kind: {action.kind!r}")


def static_candidates(universe: Universe) -> Dict[str, Tuple[str, ...]]:
    """
    Pieces each dancer could ever be assigned, in piece id order.

    Pairs that fail availability, or that no tier (under the configured avoid
    policy) makes eligible, can never pass ``assign`` and are left out.
    """
    necessity = universe.config.avoid_policy is AvoidPolicy.NECESSITY
    allowance = {piece_id: universe.avoider_allowance(piece_id) for piece_id in universe.piece_ids} if necessity else {}
    candidates: Dict[str, Tuple[str, ...]] = {}
    for dancer_id, dancer in universe.dancers.items():
        eligible: List[str] = []
        for piece_id, piece in universe.pieces.items():
            if not dancer.is_available_for(piece):
                continue
            if dancer.wants(piece_id) or (piece_id in dancer.avoid and allowance.get(piece_id, 0) > 0):
                eligible.append(piece_id)
        candidates[dancer_id] = tuple(eligible)
    return candidates


def successors(
    state: AssignmentState,
    universe: Universe,
    candidates: Optional[Dict[str, Tuple[str, ...]]] = None,
) -> List[Tuple[Action, AssignmentState]]:
    """
    Every engine-valid successor of ``state`` that keeps the step invariants.

    Order is deterministic: all assigns (dancers by id, then pieces by id),
    then all unassigns in the same order. Stutter is omitted since it leads
    back to ``state``.
    """
    if candidates is None:
        candidates = static_candidates(universe)
    counts = state.headcounts(universe.piece_ids)
    out: List[Tuple[Action, AssignmentState]] = []

    for dancer_id in universe.dancer_ids:
        held = state[dancer_id]
        for piece_id in candidates[dancer_id]:
            if piece_id in held or counts[piece_id] >= universe.pieces[piece_id].max_dancers:
                continue
            try:
                child = assign(state, dancer_id, piece_id, universe)
            except PreconditionViolation:
                continue
            if not step_violations(child, universe):
                out.append((Action.assign(dancer_id, piece_id), child))

    for dancer_id in universe.dancer_ids:
        for piece_id in sorted(state[dancer_id]):
            try:
                child = unassign(state, dancer_id, piece_id, universe)
            except PreconditionViolation:
                continue
            if not step_violations(child, universe):
                out.append((Action.unassign(dancer_id, piece_id), child))

    return out
