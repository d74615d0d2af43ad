"""Invariant checking for assignment states.

Every checker is a pure function ``(state, universe) -> Set[Violation]`` and
can be used on its own. ``check_state`` composes all of them;
``is_valid_assignment`` is defined as "no blocking violation", so the two
views never disagree.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Optional, Set, Tuple

from casting.config import AvoidPolicy, SearchConfig
from casting.domain.models import AssignmentState, Universe


class ViolationKind(str, Enum):
    SCHEDULE_CONFLICT = "ScheduleConflict"
    AVAILABILITY = "Availability"
    CAPACITY = "Capacity"
    HARD_AVOID = "HardAvoid"
    MUST_HAVE_UNREACHED = "MustHaveUnreached"
    FAIRNESS = "Fairness"
    UNASSIGNED_DANCER = "UnassignedDancer"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    dancer_id: Optional[str] = None
    piece_id: Optional[str] = None
    detail: str = ""


ViolationSet = FrozenSet[Violation]
Checker = Callable[[AssignmentState, Universe], Set[Violation]]


def check_schedule_conflicts(state: AssignmentState, universe: Universe) -> Set[Violation]:
    found: Set[Violation] = set()
    for dancer_id, held in state.items():
        ordered = sorted(held)
        for i, first in enumerate(ordered):
            for second in ordered[i + 1:]:
                shared = universe.pieces[first].rehearsal_slots & universe.pieces[second].rehearsal_slots
                if shared:
                    found.add(
                        Violation(
                            ViolationKind.SCHEDULE_CONFLICT,
                            dancer_id,
                            first,
                            f"{first} and {second} both rehearse at {sorted(shared)}",
                        )
                    )
    return found


def check_availability(state: AssignmentState, universe: Universe) -> Set[Violation]:
    found: Set[Violation] = set()
    for dancer_id, held in state.items():
        dancer = universe.dancers[dancer_id]
        for piece_id in held:
            missing = universe.pieces[piece_id].rehearsal_slots - dancer.availability
            if missing:
                found.add(Violation(ViolationKind.AVAILABILITY, dancer_id, piece_id, f"unavailable at {sorted(missing)}"))
    return found


def check_capacity(state: AssignmentState, universe: Universe) -> Set[Violation]:
    # min_dancers >= 1, so an empty piece is always reported here
    found: Set[Violation] = set()
    counts = state.headcounts(universe.piece_ids)
    for piece_id, piece in universe.pieces.items():
        n = counts[piece_id]
        if n < piece.min_dancers or n > piece.max_dancers:
            found.add(
                Violation(
                    ViolationKind.CAPACITY,
                    None,
                    piece_id,
                    f"{n} dancers, allowed [{piece.min_dancers}, {piece.max_dancers}]",
                )
            )
    return found


def check_hard_avoid(state: AssignmentState, universe: Universe) -> Set[Violation]:
    """
    Report dancers assigned to a piece in their avoid tier.

    Under ``AvoidPolicy.NECESSITY`` avoiders are tolerated only on a piece
    that its willing dancers (available, must-have or preferred) can never
    bring to ``min_dancers``, and only up to the missing seats. Otherwise
    every avoider on the piece is reported.
    """
    policy = universe.config.avoid_policy
    found: Set[Violation] = set()
    for piece_id in universe.piece_ids:
        avoiders = [d for d in state.dancers_in(piece_id) if piece_id in universe.dancers[d].avoid]
        if not avoiders:
            continue
        allowance = universe.avoider_allowance(piece_id) if policy is AvoidPolicy.NECESSITY else 0
        if len(avoiders) <= allowance:
            continue
        for dancer_id in avoiders:
            found.add(
                Violation(
                    ViolationKind.HARD_AVOID,
                    dancer_id,
                    piece_id,
                    f"policy={policy.value}, {len(avoiders)} avoiders, allowance {allowance}",
                )
            )
    return found


def check_must_have(state: AssignmentState, universe: Universe) -> Set[Violation]:
    found: Set[Violation] = set()
    for dancer_id, dancer in universe.dancers.items():
        if dancer.must_have and not (state[dancer_id] & dancer.must_have):
            found.add(Violation(ViolationKind.MUST_HAVE_UNREACHED, dancer_id, None, f"none of {sorted(dancer.must_have)}"))
    return found


def check_fairness(state: AssignmentState, universe: Universe) -> Set[Violation]:
    if len(state) < 2:
        return set()
    counts = {dancer_id: len(held) for dancer_id, held in state.items()}
    bound = universe.config.fairness_bound
    low, high = min(counts.values()), max(counts.values())
    if high - low <= bound:
        return set()
    # Name the most and least loaded dancers (first by id) so the report is stable
    busiest = min(d for d, n in counts.items() if n == high)
    idlest = min(d for d, n in counts.items() if n == low)
    return {
        Violation(
            ViolationKind.FAIRNESS,
            busiest,
            None,
            f"{busiest} has {high} pieces, {idlest} has {low}; bound is {bound}",
        )
    }


def check_unassigned_dancers(state: AssignmentState, universe: Universe) -> Set[Violation]:
    if not universe.config.require_all_dancers_assigned:
        return set()
    return {Violation(ViolationKind.UNASSIGNED_DANCER, dancer_id) for dancer_id, held in state.items() if not held}


CHECKERS: Tuple[Checker, ...] = (
    check_schedule_conflicts,
    check_availability,
    check_capacity,
    check_hard_avoid,
    check_must_have,
    check_fairness,
    check_unassigned_dancers,
)


def check_state(state: AssignmentState, universe: Universe) -> ViolationSet:
    found: Set[Violation] = set()
    for checker in CHECKERS:
        found |= checker(state, universe)
    return frozenset(found)


def blocking_kinds(config: SearchConfig) -> FrozenSet[ViolationKind]:
    """Violation kinds that make a state invalid under ``config``."""
    kinds = {
        ViolationKind.SCHEDULE_CONFLICT,
        ViolationKind.AVAILABILITY,
        ViolationKind.CAPACITY,
        ViolationKind.HARD_AVOID,
        ViolationKind.FAIRNESS,
        ViolationKind.UNASSIGNED_DANCER,
    }
    if config.require_must_have:
        kinds.add(ViolationKind.MUST_HAVE_UNREACHED)
    return frozenset(kinds)


def blocking_violations(state: AssignmentState, universe: Universe) -> ViolationSet:
    kinds = blocking_kinds(universe.config)
    return frozenset(v for v in check_state(state, universe) if v.kind in kinds)


def is_valid_assignment(state: AssignmentState, universe: Universe) -> bool:
    return not blocking_violations(state, universe)


def step_violations(state: AssignmentState, universe: Universe) -> ViolationSet:
    """
    Violations of the invariants that must hold after every single step.

    Conflicts, availability and the capacity ceiling are guaranteed by the
    transition engine; fairness is included when ``fairness_every_step`` is set.
    The lower capacity bound is a goal, not a step invariant: the empty initial
    state already breaks it.
    """
    found = check_schedule_conflicts(state, universe) | check_availability(state, universe)
    counts = state.headcounts(universe.piece_ids)
    for piece_id, piece in universe.pieces.items():
        if counts[piece_id] > piece.max_dancers:
            found.add(Violation(ViolationKind.CAPACITY, None, piece_id, f"{counts[piece_id]} > max {piece.max_dancers}"))
    if universe.config.fairness_every_step:
        found |= check_fairness(state, universe)
    return frozenset(found)
