"""Preference satisfaction scores."""

from __future__ import annotations

from typing import Dict

from casting.domain.models import AssignmentState, Dancer, Universe

MUST_HAVE_WEIGHT = 3
PREFERRED_WEIGHT = 1
AVOID_PENALTY = 2


def dancer_score(dancer: Dancer, state: AssignmentState) -> int:
    """
    Score one dancer's assignments against their tiers.

    3 per must-have piece held, 1 per preferred piece, minus 2 per avoided one.
    """
    held = state[dancer.dancer_id]
    return (
        MUST_HAVE_WEIGHT * len(held & dancer.must_have)
        + PREFERRED_WEIGHT * len(held & dancer.preferred)
        - AVOID_PENALTY * len(held & dancer.avoid)
    )


def score_breakdown(state: AssignmentState, universe: Universe) -> Dict[str, int]:
    return {dancer_id: dancer_score(dancer, state) for dancer_id, dancer in universe.dancers.items()}


def total_score(state: AssignmentState, universe: Universe) -> int:
    return sum(score_breakdown(state, universe).values())
