"""Pytest configuration and shared fixtures."""

from collections import deque

import pytest

from casting.domain.loader import load_universe
from casting.services.transitions import static_candidates, successors


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def piece(piece_id, slots, min_dancers=1, max_dancers=1):
    return {"id": piece_id, "rehearsal_slots": list(slots), "min_dancers": min_dancers, "max_dancers": max_dancers}


def dancer(dancer_id, availability, must_have=(), preferred=(), avoid=()):
    return {
        "id": dancer_id,
        "availability": list(availability),
        "must_have": list(must_have),
        "preferred": list(preferred),
        "avoid": list(avoid),
    }


def build(pieces, dancers, **search):
    slots = set()
    for p in pieces:
        slots.update(p["rehearsal_slots"])
    for d in dancers:
        slots.update(d["availability"])
    return load_universe({"time_slots": sorted(slots), "pieces": pieces, "dancers": dancers, "search": search})


@pytest.fixture
def make_universe():
    """Factory: ``make_universe(pieces, dancers, **search_settings)``."""
    return build


@pytest.fixture
def make_piece():
    return piece


@pytest.fixture
def make_dancer():
    return dancer


@pytest.fixture
def reachable():
    """Factory returning every state reachable within ``max_len`` steps, with its parent edges."""

    def _reachable(universe):
        candidates = static_candidates(universe)
        init = universe.initial_state()
        depth = {init: 0}
        edges = []
        queue = deque([init])
        while queue:
            state = queue.popleft()
            if depth[state] >= universe.config.max_len:
                continue
            for action, child in successors(state, universe, candidates):
                edges.append((state, action, child))
                if child not in depth:
                    depth[child] = depth[state] + 1
                    queue.append(child)
        return depth, edges

    return _reachable


@pytest.fixture
def scenario_a():
    """Two dancers, one piece; A must have it."""
    return build(
        [piece("P", ["T1"], 1, 2)],
        [dancer("A", ["T1"], must_have=["P"]), dancer("B", ["T1"])],
        min_len=1,
        max_len=3,
    )


@pytest.fixture
def scenario_c():
    """Two dancers both must have a single-seat piece."""
    return build(
        [piece("P", ["T1"], 1, 1)],
        [dancer("A", ["T1"], must_have=["P"]), dancer("B", ["T1"], must_have=["P"])],
        min_len=1,
        max_len=4,
    )


@pytest.fixture
def scenario_d():
    """X must have all three pieces, Y only prefers P1; fairness bound 2."""

    def _build(fairness_bound=2, y_preferred=("P1",)):
        return build(
            [piece("P1", ["T1"]), piece("P2", ["T2"]), piece("P3", ["T3"])],
            [
                dancer("X", ["T1", "T2", "T3"], must_have=["P1", "P2", "P3"]),
                dancer("Y", ["T1", "T2", "T3"], preferred=list(y_preferred)),
            ],
            min_len=1,
            max_len=5,
            fairness_bound=fairness_bound,
        )

    return _build
