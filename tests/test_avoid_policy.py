"""Tests for the strict and necessity avoid policies."""

import pytest

from casting.domain.models import AssignmentState
from casting.engine.planner import find_feasible, find_optimal
from casting.engine.trace import SearchStatus
from casting.exceptions import PreconditionKind, PreconditionViolation
from casting.services.constraints import ViolationKind, check_hard_avoid, check_state, is_valid_assignment
from casting.services.transitions import ActionKind, assign, static_candidates


@pytest.fixture
def short_piece(make_universe, make_piece, make_dancer):
    """P needs two dancers but only B is willing; A avoids it."""

    def _build(policy):
        return make_universe(
            [make_piece("P", ["T1"], 2, 2)],
            [make_dancer("A", ["T1"], avoid=["P"]), make_dancer("B", ["T1"], preferred=["P"])],
            min_len=0,
            max_len=4,
            avoid_policy=policy,
        )

    return _build


@pytest.fixture
def crowded_piece(make_universe, make_piece, make_dancer):
    """P needs two dancers and allows three; A avoids it, B and C want it."""

    def _build(policy):
        return make_universe(
            [make_piece("P", ["T1"], 2, 3)],
            [
                make_dancer("A", ["T1"], avoid=["P"]),
                make_dancer("B", ["T1"], preferred=["P"]),
                make_dancer("C", ["T1"], must_have=["P"]),
            ],
            min_len=0,
            max_len=4,
            avoid_policy=policy,
        )

    return _build


@pytest.fixture
def mixed_pieces(make_universe, make_piece, make_dancer):
    """P1 is one willing dancer short of its minimum, P2 is not short at all."""

    def _build(policy):
        return make_universe(
            [make_piece("P1", ["T1"], 2, 3), make_piece("P2", ["T2"], 1, 2)],
            [
                make_dancer("A", ["T1", "T2"], avoid=["P1", "P2"]),
                make_dancer("B", ["T1"], preferred=["P1"]),
                make_dancer("C", ["T1", "T2"], preferred=["P2"], avoid=["P1"]),
            ],
            min_len=0,
            max_len=5,
            avoid_policy=policy,
        )

    return _build


def _willing(universe, piece_id):
    piece = universe.pieces[piece_id]
    return [
        dancer_id
        for dancer_id, dancer in universe.dancers.items()
        if (piece_id in dancer.must_have or piece_id in dancer.preferred) and piece.rehearsal_slots <= dancer.availability
    ]


def test_strict_never_assigns_avoided_piece(short_piece):
    universe = short_piece("strict")
    with pytest.raises(PreconditionViolation) as exc:
        assign(universe.initial_state(), "A", "P", universe)
    assert exc.value.kind is PreconditionKind.NOT_ELIGIBLE
    assert find_feasible(universe).status is SearchStatus.UNSAT_WITHIN_HORIZON


def test_necessity_fills_short_piece(short_piece):
    universe = short_piece("necessity")
    assert universe.avoider_allowance("P") == 1
    result = find_optimal(universe)
    assert result.status is SearchStatus.FOUND
    assert result.final_state["A"] == frozenset({"P"})
    assert result.total_score == -1
    assert result.dancer_scores == {"A": -2, "B": 1}


def test_necessity_leaves_avoider_out_when_one_willing_dancer_suffices(make_universe, make_piece, make_dancer):
    universe = make_universe(
        [make_piece("P", ["T1"], 1, 2)],
        [make_dancer("A", ["T1"], avoid=["P"]), make_dancer("B", ["T1"], preferred=["P"])],
        min_len=0,
        max_len=3,
        avoid_policy="necessity",
    )
    assert universe.avoider_allowance("P") == 0
    assert static_candidates(universe)["A"] == ()
    with pytest.raises(PreconditionViolation) as exc:
        assign(universe.initial_state(), "A", "P", universe)
    assert exc.value.kind is PreconditionKind.NOT_ELIGIBLE

    result = find_feasible(universe)
    assert result.status is SearchStatus.FOUND
    assert result.final_state["A"] == frozenset()
    assert result.final_state["B"] == frozenset({"P"})

    alone = AssignmentState({"A": {"P"}, "B": set()})
    assert {v.kind for v in check_hard_avoid(alone, universe)} == {ViolationKind.HARD_AVOID}


@pytest.mark.parametrize("policy", ["strict", "necessity"])
def test_avoiders_only_fill_seats_willing_dancers_cannot(mixed_pieces, reachable, policy):
    universe = mixed_pieces(policy)
    depth, edges = reachable(universe)

    for parent, action, _ in edges:
        if action.kind is ActionKind.ASSIGN and action.piece_id in universe.dancers[action.dancer_id].avoid:
            piece = universe.pieces[action.piece_id]
            assert policy == "necessity"
            assert len(_willing(universe, action.piece_id)) < piece.min_dancers
            assert parent.headcount(action.piece_id) < piece.min_dancers

    holding_avoider = 0
    for state in depth:
        for piece_id, piece in universe.pieces.items():
            avoiders = [d for d, held in state.items() if piece_id in held and piece_id in universe.dancers[d].avoid]
            if not avoiders:
                continue
            missing = piece.min_dancers - len(_willing(universe, piece_id))
            assert policy == "necessity"
            assert len(avoiders) <= missing
            if is_valid_assignment(state, universe):
                holding_avoider += 1

    if policy == "necessity":
        assert holding_avoider > 0


def test_necessity_never_seats_avoider_on_a_piece_that_is_not_short(mixed_pieces, reachable):
    universe = mixed_pieces("necessity")
    depth, _ = reachable(universe)
    assert all("P2" not in state["A"] for state in depth)
    assert static_candidates(universe) == {"A": ("P1",), "B": ("P1",), "C": ("P1", "P2")}


def test_necessity_prefers_willing_dancers_when_they_suffice(crowded_piece):
    result = find_optimal(crowded_piece("necessity"))
    assert result.status is SearchStatus.FOUND
    assert result.final_state["A"] == frozenset()
    assert result.total_score == 4


def test_avoider_reported_when_willing_dancers_could_fill_the_piece(crowded_piece):
    universe = crowded_piece("necessity")
    with pytest.raises(PreconditionViolation):
        assign(universe.initial_state(), "A", "P", universe)
    # B and C could cover P on their own, so A is not needed even though only B is there
    state = AssignmentState({"A": {"P"}, "B": {"P"}, "C": set()})
    assert not is_valid_assignment(state, universe)
    assert {v.kind for v in check_state(state, universe)} == {ViolationKind.HARD_AVOID, ViolationKind.MUST_HAVE_UNREACHED}


def test_excess_avoiders_are_all_reported(make_universe, make_piece, make_dancer):
    universe = make_universe(
        [make_piece("P", ["T1"], 2, 3)],
        [
            make_dancer("A", ["T1"], avoid=["P"]),
            make_dancer("B", ["T1"], preferred=["P"]),
            make_dancer("C", ["T1"], avoid=["P"]),
        ],
        avoid_policy="necessity",
    )
    one = AssignmentState({"A": {"P"}, "B": {"P"}, "C": set()})
    both = AssignmentState({"A": {"P"}, "B": {"P"}, "C": {"P"}})
    assert check_hard_avoid(one, universe) == set()
    assert {v.dancer_id for v in check_hard_avoid(both, universe)} == {"A", "C"}
    with pytest.raises(PreconditionViolation):
        assign(AssignmentState({"A": {"P"}, "B": set(), "C": set()}), "C", "P", universe)
