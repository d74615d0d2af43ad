"""Tests for universe loading and the assignment state value object."""

import pytest

from casting.config import AvoidPolicy, SearchConfig
from casting.domain.loader import load_universe, load_universe_file
from casting.domain.models import AssignmentState
from casting.exceptions import ConfigError, ConfigErrorKind


def _descriptor(**overrides):
    desc = {
        "time_slots": ["T1", "T2"],
        "pieces": [
            {"id": "P2", "rehearsal_slots": ["T2"], "min_dancers": 1, "max_dancers": 2},
            {"id": "P1", "rehearsal_slots": ["T1"], "min_dancers": 1, "max_dancers": 1},
        ],
        "dancers": [
            {"id": "B", "availability": ["T1", "T2"], "preferred": ["P2"]},
            {"id": "A", "availability": ["T1"], "must_have": ["P1"], "avoid": ["P2"]},
        ],
    }
    desc.update(overrides)
    return desc


def test_load_universe_orders_entities_by_id():
    universe = load_universe(_descriptor())
    assert universe.piece_ids == ("P1", "P2")
    assert universe.dancer_ids == ("A", "B")
    assert universe.pieces["P1"].rehearsal_slots == frozenset({"T1"})
    assert universe.dancers["A"].avoid == frozenset({"P2"})
    assert universe.config == SearchConfig()


def test_search_section_is_applied():
    universe = load_universe(_descriptor(search={"max_len": 4, "min_len": 2, "avoid_policy": "necessity"}))
    assert universe.config.max_len == 4
    assert universe.config.avoid_policy is AvoidPolicy.NECESSITY


def test_explicit_config_overrides_search_section():
    universe = load_universe(_descriptor(search={"max_len": 4}), config=SearchConfig(min_len=0, max_len=7))
    assert universe.config.max_len == 7


def test_empty_rehearsal_slots_rejected():
    desc = _descriptor()
    desc["pieces"][0]["rehearsal_slots"] = []
    with pytest.raises(ConfigError) as exc:
        load_universe(desc)
    assert exc.value.kind is ConfigErrorKind.EMPTY_REHEARSAL_SLOTS


@pytest.mark.parametrize(
    "min_dancers,max_dancers",
    [(0, 2), (3, 2), (-1, -1), (1, 0), (1, "2"), (True, 2)],
)
def test_invalid_capacity_rejected(min_dancers, max_dancers):
    desc = _descriptor()
    desc["pieces"][0]["min_dancers"] = min_dancers
    desc["pieces"][0]["max_dancers"] = max_dancers
    with pytest.raises(ConfigError) as exc:
        load_universe(desc)
    assert exc.value.kind is ConfigErrorKind.INVALID_CAPACITY


def test_overlapping_tiers_rejected():
    desc = _descriptor()
    desc["dancers"][0]["avoid"] = ["P2"]
    with pytest.raises(ConfigError) as exc:
        load_universe(desc)
    assert exc.value.kind is ConfigErrorKind.OVERLAPPING_TIERS


def test_preference_outside_availability_rejected():
    desc = _descriptor()
    desc["dancers"][1]["preferred"] = ["P2"]  # A is only available at T1
    desc["dancers"][1]["avoid"] = []
    with pytest.raises(ConfigError) as exc:
        load_universe(desc)
    assert exc.value.kind is ConfigErrorKind.PREFERENCE_OUTSIDE_AVAILABILITY


def test_avoided_piece_outside_availability_is_allowed():
    # A avoids P2 although unavailable at T2: only wanted pieces must fit
    universe = load_universe(_descriptor())
    assert "P2" in universe.dancers["A"].avoid


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d["pieces"][0].update(rehearsal_slots=["T9"]),
        lambda d: d["dancers"][0].update(availability=["T9"]),
        lambda d: d["dancers"][0].update(preferred=["P9"]),
        lambda d: d["pieces"].append(dict(d["pieces"][0])),
        lambda d: d["dancers"].append(dict(d["dancers"][0])),
        lambda d: d.update(time_slots=["T1", "T1", "T2"]),
        lambda d: d.update(pieces=None),
        lambda d: d.update(pieces="P1"),
        lambda d: d.update(dancers=[{"availability": ["T1"]}]),
        lambda d: d["pieces"].append({"rehearsal_slots": ["T1"], "min_dancers": 1, "max_dancers": 1}),
        lambda d: d["dancers"].append("C"),
        lambda d: d["dancers"][0].update(preferred="P2"),
        lambda d: d["dancers"][0].update(avoid=5),
    ],
)
def test_unknown_or_duplicate_references_rejected(mutate):
    desc = _descriptor()
    mutate(desc)
    with pytest.raises(ConfigError) as exc:
        load_universe(desc)
    assert exc.value.kind is ConfigErrorKind.UNKNOWN_REFERENCE


def test_null_tiers_and_availability_load_as_empty():
    desc = _descriptor()
    desc["dancers"][1].update(avoid=None, preferred=None)
    desc["dancers"].append({"id": "C", "availability": None, "must_have": None})
    universe = load_universe(desc)
    assert universe.dancers["A"].avoid == frozenset()
    assert universe.dancers["A"].preferred == frozenset()
    assert universe.dancers["C"].availability == frozenset()
    assert universe.dancers["C"].must_have == frozenset()


def test_null_availability_still_checked_against_wanted_pieces():
    desc = _descriptor()
    desc["dancers"][0]["availability"] = None
    with pytest.raises(ConfigError) as exc:
        load_universe(desc)
    assert exc.value.kind is ConfigErrorKind.PREFERENCE_OUTSIDE_AVAILABILITY


def test_bare_yaml_tier_key_is_empty(tmp_path):
    path = tmp_path / "universe.yaml"
    path.write_text(
        """
time_slots: [T1]
pieces:
  - {id: P, rehearsal_slots: [T1], min_dancers: 1, max_dancers: 2}
dancers:
  - id: A
    availability: [T1]
    preferred: [P]
    avoid:
"""
    )
    universe = load_universe_file(path)
    assert universe.dancers["A"].avoid == frozenset()


def test_invalid_search_bounds_rejected():
    with pytest.raises(ConfigError) as exc:
        load_universe(_descriptor(search={"min_len": 5, "max_len": 3}))
    assert exc.value.kind is ConfigErrorKind.INVALID_SEARCH_BOUNDS


def test_load_universe_file_yaml(tmp_path):
    path = tmp_path / "universe.yaml"
    path.write_text(
        """
time_slots: [T1]
pieces:
  - {id: P, rehearsal_slots: [T1], min_dancers: 1, max_dancers: 2}
dancers:
  - {id: A, availability: [T1], must_have: [P]}
search:
  max_len: 3
  min_len: 1
"""
    )
    universe = load_universe_file(path)
    assert universe.dancer_ids == ("A",)
    assert universe.config.max_len == 3


def test_assignment_state_is_a_hashable_value():
    s1 = AssignmentState({"A": {"P1"}, "B": set()})
    s2 = AssignmentState({"B": frozenset(), "A": frozenset({"P1"})})
    assert s1 == s2
    assert hash(s1) == hash(s2)
    assert len({s1, s2}) == 1
    assert s1.key() == (("A", ("P1",)), ("B", ()))


def test_with_pieces_derives_without_mutating():
    base = AssignmentState({"A": frozenset(), "B": frozenset({"P2"})})
    derived = base.with_pieces("A", frozenset({"P1"}))
    assert base["A"] == frozenset()
    assert derived["A"] == frozenset({"P1"})
    assert derived["B"] is base["B"]
    with pytest.raises(KeyError):
        base.with_pieces("Z", frozenset())


def test_state_counts():
    state = AssignmentState({"A": {"P1", "P2"}, "B": {"P2"}, "C": set()})
    assert state.headcount("P2") == 2
    assert state.headcounts(["P1", "P2", "P3"]) == {"P1": 1, "P2": 2, "P3": 0}
    assert state.dancers_in("P2") == ("A", "B")
    assert state.count("A") == 2
    assert state.total_assignments() == 3
    assert state.to_dict() == {"A": ["P1", "P2"], "B": ["P2"], "C": []}
