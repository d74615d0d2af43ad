"""Immutable domain entities and the assignment state snapshot."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, Optional, Tuple

from casting.config import SearchConfig

TimeSlot = str

MUST_HAVE = "must_have"
PREFERRED = "preferred"
AVOID = "avoid"
TIERS = (MUST_HAVE, PREFERRED, AVOID)


@dataclass(frozen=True)
class Piece:
    """A piece with fixed rehearsal slots and a headcount range."""

    piece_id: str
    rehearsal_slots: FrozenSet[TimeSlot]
    min_dancers: int
    max_dancers: int

    def shares_slot_with(self, other: "Piece") -> bool:
        return bool(self.rehearsal_slots & other.rehearsal_slots)

    def __repr__(self) -> str:
        return f"<Piece(id={self.piece_id}, slots={sorted(self.rehearsal_slots)}, min={self.min_dancers}, max={self.max_dancers})>"


@dataclass(frozen=True)
class Dancer:
    """A dancer with availability and three disjoint preference tiers."""

    dancer_id: str
    availability: FrozenSet[TimeSlot]
    must_have: FrozenSet[str] = frozenset()
    preferred: FrozenSet[str] = frozenset()
    avoid: FrozenSet[str] = frozenset()

    def tier_of(self, piece_id: str) -> Optional[str]:
        if piece_id in self.must_have:
            return MUST_HAVE
        if piece_id in self.preferred:
            return PREFERRED
        if piece_id in self.avoid:
            return AVOID
        return None

    def wants(self, piece_id: str) -> bool:
        return piece_id in self.must_have or piece_id in self.preferred

    def is_available_for(self, piece: Piece) -> bool:
        return piece.rehearsal_slots <= self.availability

    def __repr__(self) -> str:
        return (
            f"<Dancer(id={self.dancer_id}, must_have={sorted(self.must_have)}, "
            f"preferred={sorted(self.preferred)}, avoid={sorted(self.avoid)})>"
        )


@dataclass(frozen=True)
class Universe:
    """The static universe: slot domain, pieces, dancers and search settings.

    Built once by ``casting.domain.loader.load_universe`` and never mutated.
    Pieces and dancers are kept in id order, which fixes the order in which
    the planner tries actions.
    """

    time_slots: FrozenSet[TimeSlot]
    pieces: Dict[str, Piece]
    dancers: Dict[str, Dancer]
    config: SearchConfig = field(default_factory=SearchConfig)

    @property
    def piece_ids(self) -> Tuple[str, ...]:
        return tuple(self.pieces)

    @property
    def dancer_ids(self) -> Tuple[str, ...]:
        return tuple(self.dancers)

    def initial_state(self) -> "AssignmentState":
        return AssignmentState.empty(self.dancer_ids)

    def willing_count(self, piece_id: str) -> int:
        """Dancers available for the piece who have it as must-have or preferred."""
        piece = self.pieces[piece_id]
        return sum(1 for d in self.dancers.values() if d.wants(piece_id) and d.is_available_for(piece))

    def avoider_allowance(self, piece_id: str) -> int:
        """Seats of the piece that willing dancers can never fill.

        Under the necessity policy this is how many dancers avoiding the
        piece it may hold; zero when the willing dancers suffice.
        """
        return max(0, self.pieces[piece_id].min_dancers - self.willing_count(piece_id))


class AssignmentState(Mapping):
    """Snapshot mapping every dancer id to the frozenset of its piece ids.

    States are values: hashable, compared by content, and never changed in
    place. ``with_pieces`` derives a new state that reuses every untouched
    dancer entry.
    """

    __slots__ = ("_entries", "_hash")

    def __init__(self, entries: Mapping[str, Iterable[str]]):
        self._entries: Dict[str, FrozenSet[str]] = {
            dancer_id: pieces if isinstance(pieces, frozenset) else frozenset(pieces)
            for dancer_id, pieces in entries.items()
        }
        self._hash: Optional[int] = None

    @classmethod
    def empty(cls, dancer_ids: Iterable[str]) -> "AssignmentState":
        return cls({dancer_id: frozenset() for dancer_id in dancer_ids})

    def __getitem__(self, dancer_id: str) -> FrozenSet[str]:
        return self._entries[dancer_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssignmentState):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self._entries.items()))
        return self._hash

    def __repr__(self) -> str:
        body = ", ".join(f"{d}={sorted(p)}" for d, p in self._entries.items())
        return f"<AssignmentState({body})>"

    def key(self) -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
        """Canonical, sortable form of the state."""
        return tuple((d, tuple(sorted(p))) for d, p in sorted(self._entries.items()))

    def with_pieces(self, dancer_id: str, pieces: FrozenSet[str]) -> "AssignmentState":
        if dancer_id not in self._entries:
            raise KeyError(dancer_id)
        derived = AssignmentState.__new__(AssignmentState)
        derived._entries = dict(self._entries)
        derived._entries[dancer_id] = pieces
        derived._hash = None
        return derived

    def headcount(self, piece_id: str) -> int:
        return sum(1 for pieces in self._entries.values() if piece_id in pieces)

    def headcounts(self, piece_ids: Iterable[str]) -> Dict[str, int]:
        counts = {piece_id: 0 for piece_id in piece_ids}
        for pieces in self._entries.values():
            for piece_id in pieces:
                counts[piece_id] = counts.get(piece_id, 0) + 1
        return counts

    def dancers_in(self, piece_id: str) -> Tuple[str, ...]:
        return tuple(d for d, pieces in self._entries.items() if piece_id in pieces)

    def count(self, dancer_id: str) -> int:
        return len(self._entries[dancer_id])

    def total_assignments(self) -> int:
        return sum(len(pieces) for pieces in self._entries.values())

    def to_dict(self) -> Dict[str, list]:
        return {d: sorted(p) for d, p in self._entries.items()}
