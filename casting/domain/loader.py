"""Load and validate a universe descriptor."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from casting.config import SearchConfig, read_document, search_config_from_dict
from casting.exceptions import ConfigError, ConfigErrorKind

from .models import Dancer, Piece, TIERS, Universe

logger = logging.getLogger(__name__)


def load_universe(descriptor: Mapping[str, Any], config: Optional[SearchConfig] = None) -> Universe:
    """
    Validate a universe descriptor and build the immutable Universe.

    Args:
        descriptor: Mapping with ``time_slots``, ``pieces``, ``dancers`` and an
            optional ``search`` section
        config: Search settings; overrides the descriptor's ``search`` section

    Returns:
        Universe ready for search

    Raises:
        ConfigError: If the descriptor is malformed in any way
    """
    if config is None:
        config = search_config_from_dict(descriptor.get("search"))
    else:
        config.validate()

    time_slots = _id_list(descriptor.get("time_slots"), "time slot")
    slot_domain = frozenset(time_slots)

    pieces: Dict[str, Piece] = {}
    for raw in _records(descriptor.get("pieces"), "piece"):
        piece = _build_piece(raw, slot_domain)
        if piece.piece_id in pieces:
            raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"Duplicate piece id {piece.piece_id!r}")
        pieces[piece.piece_id] = piece

    dancers: Dict[str, Dancer] = {}
    for raw in _records(descriptor.get("dancers"), "dancer"):
        dancer = _build_dancer(raw, slot_domain, pieces)
        if dancer.dancer_id in dancers:
            raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"Duplicate dancer id {dancer.dancer_id!r}")
        dancers[dancer.dancer_id] = dancer

    universe = Universe(
        time_slots=slot_domain,
        pieces={pid: pieces[pid] for pid in sorted(pieces)},
        dancers={did: dancers[did] for did in sorted(dancers)},
        config=config,
    )
    logger.info(
        "Loaded universe: %d slots, %d pieces, %d dancers", len(slot_domain), len(pieces), len(dancers)
    )
    return universe


def load_universe_file(path: str | Path, config: Optional[SearchConfig] = None) -> Universe:
    return load_universe(read_document(path), config=config)


def _id_list(values: Any, what: str) -> List[str]:
    # an explicit null (e.g. a bare ``avoid:`` in YAML) is an empty list
    if values is None:
        return []
    if not isinstance(values, (list, tuple, set, frozenset)):
        raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"Expected a list of {what} ids, got {values!r}")
    ids = [str(v) for v in values]
    if len(set(ids)) != len(ids):
        raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"Duplicate {what} ids in {ids}")
    return ids


def _records(values: Any, what: str) -> List[Mapping[str, Any]]:
    if values is None:
        return []
    if not isinstance(values, (list, tuple)):
        raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"Expected a list of {what} records, got {values!r}")
    for raw in values:
        if not isinstance(raw, Mapping):
            raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"A {what} record must be a mapping, got {raw!r}")
        if raw.get("id") is None:
            raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"A {what} record has no id: {dict(raw)!r}")
    return list(values)


def _capacity(raw: Mapping[str, Any], key: str, piece_id: str) -> int:
    value = raw.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(ConfigErrorKind.INVALID_CAPACITY, f"Piece {piece_id}: {key} must be an int, got {value!r}")
    return value


def _build_piece(raw: Mapping[str, Any], slot_domain: frozenset) -> Piece:
    piece_id = str(raw["id"])
    slots = frozenset(_id_list(raw.get("rehearsal_slots"), "time slot"))
    if not slots:
        raise ConfigError(ConfigErrorKind.EMPTY_REHEARSAL_SLOTS, f"Piece {piece_id} has no rehearsal slots")
    unknown = slots - slot_domain
    if unknown:
        raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"Piece {piece_id} uses undeclared slots {sorted(unknown)}")

    min_dancers = _capacity(raw, "min_dancers", piece_id)
    max_dancers = _capacity(raw, "max_dancers", piece_id)
    if min_dancers < 1:
        raise ConfigError(ConfigErrorKind.INVALID_CAPACITY, f"Piece {piece_id}: min_dancers must be >= 1, got {min_dancers}")
    if max_dancers < min_dancers:
        raise ConfigError(
            ConfigErrorKind.INVALID_CAPACITY,
            f"Piece {piece_id}: max_dancers ({max_dancers}) is below min_dancers ({min_dancers})",
        )
    return Piece(piece_id=piece_id, rehearsal_slots=slots, min_dancers=min_dancers, max_dancers=max_dancers)


def _build_dancer(raw: Mapping[str, Any], slot_domain: frozenset, pieces: Mapping[str, Piece]) -> Dancer:
    dancer_id = str(raw["id"])
    availability = frozenset(_id_list(raw.get("availability"), "time slot"))
    unknown_slots = availability - slot_domain
    if unknown_slots:
        raise ConfigError(
            ConfigErrorKind.UNKNOWN_REFERENCE, f"Dancer {dancer_id} is available at undeclared slots {sorted(unknown_slots)}"
        )

    tiers: Dict[str, frozenset] = {}
    for tier in TIERS:
        ids = frozenset(_id_list(raw.get(tier), "piece"))
        unknown = ids - set(pieces)
        if unknown:
            raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"Dancer {dancer_id} {tier} names unknown pieces {sorted(unknown)}")
        tiers[tier] = ids

    # Tiers must be pairwise disjoint
    for i, first in enumerate(TIERS):
        for second in TIERS[i + 1:]:
            overlap = tiers[first] & tiers[second]
            if overlap:
                raise ConfigError(
                    ConfigErrorKind.OVERLAPPING_TIERS,
                    f"Dancer {dancer_id}: pieces {sorted(overlap)} are in both {first} and {second}",
                )

    for piece_id in sorted(tiers["must_have"] | tiers["preferred"]):
        missing = pieces[piece_id].rehearsal_slots - availability
        if missing:
            raise ConfigError(
                ConfigErrorKind.PREFERENCE_OUTSIDE_AVAILABILITY,
                f"Dancer {dancer_id} wants {piece_id} but is unavailable at {sorted(missing)}",
            )

    return Dancer(
        dancer_id=dancer_id,
        availability=availability,
        must_have=tiers["must_have"],
        preferred=tiers["preferred"],
        avoid=tiers["avoid"],
    )
