"""Roster CSV import: normalise dancer/piece sheets into a universe descriptor."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from casting.domain.models import TIERS

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ";"


def _split(cell: Any) -> List[str]:
    """Split a ``"T1;T2"`` cell; blank and NaN cells are empty lists."""
    if cell is None or (not isinstance(cell, str) and pd.isna(cell)):
        return []
    return [part.strip() for part in str(cell).split(LIST_SEPARATOR) if part.strip()]


def _read(csv_path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=True)
    # Normalize column names
    df.columns = df.columns.str.lower().str.strip()
    return df


def read_pieces_csv(csv_path: str | Path) -> List[Dict[str, Any]]:
    """
    Read pieces from CSV.

    Expected columns: ``piece_id, rehearsal_slots, min_dancers, max_dancers``
    with slots separated by ``;``.
    """
    df = _read(csv_path)
    df.rename(columns={"id": "piece_id", "slots": "rehearsal_slots"}, inplace=True)

    pieces = []
    for _, row in df.iterrows():
        pieces.append(
            {
                "id": str(row["piece_id"]).strip(),
                "rehearsal_slots": _split(row.get("rehearsal_slots")),
                # left as parsed; the loader rejects anything that is not an int
                "min_dancers": _to_int(row.get("min_dancers")),
                "max_dancers": _to_int(row.get("max_dancers")),
            }
        )
    logger.info("Read %d pieces from %s", len(pieces), csv_path)
    return pieces


def read_dancers_csv(csv_path: str | Path) -> List[Dict[str, Any]]:
    """
    Read dancers from CSV.

    Expected columns: ``dancer_id, availability, must_have, preferred, avoid``.
    Missing tier columns are treated as empty.
    """
    df = _read(csv_path)
    df.rename(columns={"id": "dancer_id"}, inplace=True)

    dancers = []
    for _, row in df.iterrows():
        record = {"id": str(row["dancer_id"]).strip(), "availability": _split(row.get("availability"))}
        for tier in TIERS:
            record[tier] = _split(row.get(tier))
        dancers.append(record)
    logger.info("Read %d dancers from %s", len(dancers), csv_path)
    return dancers


def _to_int(cell: Any) -> Any:
    if cell is None or (not isinstance(cell, str) and pd.isna(cell)):
        return None
    text = str(cell).strip()
    try:
        return int(text)
    except ValueError:
        return text


def read_roster(
    dancers_csv: str | Path,
    pieces_csv: str | Path,
    search: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a universe descriptor from two roster sheets.

    The slot domain is every slot named by a piece or a dancer's availability,
    sorted.

    Returns:
        Descriptor accepted by ``casting.domain.loader.load_universe``
    """
    pieces = read_pieces_csv(pieces_csv)
    dancers = read_dancers_csv(dancers_csv)
    slots = set()
    for piece in pieces:
        slots.update(piece["rehearsal_slots"])
    for dancer in dancers:
        slots.update(dancer["availability"])

    descriptor: Dict[str, Any] = {"time_slots": sorted(slots), "pieces": pieces, "dancers": dancers}
    if search:
        descriptor["search"] = dict(search)
    return descriptor
