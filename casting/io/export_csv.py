"""Trace export to CSV for reporting tools."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from casting.domain.models import Universe
from casting.engine.trace import Trace
from casting.services.scoring import dancer_score

COLUMNS = ["step", "action", "action_dancer", "action_piece", "dancer_id", "pieces", "dancer_score"]


def trace_to_frame(trace: Trace, universe: Universe) -> pd.DataFrame:
    """One row per (step, dancer) with that dancer's pieces after the step."""
    rows = []
    for step, action, state in trace.steps():
        for dancer_id, dancer in universe.dancers.items():
            rows.append(
                {
                    "step": step,
                    "action": action.kind.value if action is not None else "init",
                    "action_dancer": action.dancer_id if action is not None else None,
                    "action_piece": action.piece_id if action is not None else None,
                    "dancer_id": dancer_id,
                    "pieces": ";".join(sorted(state[dancer_id])),
                    "dancer_score": dancer_score(dancer, state),
                }
            )
    return pd.DataFrame(rows, columns=COLUMNS)


def write_trace_csv(path: str | Path, trace: Trace, universe: Universe) -> int:
    """
    Write a trace to CSV.

    Returns:
        Number of rows written
    """
    df = trace_to_frame(trace, universe)
    df.to_csv(path, index=False)
    return len(df)
