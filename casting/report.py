"""Human-readable summaries of search results."""

from __future__ import annotations

import pandas as pd

from casting.domain.models import Universe
from casting.engine.trace import SearchResult
from casting.services.constraints import check_state


def summarize_result(result: SearchResult, universe: Universe) -> str:
    lines = [f"Status: {result.status.value}"]
    lines.append(f"Nodes explored: {result.nodes_explored} in {result.elapsed_seconds:.3f}s")
    if result.trace is None:
        lines.append("No trace.")
        return "\n".join(lines)

    trace = result.trace
    lines.append(f"Trace length: {len(trace)}")
    lines.append("")
    lines.append("Steps:")
    steps = pd.DataFrame(
        [{"step": i, "action": str(action)} for i, action, _ in trace.steps() if action is not None]
    )
    lines.append(steps.to_string(index=False) if not steps.empty else "(none)")

    final = trace.final_state
    lines.append("")
    lines.append("Final assignments:")
    cast = pd.DataFrame(
        [
            {
                "dancer": dancer_id,
                "pieces": ", ".join(sorted(final[dancer_id])) or "-",
                "score": result.dancer_scores.get(dancer_id, 0),
            }
            for dancer_id in universe.dancer_ids
        ]
    )
    lines.append(cast.to_string(index=False))
    lines.append("")
    lines.append(f"Total score: {result.total_score}")

    # Every checker finding on the final state, blocking or not under this config
    notes = sorted(check_state(final, universe), key=lambda v: (v.kind.value, v.dancer_id or "", v.piece_id or ""))
    if notes:
        lines.append("")
        lines.append("Notes:")
        for v in notes:
            lines.append(f"  - {v.kind.value}: dancer={v.dancer_id or '-'} piece={v.piece_id or '-'} {v.detail}")
    return "\n".join(lines)
