"""Bounded trace search."""

from .planner import Planner, find_feasible, find_optimal
from .trace import SearchResult, SearchStatus, Trace

__all__ = [
    "Planner",
    "find_feasible",
    "find_optimal",
    "SearchResult",
    "SearchStatus",
    "Trace",
]
