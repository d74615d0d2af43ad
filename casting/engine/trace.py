"""Traces and search results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple

from casting.domain.models import AssignmentState
from casting.services.transitions import Action


class SearchStatus(str, Enum):
    FOUND = "Found"
    UNSAT_WITHIN_HORIZON = "UnsatWithinHorizon"
    BUDGET_EXCEEDED = "BudgetExceeded"


@dataclass(frozen=True)
class Trace:
    """
    ``states[0]`` is the initial state and ``states[i + 1]`` is
    ``actions[i]`` applied to ``states[i]``. The trace length is the number
    of actions.
    """

    states: Tuple[AssignmentState, ...]
    actions: Tuple[Action, ...]

    def __post_init__(self):
        if len(self.states) != len(self.actions) + 1:
            raise ValueError(f"A trace with {len(self.actions)} actions needs {len(self.actions) + 1} states, got {len(self.states)}")

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def initial_state(self) -> AssignmentState:
        return self.states[0]

    @property
    def final_state(self) -> AssignmentState:
        return self.states[-1]

    def steps(self) -> Iterator[Tuple[int, Optional[Action], AssignmentState]]:
        """Yield ``(index, action, state)``; the first step has no action."""
        yield 0, None, self.states[0]
        for i, action in enumerate(self.actions, start=1):
            yield i, action, self.states[i]

    def padded(self, min_len: int) -> "Trace":
        """Extend the trace with stutter steps up to ``min_len`` actions."""
        missing = min_len - len(self)
        if missing <= 0:
            return self
        final = self.final_state
        return Trace(
            states=self.states + (final,) * missing,
            actions=self.actions + (Action.stutter(),) * missing,
        )


@dataclass
class SearchResult:
    status: SearchStatus
    trace: Optional[Trace] = None
    total_score: Optional[int] = None
    dancer_scores: Dict[str, int] = field(default_factory=dict)
    optimized: bool = False
    nodes_explored: int = 0
    elapsed_seconds: float = 0.0

    @property
    def found(self) -> bool:
        return self.status is SearchStatus.FOUND

    @property
    def final_state(self) -> Optional[AssignmentState]:
        return self.trace.final_state if self.trace is not None else None
