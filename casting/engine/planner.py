"""Planner - bounded trace search over assignment states."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from casting.config import SearchConfig
from casting.domain.models import AssignmentState, Universe
from casting.services.constraints import is_valid_assignment
from casting.services.scoring import score_breakdown, total_score
from casting.services.transitions import Action, static_candidates, successors

from .trace import SearchResult, SearchStatus, Trace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Node:
    state: AssignmentState
    parent: Optional[int]
    action: Optional[Action]
    depth: int


class _BudgetExceeded(Exception):
    pass


class Planner:
    """
    Breadth-first search over the graph of assignment states.

    Nodes live in an arena (a list indexed by discovery order) together with
    their parent index and producing action; a ``state -> index`` map drops
    states already seen. Because a trace can always be padded with stutter
    steps, the states reachable within the horizon are exactly the states at
    BFS depth ``<= max_len``.

    Ties between equally scored valid states are broken by depth (shorter
    first) and then by discovery order. Actions are generated in dancer id
    and piece id order, so the choice does not depend on ``workers``.
    """

    def __init__(self, universe: Universe, config: Optional[SearchConfig] = None):
        """
        Args:
            universe: Validated universe
            config: Search settings (defaults to the universe's own)
        """
        self.universe = universe
        self.config = (config or universe.config).validate()
        if config is not None and config is not universe.config:
            # The checker and engine read settings from the universe
            self.universe = Universe(universe.time_slots, universe.pieces, universe.dancers, self.config)
        self._candidates = static_candidates(self.universe)

    def find_feasible(self) -> SearchResult:
        """Shortest trace to any valid state, or a proof that none exists."""
        return self._search(optimize=False)

    def find_optimal(self) -> SearchResult:
        """Trace to the valid state with the highest total score within the horizon."""
        return self._search(optimize=True)

    # ------------------------------------------------------------------

    def _expand(self, state: AssignmentState) -> List[Tuple[Action, AssignmentState]]:
        return successors(state, self.universe, self._candidates)

    def _expansions(
        self, executor: Optional[ThreadPoolExecutor], states: List[AssignmentState]
    ) -> Iterable[List[Tuple[Action, AssignmentState]]]:
        if executor is None:
            return (self._expand(s) for s in states)
        # map() yields results in submission order, keeping the merge deterministic
        return executor.map(self._expand, states)

    def _search(self, optimize: bool) -> SearchResult:
        cfg = self.config
        started = time.monotonic()
        deadline = started + cfg.max_seconds if cfg.max_seconds is not None else None

        init = self.universe.initial_state()
        arena: List[_Node] = [_Node(init, None, None, 0)]
        index: Dict[AssignmentState, int] = {init: 0}
        best: Optional[int] = None
        best_score: Optional[int] = None

        logger.info(
            "Searching (%s): %d dancers, %d pieces, horizon [%d, %d], workers=%d",
            "optimal" if optimize else "feasible",
            len(self.universe.dancers),
            len(self.universe.pieces),
            cfg.min_len,
            cfg.max_len,
            cfg.workers,
        )

        def consider(node_idx: int) -> bool:
            """Record a valid node; True when the search can stop."""
            nonlocal best, best_score
            state = arena[node_idx].state
            if not is_valid_assignment(state, self.universe):
                return False
            if not optimize:
                best = node_idx
                return True
            score = total_score(state, self.universe)
            if best_score is None or score > best_score:
                best, best_score = node_idx, score
            return False

        def check_nodes() -> None:
            if cfg.max_nodes is not None and len(arena) >= cfg.max_nodes:
                raise _BudgetExceeded(f"node budget of {cfg.max_nodes} reached")

        def check_clock() -> None:
            if deadline is not None and time.monotonic() >= deadline:
                raise _BudgetExceeded(f"time budget of {cfg.max_seconds}s reached")

        executor = ThreadPoolExecutor(max_workers=cfg.workers) if cfg.workers > 1 else None
        status = SearchStatus.UNSAT_WITHIN_HORIZON
        try:
            if consider(0):
                status = SearchStatus.FOUND
            frontier = [0]
            depth = 0
            while status is not SearchStatus.FOUND and frontier and depth < cfg.max_len:
                logger.debug("Depth %d: expanding %d nodes (%d discovered)", depth, len(frontier), len(arena))
                next_frontier: List[int] = []
                expansions = self._expansions(executor, [arena[i].state for i in frontier])
                for parent_idx, children in zip(frontier, expansions):
                    check_clock()
                    for action, child in children:
                        if child in index:
                            continue
                        check_nodes()
                        arena.append(_Node(child, parent_idx, action, depth + 1))
                        child_idx = len(arena) - 1
                        index[child] = child_idx
                        next_frontier.append(child_idx)
                        if consider(child_idx):
                            status = SearchStatus.FOUND
                            break
                    if status is SearchStatus.FOUND:
                        break
                frontier = next_frontier
                depth += 1
            if optimize and best is not None:
                status = SearchStatus.FOUND
        except _BudgetExceeded as e:
            logger.warning("Search stopped early: %s", e)
            status = SearchStatus.BUDGET_EXCEEDED
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        result = self._result(status, best, arena, optimize, time.monotonic() - started)
        logger.info(
            "Search finished: %s after %d nodes in %.3fs (score=%s)",
            result.status.value,
            result.nodes_explored,
            result.elapsed_seconds,
            result.total_score,
        )
        return result

    def _result(
        self,
        status: SearchStatus,
        best: Optional[int],
        arena: List[_Node],
        optimize: bool,
        elapsed: float,
    ) -> SearchResult:
        result = SearchResult(status=status, optimized=optimize, nodes_explored=len(arena), elapsed_seconds=elapsed)
        if best is None:
            return result
        trace = _build_trace(arena, best).padded(self.config.min_len)
        result.trace = trace
        result.dancer_scores = score_breakdown(trace.final_state, self.universe)
        result.total_score = sum(result.dancer_scores.values())
        return result


def _walk_back(arena: List[_Node], node_idx: int) -> Iterator[_Node]:
    current: Optional[int] = node_idx
    while current is not None:
        node = arena[current]
        yield node
        current = node.parent


def _build_trace(arena: List[_Node], node_idx: int) -> Trace:
    path = list(_walk_back(arena, node_idx))
    path.reverse()
    return Trace(
        states=tuple(node.state for node in path),
        actions=tuple(node.action for node in path[1:]),
    )


def find_feasible(universe: Universe, config: Optional[SearchConfig] = None) -> SearchResult:
    return Planner(universe, config).find_feasible()


def find_optimal(universe: Universe, config: Optional[SearchConfig] = None) -> SearchResult:
    return Planner(universe, config).find_optimal()
