"""CP-SAT model of the best valid end state within a horizon.

The planner never calls this module. It solves the same question as
``Planner.find_optimal`` without building traces, which gives an independent
check on the search: the CP-SAT optimum bounds the planner's score from above
and equals it whenever the end state can be reached without breaking the
per-step fairness rule along the way.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from ortools.sat.python import cp_model

from casting.config import AvoidPolicy
from casting.domain.models import AVOID, MUST_HAVE, PREFERRED, AssignmentState, Universe
from casting.services.scoring import AVOID_PENALTY, MUST_HAVE_WEIGHT, PREFERRED_WEIGHT, total_score
from casting.services.transitions import static_candidates

logger = logging.getLogger(__name__)


def _require(model: cp_model.CpModel, constraint) -> None:
    # Sums over no variables collapse to plain Python bools
    if isinstance(constraint, bool):
        if not constraint:
            model.Add(model.NewConstant(0) >= 1)
        return
    model.Add(constraint)


class CPSatOracle:
    """
    Builds and solves the end-state model.

    Decision variables are ``x[d, p]`` for every (dancer, piece) pair that
    ``assign`` could ever accept. Constraints mirror the hard invariants, plus
    the reachability facts of the transition engine:
    - at most ``max_len`` assignments (one per step);
    - under the necessity policy no more avoiders on a piece than the seats
      its willing dancers can never fill.
    """

    def __init__(self, universe: Universe, max_time_seconds: float = 10.0, num_workers: int = 4):
        self.universe = universe
        self.max_time_seconds = max_time_seconds
        self.num_workers = num_workers

    def solve(self) -> Optional[Tuple[int, AssignmentState]]:
        """
        Returns:
            ``(best_score, end_state)``, or None when no valid end state exists

        Raises:
            RuntimeError: If the solver stops without proving either answer
        """
        model = cp_model.CpModel()
        x = self._create_variables(model)
        self._add_conflict_constraints(model, x)
        self._add_capacity_constraints(model, x)
        self._add_avoid_constraints(model, x)
        self._add_dancer_constraints(model, x)
        _require(model, sum(x.values()) <= self.universe.config.max_len)
        self._build_objective(model, x)

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.max_time_seconds
        solver.parameters.num_search_workers = self.num_workers

        status = solver.Solve(model)
        logger.debug("CP-SAT status: %s", solver.StatusName(status))
        if status == cp_model.INFEASIBLE:
            return None
        if status != cp_model.OPTIMAL:
            raise RuntimeError(f"CP-SAT stopped without an optimal answer (status: {solver.StatusName(status)})")

        entries: Dict[str, set] = {dancer_id: set() for dancer_id in self.universe.dancer_ids}
        for (dancer_id, piece_id), var in x.items():
            if solver.Value(var):
                entries[dancer_id].add(piece_id)
        state = AssignmentState(entries)
        return total_score(state, self.universe), state

    def _create_variables(self, model: cp_model.CpModel) -> Dict[Tuple[str, str], cp_model.IntVar]:
        x = {}
        for dancer_id, piece_ids in static_candidates(self.universe).items():
            for piece_id in piece_ids:
                x[dancer_id, piece_id] = model.NewBoolVar(f"x_{dancer_id}_{piece_id}")
        return x

    def _add_conflict_constraints(self, model: cp_model.CpModel, x: Dict) -> None:
        pieces = self.universe.pieces
        for dancer_id in self.universe.dancer_ids:
            held = [p for (d, p) in x if d == dancer_id]
            for i, first in enumerate(held):
                for second in held[i + 1:]:
                    if pieces[first].shares_slot_with(pieces[second]):
                        _require(model, x[dancer_id, first] + x[dancer_id, second] <= 1)

    def _add_capacity_constraints(self, model: cp_model.CpModel, x: Dict) -> None:
        for piece_id, piece in self.universe.pieces.items():
            cast = [var for (d, p), var in x.items() if p == piece_id]
            # min_dancers >= 1, so a piece nobody can join makes the model infeasible
            _require(model, sum(cast) >= piece.min_dancers)
            _require(model, sum(cast) <= piece.max_dancers)

    def _add_avoid_constraints(self, model: cp_model.CpModel, x: Dict) -> None:
        if self.universe.config.avoid_policy is not AvoidPolicy.NECESSITY:
            return  # avoid pairs are not candidates under the strict policy
        dancers = self.universe.dancers
        for piece_id in self.universe.piece_ids:
            avoiders = [var for (d, p), var in x.items() if p == piece_id and piece_id in dancers[d].avoid]
            if avoiders:
                _require(model, sum(avoiders) <= self.universe.avoider_allowance(piece_id))

    def _add_dancer_constraints(self, model: cp_model.CpModel, x: Dict) -> None:
        cfg = self.universe.config
        counts = {
            dancer_id: sum(var for (d, p), var in x.items() if d == dancer_id) for dancer_id in self.universe.dancer_ids
        }
        ids = list(counts)
        for first in ids:
            for second in ids:
                if first != second:
                    _require(model, counts[first] - counts[second] <= cfg.fairness_bound)

        for dancer_id, dancer in self.universe.dancers.items():
            if cfg.require_all_dancers_assigned:
                _require(model, counts[dancer_id] >= 1)
            if cfg.require_must_have and dancer.must_have:
                _require(model, sum(var for (d, p), var in x.items() if d == dancer_id and p in dancer.must_have) >= 1)

    def _build_objective(self, model: cp_model.CpModel, x: Dict) -> None:
        terms = []
        for (dancer_id, piece_id), var in x.items():
            tier = self.universe.dancers[dancer_id].tier_of(piece_id)
            if tier == MUST_HAVE:
                terms.append(MUST_HAVE_WEIGHT * var)
            elif tier == PREFERRED:
                terms.append(PREFERRED_WEIGHT * var)
            elif tier == AVOID:
                terms.append(-AVOID_PENALTY * var)
        if terms:
            model.Maximize(sum(terms))


def optimal_score_bound(universe: Universe, max_time_seconds: float = 10.0) -> Optional[int]:
    """Best total score of any valid end state within the horizon, or None."""
    solved = CPSatOracle(universe, max_time_seconds=max_time_seconds).solve()
    return solved[0] if solved is not None else None
