"""Constraint-programming cross-checks."""

from .cp_sat_oracle import CPSatOracle, optimal_score_bound

__all__ = [
    "CPSatOracle",
    "optimal_score_bound",
]
