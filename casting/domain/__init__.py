"""Domain models and universe loading."""

from .loader import load_universe, load_universe_file
from .models import AssignmentState, Dancer, Piece, Universe

__all__ = [
    "AssignmentState",
    "Dancer",
    "Piece",
    "Universe",
    "load_universe",
    "load_universe_file",
]
