"""I/O utilities for CSV import/export."""

from .export_csv import trace_to_frame, write_trace_csv
from .import_csv import read_dancers_csv, read_pieces_csv, read_roster

__all__ = [
    "read_dancers_csv",
    "read_pieces_csv",
    "read_roster",
    "trace_to_frame",
    "write_trace_csv",
]
