"""Command-line interface for the casting planner."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import yaml

from casting.config import load_config
from casting.domain.db import DEFAULT_DB_URL, get_session
from casting.domain.loader import load_universe, load_universe_file
from casting.domain.repositories import TraceRepository
from casting.engine.planner import Planner
from casting.exceptions import ConfigError
from casting.io.export_csv import write_trace_csv
from casting.io.import_csv import read_roster
from casting.log import configure_logging
from casting.report import summarize_result

EXIT_OK = 0
EXIT_NO_TRACE = 1
EXIT_CONFIG_ERROR = 2


def _cmd_solve(args: argparse.Namespace) -> int:
    """Search for a feasible or optimal trace."""
    config = load_config(args.config) if args.config else None
    universe = load_universe_file(args.universe, config=config)
    config = universe.config.with_overrides(
        min_len=args.min_len,
        max_len=args.max_len,
        fairness_bound=args.fairness_bound,
        avoid_policy=args.avoid_policy,
        max_nodes=args.max_nodes,
        max_seconds=args.max_seconds,
        workers=args.workers,
    )

    planner = Planner(universe, config)
    result = planner.find_optimal() if args.optimize else planner.find_feasible()
    print(summarize_result(result, planner.universe))

    if args.out and result.trace is not None:
        rows = write_trace_csv(args.out, result.trace, planner.universe)
        print(f"[OK] Wrote {rows} rows to {args.out}")

    if args.db:
        session = get_session(args.db)
        try:
            record = TraceRepository.save_result(session, result, label=Path(args.universe).name)
            print(f"[OK] Saved result as trace {record.id}")
        finally:
            session.close()

    if result.found:
        return EXIT_OK
    print(f"[INFO] No trace: {result.status.value}")
    return EXIT_NO_TRACE


def _cmd_validate(args: argparse.Namespace) -> int:
    """Validate a universe file."""
    config = load_config(args.config) if args.config else None
    universe = load_universe_file(args.universe, config=config)
    print(f"[OK] Universe valid: {len(universe.dancers)} dancers, {len(universe.pieces)} pieces, {len(universe.time_slots)} slots")
    return EXIT_OK


def _cmd_import_csv(args: argparse.Namespace) -> int:
    """Convert roster CSVs into a universe YAML file."""
    search = load_config(args.config).to_dict() if args.config else None
    descriptor = read_roster(args.dancers, args.pieces, search=search)
    # Validate before writing so a bad roster never produces a universe file
    load_universe(descriptor)
    Path(args.out).write_text(yaml.safe_dump(descriptor, sort_keys=False), encoding="utf-8")
    print(f"[OK] Universe written to {args.out}")
    return EXIT_OK


def _cmd_export(args: argparse.Namespace) -> int:
    """Export a stored trace to CSV."""
    universe = load_universe_file(args.universe)
    session = get_session(args.db)
    try:
        trace = TraceRepository.load_trace(session, args.trace_id)
    finally:
        session.close()
    if trace is None:
        print(f"[ERROR] No stored trace with id {args.trace_id}")
        return EXIT_NO_TRACE
    rows = write_trace_csv(args.out, trace, universe)
    print(f"[OK] Exported {rows} rows to {args.out}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(prog="casting", description="Trace-search planner for casting dancers into pieces")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")

    sub = parser.add_subparsers(dest="command", required=True)

    s = sub.add_parser("solve", help="Search for a trace reaching a valid casting")
    s.add_argument("--universe", required=True, help="Universe YAML/JSON file")
    s.add_argument("--config", help="Optional search config YAML/JSON (overrides the universe's search section)")
    s.add_argument("--optimize", action="store_true", help="Maximize the total preference score")
    s.add_argument("--min-len", type=int)
    s.add_argument("--max-len", type=int)
    s.add_argument("--fairness-bound", type=int)
    s.add_argument("--avoid-policy", choices=["strict", "necessity"])
    s.add_argument("--max-nodes", type=int)
    s.add_argument("--max-seconds", type=float)
    s.add_argument("--workers", type=int)
    s.add_argument("--out", help="Optional: write the trace to CSV")
    s.add_argument("--db", help=f"Optional: persist the result (e.g. {DEFAULT_DB_URL})")
    s.set_defaults(func=_cmd_solve)

    v = sub.add_parser("validate", help="Validate a universe file")
    v.add_argument("--universe", required=True)
    v.add_argument("--config")
    v.set_defaults(func=_cmd_validate)

    i = sub.add_parser("import-csv", help="Build a universe file from roster CSVs")
    i.add_argument("--dancers", required=True, help="Path to dancers CSV")
    i.add_argument("--pieces", required=True, help="Path to pieces CSV")
    i.add_argument("--config", help="Optional search config to embed")
    i.add_argument("--out", required=True, help="Universe YAML to write")
    i.set_defaults(func=_cmd_import_csv)

    e = sub.add_parser("export", help="Export a stored trace to CSV")
    e.add_argument("--db", default=DEFAULT_DB_URL)
    e.add_argument("--trace-id", type=int, required=True)
    e.add_argument("--universe", required=True, help="Universe the trace was found for")
    e.add_argument("--out", required=True)
    e.set_defaults(func=_cmd_export)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        return args.func(args)
    except ConfigError as e:
        print(f"[ERROR] Invalid configuration: {e}")
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
