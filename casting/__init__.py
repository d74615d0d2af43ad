"""Trace-search planner for casting dancers into pieces.

Modules:
- config: search settings, loaded from YAML or JSON
- exceptions: configuration errors and transition preconditions
- domain: immutable entities, universe loading, trace persistence
- services: invariant checks, transition engine, preference scoring
- engine: traces and the bounded planner
- ai: CP-SAT cross-check of the optimal score
- io: roster CSV import and trace CSV export
- report: text summaries of search results
- cli: command-line interface entrypoints
"""

__all__ = [
    "config",
    "exceptions",
    "domain",
    "services",
    "engine",
    "ai",
    "io",
    "report",
    "cli",
]
