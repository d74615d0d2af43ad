"""Search configuration: horizon, fairness, avoid policy and budgets.

Configuration is read from YAML (preferred) or JSON. A file may hold only the
``search:`` section or a whole universe descriptor that carries one.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .exceptions import ConfigError, ConfigErrorKind


class AvoidPolicy(str, Enum):
    STRICT = "strict"          # an avoided piece is never assigned
    NECESSITY = "necessity"    # allowed only on seats willing dancers can never fill


@dataclass(frozen=True)
class SearchConfig:
    min_len: int = 5
    max_len: int = 10
    fairness_bound: int = 2
    avoid_policy: AvoidPolicy = AvoidPolicy.STRICT
    require_all_dancers_assigned: bool = False
    require_must_have: bool = False
    fairness_every_step: bool = True
    max_nodes: Optional[int] = None
    max_seconds: Optional[float] = None
    workers: int = 1

    def validate(self) -> "SearchConfig":
        if not _is_int(self.min_len) or self.min_len < 0:
            raise ConfigError(ConfigErrorKind.INVALID_SEARCH_BOUNDS, f"min_len must be a non-negative int, got {self.min_len!r}")
        if not _is_int(self.max_len) or self.max_len < self.min_len:
            raise ConfigError(
                ConfigErrorKind.INVALID_SEARCH_BOUNDS,
                f"max_len must be an int >= min_len ({self.min_len}), got {self.max_len!r}",
            )
        if not _is_int(self.fairness_bound) or self.fairness_bound < 0:
            raise ConfigError(
                ConfigErrorKind.INVALID_SEARCH_BOUNDS, f"fairness_bound must be a non-negative int, got {self.fairness_bound!r}"
            )
        if self.max_nodes is not None and (not _is_int(self.max_nodes) or self.max_nodes < 1):
            raise ConfigError(ConfigErrorKind.INVALID_SEARCH_BOUNDS, f"max_nodes must be a positive int, got {self.max_nodes!r}")
        if self.max_seconds is not None and (
            isinstance(self.max_seconds, bool) or not isinstance(self.max_seconds, (int, float)) or self.max_seconds <= 0
        ):
            raise ConfigError(ConfigErrorKind.INVALID_SEARCH_BOUNDS, f"max_seconds must be positive, got {self.max_seconds!r}")
        if not _is_int(self.workers) or self.workers < 1:
            raise ConfigError(ConfigErrorKind.INVALID_SEARCH_BOUNDS, f"workers must be a positive int, got {self.workers!r}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Plain mapping of the settings that are set, suitable for YAML/JSON."""
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[f.name] = value.value if isinstance(value, Enum) else value
        return out

    def with_overrides(self, **overrides: Any) -> "SearchConfig":
        """Return a copy with the non-None overrides applied and validated."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "avoid_policy" in changes:
            changes["avoid_policy"] = _parse_policy(changes["avoid_policy"])
        return replace(self, **changes).validate()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_policy(value: Any) -> AvoidPolicy:
    if isinstance(value, AvoidPolicy):
        return value
    try:
        return AvoidPolicy(str(value).lower())
    except ValueError:
        raise ConfigError(
            ConfigErrorKind.INVALID_SEARCH_BOUNDS,
            f"avoid_policy must be one of {[p.value for p in AvoidPolicy]}, got {value!r}",
        ) from None


def search_config_from_dict(data: Optional[Mapping[str, Any]]) -> SearchConfig:
    """Build a validated SearchConfig from a ``search:`` mapping."""
    data = dict(data or {})
    known = {f.name for f in fields(SearchConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(ConfigErrorKind.INVALID_SEARCH_BOUNDS, f"Unknown search settings: {unknown}")
    if "avoid_policy" in data:
        data["avoid_policy"] = _parse_policy(data["avoid_policy"])
    return SearchConfig(**data).validate()


def read_document(path: str | Path) -> Dict[str, Any]:
    """Read a YAML or JSON document into a dict."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        doc = json.loads(text)
    else:
        doc = yaml.safe_load(text)
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ConfigError(ConfigErrorKind.UNKNOWN_REFERENCE, f"{path} must contain a mapping at the top level")
    return doc


def load_config(path: str | Path) -> SearchConfig:
    doc = read_document(path)
    if "search" in doc:
        section = doc["search"]
    elif "dancers" in doc or "pieces" in doc:
        # universe file without a search section
        section = {}
    else:
        section = doc
    return search_config_from_dict(section)
