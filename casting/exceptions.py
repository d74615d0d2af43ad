"""Exceptions raised by the casting planner."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ConfigErrorKind(str, Enum):
    EMPTY_REHEARSAL_SLOTS = "EmptyRehearsalSlots"
    INVALID_CAPACITY = "InvalidCapacity"
    OVERLAPPING_TIERS = "OverlappingTiers"
    PREFERENCE_OUTSIDE_AVAILABILITY = "PreferenceOutsideAvailability"
    UNKNOWN_REFERENCE = "UnknownReference"
    INVALID_SEARCH_BOUNDS = "InvalidSearchBounds"


class PreconditionKind(str, Enum):
    UNAVAILABLE = "Unavailable"
    CONFLICT = "Conflict"
    AT_CAPACITY = "AtCapacity"
    NOT_ELIGIBLE = "NotEligible"
    NOT_ASSIGNED = "NotAssigned"
    BELOW_MINIMUM = "BelowMinimum"


class ConfigError(ValueError):
    """Raised when a universe or search configuration is malformed.

    Always raised before any search starts; values are never coerced into
    something acceptable.
    """

    def __init__(self, kind: ConfigErrorKind, message: str):
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.message = message


class PreconditionViolation(Exception):
    """Raised by the transition engine when an action cannot be applied.

    This is an expected signal: the planner catches it to prune a branch.
    """

    def __init__(self, kind: PreconditionKind, dancer_id: Optional[str] = None, piece_id: Optional[str] = None):
        super().__init__(f"{kind.value}: dancer={dancer_id} piece={piece_id}")
        self.kind = kind
        self.dancer_id = dancer_id
        self.piece_id = piece_id
