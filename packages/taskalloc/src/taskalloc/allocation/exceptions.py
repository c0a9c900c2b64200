"""Failure taxonomy for the allocation engine.

Every surfaced failure carries a stable code/category pair so that callers can
tell a rejected weight configuration apart from an integrity violation without
parsing messages. Recoverable conditions (malformed numbers, pool overruns)
never reach this module; they are clamped where the edit happens.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Tuple

from taskalloc.core.errors import EngineError


class FailureCategory(Enum):
    """Failure categories carried by allocation errors."""

    WEIGHTS = "weight_configuration"
    INTEGRITY = "allocation_integrity"
    OPERATION = "invalid_operation"
    INPUT = "input_validation"


_FAILURE_CODE_MAP: Mapping[str, Tuple[FailureCategory, str]] = {
    "E_WEIGHT_OVERCOMMIT": (FailureCategory.WEIGHTS, "locked_percent_over_total"),
    "E_ALLOCATION_CONSERVATION": (FailureCategory.INTEGRITY, "pool_not_conserved"),
    "E_ALLOCATION_NEGATIVE": (FailureCategory.INTEGRITY, "negative_allocation"),
    "E_ALLOCATION_EXCLUDED": (FailureCategory.INTEGRITY, "excluded_participant_allocated"),
    "E_ALLOCATION_SHAPE": (FailureCategory.INTEGRITY, "vector_length_mismatch"),
    "E_INDEX_RANGE": (FailureCategory.OPERATION, "participant_index_out_of_range"),
    "E_ACTION_UNSUPPORTED": (FailureCategory.OPERATION, "action_not_offered_by_policy"),
    "E_ACTION_LOCKED": (FailureCategory.OPERATION, "action_switch_blocked"),
    "E_POLICY_OPERATION": (FailureCategory.OPERATION, "operation_not_valid_for_policy"),
    "E_SNAPSHOT_MISSING": (FailureCategory.INPUT, "snapshot_missing"),
    "E_SNAPSHOT_INVALID": (FailureCategory.INPUT, "snapshot_invalid"),
}


@dataclass(frozen=True)
class ErrorContext:
    """Structured payload describing an allocation failure."""

    code: str
    category: FailureCategory
    reason: str
    detail: str


class AllocationError(EngineError):
    """Exception carrying the canonical allocation error context."""

    def __init__(self, context: ErrorContext) -> None:
        super().__init__(f"{context.code}: {context.detail}")
        self.context = context


def err(code: str, detail: str) -> AllocationError:
    """Build an ``AllocationError`` with canonical metadata."""

    if code not in _FAILURE_CODE_MAP:
        raise ValueError(f"unknown allocation failure code '{code}'")
    category, reason = _FAILURE_CODE_MAP[code]
    context = ErrorContext(code=code, category=category, reason=reason, detail=detail)
    return AllocationError(context)


__all__ = ["AllocationError", "ErrorContext", "FailureCategory", "err"]
