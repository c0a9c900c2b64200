"""Allocation distribution engine."""

from .bounds import action_switch_blocked, clamp_unconstrained, headroom, opposite_action_window
from .commit import commit_allocation, next_base_capacity
from .exceptions import AllocationError, ErrorContext, FailureCategory, err
from .fixed_chunk import allocate_fixed_chunk
from .loader import Snapshot, load_roster, load_snapshot, snapshot_from_mapping
from .orchestrator import AllocationOrchestrator
from .policy import DEFAULT_POLICY, EnginePolicy, PolicyLoadingError, load_policy
from .proportional import allocate_proportional
from .report import allocation_frame, build_run_report, write_allocation_frame, write_run_report
from .totals import coerce_units, compute_totals, effective_pool, pending_total
from .types import Action, AllocationState, CommitResult, Participant, PolicyMode, Totals
from .validate import validate_fixed_chunk, validate_proportional
from .weights import clamp_locked_percent, locked_total, normalize_weights

__all__ = [
    "Action",
    "AllocationError",
    "AllocationOrchestrator",
    "AllocationState",
    "CommitResult",
    "DEFAULT_POLICY",
    "EnginePolicy",
    "ErrorContext",
    "FailureCategory",
    "Participant",
    "PolicyLoadingError",
    "PolicyMode",
    "Snapshot",
    "Totals",
    "action_switch_blocked",
    "allocate_fixed_chunk",
    "allocate_proportional",
    "allocation_frame",
    "build_run_report",
    "clamp_locked_percent",
    "clamp_unconstrained",
    "coerce_units",
    "commit_allocation",
    "compute_totals",
    "effective_pool",
    "err",
    "headroom",
    "load_policy",
    "load_roster",
    "load_snapshot",
    "locked_total",
    "next_base_capacity",
    "normalize_weights",
    "opposite_action_window",
    "pending_total",
    "snapshot_from_mapping",
    "validate_fixed_chunk",
    "validate_proportional",
    "write_allocation_frame",
    "write_run_report",
]
