"""Run reports and tabular views of an allocation session."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping, Sequence

import polars as pl

from .policy import EnginePolicy
from .totals import compute_totals, effective_pool, pending_total
from .types import Action, AllocationState, Participant, PolicyMode, Totals

__all__ = ["allocation_frame", "build_run_report", "write_allocation_frame", "write_run_report"]


def allocation_frame(
    participants: Sequence[Participant],
    state: AllocationState,
) -> pl.DataFrame:
    """One row per participant with its action, pending change and resulting load."""

    return pl.DataFrame(
        {
            "participant_id": [participant.participant_id for participant in participants],
            "name": [participant.name for participant in participants],
            "current_load": [participant.current_load for participant in participants],
            "action": [action.value for action in state.action],
            "pending_change": list(state.pending_change),
            "weight_percent": list(state.weight_percent),
            "weight_locked": list(state.weight_locked),
            "pending_total": [
                pending_total(participant.current_load, action, change)
                for participant, action, change in zip(participants, state.action, state.pending_change)
            ],
        },
        schema={
            "participant_id": pl.Utf8,
            "name": pl.Utf8,
            "current_load": pl.Int64,
            "action": pl.Utf8,
            "pending_change": pl.Int64,
            "weight_percent": pl.Int64,
            "weight_locked": pl.Boolean,
            "pending_total": pl.Int64,
        },
    )


def build_run_report(
    *,
    state: AllocationState,
    base_capacity: int,
    policy: EnginePolicy,
    committed: bool = False,
) -> Mapping[str, object]:
    """Construct the allocation run report payload."""

    totals = compute_totals(state.pending_change, state.action)
    return {
        "mode": state.mode.value,
        "policy_semver": policy.policy_semver,
        "policy_version": policy.policy_version,
        "policy_digest": policy.digest,
        "participants_total": state.size,
        "participants_eligible": sum(1 for action in state.action if action is Action.ADD),
        "participants_excluded": sum(1 for action in state.action if action is Action.EXCLUDE),
        "base_capacity": base_capacity,
        "requested_pool": state.requested_pool,
        "applied_pool": state.applied_pool,
        "applied_chunk": state.applied_chunk,
        "total_added": totals.total_added,
        "total_subtracted": totals.total_subtracted,
        "allocation_sum": sum(state.pending_change),
        "effective_pool": effective_pool(base_capacity, totals),
        "locked_percent_total": sum(
            percent
            for percent, locked, action in zip(state.weight_percent, state.weight_locked, state.action)
            if locked and action is not Action.EXCLUDE
        ),
        "allocation_conserved": _conserved(state, base_capacity, totals),
        "committed": committed,
    }


def _conserved(state: AllocationState, base_capacity: int, totals: Totals) -> bool:
    if state.mode is PolicyMode.UNCONSTRAINED:
        return totals.total_added <= base_capacity
    allocated = sum(state.pending_change)
    if state.mode is PolicyMode.FIXED_PER_PARTICIPANT:
        eligible = sum(1 for action in state.action if action is Action.ADD)
        return allocated == min(state.applied_pool, state.applied_chunk * eligible)
    has_eligible = any(
        action is not Action.EXCLUDE and (not locked or percent > 0)
        for action, locked, percent in zip(state.action, state.weight_locked, state.weight_percent)
    )
    return allocated == (state.applied_pool if has_eligible else 0)


def write_run_report(report: Mapping[str, object], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2, sort_keys=True), encoding="utf-8")
    return path


def write_allocation_frame(frame: pl.DataFrame, path: Path) -> Path:
    """Write ``frame`` as Parquet or CSV depending on the suffix."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".csv":
        frame.write_csv(path)
    else:
        frame.write_parquet(path)
    return path
