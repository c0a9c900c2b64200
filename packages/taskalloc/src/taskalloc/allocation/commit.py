"""Fold pending changes into participant loads."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence

from .exceptions import err
from .totals import compute_totals, effective_pool, pending_total
from .types import Action, Participant

__all__ = ["commit_allocation", "next_base_capacity"]


def commit_allocation(
    participants: Sequence[Participant],
    pending_change: Sequence[object],
    action: Sequence[Action | str],
) -> List[Participant]:
    """Return participants with Add/Subtract changes applied; excluded rows are unchanged."""

    if not (len(participants) == len(pending_change) == len(action)):
        raise err(
            "E_ALLOCATION_SHAPE",
            "participants, pending_change and action must have the same length",
        )
    return [
        replace(participant, current_load=pending_total(participant.current_load, act, change))
        for participant, change, act in zip(participants, pending_change, action)
    ]


def next_base_capacity(
    base_capacity: int,
    pending_change: Sequence[object],
    action: Sequence[Action | str],
) -> int:
    """Capacity remaining once the pending changes are committed."""

    return effective_pool(base_capacity, compute_totals(pending_change, action))
