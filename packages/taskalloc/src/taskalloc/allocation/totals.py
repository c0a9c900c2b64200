"""Totals calculator and input coercion for pending changes."""

from __future__ import annotations

import math
from typing import Sequence

from .exceptions import err
from .types import Action, Totals

__all__ = [
    "as_action",
    "coerce_units",
    "compute_totals",
    "effective_pool",
    "pending_total",
]


def coerce_units(value: object) -> int:
    """Coerce a raw edit into a non-negative unit count.

    Empty or non-numeric input is treated as 0 rather than rejected; fractional
    input is floored.
    """

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            value = float(text)
        except ValueError:
            return 0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, math.floor(number))


def as_action(value: Action | str) -> Action:
    if isinstance(value, Action):
        return value
    try:
        return Action(str(value).lower())
    except ValueError as exc:
        raise err("E_ACTION_UNSUPPORTED", f"unknown action {value!r}") from exc


def compute_totals(pending_change: Sequence[object], action: Sequence[Action | str]) -> Totals:
    """Sum pending changes grouped by action, ignoring excluded rows."""

    if len(pending_change) != len(action):
        raise err(
            "E_ALLOCATION_SHAPE",
            f"pending_change has {len(pending_change)} entries but action has {len(action)}",
        )
    total_added = 0
    total_subtracted = 0
    for raw, act in zip(pending_change, action):
        act = as_action(act)
        if act is Action.ADD:
            total_added += coerce_units(raw)
        elif act is Action.SUBTRACT:
            total_subtracted += coerce_units(raw)
    return Totals(total_added=total_added, total_subtracted=total_subtracted)


def effective_pool(base_capacity: int, totals: Totals) -> int:
    """Capacity left after the pending changes would be committed."""

    return max(0, base_capacity + totals.total_subtracted - totals.total_added)


def pending_total(current_load: int, action: Action | str, pending_change: object) -> int:
    """Load a participant would carry once its pending change is committed."""

    delta = coerce_units(pending_change)
    act = as_action(action)
    if act is Action.ADD:
        return current_load + delta
    if act is Action.SUBTRACT:
        return max(0, current_load - delta)
    return current_load
