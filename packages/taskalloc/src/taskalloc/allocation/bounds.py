"""Bounds clamp for unconstrained add/subtract edits."""

from __future__ import annotations

from typing import Tuple

from .totals import as_action, coerce_units
from .types import Action, Totals

__all__ = [
    "action_switch_blocked",
    "clamp_unconstrained",
    "headroom",
    "opposite_action_window",
]


def clamp_unconstrained(
    action: Action | str,
    new_value: object,
    old_value: object,
    totals: Totals,
    new_totals: Totals,
    pool_for_addition: int,
    current_load: int,
) -> int:
    """Clamp a single-participant edit so the pool and the participant's load hold.

    ``totals`` are computed before the edit and ``new_totals`` with ``new_value``
    substituted in.
    """

    act = as_action(action)
    candidate = coerce_units(new_value)
    if act is Action.ADD:
        excess = new_totals.total_added - pool_for_addition
        if excess > 0:
            return max(0, candidate - excess)
        return candidate
    if act is Action.SUBTRACT:
        # Capacity already oversubscribed elsewhere cannot be reassigned.
        if pool_for_addition < totals.total_added:
            return coerce_units(old_value)
        lower = max(0, totals.total_added - pool_for_addition)
        return max(lower, min(candidate, max(0, current_load)))
    return 0


def opposite_action_window(
    action: Action | str,
    value: object,
    totals: Totals,
    base_capacity: int,
    current_load: int,
) -> Tuple[int, int]:
    """Legal ``(min, max)`` for the row's value if it switched to the opposite action."""

    act = as_action(action)
    current = coerce_units(value)
    if act is Action.ADD:
        lower = max(0, totals.total_added - current - base_capacity - totals.total_subtracted)
        return lower, current_load
    if act is Action.SUBTRACT:
        upper = base_capacity + totals.total_subtracted - current - totals.total_added
        return 0, upper
    return 0, 0


def action_switch_blocked(
    action: Action | str,
    value: object,
    totals: Totals,
    base_capacity: int,
    current_load: int,
) -> bool:
    """True when the row's value would be illegal under the opposite action."""

    lower, upper = opposite_action_window(action, value, totals, base_capacity, current_load)
    current = coerce_units(value)
    return current < lower or current > upper


def headroom(
    action: Action | str,
    value: object,
    totals: Totals,
    pool_for_addition: int,
    current_load: int,
) -> int:
    """Units the row could still take on without breaching its bound."""

    act = as_action(action)
    current = coerce_units(value)
    if act is Action.ADD:
        add_max = max(0, pool_for_addition - (totals.total_added - current))
        return max(0, add_max - current)
    if act is Action.SUBTRACT:
        return max(0, current_load - current)
    return 0
