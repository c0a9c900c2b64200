"""Integrity checks run on every allocation vector before it is stored."""

from __future__ import annotations

from typing import Sequence

from .exceptions import err
from .totals import as_action, coerce_units
from .types import Action

__all__ = ["validate_fixed_chunk", "validate_proportional"]


def validate_proportional(
    allocation: Sequence[int],
    action: Sequence[Action | str],
    locks: Sequence[bool],
    percents: Sequence[object],
    pool: int,
) -> None:
    """Check conservation, non-negativity and exclusion for a proportional vector."""

    actions = _validate_common(allocation, action)
    eligible = any(
        act is not Action.EXCLUDE and (not locked or coerce_units(percent) > 0)
        for act, locked, percent in zip(actions, locks, percents)
    )
    expected = pool if eligible else 0
    total = sum(allocation)
    if total != expected:
        raise err(
            "E_ALLOCATION_CONSERVATION",
            f"Σ allocation {total} != expected {expected} (pool {pool})",
        )


def validate_fixed_chunk(
    allocation: Sequence[int],
    action: Sequence[Action | str],
    pool: int,
    chunk: int,
) -> None:
    """Check a fixed-chunk vector never over-spends the pool and serves rows in order."""

    actions = _validate_common(allocation, action)
    eligible = sum(1 for act in actions if act is Action.ADD)
    expected = min(pool, chunk * eligible)
    total = sum(allocation)
    if total != expected:
        raise err(
            "E_ALLOCATION_CONSERVATION",
            f"Σ allocation {total} != min(pool {pool}, chunk {chunk} × {eligible})",
        )
    for index, (count, act) in enumerate(zip(allocation, actions)):
        if act is not Action.ADD and count != 0:
            raise err(
                "E_ALLOCATION_EXCLUDED",
                f"row {index} is not eligible but received {count}",
            )
        if count > chunk:
            raise err(
                "E_ALLOCATION_CONSERVATION",
                f"row {index} received {count}, above the chunk of {chunk}",
            )


def _validate_common(
    allocation: Sequence[int],
    action: Sequence[Action | str],
) -> list[Action]:
    if len(allocation) != len(action):
        raise err(
            "E_ALLOCATION_SHAPE",
            f"allocation has {len(allocation)} entries but action has {len(action)}",
        )
    actions = [as_action(act) for act in action]
    for index, (count, act) in enumerate(zip(allocation, actions)):
        if not isinstance(count, int) or count < 0:
            raise err(
                "E_ALLOCATION_NEGATIVE",
                f"row {index} has invalid allocation {count!r}",
            )
        if act is Action.EXCLUDE and count != 0:
            raise err(
                "E_ALLOCATION_EXCLUDED",
                f"excluded row {index} received {count}",
            )
    return actions
