"""Frozen identifiers for the allocation engine."""

from __future__ import annotations

from .types import Action, PolicyMode

PERCENT_TOTAL = 100

POLICY_ACTIONS = {
    PolicyMode.UNCONSTRAINED: frozenset({Action.ADD, Action.SUBTRACT, Action.EXCLUDE}),
    PolicyMode.PROPORTIONAL_EVEN: frozenset({Action.ADD, Action.EXCLUDE}),
    PolicyMode.FIXED_PER_PARTICIPANT: frozenset({Action.ADD, Action.EXCLUDE}),
}

DISTRIBUTED_MODES = frozenset(
    {PolicyMode.PROPORTIONAL_EVEN, PolicyMode.FIXED_PER_PARTICIPANT}
)

__all__ = [
    "DISTRIBUTED_MODES",
    "PERCENT_TOTAL",
    "POLICY_ACTIONS",
]
