"""Common data structures for the allocation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence, Tuple


class Action(str, Enum):
    """Per-participant action deciding eligibility and the sign of a change."""

    ADD = "add"
    SUBTRACT = "subtract"
    EXCLUDE = "exclude"


class PolicyMode(str, Enum):
    """Allocation policies the orchestrator can run."""

    UNCONSTRAINED = "unconstrained"
    PROPORTIONAL_EVEN = "proportional_even"
    FIXED_PER_PARTICIPANT = "fixed_per_participant"


@dataclass(frozen=True)
class Participant:
    """Entity that can receive or give up work units."""

    participant_id: str
    current_load: int
    name: str | None = None


@dataclass(frozen=True)
class Totals:
    """Pending changes summed by action."""

    total_added: int
    total_subtracted: int


@dataclass(frozen=True)
class AllocationState:
    """Per-participant pending fields plus the pool/chunk values of one policy session.

    All vectors are indexed by participant position. ``weight_locked`` and
    ``weight_percent`` only carry meaning under ``PolicyMode.PROPORTIONAL_EVEN``.
    """

    mode: PolicyMode
    pending_change: Tuple[int, ...]
    action: Tuple[Action, ...]
    weight_locked: Tuple[bool, ...]
    weight_percent: Tuple[int, ...]
    requested_pool: int = 0
    applied_pool: int = 0
    requested_chunk: int = 0
    applied_chunk: int = 0

    @classmethod
    def fresh(
        cls,
        mode: PolicyMode,
        size: int,
        *,
        requested_pool: int = 0,
        requested_chunk: int = 0,
    ) -> "AllocationState":
        return cls(
            mode=mode,
            pending_change=(0,) * size,
            action=(Action.ADD,) * size,
            weight_locked=(False,) * size,
            weight_percent=(0,) * size,
            requested_pool=requested_pool,
            requested_chunk=requested_chunk,
        )

    @property
    def size(self) -> int:
        return len(self.pending_change)


@dataclass(frozen=True)
class CommitResult:
    """Outcome of folding pending changes into participant loads."""

    participants: Tuple[Participant, ...]
    base_capacity: int
    totals: Totals
    mode: PolicyMode
    allocation: Sequence[int] = field(default_factory=tuple)


__all__ = [
    "Action",
    "AllocationState",
    "CommitResult",
    "Participant",
    "PolicyMode",
    "Totals",
]
