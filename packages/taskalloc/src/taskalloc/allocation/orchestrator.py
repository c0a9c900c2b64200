"""Allocation session state machine.

The orchestrator owns one ``AllocationState`` per policy selection. Every edit
builds a complete replacement state (re-running the relevant allocator and its
integrity checks) before swapping it in, so a rejected edit leaves the previous
state untouched. Mutations are serialised behind a re-entrant lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Sequence, Tuple

from .bounds import action_switch_blocked, clamp_unconstrained, headroom
from .commit import commit_allocation, next_base_capacity
from .constants import DISTRIBUTED_MODES, POLICY_ACTIONS
from .exceptions import err
from .fixed_chunk import allocate_fixed_chunk
from .policy import DEFAULT_POLICY, EnginePolicy
from .proportional import allocate_proportional
from .totals import as_action, coerce_units, compute_totals, effective_pool, pending_total
from .types import Action, AllocationState, CommitResult, Participant, PolicyMode, Totals
from .validate import validate_fixed_chunk, validate_proportional
from .weights import clamp_locked_percent, normalize_weights

__all__ = ["AllocationOrchestrator"]

logger = logging.getLogger(__name__)


class AllocationOrchestrator:
    """Drive allocation edits for a fixed roster of participants."""

    def __init__(
        self,
        participants: Sequence[Participant],
        base_capacity: int,
        *,
        policy: EnginePolicy | None = None,
        mode: PolicyMode | str | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._participants: Tuple[Participant, ...] = tuple(participants)
        self._base_capacity = coerce_units(base_capacity)
        self._policy = policy or DEFAULT_POLICY
        self._state = self._fresh_state(PolicyMode(mode) if mode is not None else self._policy.default_mode)

    # ------------------------------------------------------------------ #
    # Read side

    @property
    def participants(self) -> Tuple[Participant, ...]:
        return self._participants

    @property
    def base_capacity(self) -> int:
        return self._base_capacity

    @property
    def policy(self) -> EnginePolicy:
        return self._policy

    @property
    def mode(self) -> PolicyMode:
        return self._state.mode

    def snapshot(self) -> AllocationState:
        """Current state; immutable, safe to hand to renderers."""

        return self._state

    def allocation(self) -> Tuple[int, ...]:
        return self._state.pending_change

    def totals(self) -> Totals:
        return compute_totals(self._state.pending_change, self._state.action)

    @property
    def pool_for_addition(self) -> int:
        if self._state.mode is PolicyMode.UNCONSTRAINED:
            return self._base_capacity
        return self._state.applied_pool

    def effective_pool(self) -> int:
        return effective_pool(self._base_capacity, self.totals())

    def headroom(self, index: int) -> int:
        self._check_index(index)
        state = self._state
        return headroom(
            state.action[index],
            state.pending_change[index],
            self.totals(),
            self.pool_for_addition,
            self._participants[index].current_load,
        )

    def pending_total(self, index: int) -> int:
        self._check_index(index)
        return pending_total(
            self._participants[index].current_load,
            self._state.action[index],
            self._state.pending_change[index],
        )

    def action_switch_blocked(self, index: int) -> bool:
        """Whether the row's action selector must stay fixed (unconstrained policy only)."""

        self._check_index(index)
        if self._state.mode is not PolicyMode.UNCONSTRAINED:
            return False
        return action_switch_blocked(
            self._state.action[index],
            self._state.pending_change[index],
            self.totals(),
            self._base_capacity,
            self._participants[index].current_load,
        )

    # ------------------------------------------------------------------ #
    # Policy selection

    def select_policy(self, mode: PolicyMode | str) -> AllocationState:
        """Enter ``mode`` with every pending field reset."""

        target = PolicyMode(mode)
        with self._lock:
            self._state = self._fresh_state(target)
            logger.info(
                "policy selected (mode=%s, participants=%d, base_capacity=%d)",
                target.value,
                len(self._participants),
                self._base_capacity,
            )
            return self._state

    # ------------------------------------------------------------------ #
    # Row edits

    def edit_change(self, index: int, value: object) -> int:
        """Set a row's pending change, clamped to the pool and the row's load."""

        with self._lock:
            self._check_index(index)
            state = self._state
            if state.mode is not PolicyMode.UNCONSTRAINED:
                raise err(
                    "E_POLICY_OPERATION",
                    f"pending changes are computed under {state.mode.value}; direct edits are not allowed",
                )
            candidate = coerce_units(value)
            updated = list(state.pending_change)
            updated[index] = candidate
            adjusted = clamp_unconstrained(
                state.action[index],
                candidate,
                state.pending_change[index],
                compute_totals(state.pending_change, state.action),
                compute_totals(updated, state.action),
                self.pool_for_addition,
                self._participants[index].current_load,
            )
            updated[index] = adjusted
            self._state = replace(state, pending_change=tuple(updated))
            if adjusted != candidate:
                logger.debug("edit clamped (row=%d, requested=%d, stored=%d)", index, candidate, adjusted)
            return adjusted

    def fill(self, index: int) -> int:
        """Top the row up by its remaining headroom."""

        with self._lock:
            self._check_index(index)
            return self.edit_change(index, self._state.pending_change[index] + self.headroom(index))

    def set_action(self, index: int, action: Action | str) -> AllocationState:
        with self._lock:
            self._check_index(index)
            state = self._state
            target = as_action(action)
            if target not in POLICY_ACTIONS[state.mode]:
                raise err(
                    "E_ACTION_UNSUPPORTED",
                    f"{target.value} is not offered under {state.mode.value}",
                )
            if target is state.action[index]:
                return state

            actions = list(state.action)
            actions[index] = target
            pending = list(state.pending_change)

            if state.mode is PolicyMode.UNCONSTRAINED:
                if self.action_switch_blocked(index):
                    raise err(
                        "E_ACTION_LOCKED",
                        f"row {index} holds {pending[index]}, outside the range allowed for {target.value}",
                    )
                if target is Action.EXCLUDE:
                    pending[index] = 0
                else:
                    # Re-clamp under the new action so adds stay within pool_for_addition.
                    switched = compute_totals(pending, actions)
                    pending[index] = clamp_unconstrained(
                        target,
                        pending[index],
                        pending[index],
                        switched,
                        switched,
                        self.pool_for_addition,
                        self._participants[index].current_load,
                    )
                self._state = replace(state, action=tuple(actions), pending_change=tuple(pending))
                return self._state

            # Distributed policies reset the row and re-run distribution.
            locks = list(state.weight_locked)
            percents = list(state.weight_percent)
            pending[index] = 0
            locks[index] = False
            percents[index] = 0
            self._state = self._redistribute(
                replace(
                    state,
                    action=tuple(actions),
                    pending_change=tuple(pending),
                    weight_locked=tuple(locks),
                    weight_percent=tuple(percents),
                )
            )
            return self._state

    def set_percent(self, index: int, value: object) -> int:
        """Lock a row at ``value`` percent, clamped so locked shares stay within 100."""

        with self._lock:
            self._check_index(index)
            state = self._require_mode(PolicyMode.PROPORTIONAL_EVEN, "percent edits")
            if state.action[index] is Action.EXCLUDE:
                return 0
            clamped = clamp_locked_percent(
                state.action, state.weight_locked, state.weight_percent, index, value
            )
            locks = list(state.weight_locked)
            percents = list(state.weight_percent)
            locks[index] = True
            percents[index] = clamped
            self._state = self._redistribute(
                replace(state, weight_locked=tuple(locks), weight_percent=tuple(percents))
            )
            return clamped

    def set_lock(self, index: int, locked: bool) -> AllocationState:
        """Lock a row at its displayed percent, or release it back to the implicit share."""

        with self._lock:
            self._check_index(index)
            state = self._require_mode(PolicyMode.PROPORTIONAL_EVEN, "lock toggles")
            if state.action[index] is Action.EXCLUDE or state.weight_locked[index] == locked:
                return state
            locks = list(state.weight_locked)
            percents = list(state.weight_percent)
            if locked:
                percents[index] = clamp_locked_percent(
                    state.action, state.weight_locked, state.weight_percent, index, percents[index]
                )
            else:
                percents[index] = 0
            locks[index] = bool(locked)
            self._state = self._redistribute(
                replace(state, weight_locked=tuple(locks), weight_percent=tuple(percents))
            )
            return self._state

    # ------------------------------------------------------------------ #
    # Pool handling

    def request_pool(self, value: object) -> int:
        """Stage a pool size, clamped to ``[0, base_capacity]``; takes effect on ``apply``."""

        with self._lock:
            state = self._require_distributed("pool requests")
            requested = min(coerce_units(value), self._base_capacity)
            self._state = replace(state, requested_pool=requested)
            return requested

    def request_chunk(self, value: object) -> int:
        """Stage a per-participant chunk, clamped to ``[0, base_capacity]``."""

        with self._lock:
            state = self._require_mode(PolicyMode.FIXED_PER_PARTICIPANT, "chunk requests")
            requested = min(coerce_units(value), self._base_capacity)
            self._state = replace(state, requested_chunk=requested)
            return requested

    def apply(self) -> AllocationState:
        """Confirm the requested pool (and chunk) and distribute it."""

        with self._lock:
            state = self._require_distributed("pool application")
            self._state = self._redistribute(
                replace(
                    state,
                    applied_pool=state.requested_pool,
                    applied_chunk=state.requested_chunk,
                )
            )
            logger.info(
                "pool applied (mode=%s, pool=%d, chunk=%d, allocated=%d)",
                state.mode.value,
                self._state.applied_pool,
                self._state.applied_chunk,
                sum(self._state.pending_change),
            )
            return self._state

    # ------------------------------------------------------------------ #
    # Submit

    def commit(self) -> CommitResult:
        """Fold pending changes into participant loads and start a clean session."""

        with self._lock:
            state = self._state
            if state.mode in DISTRIBUTED_MODES:
                state = self._redistribute(state)
            totals = compute_totals(state.pending_change, state.action)
            participants = tuple(
                commit_allocation(self._participants, state.pending_change, state.action)
            )
            base_capacity = next_base_capacity(self._base_capacity, state.pending_change, state.action)
            result = CommitResult(
                participants=participants,
                base_capacity=base_capacity,
                totals=totals,
                mode=state.mode,
                allocation=state.pending_change,
            )
            self._participants = participants
            self._base_capacity = base_capacity
            self._state = self._fresh_state(state.mode)
            logger.info(
                "allocation committed (mode=%s, added=%d, subtracted=%d, base_capacity=%d)",
                state.mode.value,
                totals.total_added,
                totals.total_subtracted,
                base_capacity,
            )
            return result

    # ------------------------------------------------------------------ #
    # Internals

    def _fresh_state(self, mode: PolicyMode) -> AllocationState:
        size = len(self._participants)
        requested_pool = 0
        requested_chunk = 0
        if mode in DISTRIBUTED_MODES:
            requested_pool = self._policy.initial_request(self._base_capacity)
        if mode is PolicyMode.FIXED_PER_PARTICIPANT:
            requested_chunk = min(self._policy.default_chunk, self._base_capacity)
        state = AllocationState.fresh(
            mode,
            size,
            requested_pool=requested_pool,
            requested_chunk=requested_chunk,
        )
        if mode is PolicyMode.PROPORTIONAL_EVEN:
            percents = normalize_weights(state.action, state.weight_locked, state.weight_percent)
            state = replace(state, weight_percent=tuple(percents))
        return state

    def _redistribute(self, state: AllocationState) -> AllocationState:
        if state.mode is PolicyMode.PROPORTIONAL_EVEN:
            percents = normalize_weights(state.action, state.weight_locked, state.weight_percent)
            allocation = allocate_proportional(
                state.action, state.weight_locked, percents, state.applied_pool
            )
            validate_proportional(
                allocation, state.action, state.weight_locked, percents, state.applied_pool
            )
            return replace(
                state,
                weight_percent=tuple(percents),
                pending_change=tuple(allocation),
            )
        if state.mode is PolicyMode.FIXED_PER_PARTICIPANT:
            allocation = allocate_fixed_chunk(state.action, state.applied_pool, state.applied_chunk)
            validate_fixed_chunk(allocation, state.action, state.applied_pool, state.applied_chunk)
            return replace(state, pending_change=tuple(allocation))
        return state

    def _require_mode(self, mode: PolicyMode, operation: str) -> AllocationState:
        state = self._state
        if state.mode is not mode:
            raise err(
                "E_POLICY_OPERATION",
                f"{operation} require {mode.value}, current policy is {state.mode.value}",
            )
        return state

    def _require_distributed(self, operation: str) -> AllocationState:
        state = self._state
        if state.mode not in DISTRIBUTED_MODES:
            raise err(
                "E_POLICY_OPERATION",
                f"{operation} only apply to distributed policies, current policy is {state.mode.value}",
            )
        return state

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._participants):
            raise err(
                "E_INDEX_RANGE",
                f"participant index {index} outside [0, {len(self._participants)})",
            )
