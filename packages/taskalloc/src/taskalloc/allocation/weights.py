"""Weight normalisation for the proportional policy."""

from __future__ import annotations

import logging
from typing import List, Sequence

from .constants import PERCENT_TOTAL
from .exceptions import err
from .totals import as_action, coerce_units
from .types import Action

__all__ = ["clamp_locked_percent", "locked_total", "normalize_weights"]

logger = logging.getLogger(__name__)


def locked_total(
    action: Sequence[Action | str],
    locks: Sequence[bool],
    percents: Sequence[object],
) -> int:
    """Sum of locked percentages over active (non-excluded) participants."""

    return sum(
        coerce_units(percent)
        for act, locked, percent in zip(action, locks, percents)
        if locked and as_action(act) is not Action.EXCLUDE
    )


def clamp_locked_percent(
    action: Sequence[Action | str],
    locks: Sequence[bool],
    percents: Sequence[object],
    index: int,
    candidate: object,
) -> int:
    """Clamp a new locked percentage so the locked total never exceeds 100."""

    if as_action(action[index]) is Action.EXCLUDE:
        return 0
    others = sum(
        coerce_units(percent)
        for position, (act, locked, percent) in enumerate(zip(action, locks, percents))
        if position != index and locked and as_action(act) is not Action.EXCLUDE
    )
    available = max(0, PERCENT_TOTAL - others)
    return min(available, coerce_units(candidate))


def normalize_weights(
    action: Sequence[Action | str],
    locks: Sequence[bool],
    percents: Sequence[object],
) -> List[int]:
    """Fill unlocked shares so active shares sum to 100.

    Locked shares stand as given; excluded rows are forced to 0. The remainder
    is split as evenly as integers allow, with the extra units going to the
    earliest unlocked rows. When nothing is unlocked the locked shares are
    returned untouched.
    """

    if not (len(action) == len(locks) == len(percents)):
        raise err(
            "E_ALLOCATION_SHAPE",
            "action, locks and percents must have the same length",
        )

    actions = [as_action(act) for act in action]
    result = [
        0 if act is Action.EXCLUDE else coerce_units(percent)
        for act, percent in zip(actions, percents)
    ]
    total_locked = locked_total(actions, locks, result)
    if total_locked > PERCENT_TOTAL:
        raise err(
            "E_WEIGHT_OVERCOMMIT",
            f"locked percentages sum to {total_locked}, above {PERCENT_TOTAL}",
        )

    unlocked = [
        index
        for index, (act, locked) in enumerate(zip(actions, locks))
        if not locked and act is not Action.EXCLUDE
    ]
    if not unlocked:
        return result

    remaining = PERCENT_TOTAL - total_locked
    base, extra = divmod(remaining, len(unlocked))
    for position, index in enumerate(unlocked):
        result[index] = base + (1 if position < extra else 0)
    logger.debug(
        "normalised weights (locked_total=%d, unlocked=%d, base=%d, extra=%d)",
        total_locked,
        len(unlocked),
        base,
        extra,
    )
    return result
