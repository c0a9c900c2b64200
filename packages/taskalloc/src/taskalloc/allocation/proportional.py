"""Deterministic integer apportionment of a pool by percentage weights."""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from .constants import PERCENT_TOTAL
from .exceptions import err
from .totals import as_action, coerce_units
from .types import Action

__all__ = ["allocate_proportional"]

logger = logging.getLogger(__name__)


def allocate_proportional(
    action: Sequence[Action | str],
    locks: Sequence[bool],
    percents: Sequence[object],
    pool: object,
) -> List[int]:
    """Convert normalised weights into integer counts that sum to ``pool``.

    Locked rows with a positive percent are explicit; active unlocked rows are
    implicit. While the explicit percents total under 100, explicit rows take
    their floored share (at least 1, at most the share rounded up) and the
    implicit rows split whatever is left. Once the explicit percents reach 100
    only explicit rows are allocated, using largest-remainder apportionment.
    Excluded rows always receive 0.
    """

    if not (len(action) == len(locks) == len(percents)):
        raise err(
            "E_ALLOCATION_SHAPE",
            "action, locks and percents must have the same length",
        )

    size = len(action)
    allocation = [0] * size
    units = coerce_units(pool)
    if units == 0:
        return allocation

    actions = [as_action(act) for act in action]
    explicit: List[Tuple[int, int]] = []
    implicit: List[int] = []
    for index, (act, locked, raw) in enumerate(zip(actions, locks, percents)):
        if act is Action.EXCLUDE:
            continue
        if not locked:
            implicit.append(index)
            continue
        percent = coerce_units(raw)
        if percent > 0:
            explicit.append((index, percent))

    explicit_total = sum(percent for _, percent in explicit)
    if explicit_total > PERCENT_TOTAL:
        raise err(
            "E_WEIGHT_OVERCOMMIT",
            f"locked percentages sum to {explicit_total}, above {PERCENT_TOTAL}",
        )

    if explicit_total >= PERCENT_TOTAL or not implicit:
        counts = _largest_remainder(explicit, units, explicit_total)
    else:
        counts = _explicit_then_implicit(explicit, implicit, units)

    for index, count in counts:
        allocation[index] = count
    logger.debug(
        "proportional allocation (pool=%d, explicit=%d, implicit=%d, explicit_total=%d)",
        units,
        len(explicit),
        len(implicit),
        explicit_total,
    )
    return allocation


def _largest_remainder(
    explicit: Sequence[Tuple[int, int]],
    pool: int,
    total: int,
) -> List[Tuple[int, int]]:
    """Hamilton apportionment of ``pool`` over the explicit percents."""

    if not explicit or total <= 0:
        return []
    products = [percent * pool for _, percent in explicit]
    base = [product // total for product in products]
    residues = [product % total for product in products]
    shortfall = pool - sum(base)

    # Largest residue first, ties broken by row index.
    ranked = sorted(
        range(len(explicit)),
        key=lambda position: (-residues[position], explicit[position][0]),
    )
    for position in ranked[:shortfall]:
        base[position] += 1
    return [(index, count) for (index, _), count in zip(explicit, base)]


def _explicit_then_implicit(
    explicit: Sequence[Tuple[int, int]],
    implicit: Sequence[int],
    pool: int,
) -> List[Tuple[int, int]]:
    """Allocate explicit shares first, then split the leftover across implicit rows."""

    reserve = len(implicit) if pool >= len(implicit) else 0
    budget = pool - reserve

    counts: List[int] = []
    for _, percent in explicit:
        product = percent * pool
        floor_share = product // PERCENT_TOTAL
        ceil_share = -(-product // PERCENT_TOTAL)
        counts.append(min(max(1, floor_share), ceil_share))

    overflow = sum(counts) - budget
    while overflow > 0:
        # Give back from the largest allocation, later rows first on ties.
        position = max(
            (position for position, count in enumerate(counts) if count > 0),
            key=lambda position: (counts[position], position),
        )
        counts[position] -= 1
        overflow -= 1

    leftover = pool - sum(counts)
    share, extra = divmod(leftover, len(implicit))
    result = [(index, count) for (index, _), count in zip(explicit, counts)]
    result.extend(
        (index, share + (1 if position < extra else 0))
        for position, index in enumerate(implicit)
    )
    return result
