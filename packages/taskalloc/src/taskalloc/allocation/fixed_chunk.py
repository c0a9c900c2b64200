"""Fixed quantity per participant, handed out in order until the pool runs dry."""

from __future__ import annotations

import logging
from typing import List, Sequence

from .totals import as_action, coerce_units
from .types import Action

__all__ = ["allocate_fixed_chunk"]

logger = logging.getLogger(__name__)


def allocate_fixed_chunk(
    action: Sequence[Action | str],
    pool: object,
    chunk: object,
) -> List[int]:
    """Give ``chunk`` units to each ``Add`` row in index order.

    The last row to be served may receive a partial chunk; rows after it get 0.
    Non-``Add`` rows are skipped and do not consume a slot.
    """

    remaining = coerce_units(pool)
    size = coerce_units(chunk)
    allocation = [0] * len(action)
    for index, act in enumerate(action):
        if as_action(act) is not Action.ADD:
            continue
        if remaining <= 0:
            allocation[index] = 0
        elif remaining >= size:
            allocation[index] = size
            remaining -= size
        else:
            allocation[index] = remaining
            remaining = 0
    logger.debug(
        "fixed chunk allocation (chunk=%d, allocated=%d, unassigned=%d)",
        size,
        sum(allocation),
        remaining,
    )
    return allocation
