from __future__ import annotations

from taskalloc.allocation import (
    Action,
    Totals,
    action_switch_blocked,
    clamp_unconstrained,
    headroom,
    opposite_action_window,
)


def test_add_edit_clamped_by_excess_over_pool() -> None:
    # Base capacity 5, one row already holds 5; a second row asks for 3.
    before = Totals(total_added=5, total_subtracted=0)
    after = Totals(total_added=8, total_subtracted=0)

    result = clamp_unconstrained(Action.ADD, 3, 0, before, after, 5, 0)

    assert result == 0


def test_add_edit_partially_clamped() -> None:
    before = Totals(total_added=2, total_subtracted=0)
    after = Totals(total_added=8, total_subtracted=0)

    assert clamp_unconstrained(Action.ADD, 6, 0, before, after, 5, 0) == 3


def test_add_edit_within_pool_kept() -> None:
    totals = Totals(total_added=4, total_subtracted=0)

    assert clamp_unconstrained(Action.ADD, "4", 0, Totals(0, 0), totals, 5, 0) == 4


def test_subtract_edit_capped_at_current_load() -> None:
    totals = Totals(total_added=0, total_subtracted=0)

    assert clamp_unconstrained(Action.SUBTRACT, 9, 0, totals, totals, 10, 4) == 4


def test_subtract_edit_rejected_when_additions_oversubscribed() -> None:
    totals = Totals(total_added=12, total_subtracted=0)

    assert clamp_unconstrained(Action.SUBTRACT, 3, 1, totals, totals, 10, 5) == 1


def test_exclude_edit_is_zero() -> None:
    totals = Totals(total_added=0, total_subtracted=0)

    assert clamp_unconstrained(Action.EXCLUDE, 3, 0, totals, totals, 10, 5) == 0


def test_opposite_action_window_for_add_and_subtract_rows() -> None:
    totals = Totals(total_added=6, total_subtracted=2)

    assert opposite_action_window(Action.ADD, 4, totals, 5, 7) == (0, 7)
    assert opposite_action_window(Action.SUBTRACT, 2, totals, 5, 7) == (0, -1)
    assert opposite_action_window(Action.EXCLUDE, 0, totals, 5, 7) == (0, 0)


def test_action_switch_blocked_when_value_outside_opposite_window() -> None:
    totals = Totals(total_added=0, total_subtracted=0)

    # Adding 4 to a participant who only carries 3 cannot become a subtraction.
    assert action_switch_blocked(Action.ADD, 4, Totals(4, 0), 10, 3) is True
    assert action_switch_blocked(Action.ADD, 2, Totals(2, 0), 10, 3) is False
    assert action_switch_blocked(Action.SUBTRACT, 0, totals, 10, 3) is False


def test_headroom_per_action() -> None:
    totals = Totals(total_added=6, total_subtracted=0)

    assert headroom(Action.ADD, 2, totals, 10, 0) == 4
    assert headroom(Action.ADD, 2, Totals(total_added=12, total_subtracted=0), 10, 0) == 0
    assert headroom(Action.SUBTRACT, 1, totals, 10, 5) == 4
    assert headroom(Action.EXCLUDE, 0, totals, 10, 5) == 0
