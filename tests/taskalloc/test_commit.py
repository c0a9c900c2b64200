from __future__ import annotations

import pytest

from taskalloc.allocation import (
    Action,
    AllocationError,
    Participant,
    commit_allocation,
    next_base_capacity,
)


def _participants() -> list[Participant]:
    return [
        Participant(participant_id="u1", current_load=5, name="Ada"),
        Participant(participant_id="u2", current_load=2),
        Participant(participant_id="u3", current_load=4),
    ]


def test_commit_folds_changes_per_action() -> None:
    updated = commit_allocation(
        _participants(),
        [3, 5, 9],
        [Action.ADD, Action.SUBTRACT, Action.EXCLUDE],
    )

    assert [participant.current_load for participant in updated] == [8, 0, 4]
    assert updated[0].name == "Ada"
    assert [participant.participant_id for participant in updated] == ["u1", "u2", "u3"]


def test_commit_does_not_mutate_inputs() -> None:
    participants = _participants()

    commit_allocation(participants, [1, 1, 1], [Action.ADD] * 3)

    assert [participant.current_load for participant in participants] == [5, 2, 4]


def test_commit_rejects_shape_mismatch() -> None:
    with pytest.raises(AllocationError) as excinfo:
        commit_allocation(_participants(), [1, 2], [Action.ADD, Action.ADD])

    assert excinfo.value.context.code == "E_ALLOCATION_SHAPE"


def test_next_base_capacity() -> None:
    actions = [Action.ADD, Action.SUBTRACT, Action.EXCLUDE]

    assert next_base_capacity(10, [4, 2, 7], actions) == 8
    assert next_base_capacity(3, [9, 0, 0], actions) == 0
