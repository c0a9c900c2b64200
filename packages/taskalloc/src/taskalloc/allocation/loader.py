"""Participant snapshot loaders."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence, Tuple

import polars as pl
import yaml

from taskalloc.contracts.jsonschema_adapter import validate_payload

from .exceptions import err
from .types import Participant

__all__ = ["Snapshot", "load_roster", "load_snapshot", "snapshot_from_mapping"]

_ROSTER_COLUMNS = ("participant_id", "current_load")


@dataclass(frozen=True)
class Snapshot:
    """Roster plus the capacity available for distribution."""

    base_capacity: int
    participants: Tuple[Participant, ...]
    source: Path | None = None


def load_snapshot(path: Path | str) -> Snapshot:
    """Load a YAML or JSON snapshot document and validate it against the snapshot schema."""

    snapshot_path = Path(path).expanduser().resolve()
    if not snapshot_path.exists():
        raise err("E_SNAPSHOT_MISSING", f"snapshot not found at '{snapshot_path}'")
    text = snapshot_path.read_text(encoding="utf-8")
    try:
        if snapshot_path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise err("E_SNAPSHOT_INVALID", f"failed to parse snapshot '{snapshot_path}': {exc}") from exc
    snapshot = snapshot_from_mapping(payload)
    return Snapshot(
        base_capacity=snapshot.base_capacity,
        participants=snapshot.participants,
        source=snapshot_path,
    )


def snapshot_from_mapping(payload: Mapping[str, object]) -> Snapshot:
    validate_payload(payload, "snapshot")
    participants = tuple(
        Participant(
            participant_id=str(entry["id"]),
            current_load=int(entry["current_load"]),
            name=entry.get("name"),
        )
        for entry in payload["participants"]  # type: ignore[union-attr]
    )
    _ensure_unique_ids(participants)
    return Snapshot(base_capacity=int(payload["base_capacity"]), participants=participants)  # type: ignore[arg-type]


def load_roster(path: Path | str, *, base_capacity: int) -> Snapshot:
    """Load a CSV or Parquet roster with ``participant_id`` and ``current_load`` columns."""

    roster_path = Path(path).expanduser().resolve()
    if not roster_path.exists():
        raise err("E_SNAPSHOT_MISSING", f"roster not found at '{roster_path}'")
    if base_capacity < 0:
        raise err("E_SNAPSHOT_INVALID", f"base_capacity must be ≥ 0, got {base_capacity}")

    suffix = roster_path.suffix.lower()
    if suffix == ".parquet":
        frame = pl.read_parquet(roster_path)
    elif suffix == ".csv":
        frame = pl.read_csv(roster_path)
    else:
        raise err("E_SNAPSHOT_INVALID", f"unsupported roster format '{suffix}'")

    missing = [column for column in _ROSTER_COLUMNS if column not in frame.columns]
    if missing:
        raise err("E_SNAPSHOT_INVALID", f"roster missing columns {missing}")

    columns = [
        pl.col("participant_id").cast(pl.Utf8),
        pl.col("current_load").cast(pl.Int64, strict=False),
    ]
    if "name" in frame.columns:
        columns.append(pl.col("name").cast(pl.Utf8))
    frame = frame.select(columns)

    if frame.get_column("participant_id").is_null().any():
        raise err("E_SNAPSHOT_INVALID", "roster contains rows without participant_id")
    loads = frame.get_column("current_load")
    if loads.is_null().any() or (loads < 0).any():
        raise err("E_SNAPSHOT_INVALID", "current_load must be a non-negative integer on every row")

    participants = tuple(
        Participant(
            participant_id=row["participant_id"],
            current_load=int(row["current_load"]),
            name=row.get("name"),
        )
        for row in frame.iter_rows(named=True)
    )
    _ensure_unique_ids(participants)
    return Snapshot(base_capacity=base_capacity, participants=participants, source=roster_path)


def _ensure_unique_ids(participants: Sequence[Participant]) -> None:
    seen: set[str] = set()
    for participant in participants:
        if participant.participant_id in seen:
            raise err(
                "E_SNAPSHOT_INVALID",
                f"duplicate participant id '{participant.participant_id}'",
            )
        seen.add(participant.participant_id)
