from __future__ import annotations

import json
from pathlib import Path

import polars as pl
import pytest
import yaml

from taskalloc.cli.allocate import main as run_allocate_cli


def _write_yaml(path: Path, payload: dict) -> Path:
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return path


def _snapshot(tmp_path: Path, base_capacity: int = 10) -> Path:
    return _write_yaml(
        tmp_path / "snapshot.yaml",
        {
            "base_capacity": base_capacity,
            "participants": [
                {"id": "a", "name": "Ann", "current_load": 1},
                {"id": "b", "current_load": 4},
                {"id": "c", "current_load": 0},
            ],
        },
    )


def test_fixed_chunk_run_writes_outputs(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    report_path = tmp_path / "report.json"
    output_path = tmp_path / "allocation.csv"

    exit_code = run_allocate_cli(
        [
            "--snapshot",
            str(_snapshot(tmp_path)),
            "--mode",
            "fixed_per_participant",
            "--chunk",
            "4",
            "--pool",
            "10",
            "--report",
            str(report_path),
            "--output",
            str(output_path),
        ]
    )

    assert exit_code == 0
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["mode"] == "fixed_per_participant"
    assert report["allocation_sum"] == 10
    assert report["allocation_conserved"] is True
    frame = pl.read_csv(output_path)
    assert frame.get_column("pending_change").to_list() == [4, 4, 2]
    assert "mode: fixed_per_participant" in capsys.readouterr().out


def test_proportional_lock_and_exclude(tmp_path: Path) -> None:
    report_path = tmp_path / "report.json"
    output_path = tmp_path / "allocation.parquet"

    exit_code = run_allocate_cli(
        [
            "--snapshot",
            str(_snapshot(tmp_path)),
            "--mode",
            "proportional_even",
            "--exclude",
            "2",
            "--lock",
            "0=70",
            "--report",
            str(report_path),
            "--output",
            str(output_path),
        ]
    )

    assert exit_code == 0
    frame = pl.read_parquet(output_path)
    assert frame.get_column("pending_change").to_list() == [7, 3, 0]
    assert frame.get_column("weight_percent").to_list() == [70, 30, 0]


def test_unconstrained_commit_reports_new_loads(tmp_path: Path) -> None:
    report_path = tmp_path / "report.json"

    exit_code = run_allocate_cli(
        [
            "--snapshot",
            str(_snapshot(tmp_path, base_capacity=5)),
            "--subtract",
            "1=2",
            "--add",
            "0=3",
            "--add",
            "2=9",
            "--commit",
            "--report",
            str(report_path),
        ]
    )

    assert exit_code == 0
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["committed"] is True
    assert report["total_added"] == 5
    assert report["total_subtracted"] == 2
    assert report["loads_after_commit"] == {"a": 4, "b": 2, "c": 2}
    assert report["base_capacity_after_commit"] == 2


def test_run_id_places_outputs_under_runs_root(tmp_path: Path) -> None:
    runs_root = tmp_path / "runs"

    exit_code = run_allocate_cli(
        [
            "--snapshot",
            str(_snapshot(tmp_path)),
            "--mode",
            "proportional_even",
            "--runs-root",
            str(runs_root),
            "--run-id",
            "r-001",
        ]
    )

    assert exit_code == 0
    run_root = runs_root / "r-001"
    assert (run_root / "allocation_report.json").exists()
    assert pl.read_parquet(run_root / "allocation.parquet").height == 3
    assert (run_root / "logs" / "allocate.log").exists()


def test_roster_input(tmp_path: Path) -> None:
    roster_path = tmp_path / "roster.csv"
    pl.DataFrame({"participant_id": ["x", "y"], "current_load": [0, 0]}).write_csv(roster_path)
    output_path = tmp_path / "allocation.csv"

    exit_code = run_allocate_cli(
        [
            "--roster",
            str(roster_path),
            "--base-capacity",
            "9",
            "--mode",
            "proportional_even",
            "--output",
            str(output_path),
        ]
    )

    assert exit_code == 0
    assert pl.read_csv(output_path).get_column("pending_change").to_list() == [5, 4]


def test_roster_requires_base_capacity(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        run_allocate_cli(["--roster", str(tmp_path / "roster.csv")])

    assert excinfo.value.code == 2


def test_missing_snapshot_returns_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run_allocate_cli(["--snapshot", str(tmp_path / "absent.yaml")])

    assert exit_code == 1
    assert "E_SNAPSHOT_MISSING" in capsys.readouterr().err


def test_invalid_policy_returns_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    policy_path = _write_yaml(tmp_path / "policy.yaml", {"policy_semver": "1.0.0"})

    exit_code = run_allocate_cli(
        ["--snapshot", str(_snapshot(tmp_path)), "--policy", str(policy_path)]
    )

    assert exit_code == 1
    assert "policy_version" in capsys.readouterr().err


@pytest.mark.parametrize(
    ("mode", "flags"),
    [
        ("proportional_even", ["--add", "0=3"]),
        ("fixed_per_participant", ["--subtract", "1=1"]),
        ("unconstrained", ["--lock", "0=50"]),
        ("fixed_per_participant", ["--lock", "0=50"]),
        ("proportional_even", ["--chunk", "2"]),
        ("unconstrained", ["--pool", "4"]),
    ],
)
def test_flags_for_other_modes_rejected(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    mode: str,
    flags: list[str],
) -> None:
    report_path = tmp_path / "report.json"

    with pytest.raises(SystemExit) as excinfo:
        run_allocate_cli(
            ["--snapshot", str(_snapshot(tmp_path)), "--mode", mode, "--report", str(report_path), *flags]
        )

    assert excinfo.value.code == 2
    assert "only applies to" in capsys.readouterr().err
    assert not report_path.exists()


def test_mode_taken_from_policy_when_flag_omitted(tmp_path: Path) -> None:
    policy_path = _write_yaml(
        tmp_path / "policy.yaml",
        {
            "policy_semver": "1.0.0",
            "policy_version": "test",
            "default_mode": "fixed_per_participant",
            "fixed_chunk": {"default_chunk": 2},
        },
    )

    with pytest.raises(SystemExit):
        run_allocate_cli(
            ["--snapshot", str(_snapshot(tmp_path)), "--policy", str(policy_path), "--add", "0=1"]
        )
    assert run_allocate_cli(
        ["--snapshot", str(_snapshot(tmp_path)), "--policy", str(policy_path), "--chunk", "3"]
    ) == 0
