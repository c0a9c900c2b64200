from __future__ import annotations

import logging
from pathlib import Path

import pytest

from taskalloc.core.config import DEFAULT_POLICY_PATH, EngineConfig
from taskalloc.core.errors import InputResolutionError
from taskalloc.core.logging import LOG_LEVEL_ENV, add_file_handler, remove_file_handler, resolve_level, run_log
from taskalloc.core.paths import RunPaths, find_repo_root


def test_find_repo_root_locates_pyproject(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_repo_root(nested) == tmp_path


def test_find_repo_root_raises_without_marker(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(Path, "exists", lambda self: False)

    with pytest.raises(InputResolutionError):
        find_repo_root(tmp_path)


def test_engine_config_defaults_and_overrides(tmp_path: Path) -> None:
    config = EngineConfig.default()

    assert config.policy_path == DEFAULT_POLICY_PATH
    assert config.runs_root == config.repo_root / "runs"

    updated = config.with_policy(tmp_path / "p.yaml").with_runs_root(tmp_path / "runs")
    assert updated.policy_path == (tmp_path / "p.yaml").resolve()
    assert updated.runs_root == (tmp_path / "runs").resolve()
    assert updated.repo_root == config.repo_root


def test_run_paths_layout(tmp_path: Path) -> None:
    paths = RunPaths(runs_root=tmp_path, run_id="r1")

    assert paths.report_path == tmp_path / "r1" / "allocation_report.json"
    assert paths.frame_path.parent == tmp_path / "r1"
    assert paths.log_path == tmp_path / "r1" / "logs" / "allocate.log"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("", logging.INFO), ("debug", logging.DEBUG), ("30", 30), ("chatty", logging.INFO)],
)
def test_resolve_level_reads_environment(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: int
) -> None:
    monkeypatch.setenv(LOG_LEVEL_ENV, raw)

    assert resolve_level() == expected
    assert resolve_level(logging.ERROR) == logging.ERROR


def test_run_log_mirrors_records_then_detaches(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "run.log"
    logger = logging.getLogger("taskalloc.test")

    with run_log(log_path, level=logging.INFO):
        logger.info("allocation started")
    logger.info("after the run")

    text = log_path.read_text(encoding="utf-8")
    assert "allocation started" in text
    assert "after the run" not in text


def test_add_file_handler_reuses_handler_per_path(tmp_path: Path) -> None:
    log_path = tmp_path / "run.log"

    first = add_file_handler(log_path)
    try:
        assert add_file_handler(log_path) is first
        assert first in logging.getLogger().handlers
    finally:
        remove_file_handler(log_path)

    assert first not in logging.getLogger().handlers
