"""Repo root discovery and run-scoped output paths."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from taskalloc.core.errors import InputResolutionError


def find_repo_root(start: Optional[Path] = None) -> Path:
    anchor = start or Path(__file__).resolve()
    for parent in [anchor] + list(anchor.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    raise InputResolutionError("Unable to locate repo root (missing pyproject.toml).")


@dataclass(frozen=True)
class RunPaths:
    runs_root: Path
    run_id: str

    @property
    def run_root(self) -> Path:
        return self.runs_root / self.run_id

    @property
    def report_path(self) -> Path:
        return self.run_root / "allocation_report.json"

    @property
    def frame_path(self) -> Path:
        return self.run_root / "allocation.parquet"

    @property
    def log_path(self) -> Path:
        return self.run_root / "logs" / "allocate.log"
