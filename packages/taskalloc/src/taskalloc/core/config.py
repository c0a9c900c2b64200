"""Engine configuration with policy-source switching."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from taskalloc.core.errors import InputResolutionError
from taskalloc.core.paths import find_repo_root

DEFAULT_POLICY_PATH = Path(__file__).resolve().parents[1] / "allocation" / "defaults" / "policy.yaml"


@dataclass(frozen=True)
class EngineConfig:
    repo_root: Path
    policy_path: Path
    runs_root: Path

    @classmethod
    def default(cls) -> "EngineConfig":
        try:
            repo_root = find_repo_root()
        except InputResolutionError:
            repo_root = Path.cwd()
        return cls(
            repo_root=repo_root,
            policy_path=DEFAULT_POLICY_PATH,
            runs_root=repo_root / "runs",
        )

    def with_policy(self, policy_path: Path) -> "EngineConfig":
        return EngineConfig(
            repo_root=self.repo_root,
            policy_path=Path(policy_path).expanduser().resolve(),
            runs_root=self.runs_root,
        )

    def with_runs_root(self, runs_root: Path) -> "EngineConfig":
        return EngineConfig(
            repo_root=self.repo_root,
            policy_path=self.policy_path,
            runs_root=Path(runs_root).expanduser().resolve(),
        )
