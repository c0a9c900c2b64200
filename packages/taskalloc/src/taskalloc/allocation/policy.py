"""Policy loading and validation for the allocation engine."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import yaml

from .constants import PERCENT_TOTAL
from .types import PolicyMode

__all__ = [
    "DEFAULT_POLICY",
    "EnginePolicy",
    "PolicyLoadingError",
    "load_policy",
]

_BASE_CAPACITY_TOKEN = "base_capacity"


class PolicyLoadingError(ValueError):
    """Raised when the engine policy fails validation."""


@dataclass(frozen=True)
class EnginePolicy:
    """Session defaults governing the orchestrator."""

    policy_semver: str
    policy_version: str
    default_mode: PolicyMode
    default_chunk: int = 0
    initial_pool: int | None = None
    path: Path | None = None

    def initial_request(self, base_capacity: int) -> int:
        """Requested pool a distributed policy starts from."""

        if self.initial_pool is None:
            return base_capacity
        return min(self.initial_pool, base_capacity)

    @property
    def digest(self) -> str | None:
        if self.path is None:
            return None
        return hashlib.sha256(self.path.read_bytes()).hexdigest()


DEFAULT_POLICY = EnginePolicy(
    policy_semver="1.0.0",
    policy_version="builtin",
    default_mode=PolicyMode.UNCONSTRAINED,
)


def load_policy(path: Path | str) -> EnginePolicy:
    """Load the engine policy YAML."""

    policy_path = Path(path).expanduser().resolve()
    try:
        payload = yaml.safe_load(policy_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise PolicyLoadingError(f"policy file not found: {policy_path}") from exc
    except yaml.YAMLError as exc:
        raise PolicyLoadingError(f"failed to parse policy YAML: {exc}") from exc

    mapping = _expect_mapping(payload, "policy")
    allowed_keys = {
        "policy_semver",
        "policy_version",
        "notes",
        "default_mode",
        "percent_total",
        "pool",
        "fixed_chunk",
    }
    unknown = set(mapping) - allowed_keys
    if unknown:
        raise PolicyLoadingError(f"unknown top-level keys: {sorted(unknown)}")

    policy_semver = _expect_string(mapping.get("policy_semver"), "policy_semver")
    policy_version = _expect_string(mapping.get("policy_version"), "policy_version")

    mode_label = _expect_string(mapping.get("default_mode", PolicyMode.UNCONSTRAINED.value), "default_mode")
    try:
        default_mode = PolicyMode(mode_label)
    except ValueError as exc:
        choices = [mode.value for mode in PolicyMode]
        raise PolicyLoadingError(f"default_mode must be one of {choices}, got {mode_label!r}") from exc

    percent_total = _expect_int(mapping.get("percent_total", PERCENT_TOTAL), "percent_total")
    if percent_total != PERCENT_TOTAL:
        raise PolicyLoadingError(f"percent_total must be {PERCENT_TOTAL}, got {percent_total!r}")

    pool_map = _expect_mapping(mapping.get("pool", {}), "pool")
    unknown_pool = set(pool_map) - {"initial_request"}
    if unknown_pool:
        raise PolicyLoadingError(f"pool contains unknown keys: {sorted(unknown_pool)}")
    initial_raw = pool_map.get("initial_request", _BASE_CAPACITY_TOKEN)
    initial_pool: int | None
    if initial_raw == _BASE_CAPACITY_TOKEN:
        initial_pool = None
    else:
        initial_pool = _expect_non_negative_int(initial_raw, "pool.initial_request")

    chunk_map = _expect_mapping(mapping.get("fixed_chunk", {}), "fixed_chunk")
    unknown_chunk = set(chunk_map) - {"default_chunk"}
    if unknown_chunk:
        raise PolicyLoadingError(f"fixed_chunk contains unknown keys: {sorted(unknown_chunk)}")
    default_chunk = _expect_non_negative_int(chunk_map.get("default_chunk", 0), "fixed_chunk.default_chunk")

    return EnginePolicy(
        policy_semver=policy_semver,
        policy_version=policy_version,
        default_mode=default_mode,
        default_chunk=default_chunk,
        initial_pool=initial_pool,
        path=policy_path,
    )


# ---------------------------------------------------------------------------#
# Helper utilities


def _expect_mapping(obj: object, label: str) -> Dict[str, object]:
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise PolicyLoadingError(f"{label} must be a mapping")
    return dict(obj)


def _expect_string(obj: object, label: str) -> str:
    if not isinstance(obj, str) or not obj:
        raise PolicyLoadingError(f"{label} must be a non-empty string")
    return obj


def _expect_int(obj: object, label: str) -> int:
    if not isinstance(obj, int) or isinstance(obj, bool):
        raise PolicyLoadingError(f"{label} must be an integer")
    return int(obj)


def _expect_non_negative_int(obj: object, label: str) -> int:
    value = _expect_int(obj, label)
    if value < 0:
        raise PolicyLoadingError(f"{label} must be ≥ 0, got {value!r}")
    return value
