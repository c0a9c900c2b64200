from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from taskalloc.allocation import PolicyLoadingError, PolicyMode, load_policy
from taskalloc.core.config import DEFAULT_POLICY_PATH


def _write_yaml(path: Path, payload: dict) -> Path:
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return path


def _payload(**overrides: object) -> dict:
    payload = {
        "policy_semver": "1.0.0",
        "policy_version": "2026-10-19",
        "default_mode": "proportional_even",
        "percent_total": 100,
        "pool": {"initial_request": "base_capacity"},
        "fixed_chunk": {"default_chunk": 2},
    }
    payload.update(overrides)
    return payload


def test_bundled_policy_loads() -> None:
    policy = load_policy(DEFAULT_POLICY_PATH)

    assert policy.default_mode is PolicyMode.UNCONSTRAINED
    assert policy.default_chunk == 0
    assert policy.initial_pool is None
    assert policy.initial_request(17) == 17
    assert policy.digest is not None and len(policy.digest) == 64


def test_load_policy_reads_fields(tmp_path: Path) -> None:
    path = _write_yaml(tmp_path / "policy.yaml", _payload(pool={"initial_request": 8}))

    policy = load_policy(path)

    assert policy.default_mode is PolicyMode.PROPORTIONAL_EVEN
    assert policy.default_chunk == 2
    assert policy.initial_request(20) == 8
    assert policy.initial_request(5) == 5
    assert policy.path == path.resolve()


@pytest.mark.parametrize(
    "overrides",
    [
        {"percent_total": 90},
        {"default_mode": "round_robin"},
        {"policy_semver": ""},
        {"fixed_chunk": {"default_chunk": -1}},
        {"fixed_chunk": {"size": 4}},
        {"pool": {"initial_request": "half"}},
        {"pool": [1, 2]},
        {"unexpected": True},
    ],
)
def test_load_policy_rejects_invalid_payloads(tmp_path: Path, overrides: dict) -> None:
    path = _write_yaml(tmp_path / "policy.yaml", _payload(**overrides))

    with pytest.raises(PolicyLoadingError):
        load_policy(path)


def test_load_policy_missing_file(tmp_path: Path) -> None:
    with pytest.raises(PolicyLoadingError, match="not found"):
        load_policy(tmp_path / "absent.yaml")


def test_load_policy_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "policy.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(PolicyLoadingError, match="mapping"):
        load_policy(path)
