"""Load the schema packs bundled with the package."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from taskalloc.core.errors import ContractError

SCHEMA_ROOT = Path(__file__).resolve().parent / "schemas"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ContractError(f"Missing contract file: {path}")
    with path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle)
    if not isinstance(payload, dict):
        raise ContractError(f"Contract file is not a mapping: {path}")
    return payload


def load_schema(name: str) -> dict[str, Any]:
    """Return the schema called ``<name>.schema.yaml`` from the bundled pack."""
    return _load_yaml(SCHEMA_ROOT / f"{name}.schema.yaml")
