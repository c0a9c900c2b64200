"""Validate payloads against bundled JSON Schemas."""

from __future__ import annotations

from typing import Any

from jsonschema import Draft202012Validator

from taskalloc.contracts.loader import load_schema
from taskalloc.core.errors import SchemaValidationError


def validate_payload(
    payload: Any,
    schema_name: str,
    max_errors: int = 5,
) -> None:
    schema = load_schema(schema_name)
    validator = Draft202012Validator(schema)
    errors: list[dict[str, Any]] = []
    for error in sorted(validator.iter_errors(payload), key=lambda item: [str(part) for part in item.path]):
        field = ".".join(str(part) for part in error.path) if error.path else ""
        errors.append({"field": field, "message": error.message})
        if len(errors) >= max_errors:
            break
    if errors:
        lines = [f"{item['field']} {item['message']}".strip() for item in errors]
        raise SchemaValidationError(
            f"{schema_name} schema validation failed:\n" + "\n".join(lines), errors
        )
