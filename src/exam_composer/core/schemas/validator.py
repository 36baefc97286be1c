"""
Schema Validation Utilities

Validates persisted draft payloads before they are turned into models.

Drafts come back from an external store that other clients (older builds,
other tabs) also write to, so a payload is checked in two stages:

1. Basic checks: required fields and schema version (cheap, always run)
2. Full JSON Schema validation via ``jsonschema`` (``strict=True``)

Any violation raises SchemaError carrying the JSON path of the problem.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from ..errors import SchemaError

# Schema version constants
DRAFT_SCHEMA_VERSION = 1

_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


def validate_draft(data: Any, *, strict: bool = True) -> None:
    """
    Validate a serialized draft.

    Args:
        data: Decoded JSON payload
        strict: If True, run full JSON Schema validation after basic checks

    Raises:
        SchemaError: If data is invalid
    """
    if not isinstance(data, dict):
        raise SchemaError(f"Draft payload must be an object, got {type(data).__name__}")

    required = ["schema_version", "course_id", "config", "selection", "overrides"]
    missing = [f for f in required if f not in data]
    if missing:
        raise SchemaError(
            f"Missing required fields: {missing}",
            path="",
            errors=[f"Missing field: {f}" for f in missing],
        )

    version = data.get("schema_version")
    if version != DRAFT_SCHEMA_VERSION:
        raise SchemaError(
            f"Unsupported draft schema version: {version} (expected {DRAFT_SCHEMA_VERSION})",
            path="schema_version",
        )

    if not strict:
        return

    schema = _load_schema("draft")
    validator = jsonschema.Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    if errors:
        first = errors[0]
        raise SchemaError(
            f"Schema validation failed: {first.message}",
            path=".".join(str(p) for p in first.absolute_path),
            errors=[e.message for e in errors],
        )
