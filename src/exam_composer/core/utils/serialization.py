"""
Serialization Utilities

Provides dict conversion for drafts persisted by the draft stores.

- ``serialize_draft`` produces a plain dict ready for ``json.dumps``
- ``deserialize_draft`` validates first, then builds the frozen model
- Derived values (distribution totals, effective views) are never stored
"""

from __future__ import annotations

from typing import Any

from ..models.draft import Draft
from ..schemas.validator import validate_draft, DRAFT_SCHEMA_VERSION


# ─────────────────────────────────────────────────────────────────────────────
# Draft Serialization
# ─────────────────────────────────────────────────────────────────────────────

def serialize_draft(draft: Draft) -> dict[str, Any]:
    """
    Serialize a Draft to a dictionary tagged with the schema version.

    Args:
        draft: Draft instance to serialize

    Returns:
        Dictionary suitable for JSON serialization
    """
    data = draft.to_dict()
    data["schema_version"] = DRAFT_SCHEMA_VERSION
    return data


def deserialize_draft(data: dict[str, Any], *, validate: bool = True) -> Draft:
    """
    Deserialize a Draft from a dictionary.

    Args:
        data: Dictionary from JSON
        validate: Whether to validate against the draft schema first

    Returns:
        Draft instance

    Raises:
        SchemaError: If validate=True and data is invalid
        ValueError: If data cannot be parsed into a consistent Draft
    """
    if validate:
        validate_draft(data, strict=True)
    return Draft.from_dict(data)
