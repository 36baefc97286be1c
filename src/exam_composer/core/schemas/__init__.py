"""
Schemas Package

JSON schema definitions and validation utilities.
"""

from .validator import validate_draft, DRAFT_SCHEMA_VERSION

__all__ = [
    "validate_draft",
    "DRAFT_SCHEMA_VERSION",
]
