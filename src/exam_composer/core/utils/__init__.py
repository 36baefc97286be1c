"""
Utilities Package

Serialization and text helpers shared across the composer.
"""

from .serialization import serialize_draft, deserialize_draft
from .text import strip_tags, normalize_for_search, truncate_text

__all__ = [
    "serialize_draft",
    "deserialize_draft",
    "strip_tags",
    "normalize_for_search",
    "truncate_text",
]
