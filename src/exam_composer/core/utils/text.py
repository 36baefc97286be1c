"""
Module: core.utils.text

Purpose:
    Plain-text helpers for question text that arrives as HTML.

Key Functions:
    - strip_tags(): Remove markup and decode entities
    - normalize_for_search(): Lower-cased, tag-free text for matching
    - truncate_text(): Shorten to a word boundary with an ellipsis

Dependencies:
    - html (std)
    - re (std)
"""

from __future__ import annotations

import html
import re

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")

DEFAULT_TRUNCATE_LENGTH = 50


def strip_tags(text: str) -> str:
    """
    Remove HTML tags and decode entities.

    Example:
        >>> strip_tags("<p>Fish &amp; <b>chips</b></p>")
        'Fish & chips'
    """
    if not text:
        return ""
    return html.unescape(_TAG_RE.sub("", text))


def normalize_for_search(text: str) -> str:
    return strip_tags(text).lower()


def collapse_whitespace(text: str) -> str:
    return _SPACE_RE.sub(" ", text).strip()


def truncate_text(text: str, max_length: int = DEFAULT_TRUNCATE_LENGTH) -> str:
    """
    Strip tags and shorten ``text`` to ``max_length`` characters.

    Cuts at the last space before the limit so words are not split; falls
    back to a hard cut when the first word is already too long.
    """
    clean = collapse_whitespace(strip_tags(text))
    if len(clean) <= max_length:
        return clean
    last_space = clean[:max_length].rfind(" ")
    cut_at = last_space if last_space > 0 else max_length
    return clean[:cut_at] + "..."
