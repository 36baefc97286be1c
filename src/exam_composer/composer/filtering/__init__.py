"""
Module: composer.filtering

Purpose:
    Candidate filtering (search, taxonomy, bank scope) and pagination.
"""

from .candidates import (
    CandidateFilter,
    apply_filters,
    matches_search,
    matches_taxonomy,
    matches_bank_scope,
)
from .pagination import PageCursors, page, page_count, clamp_page

__all__ = [
    "CandidateFilter",
    "apply_filters",
    "matches_search",
    "matches_taxonomy",
    "matches_bank_scope",
    "PageCursors",
    "page",
    "page_count",
    "clamp_page",
]
