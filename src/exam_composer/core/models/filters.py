"""
Module: filters

Purpose:
    Provides FilterState - the candidate-list filter and page cursors the
    user is looking at. Persisted with the draft so a reload restores the
    same view.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class FilterState:
    """
    Candidate filter and pagination state.

    Attributes:
        search_text: Case-insensitive substring to look for
        taxonomy_levels: Bloom's levels to keep (empty = all levels)
        bank_scope_id: Bank whose subtree to keep (None = all banks)
        available_page: 1-based page of the available list
        selected_page: 1-based page of the selected list
        page_size: Items per page for both lists
    """

    search_text: str = ""
    taxonomy_levels: Tuple[str, ...] = ()
    bank_scope_id: Optional[str] = None
    available_page: int = 1
    selected_page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive: {self.page_size}")
        if self.available_page < 1 or self.selected_page < 1:
            raise ValueError("page numbers are 1-based")
        if not isinstance(self.taxonomy_levels, tuple):
            object.__setattr__(self, "taxonomy_levels", tuple(self.taxonomy_levels))

    def with_changes(self, **changes) -> FilterState:
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "search_text": self.search_text,
            "taxonomy_levels": list(self.taxonomy_levels),
            "bank_scope_id": self.bank_scope_id,
            "available_page": self.available_page,
            "selected_page": self.selected_page,
            "page_size": self.page_size,
        }

    @classmethod
    def from_dict(cls, data: dict) -> FilterState:
        return cls(
            search_text=data.get("search_text", ""),
            taxonomy_levels=tuple(data.get("taxonomy_levels", ())),
            bank_scope_id=data.get("bank_scope_id"),
            available_page=data.get("available_page", 1),
            selected_page=data.get("selected_page", 1),
            page_size=data.get("page_size", DEFAULT_PAGE_SIZE),
        )
