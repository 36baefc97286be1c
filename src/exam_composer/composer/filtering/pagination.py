"""
Module: composer.filtering.pagination

Purpose:
    Pure list pagination plus the pair of page cursors the composer shows
    (available questions and selected questions).

Key Functions:
    - page_count(): Number of pages, at least 1
    - clamp_page(): Clamp a page number into range
    - page(): Slice one page out of a list

Key Classes:
    - PageCursors: Available/selected page numbers sharing one page size

Used By:
    - composer.controller
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple, TypeVar

T = TypeVar("T")


def page_count(total: int, page_size: int) -> int:
    """Pages needed for ``total`` items; an empty list still has one page."""
    if page_size <= 0:
        raise ValueError(f"page_size must be positive: {page_size}")
    return max(1, math.ceil(total / page_size))


def clamp_page(page_number: int, total: int, page_size: int) -> int:
    return min(max(1, page_number), page_count(total, page_size))


def page(items: Sequence[T], page_number: int, page_size: int) -> List[T]:
    """
    Return one page of ``items``.

    ``page_number`` is 1-based and clamped to the valid range, so an
    out-of-range request returns the nearest page instead of nothing.

    Example:
        >>> page(list(range(15)), 3, 10)
        [10, 11, 12, 13, 14]
    """
    number = clamp_page(page_number, len(items), page_size)
    start = (number - 1) * page_size
    return list(items[start:start + page_size])


@dataclass
class PageCursors:
    """
    Page cursors for the available and selected lists.

    Attributes:
        page_size: Items per page, shared by both lists
        available_page: 1-based page of the available list
        selected_page: 1-based page of the selected list
        options: Allowed page sizes
    """

    page_size: int = 10
    available_page: int = 1
    selected_page: int = 1
    options: Tuple[int, ...] = (5, 10, 20, 50)

    def __post_init__(self) -> None:
        if self.page_size not in self.options:
            raise ValueError(f"page_size must be one of {self.options}: {self.page_size}")

    def set_page_size(self, page_size: int) -> None:
        """Change the page size and reset both cursors to page 1."""
        if page_size not in self.options:
            raise ValueError(f"page_size must be one of {self.options}: {page_size}")
        self.page_size = page_size
        self.available_page = 1
        self.selected_page = 1

    def go_available(self, page_number: int, total: int) -> int:
        self.available_page = clamp_page(page_number, total, self.page_size)
        return self.available_page

    def go_selected(self, page_number: int, total: int) -> int:
        self.selected_page = clamp_page(page_number, total, self.page_size)
        return self.selected_page

    def clamp(self, available_total: int, selected_total: int) -> None:
        """Pull cursors back into range after the lists shrank."""
        self.available_page = clamp_page(self.available_page, available_total, self.page_size)
        self.selected_page = clamp_page(self.selected_page, selected_total, self.page_size)
