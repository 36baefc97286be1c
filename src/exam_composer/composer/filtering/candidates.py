"""
Module: composer.filtering.candidates

Purpose:
    Narrow the flattened question list to the candidates the user is
    looking for. Three independent predicates are ANDed together:

    1. Search: case-insensitive substring of the tag-free question text
    2. Taxonomy: any of the question's Bloom's levels is any selected level
       (no levels selected = every question passes)
    3. Bank scope: the question's bank is the scope bank or a descendant
       (no scope = every question passes)

Key Functions:
    - matches_search(), matches_taxonomy(), matches_bank_scope(): Predicates
    - apply_filters(): Module-level entry point

Key Classes:
    - CandidateFilter: Filter bound to a BankTree

Dependencies:
    - composer.banks.tree.BankTree: Subtree resolution
    - core.utils.text: Tag stripping

Used By:
    - composer.controller: Available/selected question views
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Iterable, List, Optional, Sequence

from exam_composer.core.models import FilterState, Question
from exam_composer.core.utils.text import normalize_for_search

from ..banks.tree import BankTree

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Predicates
# ─────────────────────────────────────────────────────────────────────────────

def matches_search(question: Question, search_text: str) -> bool:
    if not search_text:
        return True
    return search_text.lower() in normalize_for_search(question.text)


def matches_taxonomy(question: Question, levels: Sequence[str]) -> bool:
    if not levels:
        return True
    wanted = set(levels)
    return any(level in wanted for level in question.blooms_levels)


def matches_bank_scope(question: Question, scope_ids: Optional[AbstractSet[str]]) -> bool:
    """``scope_ids`` None means unscoped; an empty set matches nothing."""
    if scope_ids is None:
        return True
    return question.bank_id in scope_ids


# ─────────────────────────────────────────────────────────────────────────────
# Filter
# ─────────────────────────────────────────────────────────────────────────────

class CandidateFilter:
    """
    Applies a FilterState to a question list.

    The bank-scope subtree is resolved once per ``apply`` call. An unknown
    scope bank resolves to an empty subtree, so nothing passes.

    Example:
        >>> candidates = CandidateFilter(tree).apply(questions, FilterState(search_text="loop"))
    """

    def __init__(self, tree: BankTree) -> None:
        self.tree = tree

    def scope_ids(self, bank_scope_id: Optional[str]) -> Optional[frozenset]:
        if bank_scope_id is None:
            return None
        return frozenset(self.tree.collect_subtree_ids(bank_scope_id))

    def apply(
        self,
        questions: Iterable[Question],
        state: FilterState,
        *,
        exclude_ids: AbstractSet[int] = frozenset(),
    ) -> List[Question]:
        """
        Return questions passing every predicate, in input order.

        Args:
            questions: Flattened candidate pool
            state: Search text, taxonomy levels and bank scope
            exclude_ids: Ids to leave out (the current selection)

        Returns:
            Filtered list
        """
        scope = self.scope_ids(state.bank_scope_id)
        result = [
            q for q in questions
            if q.id not in exclude_ids
            and matches_search(q, state.search_text)
            and matches_taxonomy(q, state.taxonomy_levels)
            and matches_bank_scope(q, scope)
        ]
        logger.debug(
            f"Filter search={state.search_text!r} levels={list(state.taxonomy_levels)} "
            f"scope={state.bank_scope_id!r} -> {len(result)} candidates"
        )
        return result


def apply_filters(
    questions: Iterable[Question],
    state: FilterState,
    tree: BankTree,
) -> List[Question]:
    """Filter ``questions`` by ``state`` using ``tree`` for bank scope."""
    return CandidateFilter(tree).apply(questions, state)
