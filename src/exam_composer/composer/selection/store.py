"""
Module: composer.selection.store

Purpose:
    The ordered set of chosen questions plus the per-question override
    records layered on top of them.

Key Classes:
    - SelectionStore: Selection membership, display order and overrides
    - SelectionSnapshot: Immutable copy used for draft persistence

Invariants:
    - The selection never contains duplicate ids
    - Insertion order is the display order until a shuffle is applied
    - Overrides are keyed independently of membership: deselecting a
      question keeps its override unless the caller purges it, so
      re-adding restores the edits
    - Every mutation completes inside a single call; no caller can observe
      a half-updated selection

Dependencies:
    - core.models: Override, Question
    - .effective: Effective view resolution

Used By:
    - composer.controller
    - composer.detail.DetailView
    - composer.analysis.distribution (read-only)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from exam_composer.core.models import Override, Question

from .effective import EffectiveQuestion, resolve_effective

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionSnapshot:
    """Point-in-time copy of a SelectionStore."""

    selection: Tuple[int, ...] = ()
    display_order: Optional[Tuple[int, ...]] = None
    overrides: Dict[int, Override] = field(default_factory=dict)
    questions: Tuple[Question, ...] = ()
    persist_requested: Tuple[int, ...] = ()


class SelectionStore:
    """
    Ordered selection with per-question overrides.

    Example:
        >>> store = SelectionStore()
        >>> for qid in (7, 3, 7):
        ...     _ = store.toggle(qid)
        >>> store.ids
        (3,)
    """

    def __init__(self) -> None:
        self._ids: List[int] = []
        self._members: Set[int] = set()
        self._display: Optional[List[int]] = None
        self._overrides: Dict[int, Override] = {}
        self._local: Dict[int, Question] = {}
        self._persist: Set[int] = set()

    # ─────────────────────────────────────────────────────────────────────────
    # Membership
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def ids(self) -> Tuple[int, ...]:
        """Selected ids in insertion order."""
        return tuple(self._ids)

    @property
    def display_order(self) -> Tuple[int, ...]:
        """Selected ids in presentation order."""
        return tuple(self._display if self._display is not None else self._ids)

    @property
    def is_shuffled(self) -> bool:
        return self._display is not None

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._members

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self.display_order)

    def add(self, question_id: int) -> bool:
        """Append ``question_id``; returns False if it was already selected."""
        if question_id in self._members:
            return False
        self._ids.append(question_id)
        self._members.add(question_id)
        if self._display is not None:
            self._display.append(question_id)
        return True

    def remove(self, question_id: int, *, purge: bool = False) -> bool:
        """
        Drop ``question_id`` from the selection.

        The override survives unless ``purge`` is set and the user has not
        asked for the edit to be kept in the bank.

        Returns:
            False if the id was not selected
        """
        if question_id not in self._members:
            return False
        self._ids.remove(question_id)
        self._members.discard(question_id)
        if self._display is not None:
            self._display.remove(question_id)
        if purge and question_id not in self._persist:
            self._overrides.pop(question_id, None)
            self._local.pop(question_id, None)
        return True

    def toggle(self, question_id: int, *, purge: bool = False) -> bool:
        """
        Remove ``question_id`` if selected, else append it.

        Returns:
            True if the question is selected afterwards
        """
        if question_id in self._members:
            self.remove(question_id, purge=purge)
            return False
        self.add(question_id)
        return True

    def bulk_add(self, question_ids: Iterable[int]) -> List[int]:
        """Append unselected ids in the given order; members keep their place."""
        added = [qid for qid in question_ids if self.add(qid)]
        logger.debug(f"Added {len(added)} questions to selection")
        return added

    def bulk_remove(self, question_ids: Iterable[int], *, purge: bool = False) -> List[int]:
        removed = [qid for qid in list(question_ids) if self.remove(qid, purge=purge)]
        logger.debug(f"Removed {len(removed)} questions from selection")
        return removed

    def clear(self, *, purge: bool = False) -> List[int]:
        return self.bulk_remove(list(self._ids), purge=purge)

    # ─────────────────────────────────────────────────────────────────────────
    # Display Order
    # ─────────────────────────────────────────────────────────────────────────

    def apply_display_order(self, order: Sequence[int]) -> None:
        """
        Replace the presentation order.

        Raises:
            ValueError: If ``order`` is not a permutation of the selection
        """
        if len(order) != len(self._ids) or set(order) != self._members:
            raise ValueError("display order must be a permutation of the selection")
        self._display = list(order)

    def reset_display_order(self) -> None:
        self._display = None

    # ─────────────────────────────────────────────────────────────────────────
    # Overrides
    # ─────────────────────────────────────────────────────────────────────────

    def override(self, question_id: int) -> Optional[Override]:
        return self._overrides.get(question_id)

    @property
    def overrides(self) -> Dict[int, Override]:
        return dict(self._overrides)

    def set_override(self, question_id: int, **partial) -> Override:
        """
        Merge ``partial`` into the question's override, creating it if absent.

        Fields named in ``partial`` win; other fields keep their value.

        Example:
            >>> store.set_override(5, edited_text="X")
            Override(edited_text='X')
        """
        current = self._overrides.get(question_id, Override())
        merged = current.merged(partial)
        self._overrides[question_id] = merged
        return merged

    def clear_override(self, question_id: int) -> bool:
        return self._overrides.pop(question_id, None) is not None

    def request_persist(self, question_id: int, persist: bool = True) -> None:
        """Mark the question's edits as meant for the bank, protecting them from purge."""
        if persist:
            self._persist.add(question_id)
        else:
            self._persist.discard(question_id)

    def persist_requested(self, question_id: int) -> bool:
        return question_id in self._persist

    # ─────────────────────────────────────────────────────────────────────────
    # Local Copies
    # ─────────────────────────────────────────────────────────────────────────

    def attach_local_copy(self, question: Question) -> None:
        """Keep a copy of ``question`` so it renders without its bank loaded."""
        self._local[question.id] = question

    def local_copy(self, question_id: int) -> Optional[Question]:
        return self._local.get(question_id)

    @property
    def local_copies(self) -> Dict[int, Question]:
        return dict(self._local)

    def effective(
        self,
        question_id: int,
        canonical: Optional[Question] = None,
    ) -> EffectiveQuestion:
        return resolve_effective(
            canonical,
            self._overrides.get(question_id),
            self._local.get(question_id),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Snapshot / Restore
    # ─────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> SelectionSnapshot:
        return SelectionSnapshot(
            selection=tuple(self._ids),
            display_order=tuple(self._display) if self._display is not None else None,
            overrides=dict(self._overrides),
            questions=tuple(self._local[qid] for qid in self._ids if qid in self._local),
            persist_requested=tuple(sorted(self._persist)),
        )

    def restore(self, snapshot: SelectionSnapshot) -> None:
        """
        Replace the whole store content with ``snapshot``.

        Duplicate ids in the snapshot selection keep their first position.
        """
        ids: List[int] = []
        for qid in snapshot.selection:
            if qid not in ids:
                ids.append(qid)
        self._ids = ids
        self._members = set(ids)
        self._display = None
        if snapshot.display_order is not None:
            if sorted(snapshot.display_order) == sorted(ids):
                self._display = list(snapshot.display_order)
            else:
                logger.warning("Discarding display order that does not match the selection")
        self._overrides = dict(snapshot.overrides)
        self._local = {q.id: q for q in snapshot.questions}
        self._persist = set(snapshot.persist_requested)
        logger.debug(f"Restored selection of {len(ids)} questions, {len(self._overrides)} overrides")

    def __repr__(self) -> str:
        return (
            f"SelectionStore(selected={len(self._ids)}, overrides={len(self._overrides)}, "
            f"shuffled={self.is_shuffled})"
        )
