"""
Module: composer.selection.shuffle

Purpose:
    Randomized question order and randomized per-question answer order.

Key Classes:
    - ShuffleEngine: Fisher-Yates permutations from an explicit random source

Design:
    The random source is injected (seedable) so the same seed reproduces
    the same order. Shuffles only ever permute: no id or answer is created,
    dropped or duplicated, and overrides are only touched through the diff
    the caller merges. Answer shuffles permute display positions and carry
    the hidden-answer mask through the same permutation, so a hidden answer
    stays hidden wherever it lands.

Used By:
    - composer.controller: "Shuffle questions"
    - composer.detail.DetailView: "Shuffle answers"
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence, TypeVar

from exam_composer.core.models import Override, Question

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ShuffleEngine:
    """
    Deterministic-per-seed shuffling.

    Attributes:
        rng: Random source; pass a seeded ``random.Random`` for reproducibility

    Example:
        >>> engine = ShuffleEngine(random.Random(42))
        >>> sorted(engine.shuffle_question_order([3, 1, 2]))
        [1, 2, 3]
    """

    def __init__(self, rng: Optional[random.Random] = None, *, seed: Optional[int] = None) -> None:
        self.rng = rng if rng is not None else random.Random(seed)

    def permutation(self, n: int) -> List[int]:
        """Uniform random permutation of range(n) (Fisher-Yates)."""
        indices = list(range(n))
        for i in range(n - 1, 0, -1):
            j = self.rng.randrange(i + 1)
            indices[i], indices[j] = indices[j], indices[i]
        return indices

    def shuffle_question_order(self, question_ids: Sequence[T]) -> List[T]:
        """
        Return ``question_ids`` in a new random order.

        The input is not modified. Every call replaces the previous order;
        it never builds on it.
        """
        perm = self.permutation(len(question_ids))
        shuffled = [question_ids[i] for i in perm]
        assert len(shuffled) == len(question_ids)
        return shuffled

    def shuffle_answer_order(
        self,
        question: Question,
        current_override: Optional[Override] = None,
    ) -> Override:
        """
        Permute the display positions of ``question``'s answers.

        Starts from the current effective order (``current_override``'s
        answer_order, or canonical order) and applies one permutation ``p``
        to both the order and the hidden mask:

            new_order[k] = old_order[p[k]]
            new_mask[k]  = old_mask[p[k]]

        Args:
            question: Base question whose answers are being shuffled
            current_override: The question's override, if any

        Returns:
            Override diff carrying ``answer_order`` and ``hidden_answer_mask``;
            merge it into the store. The mask is None when nothing was hidden.
        """
        count = len(question.answers)
        order = list(range(count))
        mask: Optional[List[bool]] = None

        if current_override is not None:
            if current_override.answer_order is not None and len(current_override.answer_order) == count:
                order = list(current_override.answer_order)
            if (
                current_override.hidden_answer_mask is not None
                and len(current_override.hidden_answer_mask) == count
            ):
                mask = list(current_override.hidden_answer_mask)

        perm = self.permutation(count)
        new_order = tuple(order[p] for p in perm)
        new_mask = tuple(mask[p] for p in perm) if mask is not None else None

        logger.debug(f"Shuffled answers of question {question.id}: {order} -> {list(new_order)}")
        return Override(answer_order=new_order, hidden_answer_mask=new_mask)
