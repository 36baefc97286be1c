"""
Module: composer.analysis.distribution

Purpose:
    Aggregate the current selection into a taxonomy-level × difficulty
    count matrix for the summary table.

Key Functions:
    - compute_distribution(): Module-level entry point

Key Classes:
    - Distribution: Immutable count matrix with derived totals
    - DistributionAnalyzer: Computes a Distribution from store state

Rules:
    - Effective level/difficulty per question: Override → selection-local
      copy → canonical → default ("Remember" / "medium")
    - Unknown levels or difficulties are counted in ``dropped``, never raised
    - The six canonical levels are always rows, even when all zero
    - Row, column and grand totals are derived, never stored
    - Hidden answers do not affect the distribution

Dependencies:
    - numpy: Count matrix and axis sums

Used By:
    - composer.controller
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

import numpy as np

from exam_composer.core.models import BLOOMS_LEVELS, DIFFICULTIES, Override, Question

from ..selection.effective import resolve_difficulty, resolve_level

logger = logging.getLogger(__name__)

_LEVEL_INDEX = {level: i for i, level in enumerate(BLOOMS_LEVELS)}
_DIFFICULTY_INDEX = {difficulty: i for i, difficulty in enumerate(DIFFICULTIES)}


@dataclass(frozen=True, eq=False)
class Distribution:
    """
    Count matrix of selected questions (immutable).

    Attributes:
        counts: int matrix, rows = BLOOMS_LEVELS, columns = DIFFICULTIES
        dropped: Questions whose level or difficulty is not canonical

    Example:
        >>> d = compute_distribution([1], {}, {1: q})  # q: Apply / hard
        >>> d.count("Apply", "hard"), d.grand_total
        (1, 1)
    """

    counts: np.ndarray
    dropped: int = 0

    def __post_init__(self) -> None:
        expected = (len(BLOOMS_LEVELS), len(DIFFICULTIES))
        if self.counts.shape != expected:
            raise ValueError(f"counts must have shape {expected}, got {self.counts.shape}")
        self.counts.setflags(write=False)

    @classmethod
    def empty(cls) -> Distribution:
        return cls(np.zeros((len(BLOOMS_LEVELS), len(DIFFICULTIES)), dtype=np.int64))

    def count(self, level: str, difficulty: str) -> int:
        """Cell value; 0 for unknown level/difficulty."""
        row = _LEVEL_INDEX.get(level)
        col = _DIFFICULTY_INDEX.get(difficulty.lower())
        if row is None or col is None:
            return 0
        return int(self.counts[row, col])

    def row_total(self, level: str) -> int:
        row = _LEVEL_INDEX.get(level)
        return int(self.counts[row].sum()) if row is not None else 0

    def column_total(self, difficulty: str) -> int:
        col = _DIFFICULTY_INDEX.get(difficulty.lower())
        return int(self.counts[:, col].sum()) if col is not None else 0

    @property
    def grand_total(self) -> int:
        return int(self.counts.sum())

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        """``{level: {"easy": n, "medium": n, "hard": n}}`` for every canonical level."""
        return {
            level: {
                difficulty: int(self.counts[i, j])
                for j, difficulty in enumerate(DIFFICULTIES)
            }
            for i, level in enumerate(BLOOMS_LEVELS)
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Distribution):
            return NotImplemented
        return self.dropped == other.dropped and np.array_equal(self.counts, other.counts)

    def __repr__(self) -> str:
        return f"Distribution(total={self.grand_total}, dropped={self.dropped})"


class DistributionAnalyzer:
    """
    Computes the distribution of a selection.

    Questions are looked up by id among canonical records and
    selection-local copies. An id with neither is counted as default
    (Remember / medium), like an untagged question.
    """

    def compute(
        self,
        selection: Sequence[int],
        overrides: Mapping[int, Override],
        questions: Mapping[int, Question],
        local_copies: Optional[Mapping[int, Question]] = None,
    ) -> Distribution:
        """
        Count selected questions per effective (level, difficulty).

        Args:
            selection: Selected ids
            overrides: Override per question id
            questions: Canonical questions by id
            local_copies: Selection-local copies by id

        Returns:
            Distribution
        """
        local_copies = local_copies or {}
        counts = np.zeros((len(BLOOMS_LEVELS), len(DIFFICULTIES)), dtype=np.int64)
        dropped = 0

        for qid in selection:
            canonical = questions.get(qid)
            override = overrides.get(qid)
            local = local_copies.get(qid)
            level = resolve_level(canonical, override, local)
            difficulty = resolve_difficulty(canonical, override, local)

            row = _LEVEL_INDEX.get(level)
            col = _DIFFICULTY_INDEX.get(difficulty)
            if row is None or col is None:
                logger.debug(
                    f"Question {qid} has unsupported level/difficulty "
                    f"({level!r}, {difficulty!r}); left out of distribution"
                )
                dropped += 1
                continue
            counts[row, col] += 1

        return Distribution(counts, dropped)


def compute_distribution(
    selection: Sequence[int],
    overrides: Mapping[int, Override],
    questions: Mapping[int, Question],
    local_copies: Optional[Mapping[int, Question]] = None,
) -> Distribution:
    return DistributionAnalyzer().compute(selection, overrides, questions, local_copies)
