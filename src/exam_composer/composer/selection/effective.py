"""
Module: composer.selection.effective

Purpose:
    Resolve the effective (override-applied) view of a selected question.

Precedence, per field:
    Override → selection-local copy → canonical question → default

    Text and answers have no default: a question with neither a local copy
    nor a canonical record cannot be resolved.

Key Functions:
    - resolve_effective(): Build an EffectiveQuestion
    - resolve_level() / resolve_difficulty(): Single-field resolution

Dependencies:
    - core.models: Question, Override

Used By:
    - composer.selection.store.SelectionStore.effective
    - composer.analysis.distribution
    - composer.payload
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from exam_composer.core.models import (
    Answer,
    DEFAULT_DIFFICULTY,
    DEFAULT_LEVEL,
    Override,
    Question,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectiveQuestion:
    """
    A selected question as the test will present it.

    Attributes:
        question: Base record (local copy if present, else canonical)
        text: Effective text
        answers: Answers in display order
        answer_order: Canonical index per display position
        hidden: Hidden flag per display position
        taxonomy_level: Effective Bloom's level
        difficulty: Effective difficulty, lower-cased
        is_edited: True when any override field applies
    """

    question: Question
    text: str
    answers: Tuple[Answer, ...]
    answer_order: Tuple[int, ...]
    hidden: Tuple[bool, ...]
    taxonomy_level: str
    difficulty: str
    is_edited: bool = False

    @property
    def id(self) -> int:
        return self.question.id

    @property
    def visible_answers(self) -> Tuple[Answer, ...]:
        return tuple(a for a, is_hidden in zip(self.answers, self.hidden) if not is_hidden)

    @property
    def hidden_canonical_indices(self) -> Tuple[int, ...]:
        """Canonical indices of hidden answers, independent of display order."""
        return tuple(
            canonical for canonical, is_hidden in zip(self.answer_order, self.hidden) if is_hidden
        )


def resolve_level(
    canonical: Optional[Question],
    override: Optional[Override] = None,
    local: Optional[Question] = None,
) -> str:
    if override is not None and override.taxonomy_level:
        return override.taxonomy_level
    for source in (local, canonical):
        if source is not None and source.taxonomy_level:
            return source.taxonomy_level
    return DEFAULT_LEVEL


def resolve_difficulty(
    canonical: Optional[Question],
    override: Optional[Override] = None,
    local: Optional[Question] = None,
) -> str:
    if override is not None and override.difficulty:
        return override.difficulty.lower()
    for source in (local, canonical):
        if source is not None and source.difficulty:
            return source.difficulty.lower()
    return DEFAULT_DIFFICULTY


def resolve_effective(
    canonical: Optional[Question],
    override: Optional[Override] = None,
    local: Optional[Question] = None,
) -> EffectiveQuestion:
    """
    Build the effective view of one question.

    Override positions that no longer fit the base question (the answer
    count changed since the override was recorded) are ignored with a
    warning rather than applied to the wrong answers.

    Raises:
        ValueError: If neither ``canonical`` nor ``local`` is given
    """
    base = local if local is not None else canonical
    if base is None:
        raise ValueError("Cannot resolve a question without a local copy or canonical record")

    count = len(base.answers)
    order: Tuple[int, ...] = tuple(range(count))
    hidden: Tuple[bool, ...] = (False,) * count
    text = base.text

    if override is not None:
        if override.edited_text is not None:
            text = override.edited_text
        if override.answer_order is not None:
            if len(override.answer_order) == count:
                order = override.answer_order
            else:
                logger.warning(
                    f"Ignoring answer order for question {base.id}: "
                    f"{len(override.answer_order)} positions for {count} answers"
                )
        if override.hidden_answer_mask is not None:
            if len(override.hidden_answer_mask) == count:
                hidden = override.hidden_answer_mask
            else:
                logger.warning(
                    f"Ignoring hidden-answer mask for question {base.id}: "
                    f"{len(override.hidden_answer_mask)} positions for {count} answers"
                )

    return EffectiveQuestion(
        question=base,
        text=text,
        answers=tuple(base.answers[i] for i in order),
        answer_order=order,
        hidden=hidden,
        taxonomy_level=resolve_level(canonical, override, local),
        difficulty=resolve_difficulty(canonical, override, local),
        is_edited=override is not None and not override.is_empty,
    )
