"""
Module: composer.detail

Purpose:
    State machine behind the question detail dialog: open a question,
    edit its text and answer visibility, shuffle its answers, then save
    the result as an override.

Key Classes:
    - DetailState: BROWSING, DETAIL_OPEN, EDITING, CLOSED
    - DetailView: The state machine

Transitions:
    BROWSING / CLOSED / DETAIL_OPEN --open--> DETAIL_OPEN
    DETAIL_OPEN --begin_edit--> EDITING
    EDITING --save / cancel--> DETAIL_OPEN
    DETAIL_OPEN --close--> CLOSED
    CLOSED --browse--> BROWSING

    Anything else raises InvalidTransition.

Used By:
    - composer.controller.ComposerSession
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from exam_composer.core.errors import InvalidTransition, ValidationError
from exam_composer.core.models import Override, Question
from exam_composer.core.utils import truncate_text

from .selection import EffectiveQuestion, SelectionStore, ShuffleEngine

logger = logging.getLogger(__name__)


class DetailState(str, Enum):
    BROWSING = "browsing"
    DETAIL_OPEN = "detail_open"
    EDITING = "editing"
    CLOSED = "closed"


class DetailView:
    """
    Detail dialog for one question at a time.

    Edits are kept in a working copy while EDITING and only reach the
    SelectionStore on save(). Shuffling outside EDITING writes straight
    through. Deselecting the open question leaves its override alone.

    Args:
        store: Selection whose overrides are edited
        lookup: Canonical question by id (None if its bank is not loaded)
        shuffle: Random source for answer shuffles
    """

    def __init__(
        self,
        store: SelectionStore,
        lookup: Callable[[int], Optional[Question]],
        shuffle: ShuffleEngine,
    ) -> None:
        self._store = store
        self._lookup = lookup
        self._shuffle = shuffle
        self._state = DetailState.BROWSING
        self._question_id: Optional[int] = None
        self._working_mask: List[bool] = []
        self._working_order: List[int] = []
        self._working_text: Optional[str] = None

    @property
    def state(self) -> DetailState:
        return self._state

    @property
    def question_id(self) -> Optional[int]:
        return self._question_id

    @property
    def working_mask(self) -> List[bool]:
        return list(self._working_mask)

    @property
    def working_text(self) -> Optional[str]:
        return self._working_text

    def _require(self, action: str, *allowed: DetailState) -> None:
        if self._state not in allowed:
            raise InvalidTransition("DetailView", self._state.value, action)

    def _effective(self) -> EffectiveQuestion:
        assert self._question_id is not None
        return self._store.effective(self._question_id, self._lookup(self._question_id))

    def current(self) -> EffectiveQuestion:
        """Effective view of the open question including unsaved edits."""
        self._require("view", DetailState.DETAIL_OPEN, DetailState.EDITING)
        effective = self._effective()
        if self._state is not DetailState.EDITING:
            return effective
        base = effective.question
        return EffectiveQuestion(
            question=base,
            text=self._working_text if self._working_text is not None else effective.text,
            answers=tuple(base.answers[i] for i in self._working_order),
            answer_order=tuple(self._working_order),
            hidden=tuple(self._working_mask),
            taxonomy_level=effective.taxonomy_level,
            difficulty=effective.difficulty,
            is_edited=True,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────────────────────

    def open(self, question_id: int) -> EffectiveQuestion:
        """
        Show ``question_id``.

        Raises:
            ValueError: If the question is neither loaded nor held locally
        """
        self._require("open", DetailState.BROWSING, DetailState.CLOSED, DetailState.DETAIL_OPEN)
        if self._lookup(question_id) is None and self._store.local_copy(question_id) is None:
            raise ValueError(f"Unknown question: {question_id}")
        self._question_id = question_id
        self._state = DetailState.DETAIL_OPEN
        effective = self._effective()
        logger.debug(f"Opened question {question_id}: {truncate_text(effective.text)}")
        return effective

    def begin_edit(self) -> None:
        self._require("edit", DetailState.DETAIL_OPEN)
        effective = self._effective()
        self._working_mask = list(effective.hidden)
        self._working_order = list(effective.answer_order)
        self._working_text = None
        self._state = DetailState.EDITING

    def toggle_answer_visibility(self, position: int) -> bool:
        """
        Flip the hidden flag of the answer shown at ``position``.

        Returns:
            True if the answer is hidden afterwards
        """
        self._require("toggle answer", DetailState.EDITING)
        if not 0 <= position < len(self._working_mask):
            raise ValueError(f"No answer at position {position}")
        self._working_mask[position] = not self._working_mask[position]
        return self._working_mask[position]

    def edit_text(self, text: str) -> None:
        self._require("edit text", DetailState.EDITING)
        self._working_text = text

    def shuffle_answers(self) -> Override:
        """
        Shuffle the open question's answers.

        While EDITING the shuffle applies to the working copy; otherwise it
        is stored as an override right away. Hidden flags move with their
        answers either way.
        """
        self._require("shuffle answers", DetailState.DETAIL_OPEN, DetailState.EDITING)
        assert self._question_id is not None
        base = self._effective().question

        if self._state is DetailState.EDITING:
            current = Override(
                answer_order=tuple(self._working_order),
                hidden_answer_mask=tuple(self._working_mask),
            )
            diff = self._shuffle.shuffle_answer_order(base, current)
            self._working_order = list(diff.answer_order or ())
            self._working_mask = list(diff.hidden_answer_mask or ())
            return diff

        diff = self._shuffle.shuffle_answer_order(base, self._store.override(self._question_id))
        return self._store.set_override(
            self._question_id,
            answer_order=diff.answer_order,
            hidden_answer_mask=diff.hidden_answer_mask,
        )

    def save(self, persist_to_bank: bool = False) -> Override:
        """
        Write the working copy to the question's override.

        Args:
            persist_to_bank: Mark the edit as meant for the bank as well

        Raises:
            ValidationError: If the edited text is blank
        """
        self._require("save", DetailState.EDITING)
        assert self._question_id is not None
        base = self._effective().question

        text = self._working_text
        if text is not None and not text.strip():
            raise ValidationError("text", "Question text cannot be empty")
        if text is not None and text == base.text:
            text = None

        changes = {
            "hidden_answer_mask": tuple(self._working_mask) if any(self._working_mask) else None,
            "answer_order": tuple(self._working_order),
        }
        if self._working_text is not None:
            changes["edited_text"] = text
        if changes["answer_order"] == tuple(range(len(self._working_order))):
            changes["answer_order"] = None

        override = self._store.set_override(self._question_id, **changes)
        if persist_to_bank:
            self._store.request_persist(self._question_id)
        self._state = DetailState.DETAIL_OPEN
        logger.debug(f"Saved edits to question {self._question_id}: {override}")
        return override

    def cancel(self) -> None:
        self._require("cancel", DetailState.EDITING)
        self._working_mask = []
        self._working_order = []
        self._working_text = None
        self._state = DetailState.DETAIL_OPEN

    def close(self) -> None:
        self._require("close", DetailState.DETAIL_OPEN)
        self._state = DetailState.CLOSED

    def browse(self) -> None:
        self._require("browse", DetailState.CLOSED)
        self._question_id = None
        self._state = DetailState.BROWSING
