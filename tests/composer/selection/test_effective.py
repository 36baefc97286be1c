"""Unit tests for effective-view resolution."""

import logging

import pytest

from exam_composer.composer.selection import (
    resolve_difficulty,
    resolve_effective,
    resolve_level,
)
from exam_composer.core.models import Answer, Override


class TestPrecedence:
    """Override -> local copy -> canonical -> default."""

    def test_default_when_untagged(self, make_question):
        q = make_question(1)
        assert resolve_level(q) == "Remember"
        assert resolve_difficulty(q) == "medium"

    def test_canonical_value(self, make_question):
        q = make_question(1, level="Apply", difficulty="Hard")
        assert resolve_level(q) == "Apply"
        assert resolve_difficulty(q) == "hard"

    def test_local_copy_beats_canonical(self, make_question):
        canonical = make_question(1, level="Apply", difficulty="hard")
        local = make_question(1, level="Create", difficulty="easy")
        assert resolve_level(canonical, None, local) == "Create"
        assert resolve_difficulty(canonical, None, local) == "easy"

    def test_override_beats_everything(self, make_question):
        canonical = make_question(1, level="Apply", difficulty="hard")
        local = make_question(1, level="Create", difficulty="easy")
        override = Override(taxonomy_level="Evaluate", difficulty="Medium")
        assert resolve_level(canonical, override, local) == "Evaluate"
        assert resolve_difficulty(canonical, override, local) == "medium"

    def test_no_base_question(self):
        with pytest.raises(ValueError):
            resolve_effective(None, Override(edited_text="X"))


class TestResolveEffective:
    """Tests for the full effective view."""

    def test_plain_question(self, make_question):
        q = make_question(1, "Text")
        view = resolve_effective(q)
        assert view.text == "Text"
        assert view.answer_order == (0, 1, 2)
        assert view.hidden == (False, False, False)
        assert not view.is_edited

    def test_order_and_mask_apply_by_display_position(self, make_question):
        q = make_question(1, answers=(Answer("a", True), Answer("b"), Answer("c")))
        override = Override(answer_order=(2, 0, 1), hidden_answer_mask=(False, True, False))
        view = resolve_effective(q, override)
        assert [a.text for a in view.answers] == ["c", "a", "b"]
        assert [a.text for a in view.visible_answers] == ["c", "b"]
        assert view.hidden_canonical_indices == (0,)
        assert view.is_edited

    def test_mismatched_override_ignored(self, make_question, caplog):
        q = make_question(1)
        with caplog.at_level(logging.WARNING):
            view = resolve_effective(q, Override(hidden_answer_mask=(True, False)))
        assert view.hidden == (False, False, False)
        assert "Ignoring hidden-answer mask" in caplog.text

    def test_local_copy_used_as_base(self, make_question):
        canonical = make_question(1, "Canonical")
        local = make_question(1, "Local")
        assert resolve_effective(canonical, None, local).text == "Local"
        assert resolve_effective(canonical, Override(edited_text="X"), local).text == "X"
