"""
Unit Tests for SelectionStore

Membership, display order, overrides, persistence snapshots.
"""

import pytest
from hypothesis import given, settings, strategies as st

from exam_composer.composer.selection import SelectionSnapshot, SelectionStore
from exam_composer.core.models import Override


class TestMembership:
    """Tests for toggle / add / remove."""

    def test_toggle_select_deselect_reselect(self):
        """Select 7, then 3, deselect 7, reselect 7: order [3, 7]."""
        store = SelectionStore()
        store.toggle(7)
        store.toggle(3)
        store.toggle(7)
        assert store.ids == (3,)
        assert store.toggle(7) is True
        assert store.ids == (3, 7)

    def test_add_existing_is_noop(self):
        store = SelectionStore()
        assert store.add(1)
        assert not store.add(1)
        assert store.ids == (1,)

    def test_remove_missing(self):
        assert not SelectionStore().remove(1)

    def test_bulk_add_keeps_order_and_skips_members(self):
        store = SelectionStore()
        store.add(2)
        added = store.bulk_add([5, 2, 1, 5])
        assert added == [5, 1]
        assert store.ids == (2, 5, 1)

    def test_bulk_remove(self):
        store = SelectionStore()
        store.bulk_add([1, 2, 3, 4])
        assert store.bulk_remove([4, 9, 2]) == [4, 2]
        assert store.ids == (1, 3)

    def test_clear(self):
        store = SelectionStore()
        store.bulk_add([1, 2])
        store.clear()
        assert len(store) == 0

    @settings(max_examples=100)
    @given(
        initial=st.lists(st.integers(0, 29), unique=True, max_size=15),
        qid=st.integers(0, 29),
    )
    def test_toggle_twice_restores_membership_over_random_sequences(self, initial, qid):
        store = SelectionStore()
        store.bulk_add(initial)
        before = set(store.ids)
        store.toggle(qid)
        store.toggle(qid)
        assert set(store.ids) == before
        assert len(store.ids) == len(set(store.ids))


class TestOverrides:
    """Tests for override storage."""

    def test_set_override_creates_and_merges(self):
        store = SelectionStore()
        store.set_override(5, edited_text="X")
        merged = store.set_override(5, difficulty="hard")
        assert merged == Override(edited_text="X", difficulty="hard")

    def test_override_survives_deselect(self, make_question):
        """Override on 5, deselect, reselect: effective text is still X."""
        store = SelectionStore()
        q = make_question(5, "Original")
        store.toggle(5)
        store.set_override(5, edited_text="X")
        store.toggle(5)
        store.toggle(5)
        assert store.effective(5, q).text == "X"

    def test_purge_drops_override(self):
        store = SelectionStore()
        store.add(5)
        store.set_override(5, edited_text="X")
        store.toggle(5, purge=True)
        assert store.override(5) is None

    def test_purge_keeps_override_marked_for_bank(self):
        store = SelectionStore()
        store.add(5)
        store.set_override(5, edited_text="X")
        store.request_persist(5)
        store.remove(5, purge=True)
        assert store.override(5) == Override(edited_text="X")

    def test_clear_override(self):
        store = SelectionStore()
        store.set_override(1, edited_text="X")
        assert store.clear_override(1)
        assert not store.clear_override(1)

    def test_overrides_returns_copy(self):
        store = SelectionStore()
        store.set_override(1, edited_text="X")
        store.overrides.clear()
        assert store.override(1) is not None

    def test_effective_uses_local_copy_without_canonical(self, make_question):
        store = SelectionStore()
        store.attach_local_copy(make_question(9, "Local text"))
        assert store.effective(9).text == "Local text"


class TestDisplayOrder:
    """Tests for display order."""

    def test_defaults_to_insertion_order(self):
        store = SelectionStore()
        store.bulk_add([3, 1, 2])
        assert store.display_order == (3, 1, 2)
        assert not store.is_shuffled

    def test_apply_order_then_add_and_remove(self):
        store = SelectionStore()
        store.bulk_add([1, 2, 3])
        store.apply_display_order([3, 1, 2])
        store.add(4)
        store.remove(1)
        assert store.display_order == (3, 2, 4)
        assert store.ids == (2, 3, 4)
        assert list(store) == [3, 2, 4]

    def test_apply_order_must_be_permutation(self):
        store = SelectionStore()
        store.bulk_add([1, 2])
        with pytest.raises(ValueError):
            store.apply_display_order([1, 3])
        with pytest.raises(ValueError):
            store.apply_display_order([1, 2, 2])

    def test_reset(self):
        store = SelectionStore()
        store.bulk_add([1, 2])
        store.apply_display_order([2, 1])
        store.reset_display_order()
        assert store.display_order == (1, 2)


class TestSnapshot:
    """Tests for snapshot / restore."""

    def test_round_trip(self, make_question):
        store = SelectionStore()
        store.bulk_add([1, 2, 3])
        store.apply_display_order([2, 3, 1])
        store.set_override(2, hidden_answer_mask=(False, True, False))
        store.attach_local_copy(make_question(2))
        store.request_persist(2)

        restored = SelectionStore()
        restored.restore(store.snapshot())
        assert restored.snapshot() == store.snapshot()
        assert restored.persist_requested(2)

    def test_restore_drops_mismatched_display_order(self, caplog):
        store = SelectionStore()
        store.restore(SelectionSnapshot(selection=(1, 2), display_order=(1, 5)))
        assert store.display_order == (1, 2)
        assert "Discarding display order" in caplog.text

    def test_restore_deduplicates(self):
        store = SelectionStore()
        store.restore(SelectionSnapshot(selection=(4, 2, 4)))
        assert store.ids == (4, 2)
