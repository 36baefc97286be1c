"""
Unit Tests for CandidateFilter

Search, taxonomy and bank-scope predicates, and their conjunction.
"""

import itertools

import pytest

from exam_composer.composer.banks import BankTree, flatten
from exam_composer.composer.filtering import (
    CandidateFilter,
    apply_filters,
    matches_bank_scope,
    matches_search,
    matches_taxonomy,
)
from exam_composer.core.models import BankNode, BLOOMS_TAXONOMY, FilterState, Question, TaxonomyTag


@pytest.fixture
def tree(sample_forest):
    return BankTree.from_forest(sample_forest)


@pytest.fixture
def questions(sample_forest):
    return flatten(sample_forest)


class TestPredicates:
    """Tests for the individual predicates."""

    def test_search_is_case_insensitive_and_ignores_markup(self, make_question):
        q = make_question(1, "<p>Name the cell <b>membrane</b></p>")
        assert matches_search(q, "MEMBRANE")
        assert matches_search(q, "cell membrane")
        assert not matches_search(q, "<b>")

    def test_empty_search_matches_all(self, make_question):
        assert matches_search(make_question(1), "")

    def test_taxonomy_empty_levels_match_all(self, make_question):
        assert matches_taxonomy(make_question(1), [])

    def test_taxonomy_or_on_both_sides(self):
        q = Question(
            id=1,
            text="x",
            taxonomies=(TaxonomyTag(BLOOMS_TAXONOMY, "Apply"), TaxonomyTag(BLOOMS_TAXONOMY, "Create")),
        )
        assert matches_taxonomy(q, ["Create"])
        assert matches_taxonomy(q, ["Remember", "Apply"])
        assert not matches_taxonomy(q, ["Remember", "Evaluate"])

    def test_untagged_question_fails_level_filter(self, make_question):
        assert not matches_taxonomy(make_question(1), ["Remember"])

    def test_bank_scope(self, make_question):
        q = make_question(1, bank_id="b")
        assert matches_bank_scope(q, None)
        assert matches_bank_scope(q, frozenset({"a", "b"}))
        assert not matches_bank_scope(q, frozenset())


class TestCandidateFilter:
    """Tests for CandidateFilter.apply."""

    def test_no_filters_returns_everything(self, tree, questions):
        assert CandidateFilter(tree).apply(questions, FilterState()) == questions

    def test_scope_includes_descendants(self, tree, questions):
        result = CandidateFilter(tree).apply(questions, FilterState(bank_scope_id="cells"))
        assert [q.id for q in result] == [3, 4, 5]

    def test_unknown_scope_matches_nothing(self, tree, questions):
        assert CandidateFilter(tree).apply(questions, FilterState(bank_scope_id="ghost")) == []

    def test_predicates_are_anded(self, tree, questions):
        state = FilterState(search_text="a", taxonomy_levels=("Apply",), bank_scope_id="bio")
        assert [q.id for q in CandidateFilter(tree).apply(questions, state)] == [2, 5]

    def test_exclude_ids(self, tree, questions):
        result = CandidateFilter(tree).apply(questions, FilterState(), exclude_ids=frozenset({1, 2}))
        assert 1 not in [q.id for q in result]
        assert len(result) == 6

    def test_filter_correctness_exhaustive(self, tree, questions):
        """q in apply(all, f) iff q passes every predicate on its own."""
        searches = ["", "cell", "THE", "zzz"]
        level_sets = [(), ("Apply",), ("Remember", "Analyze")]
        scopes = [None, "bio", "cells", "chem", "ghost"]
        for search, levels, scope in itertools.product(searches, level_sets, scopes):
            state = FilterState(search_text=search, taxonomy_levels=levels, bank_scope_id=scope)
            result = {q.id for q in apply_filters(questions, state, tree)}
            scope_ids = None if scope is None else frozenset(tree.collect_subtree_ids(scope))
            for q in questions:
                expected = (
                    matches_search(q, search)
                    and matches_taxonomy(q, levels)
                    and matches_bank_scope(q, scope_ids)
                )
                assert (q.id in result) == expected, (search, levels, scope, q.id)


class TestScenarioScopeFilter:
    """Forest A -> [B, C]; B has two questions, C one, A none."""

    def test_scope_filter_counts(self, make_question):
        b = BankNode("B", "B", parent_id="A", questions=(make_question(1), make_question(2)))
        c = BankNode("C", "C", parent_id="A", questions=(make_question(3),))
        forest = [BankNode("A", "A", children=(b, c))]
        tree = BankTree.from_forest(forest)
        questions = flatten(forest)

        assert len(questions) == 3
        assert len(apply_filters(questions, FilterState(bank_scope_id="A"), tree)) == 3
        assert len(apply_filters(questions, FilterState(bank_scope_id="B"), tree)) == 2
