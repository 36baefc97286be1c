"""Unit tests for text helpers."""

from exam_composer.core.utils.text import (
    collapse_whitespace,
    normalize_for_search,
    strip_tags,
    truncate_text,
)


class TestStripTags:

    def test_removes_markup_and_decodes_entities(self):
        assert strip_tags("<p>Fish &amp; <b>chips</b></p>") == "Fish & chips"

    def test_empty(self):
        assert strip_tags("") == ""

    def test_normalize_lowercases(self):
        assert normalize_for_search("<em>DNA</em> Replication") == "dna replication"


class TestTruncate:

    def test_short_text_unchanged(self):
        assert truncate_text("Short") == "Short"

    def test_cuts_at_word_boundary(self):
        assert truncate_text("alpha beta gamma delta", max_length=12) == "alpha beta..."

    def test_hard_cut_for_long_word(self):
        assert truncate_text("x" * 20, max_length=5) == "xxxxx..."

    def test_whitespace_collapsed(self):
        assert collapse_whitespace("  a \n\t b ") == "a b"
        assert truncate_text("<p>a\n\nb</p>") == "a b"
