"""
Core Models Package

Immutable data models shared by every composer component.

All models are frozen dataclasses with ``to_dict()`` / ``from_dict()``.
Local edits never mutate a model: SelectionStore keeps an Override diff
and builds a new effective view on demand.
"""

from .questions import (
    Answer,
    TaxonomyTag,
    Question,
    Course,
    BLOOMS_TAXONOMY,
    BLOOMS_LEVELS,
    DIFFICULTIES,
    DEFAULT_LEVEL,
    DEFAULT_DIFFICULTY,
)
from .banks import BankNode
from .overrides import Override
from .config import TestConfig, AnswerCase, SEPARATORS
from .filters import FilterState
from .draft import Draft, latest_draft

__all__ = [
    "Answer",
    "TaxonomyTag",
    "Question",
    "Course",
    "BankNode",
    "Override",
    "TestConfig",
    "AnswerCase",
    "FilterState",
    "Draft",
    "latest_draft",
    "BLOOMS_TAXONOMY",
    "BLOOMS_LEVELS",
    "DIFFICULTIES",
    "DEFAULT_LEVEL",
    "DEFAULT_DIFFICULTY",
    "SEPARATORS",
]
