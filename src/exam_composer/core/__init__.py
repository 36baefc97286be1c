"""
Exam Composer Core Package

Shared data models, errors, schemas and utilities. These models are the
single source of truth for every composer component.

**DESIGN NOTES:**

1. **Immutable Data Models**
   - Questions, banks, overrides and drafts are frozen dataclasses
   - Local edits create new Override instances, never mutate a Question

2. **Derived Values Are Never Stored**
   - Effective question views and distribution totals are computed on
     demand from the selection and its overrides

3. **Validated Persistence**
   - Drafts read back from a store pass schema validation before they
     become models
"""

from .errors import (
    ComposerError,
    ValidationError,
    SyncError,
    DraftConflict,
    DataIntegrityError,
    SchemaError,
    InvalidTransition,
)
from .models import (
    Answer,
    TaxonomyTag,
    Question,
    Course,
    BankNode,
    Override,
    TestConfig,
    AnswerCase,
    FilterState,
    Draft,
)

__all__ = [
    "ComposerError",
    "ValidationError",
    "SyncError",
    "DraftConflict",
    "DataIntegrityError",
    "SchemaError",
    "InvalidTransition",
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
]
