"""
Module: core.errors

Purpose:
    Exception taxonomy shared by every composer component.

Key Classes:
    - ValidationError: A user action is blocked by a missing/empty field
    - SyncError: Draft load/save/delete failed (non-fatal, retryable)
    - DraftConflict: A strict-mode save was rejected as stale
    - DataIntegrityError: Malformed bank tree or dangling reference
    - SchemaError: Persisted payload failed schema validation
    - InvalidTransition: Illegal state-machine transition

Used By:
    - composer.banks.tree
    - composer.sync.draft_sync
    - composer.detail
    - composer.controller
"""

from __future__ import annotations


class ComposerError(Exception):
    """Base class for all exam composer errors."""
    pass


class ValidationError(ComposerError):
    """
    A user action is blocked by invalid input.

    Never persisted. The UI points at ``field`` inline.

    Attributes:
        field: Name of the offending field or section ("title", "selection")
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class SyncError(ComposerError):
    """Draft load/save/delete failure. Editing continues; the caller retries."""

    def __init__(self, message: str, course_id: str | None = None):
        super().__init__(message)
        self.course_id = course_id


class DraftConflict(SyncError):
    """A save carried a version older than the stored draft."""

    def __init__(
        self,
        message: str,
        course_id: str | None = None,
        stored_version: int | None = None,
    ):
        super().__init__(message, course_id)
        self.stored_version = stored_version


class DataIntegrityError(ComposerError):
    """Malformed bank tree (cycle, duplicate node) or dangling reference."""
    pass


class SchemaError(DataIntegrityError):
    """Raised when persisted data fails schema validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


class InvalidTransition(ComposerError):
    """A state machine was asked to move along an edge it does not have."""

    def __init__(self, machine: str, state: str, action: str):
        super().__init__(f"{machine}: cannot {action} while {state}")
        self.machine = machine
        self.state = state
        self.action = action
