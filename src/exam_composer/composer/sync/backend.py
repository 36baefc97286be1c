"""
Module: composer.sync.backend

Purpose:
    Contract of the remote service the composer talks to, plus an
    in-memory implementation for tests and offline use.

Key Classes:
    - DraftStore: Protocol for draft persistence only (what DraftSync needs)
    - Backend: Full protocol (banks, courses, drafts, test creation)
    - InMemoryBackend: Thread-safe dict-backed Backend

Contract:
    - load_drafts(course_id) returns every draft visible to the user for
      that course; load_drafts(LATEST) returns every draft of every course.
      Callers pick the most recent one.
    - save_draft() upserts keyed by course and returns the stored record,
      stamped with its new version. When ``expected_version`` is given the
      save is rejected with DraftConflict unless it equals the stored
      version (0 when nothing is stored).
    - delete_draft(None) removes every draft.
    - Failures surface as SyncError (or DraftConflict).

Used By:
    - composer.sync.draft_sync.DraftSync
    - composer.controller.ComposerSession
"""

from __future__ import annotations

import copy
import itertools
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from exam_composer.core.errors import DraftConflict, SyncError
from exam_composer.core.models import BankNode, Course, Draft

logger = logging.getLogger(__name__)

LATEST = "latest"
"""Pseudo course id: load the drafts of every course."""

DraftKey = Union[str, None]


class DraftStore(Protocol):
    """Draft persistence used by DraftSync."""

    def load_drafts(self, course_id: str) -> List[Draft]:
        ...

    def save_draft(
        self,
        course_id: str,
        draft: Draft,
        *,
        expected_version: Optional[int] = None,
    ) -> Draft:
        ...

    def delete_draft(self, course_id: DraftKey) -> None:
        ...


class Backend(DraftStore, Protocol):
    """Everything the composer needs from the remote service."""

    def list_courses(self) -> List[Course]:
        ...

    def list_banks(self, course_id: str) -> List[BankNode]:
        ...

    def create_test(self, course_id: str, payload: Dict[str, Any]) -> str:
        ...


def next_version(stored: Iterable[Draft]) -> int:
    """Version the next save of a course receives."""
    return max((d.version or 0 for d in stored), default=0) + 1


def check_expected_version(
    course_id: str,
    stored: List[Draft],
    expected_version: Optional[int],
) -> None:
    """
    Raise DraftConflict when ``expected_version`` is stale.

    Stored records without a version count as version 0.
    """
    if expected_version is None:
        return
    current = max((d.version or 0 for d in stored), default=0)
    if current != expected_version:
        raise DraftConflict(
            f"Draft for course {course_id} was saved elsewhere "
            f"(stored v{current}, expected v{expected_version})",
            course_id=course_id,
            stored_version=current,
        )


class InMemoryBackend:
    """
    Dict-backed Backend.

    Operations may be failed on purpose with ``fail()``, which is how the
    test suite exercises non-fatal sync failures.

    Example:
        >>> backend = InMemoryBackend()
        >>> backend.add_course(Course("c1", "Biology"), forest)
        >>> backend.save_draft("c1", Draft("c1")).version
        1
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._courses: Dict[str, Course] = {}
        self._banks: Dict[str, List[BankNode]] = {}
        self._drafts: Dict[str, List[Draft]] = {}
        self._tests: Dict[str, Dict[str, Any]] = {}
        self._test_ids = itertools.count(1)
        self._failures: Dict[str, List[Exception]] = {}
        self.calls: List[str] = []

    # ─────────────────────────────────────────────────────────────────────────
    # Seeding / Fault Injection
    # ─────────────────────────────────────────────────────────────────────────

    def add_course(self, course: Course, forest: Iterable[BankNode] = ()) -> None:
        with self._lock:
            self._courses[course.id] = course
            self._banks[course.id] = list(forest)

    def seed_drafts(self, *drafts: Draft) -> None:
        """Store drafts as-is, including several for one course."""
        with self._lock:
            for draft in drafts:
                self._drafts.setdefault(draft.course_id, []).append(draft)

    def fail(self, operation: str, times: int = 1, error: Optional[Exception] = None) -> None:
        """Make the next ``times`` calls of ``operation`` raise ``error``."""
        err = error or SyncError(f"{operation} unavailable")
        with self._lock:
            self._failures.setdefault(operation, []).extend([err] * times)

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    # ─────────────────────────────────────────────────────────────────────────
    # Backend
    # ─────────────────────────────────────────────────────────────────────────

    def list_courses(self) -> List[Course]:
        with self._lock:
            self._enter("list_courses")
            return list(self._courses.values())

    def list_banks(self, course_id: str) -> List[BankNode]:
        with self._lock:
            self._enter("list_banks")
            if course_id not in self._courses:
                raise SyncError(f"Unknown course: {course_id}", course_id=course_id)
            return list(self._banks.get(course_id, []))

    def load_drafts(self, course_id: str) -> List[Draft]:
        with self._lock:
            self._enter("load_drafts")
            if course_id == LATEST:
                return [d for drafts in self._drafts.values() for d in drafts]
            return list(self._drafts.get(course_id, []))

    def save_draft(
        self,
        course_id: str,
        draft: Draft,
        *,
        expected_version: Optional[int] = None,
    ) -> Draft:
        with self._lock:
            self._enter("save_draft")
            stored = self._drafts.get(course_id, [])
            check_expected_version(course_id, stored, expected_version)
            record = replace(
                draft,
                course_id=course_id,
                version=next_version(stored),
                updated_at=draft.updated_at or datetime.now(timezone.utc),
            )
            self._drafts[course_id] = [record]
            logger.debug(f"Stored draft for course {course_id} at v{record.version}")
            return record

    def delete_draft(self, course_id: DraftKey) -> None:
        with self._lock:
            self._enter("delete_draft")
            if course_id is None:
                self._drafts.clear()
            else:
                self._drafts.pop(course_id, None)

    def create_test(self, course_id: str, payload: Dict[str, Any]) -> str:
        with self._lock:
            self._enter("create_test")
            test_id = f"test-{next(self._test_ids)}"
            self._tests[test_id] = {"course_id": course_id, **copy.deepcopy(payload)}
            return test_id

    # ─────────────────────────────────────────────────────────────────────────
    # Inspection
    # ─────────────────────────────────────────────────────────────────────────

    def drafts(self, course_id: str) -> List[Draft]:
        with self._lock:
            return list(self._drafts.get(course_id, []))

    def test(self, test_id: str) -> Dict[str, Any]:
        with self._lock:
            return self._tests[test_id]
