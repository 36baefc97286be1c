"""
Module: composer.sync.draft_sync

Purpose:
    Keep the remotely stored draft of a course in step with local edits:
    load on course open, autosave on a debounce and a heartbeat, and
    delete once the test is committed or the user discards it.

Key Classes:
    - SyncState: Per-course session state
    - SyncEvent: What listeners are told after a transition
    - Notice: Dismissible user-facing message
    - DraftSync: The state machine

State Machine:
    IDLE → LOADING → {LOADED, NOT_FOUND}
    LOADED / NOT_FOUND → SAVING → LOADED
    LOADED → DELETING → IDLE

    A failed load returns to IDLE and is retried on the next tick.
    A failed save returns to the state it started from and is retried
    on the next tick.

Concurrency:
    Backend calls run on an Executor (default: one worker thread).
    Completion handlers go through ``dispatch`` (default: run inline on
    the finishing thread; the Qt driver posts them to the GUI thread) and
    mutate state under a lock. At most one save is in flight; saves
    requested meanwhile coalesce into one pending save that takes a fresh
    snapshot when it starts. Every load bumps a generation counter and any
    completion from an older generation is discarded.

Dependencies:
    - concurrent.futures: Background backend calls
    - .backend: DraftStore protocol

Used By:
    - composer.controller.ComposerSession
    - gui.autosave.AutosaveTimer
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Tuple

from exam_composer.core.errors import DraftConflict, SyncError, ValidationError
from exam_composer.core.models import Draft, latest_draft

from ..config import ComposerSettings
from .backend import LATEST, DraftStore

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    SAVING = "saving"
    DELETING = "deleting"


class SyncEvent(str, Enum):
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    LOAD_FAILED = "load_failed"
    SAVED = "saved"
    SAVE_FAILED = "save_failed"
    CONFLICT = "conflict"
    DELETED = "deleted"
    DELETE_FAILED = "delete_failed"


@dataclass(frozen=True)
class Notice:
    """
    A message for the notice area.

    Attributes:
        id: Handle for dismiss_notice()
        kind: Event that produced it (one undismissed notice per kind)
        message: Text shown to the user
        course_id: Course the notice is about
    """

    id: int
    kind: SyncEvent
    message: str
    course_id: Optional[str] = None


Listener = Callable[[SyncEvent, "DraftSync"], None]
Dispatch = Callable[[Callable[[], None]], None]

_SAVEABLE = (SyncState.LOADED, SyncState.NOT_FOUND)


def run_inline(fn: Callable[[], None]) -> None:
    fn()


class DraftSync:
    """
    Draft load/save/delete state machine for one composer window.

    Args:
        store: Where drafts live
        snapshot: Returns the current composition as a Draft
        on_loaded: Receives the draft chosen by a load (the caller restores
            its SelectionStore from it)
        settings: Debounce/heartbeat intervals and strict versioning
        executor: Runs backend calls (default: single-worker thread pool)
        dispatch: Runs completion handlers (default: inline)
        clock: Monotonic seconds, injectable for tests

    Example:
        >>> sync = DraftSync(backend, session.build_draft, session.apply_draft)
        >>> sync.begin_load("c1")
        >>> sync.mark_dirty()
        >>> sync.tick()   # saves once the debounce interval has passed
    """

    def __init__(
        self,
        store: DraftStore,
        snapshot: Callable[[], Draft],
        on_loaded: Optional[Callable[[Draft], None]] = None,
        *,
        settings: Optional[ComposerSettings] = None,
        executor: Optional[Executor] = None,
        dispatch: Optional[Dispatch] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._snapshot = snapshot
        self._on_loaded = on_loaded
        self.settings = settings or ComposerSettings()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="draft-sync"
        )
        self._dispatch = dispatch or run_inline
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._notice_ids = itertools.count(1)

        self._state = SyncState.IDLE
        self._course_id: Optional[str] = None
        self._generation = 0
        self._load_target: Optional[str] = None
        self._load_failed = False
        self._version: Optional[int] = None
        self._in_flight: Optional[Future] = None
        self._save_origin = SyncState.LOADED
        self._pending = False
        self._retry = False
        self._dirty_since: Optional[float] = None
        self._last_attempt: float = clock()
        self._last_saved_at: Optional[float] = None
        self._error = False
        self._conflict_version: Optional[int] = None
        self._notices: List[Notice] = []

    # ─────────────────────────────────────────────────────────────────────────
    # Status
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def course_id(self) -> Optional[str]:
        return self._course_id

    @property
    def version(self) -> Optional[int]:
        return self._version

    @property
    def last_saved_at(self) -> Optional[float]:
        """Clock time of the last successful save."""
        return self._last_saved_at

    @property
    def pending(self) -> bool:
        """True while local changes have not reached the store."""
        return self._pending or self._retry or self._dirty_since is not None

    @property
    def error(self) -> bool:
        return self._error

    @property
    def halted(self) -> bool:
        """True after a strict-mode conflict until reload() or force_save()."""
        return self._conflict_version is not None

    @property
    def notices(self) -> Tuple[Notice, ...]:
        return tuple(self._notices)

    def dismiss_notice(self, notice_id: int) -> bool:
        with self._lock:
            before = len(self._notices)
            self._notices = [n for n in self._notices if n.id != notice_id]
            return len(self._notices) != before

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ─────────────────────────────────────────────────────────────────────────
    # Load
    # ─────────────────────────────────────────────────────────────────────────

    def begin_load(self, course_id: str) -> None:
        """
        Load the latest draft of ``course_id``.

        Any load, save or delete still running for a previous course is
        orphaned: its completion is discarded.
        """
        self._start_load(course_id, course_id)

    def resume_latest(self) -> None:
        """Load the most recent draft of any course; its course becomes current."""
        self._start_load(None, LATEST)

    def reload(self) -> None:
        """Reload the current course, clearing a conflict halt."""
        if self._course_id is None:
            raise SyncError("No course to reload")
        self.begin_load(self._course_id)

    def _start_load(self, course_id: Optional[str], target: str) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._course_id = course_id
            self._load_target = target
            self._load_failed = False
            self._state = SyncState.LOADING
            self._version = None
            self._in_flight = None
            self._pending = False
            self._retry = False
            self._dirty_since = None
            self._error = False
            self._conflict_version = None
        logger.debug(f"Loading drafts for {target} (generation {generation})")
        future = self._executor.submit(self._store.load_drafts, target)
        future.add_done_callback(
            lambda f: self._dispatch(lambda: self._finish_load(generation, target, f))
        )

    def _finish_load(self, generation: int, target: str, future: Future) -> None:
        events: List[SyncEvent] = []
        loaded: Optional[Draft] = None
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding stale load of {target} (generation {generation})")
                return
            try:
                drafts = future.result()
            except Exception as e:
                logger.warning(f"Loading drafts for {target} failed: {e}")
                self._state = SyncState.IDLE
                self._error = True
                self._load_failed = True
                self._add_notice(SyncEvent.LOAD_FAILED, f"Could not load saved draft: {e}")
                events.append(SyncEvent.LOAD_FAILED)
            else:
                loaded = latest_draft(drafts)
                self._last_attempt = self._clock()
                if loaded is not None:
                    self._course_id = loaded.course_id
                    self._version = loaded.version
                    self._state = SyncState.LOADED
                    self._dirty_since = None
                    events.append(SyncEvent.LOADED)
                    logger.info(
                        f"Loaded draft for course {loaded.course_id} "
                        f"(v{loaded.version}, {len(drafts)} candidate(s))"
                    )
                else:
                    self._state = SyncState.NOT_FOUND
                    events.append(SyncEvent.NOT_FOUND)
                    logger.info(f"No saved draft for {target}")
            if loaded is not None and self._on_loaded is not None:
                self._on_loaded(loaded)
        self._emit(events)

    # ─────────────────────────────────────────────────────────────────────────
    # Save
    # ─────────────────────────────────────────────────────────────────────────

    def mark_dirty(self, now: Optional[float] = None) -> None:
        """Record a local change; restarts the debounce interval."""
        with self._lock:
            self._dirty_since = self._clock() if now is None else now

    def save_now(self) -> bool:
        """
        Save immediately, or queue one save behind the one in flight.

        Returns:
            False if no save can start (no course, load not finished,
            deleting, or halted by a conflict)
        """
        with self._lock:
            if self._course_id is None or self.halted:
                return False
            if self._state is SyncState.SAVING:
                self._pending = True
                logger.debug(f"Save for course {self._course_id} coalesced behind in-flight save")
                return True
            if self._state not in _SAVEABLE:
                logger.debug(f"Save skipped while {self._state.value}")
                return False
            self._start_save()
            return True

    def force_save(self) -> bool:
        """After a conflict, overwrite the stored draft with the local one."""
        with self._lock:
            if self._conflict_version is None:
                return self.save_now()
            self._version = self._conflict_version
            self._conflict_version = None
            return self.save_now()

    def tick(self, now: Optional[float] = None) -> bool:
        """
        Periodic driver, called about once a second.

        Starts a save when the debounce interval has passed since the last
        change, a previous save failed, or the heartbeat interval has passed
        and there is something worth saving. Retries a failed load.

        Returns:
            True if a save or load was started
        """
        now = self._clock() if now is None else now
        with self._lock:
            if self._state is SyncState.IDLE and self._load_failed and self._load_target:
                target = self._load_target
                course_id = self._course_id
            else:
                target = None
                if self._course_id is None or self._state not in _SAVEABLE or self.halted:
                    return False
                due = self._retry or (
                    self._dirty_since is not None
                    and now - self._dirty_since >= self.settings.debounce_seconds
                )
                if not due and now - self._last_attempt >= self.settings.heartbeat_seconds:
                    due = self._snapshot().has_content
                    if not due:
                        self._last_attempt = now
                if not due:
                    return False
                self._start_save()
                return True
        logger.debug(f"Retrying failed load of {target}")
        self._start_load(course_id, target)
        return True

    def _start_save(self) -> None:
        course_id = self._course_id
        assert course_id is not None
        draft = replace(self._snapshot(), course_id=course_id).stamped()
        expected = (self._version or 0) if self.settings.strict_versions else None
        generation = self._generation

        self._save_origin = self._state
        self._state = SyncState.SAVING
        self._dirty_since = None
        self._retry = False
        self._pending = False
        self._last_attempt = self._clock()

        logger.debug(f"Saving draft for course {course_id} ({len(draft.selection)} selected)")
        future = self._executor.submit(
            self._store.save_draft, course_id, draft, expected_version=expected
        )
        self._in_flight = future
        future.add_done_callback(
            lambda f: self._dispatch(lambda: self._finish_save(generation, course_id, f))
        )

    def _finish_save(self, generation: int, course_id: str, future: Future) -> None:
        events: List[SyncEvent] = []
        with self._lock:
            if generation != self._generation or future is not self._in_flight:
                logger.debug(f"Discarding stale save result for course {course_id}")
                return
            self._in_flight = None
            if self._state is not SyncState.SAVING:
                # deleting: the record is going away, keep the state
                return
            try:
                stored = future.result()
            except DraftConflict as e:
                logger.warning(f"Draft save for course {course_id} rejected: {e}")
                self._state = self._save_origin
                self._error = True
                self._pending = False
                self._conflict_version = e.stored_version or 0
                self._add_notice(
                    SyncEvent.CONFLICT,
                    "This draft was changed in another window. "
                    "Reload it or keep your version.",
                )
                events.append(SyncEvent.CONFLICT)
            except Exception as e:
                logger.warning(f"Draft save for course {course_id} failed: {e}")
                self._state = self._save_origin
                self._error = True
                self._retry = True
                self._pending = False
                self._add_notice(SyncEvent.SAVE_FAILED, f"Draft not saved, will retry: {e}")
                events.append(SyncEvent.SAVE_FAILED)
            else:
                self._state = SyncState.LOADED
                self._version = stored.version
                self._last_saved_at = self._clock()
                self._error = False
                events.append(SyncEvent.SAVED)
                logger.info(f"Saved draft for course {course_id} (v{stored.version})")
                if self._pending:
                    self._start_save()
        self._emit(events)

    # ─────────────────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────────────────

    def delete_after_commit(self) -> None:
        """
        Delete the draft once the test it described has been created.

        Failures are logged and otherwise ignored: the test exists, a left
        over draft is harmless.
        """
        with self._lock:
            course_id = self._course_id
            if course_id is None:
                return
            self._enter_deleting()
            generation = self._generation
        future = self._executor.submit(self._store.delete_draft, course_id)
        future.add_done_callback(
            lambda f: self._dispatch(lambda: self._finish_delete(generation, course_id, f))
        )

    def _finish_delete(self, generation: int, course_id: str, future: Future) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._state = SyncState.IDLE
            self._version = None
            try:
                future.result()
            except Exception as e:
                logger.warning(f"Could not delete draft for course {course_id}: {e}")
                event = SyncEvent.DELETE_FAILED
            else:
                logger.info(f"Deleted draft for course {course_id}")
                event = SyncEvent.DELETED
        self._emit([event])

    def discard(self, confirmed: bool = False) -> None:
        """
        Delete the draft at the user's request.

        Runs on the calling thread so the outcome can be reported directly.
        A save still queued is cancelled first; one already running is
        waited for, so it cannot land after the delete and bring the
        draft back.

        Raises:
            ValidationError: If ``confirmed`` is not set
            SyncError: If the store could not delete the draft; it may
                still exist
        """
        if not confirmed:
            raise ValidationError("confirmed", "Discarding the draft needs confirmation")
        with self._lock:
            course_id = self._course_id
            if course_id is None:
                return
            previous = self._state if self._state is not SyncState.SAVING else self._save_origin
            in_flight = self._in_flight
            self._in_flight = None
            self._enter_deleting()
            self._generation += 1
        if in_flight is not None and not in_flight.cancel():
            logger.debug(f"Waiting for the running save of course {course_id} before discarding")
            wait([in_flight])
        try:
            self._store.delete_draft(course_id)
        except Exception as e:
            with self._lock:
                self._state = previous
            logger.warning(f"Discarding draft for course {course_id} failed: {e}")
            raise SyncError(
                f"The draft could not be deleted and may still exist: {e}", course_id
            ) from e
        with self._lock:
            self._state = SyncState.IDLE
            self._version = None
        logger.info(f"Discarded draft for course {course_id}")
        self._emit([SyncEvent.DELETED])

    def _enter_deleting(self) -> None:
        self._state = SyncState.DELETING
        self._pending = False
        self._retry = False
        self._dirty_since = None

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _add_notice(self, kind: SyncEvent, message: str) -> None:
        if any(n.kind is kind for n in self._notices):
            return
        self._notices.append(Notice(next(self._notice_ids), kind, message, self._course_id))

    def _emit(self, events: List[SyncEvent]) -> None:
        for event in events:
            for listener in list(self._listeners):
                listener(event, self)

    def shutdown(self) -> None:
        """Stop the executor if this instance created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __repr__(self) -> str:
        return (
            f"DraftSync(course={self._course_id!r}, state={self._state.value}, "
            f"pending={self.pending}, error={self._error})"
        )
