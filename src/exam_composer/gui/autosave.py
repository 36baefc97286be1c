"""Qt driver for draft autosave.

Owns the QTimer that calls DraftSync.tick() on the GUI thread and turns
DraftSync events into Qt signals for the status bar and notice area.

Usage:
    autosave = AutosaveTimer(interval_ms=settings.tick_interval_ms)
    session = ComposerSession(backend, settings, dispatch=autosave.dispatch)
    autosave.attach(session.sync)
    autosave.saved.connect(status_bar.show_saved)
    autosave.start()
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from exam_composer.composer.sync import DraftSync, SyncEvent

logger = logging.getLogger(__name__)


class AutosaveTimer(QObject):
    """Periodic DraftSync driver living on the GUI thread.

    ``dispatch`` may be called from any thread; the callable runs on the
    thread this object belongs to, so DraftSync completions never touch
    widgets from a worker thread.
    """

    # Emitted with the stored version after a successful save
    saved = Signal(int)
    # Emitted with a user-facing message when a save fails (will retry)
    failed = Signal(str)
    # Emitted when a strict-mode save is rejected; autosave is halted
    conflict = Signal(str)
    # Emitted with the course id once its draft is loaded
    loaded = Signal(str)
    # Emitted with the DraftSync state value whenever it changes
    statusChanged = Signal(str)

    _invoke = Signal(object)

    def __init__(self, interval_ms: int = 1000, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._sync: Optional[DraftSync] = None
        self._last_state: Optional[str] = None
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)
        self._invoke.connect(self._run)

    @property
    def sync(self) -> Optional[DraftSync]:
        return self._sync

    def dispatch(self, fn: Callable[[], None]) -> None:
        """Run ``fn`` on this object's thread."""
        self._invoke.emit(fn)

    def _run(self, fn: Callable[[], None]) -> None:
        fn()
        self._report_state()

    def attach(self, sync: DraftSync) -> None:
        if self._sync is not None:
            self._sync.remove_listener(self._on_event)
        self._sync = sync
        sync.add_listener(self._on_event)
        self._report_state()

    def detach(self) -> None:
        self.stop()
        if self._sync is not None:
            self._sync.remove_listener(self._on_event)
            self._sync = None

    def start(self) -> None:
        if self._sync is None:
            raise RuntimeError("attach() a DraftSync before starting autosave")
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def is_active(self) -> bool:
        return self._timer.isActive()

    def _on_timeout(self) -> None:
        if self._sync is None:
            return
        self._sync.tick()
        self._report_state()

    def _report_state(self) -> None:
        if self._sync is None:
            return
        state = self._sync.state.value
        if state != self._last_state:
            self._last_state = state
            self.statusChanged.emit(state)

    def _on_event(self, event: SyncEvent, sync: DraftSync) -> None:
        if event is SyncEvent.SAVED:
            self.saved.emit(sync.version or 0)
        elif event is SyncEvent.SAVE_FAILED:
            notice = next((n for n in sync.notices if n.kind is SyncEvent.SAVE_FAILED), None)
            self.failed.emit(notice.message if notice else "Draft not saved")
        elif event is SyncEvent.CONFLICT:
            notice = next((n for n in sync.notices if n.kind is SyncEvent.CONFLICT), None)
            self.conflict.emit(notice.message if notice else "Draft changed elsewhere")
        elif event is SyncEvent.LOADED:
            self.loaded.emit(sync.course_id or "")
        logger.debug(f"Autosave event: {event.value}")
        self._report_state()
