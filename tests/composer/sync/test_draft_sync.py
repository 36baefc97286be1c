"""
Unit Tests for DraftSync

Backend calls are queued on a ManualExecutor and time comes from a
FakeClock, so every interleaving is driven explicitly by the test.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from exam_composer.composer.config import ComposerSettings
from exam_composer.composer.sync import DraftSync, InMemoryBackend, SyncEvent, SyncState
from exam_composer.core.errors import SyncError, ValidationError
from exam_composer.core.models import Draft, TestConfig

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class Composition:
    """Stands in for the session: hands out snapshots, records loads."""

    def __init__(self):
        self.draft = Draft("c1")
        self.loaded = []

    def snapshot(self) -> Draft:
        return self.draft

    def on_loaded(self, draft: Draft) -> None:
        self.loaded.append(draft)
        self.draft = draft

    def select(self, *ids):
        self.draft = Draft("c1", config=self.draft.config, selection=tuple(ids))


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def composition():
    return Composition()


@pytest.fixture
def make_sync(backend, composition, manual_executor, clock):
    def factory(**settings):
        sync = DraftSync(
            backend,
            composition.snapshot,
            composition.on_loaded,
            settings=ComposerSettings(**settings),
            executor=manual_executor,
            clock=clock,
        )
        sync.events = []
        sync.add_listener(lambda event, _sync: sync.events.append(event))
        return sync

    return factory


@pytest.fixture
def sync(make_sync):
    return make_sync()


def _loaded(sync, manual_executor, course_id="c1"):
    sync.begin_load(course_id)
    manual_executor.run_all()
    return sync


class TestLoad:
    """Tests for begin_load / resume_latest."""

    def test_latest_draft_applied(self, sync, backend, composition, manual_executor):
        backend.seed_drafts(
            Draft("c1", selection=(1,), updated_at=T0, version=3),
            Draft("c1", selection=(2,), updated_at=T0 + timedelta(hours=1), version=4),
        )
        sync.begin_load("c1")
        assert sync.state is SyncState.LOADING
        manual_executor.run_all()

        assert sync.state is SyncState.LOADED
        assert sync.version == 4
        assert composition.loaded[0].selection == (2,)
        assert sync.events == [SyncEvent.LOADED]

    def test_no_draft_is_not_found(self, sync, composition, manual_executor):
        _loaded(sync, manual_executor)
        assert sync.state is SyncState.NOT_FOUND
        assert composition.loaded == []
        assert sync.events == [SyncEvent.NOT_FOUND]

    def test_stale_load_discarded_after_course_switch(
        self, sync, backend, composition, manual_executor
    ):
        backend.seed_drafts(
            Draft("c1", selection=(1,), updated_at=T0),
            Draft("c2", selection=(2,), updated_at=T0),
        )
        sync.begin_load("c1")
        sync.begin_load("c2")
        manual_executor.run_all()

        assert sync.course_id == "c2"
        assert [d.course_id for d in composition.loaded] == ["c2"]

    def test_resume_latest_picks_newest_course(self, sync, backend, manual_executor):
        backend.seed_drafts(
            Draft("c1", selection=(1,), updated_at=T0),
            Draft("c2", selection=(2,), updated_at=T0 + timedelta(days=1)),
        )
        sync.resume_latest()
        manual_executor.run_all()
        assert sync.course_id == "c2"
        assert sync.state is SyncState.LOADED

    def test_load_failure_retried_on_tick(self, sync, backend, manual_executor):
        backend.fail("load_drafts")
        _loaded(sync, manual_executor)

        assert sync.state is SyncState.IDLE
        assert sync.error
        assert [n.kind for n in sync.notices] == [SyncEvent.LOAD_FAILED]

        assert sync.tick()
        manual_executor.run_all()
        assert sync.state is SyncState.NOT_FOUND
        assert not sync.error

    def test_reload_without_course(self, sync):
        with pytest.raises(SyncError):
            sync.reload()


class TestAutosave:
    """Tests for debounce, heartbeat and coalescing."""

    def test_save_waits_for_debounce(self, sync, composition, manual_executor, clock, backend):
        _loaded(sync, manual_executor)
        composition.select(1)
        sync.mark_dirty()
        assert sync.pending

        assert not sync.tick(clock.advance(4))
        assert sync.tick(clock.advance(1))
        manual_executor.run_all()

        assert sync.state is SyncState.LOADED
        assert sync.version == 1
        assert sync.last_saved_at == clock.now
        assert not sync.pending
        assert backend.drafts("c1")[0].selection == (1,)

    def test_new_change_restarts_debounce(self, sync, manual_executor, clock):
        _loaded(sync, manual_executor)
        sync.mark_dirty()
        clock.advance(4)
        sync.mark_dirty()
        assert not sync.tick(clock.advance(4))
        assert sync.tick(clock.advance(1))

    def test_heartbeat_saves_content(self, sync, composition, manual_executor, clock, backend):
        _loaded(sync, manual_executor)
        composition.draft = Draft("c1", config=TestConfig(title="Unit 3"))
        assert not sync.tick(clock.advance(119))
        assert sync.tick(clock.advance(1))
        manual_executor.run_all()
        assert backend.drafts("c1")[0].config.title == "Unit 3"

    def test_heartbeat_skips_empty_composition(self, sync, manual_executor, clock, backend):
        _loaded(sync, manual_executor)
        assert not sync.tick(clock.advance(500))
        assert backend.drafts("c1") == []

    def test_save_while_loading_is_refused(self, sync):
        sync.begin_load("c1")
        assert not sync.save_now()

    def test_save_without_course_is_refused(self, sync):
        assert not sync.save_now()

    def test_overlapping_saves_coalesce(self, sync, composition, manual_executor, backend):
        """A save requested 3s into an in-flight save runs after it, once."""
        _loaded(sync, manual_executor)
        composition.select(1)
        assert sync.save_now()
        assert sync.state is SyncState.SAVING

        composition.select(1, 2)
        assert sync.save_now()
        composition.select(1, 2, 3)
        assert sync.save_now()
        assert manual_executor.pending == 1

        manual_executor.run_next()
        assert manual_executor.pending == 1
        assert sync.state is SyncState.SAVING
        manual_executor.run_all()

        assert backend.drafts("c1")[0].selection == (1, 2, 3)
        assert backend.calls.count("save_draft") == 2
        assert sync.events.count(SyncEvent.SAVED) == 2

    def test_saved_draft_carries_course_and_timestamp(self, sync, composition, manual_executor, backend):
        _loaded(sync, manual_executor, "c7")
        composition.select(4)
        sync.save_now()
        manual_executor.run_all()
        stored = backend.drafts("c7")[0]
        assert stored.course_id == "c7"
        assert stored.updated_at is not None

    def test_save_after_load_stores_loaded_draft(self, sync, backend, composition, manual_executor):
        backend.seed_drafts(
            Draft("c1", config=TestConfig(title="Unit 5"), selection=(2, 3), version=4, updated_at=T0)
        )
        _loaded(sync, manual_executor)
        assert sync.save_now()
        manual_executor.run_all()

        stored = backend.drafts("c1")[0]
        assert stored.selection == (2, 3)
        assert stored.config.title == "Unit 5"
        assert stored.version == 5


class TestSaveFailures:
    """Tests for retry and conflict handling."""

    def test_failed_save_retried_on_next_tick(self, sync, composition, manual_executor, backend, clock):
        _loaded(sync, manual_executor)
        backend.fail("save_draft")
        composition.select(1)
        sync.save_now()
        manual_executor.run_all()

        assert sync.state is SyncState.NOT_FOUND
        assert sync.error
        assert sync.pending
        assert sync.events[-1] is SyncEvent.SAVE_FAILED

        assert sync.tick(clock.advance(1))
        manual_executor.run_all()
        assert sync.state is SyncState.LOADED
        assert not sync.error
        assert backend.drafts("c1")[0].selection == (1,)

    def test_repeated_failures_raise_one_notice(self, sync, manual_executor, backend, clock):
        _loaded(sync, manual_executor)
        backend.fail("save_draft", times=3)
        for _ in range(3):
            sync.save_now()
            manual_executor.run_all()
        assert len(sync.notices) == 1

    def test_dismiss_notice(self, sync, manual_executor, backend):
        backend.fail("load_drafts")
        _loaded(sync, manual_executor)
        notice = sync.notices[0]
        assert sync.dismiss_notice(notice.id)
        assert sync.notices == ()
        assert not sync.dismiss_notice(notice.id)

    def test_last_writer_wins_by_default(self, sync, manual_executor, backend, composition):
        backend.seed_drafts(Draft("c1", selection=(1,), updated_at=T0, version=1))
        _loaded(sync, manual_executor)
        backend.save_draft("c1", Draft("c1", selection=(9,)))
        composition.select(5)
        sync.save_now()
        manual_executor.run_all()
        assert backend.drafts("c1")[0].selection == (5,)
        assert sync.version == 3

    def test_strict_conflict_halts_autosave(self, make_sync, manual_executor, backend, composition, clock):
        sync = make_sync(strict_versions=True)
        backend.seed_drafts(Draft("c1", selection=(1,), updated_at=T0, version=1))
        _loaded(sync, manual_executor)
        backend.save_draft("c1", Draft("c1", selection=(9,)))

        composition.select(5)
        sync.save_now()
        manual_executor.run_all()

        assert sync.halted
        assert sync.events[-1] is SyncEvent.CONFLICT
        assert backend.drafts("c1")[0].selection == (9,)
        sync.mark_dirty()
        assert not sync.tick(clock.advance(60))
        assert not sync.save_now()

    def test_force_save_overwrites(self, make_sync, manual_executor, backend, composition):
        sync = make_sync(strict_versions=True)
        _loaded(sync, manual_executor)
        backend.save_draft("c1", Draft("c1", selection=(9,)))
        composition.select(5)
        sync.save_now()
        manual_executor.run_all()
        assert sync.halted

        assert sync.force_save()
        manual_executor.run_all()
        assert not sync.halted
        assert backend.drafts("c1")[0].selection == (5,)

    def test_reload_clears_halt(self, make_sync, manual_executor, backend, composition):
        sync = make_sync(strict_versions=True)
        _loaded(sync, manual_executor)
        backend.save_draft("c1", Draft("c1", selection=(9,), updated_at=T0))
        composition.select(5)
        sync.save_now()
        manual_executor.run_all()

        sync.reload()
        manual_executor.run_all()
        assert not sync.halted
        assert composition.draft.selection == (9,)
        assert sync.version == 1


class TestDelete:
    """Tests for delete_after_commit and discard."""

    def test_delete_after_commit(self, sync, manual_executor, backend, composition):
        _loaded(sync, manual_executor)
        composition.select(1)
        sync.save_now()
        manual_executor.run_all()

        sync.delete_after_commit()
        assert sync.state is SyncState.DELETING
        manual_executor.run_all()
        assert sync.state is SyncState.IDLE
        assert backend.drafts("c1") == []
        assert sync.events[-1] is SyncEvent.DELETED

    def test_delete_failure_is_swallowed(self, sync, manual_executor, backend):
        _loaded(sync, manual_executor)
        backend.fail("delete_draft")
        sync.delete_after_commit()
        manual_executor.run_all()
        assert sync.state is SyncState.IDLE
        assert sync.events[-1] is SyncEvent.DELETE_FAILED

    def test_save_result_ignored_while_deleting(self, sync, manual_executor, backend, composition):
        _loaded(sync, manual_executor)
        composition.select(1)
        sync.save_now()
        sync.delete_after_commit()
        manual_executor.run_all()
        assert sync.state is SyncState.IDLE
        assert SyncEvent.SAVED not in sync.events

    def test_delete_after_commit_runs_behind_queued_save(self, sync, manual_executor, backend, composition):
        _loaded(sync, manual_executor)
        composition.select(1)
        sync.save_now()
        sync.delete_after_commit()
        manual_executor.run_all()
        assert backend.calls[-2:] == ["save_draft", "delete_draft"]
        assert backend.drafts("c1") == []

    def test_discard_cancels_queued_save(self, sync, manual_executor, backend, composition):
        backend.seed_drafts(Draft("c1", selection=(1,), updated_at=T0))
        _loaded(sync, manual_executor)
        composition.select(1, 2)
        sync.save_now()
        assert manual_executor.pending == 1

        sync.discard(confirmed=True)
        manual_executor.run_all()

        assert backend.drafts("c1") == []
        assert "save_draft" not in backend.calls
        assert sync.state is SyncState.IDLE
        assert SyncEvent.SAVED not in sync.events
        assert sync.events[-1] is SyncEvent.DELETED

    def test_discard_waits_for_running_save(self, backend, composition):
        started, release = threading.Event(), threading.Event()
        store = backend.save_draft

        def slow_save(course_id, draft, **kwargs):
            started.set()
            release.wait(timeout=5)
            return store(course_id, draft, **kwargs)

        backend.save_draft = slow_save
        executor = ThreadPoolExecutor(max_workers=1)
        sync = DraftSync(backend, composition.snapshot, executor=executor)
        settled = threading.Event()
        sync.add_listener(lambda event, _sync: settled.set())
        try:
            sync.begin_load("c1")
            assert settled.wait(timeout=5)
            assert sync.save_now()
            assert started.wait(timeout=5)
            threading.Timer(0.05, release.set).start()

            sync.discard(confirmed=True)

            assert backend.drafts("c1") == []
            assert sync.state is SyncState.IDLE
        finally:
            release.set()
            executor.shutdown(wait=True)

    def test_discard_needs_confirmation(self, sync, manual_executor):
        _loaded(sync, manual_executor)
        with pytest.raises(ValidationError):
            sync.discard()

    def test_discard_deletes_synchronously(self, sync, manual_executor, backend):
        backend.seed_drafts(Draft("c1", selection=(1,), updated_at=T0))
        _loaded(sync, manual_executor)
        sync.discard(confirmed=True)
        assert backend.drafts("c1") == []
        assert sync.state is SyncState.IDLE

    def test_discard_failure_raises_and_restores_state(self, sync, manual_executor, backend):
        backend.seed_drafts(Draft("c1", selection=(1,), updated_at=T0))
        _loaded(sync, manual_executor)
        backend.fail("delete_draft")
        with pytest.raises(SyncError, match="may still exist"):
            sync.discard(confirmed=True)
        assert sync.state is SyncState.LOADED
        assert len(backend.drafts("c1")) == 1
