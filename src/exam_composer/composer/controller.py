"""
Module: composer.controller

Purpose:
    Tie the composer components together for one course session.
    Banks → Filter → Select/Edit → Distribution → Draft autosave → Create

Key Classes:
    - ComposerSession: Everything a "create test" window talks to

Threading:
    Backend reads (banks, drafts) run on the session executor and land
    through ``dispatch``. Mutating methods are meant for one thread (the
    GUI thread); pass a dispatch that posts there when the executor is a
    real thread pool.

Dependencies:
    - composer.banks / filtering / selection / analysis / sync / detail

Used By:
    - gui.autosave.AutosaveTimer (drives session.sync)
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional

from exam_composer.core.errors import ComposerError, DataIntegrityError, SyncError, ValidationError
from exam_composer.core.models import Draft, FilterState, Question, TestConfig

from .analysis import Distribution, DistributionAnalyzer
from .banks import BankTree
from .config import ComposerSettings
from .detail import DetailState, DetailView
from .filtering import CandidateFilter, PageCursors, page, page_count
from .payload import build_test_payload
from .selection import EffectiveQuestion, SelectionSnapshot, SelectionStore, ShuffleEngine
from .sync import Backend, DraftSync
from .sync.draft_sync import Dispatch, run_inline

logger = logging.getLogger(__name__)


class ComposerSession:
    """
    One "create test" session.

    Example:
        >>> session = ComposerSession(backend)
        >>> session.open_course("c1")
        >>> session.toggle(42)
        >>> session.update_config(title="Week 3 quiz")
        >>> test_id = session.create_test()
    """

    def __init__(
        self,
        backend: Backend,
        settings: Optional[ComposerSettings] = None,
        *,
        executor: Optional[Executor] = None,
        dispatch: Optional[Dispatch] = None,
        clock: Callable[[], float] = time.monotonic,
        shuffle: Optional[ShuffleEngine] = None,
    ) -> None:
        self.backend = backend
        self.settings = settings or ComposerSettings()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="composer"
        )
        self._dispatch = dispatch or run_inline

        self.store = SelectionStore()
        self.config = TestConfig()
        self.filters = FilterState(page_size=self.settings.default_page_size)
        self.cursors = PageCursors(
            page_size=self.settings.default_page_size,
            options=self.settings.page_size_options,
        )
        self.tree = BankTree.empty()
        self._questions: List[Question] = []
        self._by_id: Dict[int, Question] = {}
        self._course_id: Optional[str] = None
        self._generation = 0
        self.bank_error: Optional[str] = None

        self.shuffle = shuffle or ShuffleEngine(seed=self.settings.seed)
        self.detail = DetailView(self.store, self._by_id.get, self.shuffle)
        self._analyzer = DistributionAnalyzer()
        self.sync = DraftSync(
            backend,
            self.build_draft,
            self.apply_draft,
            settings=self.settings,
            executor=self._executor,
            dispatch=self._dispatch,
            clock=clock,
        )

    @property
    def course_id(self) -> Optional[str]:
        return self._course_id

    @property
    def questions(self) -> List[Question]:
        """Flattened candidate pool of the current course."""
        return list(self._questions)

    def question(self, question_id: int) -> Optional[Question]:
        return self._by_id.get(question_id) or self.store.local_copy(question_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Course Loading
    # ─────────────────────────────────────────────────────────────────────────

    def open_course(self, course_id: str) -> None:
        """
        Switch to ``course_id``: reset local state, fetch its banks and
        its latest draft. Results from a previously opened course that
        arrive late are discarded.
        """
        logger.info(f"Opening course {course_id}")
        if self.sync.pending:
            # flush the previous course before its state is reset
            self.sync.save_now()
        self._reset(course_id)
        self._load_banks(course_id)
        self.sync.begin_load(course_id)

    def resume(self) -> None:
        """Reopen whichever course has the most recent draft."""
        if self.sync.pending:
            self.sync.save_now()
        self._reset(None)
        self.sync.resume_latest()

    def _reset(self, course_id: Optional[str]) -> None:
        self._course_id = course_id
        self.store.restore(SelectionSnapshot())
        self.config = TestConfig()
        self.filters = FilterState(page_size=self.settings.default_page_size)
        self.cursors.set_page_size(self.settings.default_page_size)
        self._set_tree(BankTree.empty())
        self.bank_error = None
        if self.detail.state is not DetailState.BROWSING:
            self.detail = DetailView(self.store, self._by_id.get, self.shuffle)

    def _load_banks(self, course_id: str) -> None:
        self._generation += 1
        generation = self._generation
        future = self._executor.submit(self.backend.list_banks, course_id)
        future.add_done_callback(
            lambda f: self._dispatch(lambda: self._finish_banks(generation, course_id, f))
        )

    def _finish_banks(self, generation: int, course_id: str, future: Future) -> None:
        if generation != self._generation:
            logger.debug(f"Discarding stale bank list for course {course_id}")
            return
        try:
            tree = BankTree.from_payload(future.result())
        except DataIntegrityError as e:
            logger.error(f"Bank tree for course {course_id} is malformed: {e}")
            self.bank_error = str(e)
            return
        except Exception as e:
            logger.warning(f"Could not load banks for course {course_id}: {e}")
            self.bank_error = str(e)
            return
        self._set_tree(tree)
        logger.info(f"Loaded {len(tree)} banks, {len(self._questions)} questions for {course_id}")

    def _set_tree(self, tree: BankTree) -> None:
        self.tree = tree
        self._questions = tree.flatten()
        self._by_id.clear()
        self._by_id.update((q.id, q) for q in self._questions)

    # ─────────────────────────────────────────────────────────────────────────
    # Draft Snapshot
    # ─────────────────────────────────────────────────────────────────────────

    def build_draft(self) -> Draft:
        """Current composition as a Draft (unversioned, unstamped)."""
        snapshot = self.store.snapshot()
        return Draft(
            course_id=self._course_id or "",
            config=self.config,
            selection=snapshot.selection,
            display_order=snapshot.display_order,
            overrides=snapshot.overrides,
            questions=snapshot.questions,
            filter_state=self.filters.with_changes(
                available_page=self.cursors.available_page,
                selected_page=self.cursors.selected_page,
                page_size=self.cursors.page_size,
            ),
            persist_requested=snapshot.persist_requested,
        )

    def apply_draft(self, draft: Draft) -> None:
        """Replace local state with a loaded draft."""
        if draft.course_id != self._course_id:
            self._course_id = draft.course_id
            self._load_banks(draft.course_id)
        self.store.restore(SelectionSnapshot(
            selection=draft.selection,
            display_order=draft.display_order,
            overrides=dict(draft.overrides),
            questions=draft.questions,
            persist_requested=draft.persist_requested,
        ))
        self.config = draft.config
        self.filters = draft.filter_state
        try:
            self.cursors.set_page_size(draft.filter_state.page_size)
        except ValueError:
            logger.warning(f"Ignoring unsupported page size {draft.filter_state.page_size}")
        self.cursors.available_page = draft.filter_state.available_page
        self.cursors.selected_page = draft.filter_state.selected_page
        logger.debug(f"Applied {draft!r}")

    def _changed(self) -> None:
        self.sync.mark_dirty()

    # ─────────────────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────────────────

    def available_questions(self) -> List[Question]:
        """Filtered candidates, excluding the selection."""
        return CandidateFilter(self.tree).apply(
            self._questions, self.filters, exclude_ids=frozenset(self.store.ids)
        )

    def selected_questions(self) -> List[EffectiveQuestion]:
        """Effective selected questions in display order."""
        result = []
        for qid in self.store.display_order:
            canonical = self._by_id.get(qid)
            if canonical is None and self.store.local_copy(qid) is None:
                logger.warning(f"Selected question {qid} is not available; skipping")
                continue
            result.append(self.store.effective(qid, canonical))
        return result

    def available_page(self) -> List[Question]:
        items = self.available_questions()
        self.cursors.available_page = min(
            self.cursors.available_page, page_count(len(items), self.cursors.page_size)
        )
        return page(items, self.cursors.available_page, self.cursors.page_size)

    def selected_page(self) -> List[EffectiveQuestion]:
        items = self.selected_questions()
        self.cursors.selected_page = min(
            self.cursors.selected_page, page_count(len(items), self.cursors.page_size)
        )
        return page(items, self.cursors.selected_page, self.cursors.page_size)

    def available_page_count(self) -> int:
        return page_count(len(self.available_questions()), self.cursors.page_size)

    def selected_page_count(self) -> int:
        return page_count(len(self.store), self.cursors.page_size)

    def distribution(self) -> Distribution:
        return self._analyzer.compute(
            self.store.ids,
            self.store.overrides,
            self._by_id,
            self.store.local_copies,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Filters & Paging
    # ─────────────────────────────────────────────────────────────────────────

    def _set_filters(self, **changes) -> None:
        self.filters = self.filters.with_changes(**changes)
        self.cursors.available_page = 1
        self._changed()

    def set_search(self, text: str) -> None:
        self._set_filters(search_text=text)

    def set_taxonomy_levels(self, levels: Iterable[str]) -> None:
        self._set_filters(taxonomy_levels=tuple(levels))

    def toggle_taxonomy_level(self, level: str) -> None:
        levels = list(self.filters.taxonomy_levels)
        if level in levels:
            levels.remove(level)
        else:
            levels.append(level)
        self._set_filters(taxonomy_levels=tuple(levels))

    def set_bank_scope(self, bank_id: Optional[str]) -> None:
        if bank_id is not None and bank_id not in self.tree:
            logger.warning(f"Bank scope {bank_id!r} is not in the loaded tree")
        self._set_filters(bank_scope_id=bank_id)

    def set_page_size(self, page_size: int) -> None:
        self.cursors.set_page_size(page_size)
        self._changed()

    def go_available_page(self, page_number: int) -> int:
        return self.cursors.go_available(page_number, len(self.available_questions()))

    def go_selected_page(self, page_number: int) -> int:
        return self.cursors.go_selected(page_number, len(self.store))

    # ─────────────────────────────────────────────────────────────────────────
    # Selection & Edits
    # ─────────────────────────────────────────────────────────────────────────

    def toggle(self, question_id: int, *, purge: bool = False) -> bool:
        """
        Select or deselect a question.

        Raises:
            ValueError: If the question is not known to this session
        """
        canonical = self._by_id.get(question_id)
        if question_id not in self.store and canonical is None:
            if self.store.local_copy(question_id) is None:
                raise ValueError(f"Unknown question: {question_id}")
        selected = self.store.toggle(question_id, purge=purge)
        if selected and canonical is not None:
            self.store.attach_local_copy(canonical)
        self.cursors.clamp(len(self.available_questions()), len(self.store))
        self._changed()
        return selected

    def add_all_filtered(self) -> List[int]:
        """Select every candidate passing the current filter."""
        candidates = self.available_questions()
        added = self.store.bulk_add(q.id for q in candidates)
        for question in candidates:
            self.store.attach_local_copy(question)
        if added:
            self.cursors.available_page = 1
            self._changed()
        return added

    def remove_all(self, *, purge: bool = False) -> List[int]:
        removed = self.store.clear(purge=purge)
        self.cursors.selected_page = 1
        if removed:
            self._changed()
        return removed

    def set_override(self, question_id: int, **partial) -> None:
        self.store.set_override(question_id, **partial)
        self._changed()

    def clear_override(self, question_id: int) -> None:
        if self.store.clear_override(question_id):
            self._changed()

    def save_detail(self, persist_to_bank: bool = False) -> None:
        self.detail.save(persist_to_bank)
        self._changed()

    def shuffle_answers(self) -> None:
        """Shuffle the answers of the question open in the detail view."""
        self.detail.shuffle_answers()
        self._changed()

    def shuffle_questions(self) -> List[int]:
        """Replace the display order with a fresh permutation of the selection."""
        order = self.shuffle.shuffle_question_order(self.store.ids)
        self.store.apply_display_order(order)
        self._changed()
        return order

    def reset_question_order(self) -> None:
        self.store.reset_display_order()
        self._changed()

    def update_config(self, **changes) -> TestConfig:
        """
        Change presentation settings.

        Raises:
            ValueError: If a value is out of range (e.g. unknown separator)
        """
        self.config = self.config.with_changes(**changes)
        self._changed()
        return self.config

    # ─────────────────────────────────────────────────────────────────────────
    # Commit
    # ─────────────────────────────────────────────────────────────────────────

    def validate(self) -> None:
        """
        Raises:
            ValidationError: If the test cannot be created yet
        """
        if self._course_id is None:
            raise ValidationError("course", "Choose a course first")
        if not self.config.title.strip():
            raise ValidationError("title", "Test title is required")
        if len(self.store) == 0:
            raise ValidationError("selection", "Select at least one question")

    def create_test(self) -> str:
        """
        Create the test from the current composition, then drop the draft.

        Returns:
            Id of the created test

        Raises:
            ValidationError: Title missing or nothing selected
            SyncError: The backend rejected the test
        """
        self.validate()
        assert self._course_id is not None
        payload = build_test_payload(self.config, self.selected_questions())
        try:
            test_id = self.backend.create_test(self._course_id, payload)
        except ComposerError:
            raise
        except Exception as e:
            raise SyncError(f"Could not create test: {e}", self._course_id) from e
        logger.info(
            f"Created test {test_id} for course {self._course_id} "
            f"with {len(payload['questions'])} questions"
        )
        self.sync.delete_after_commit()
        return test_id

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
