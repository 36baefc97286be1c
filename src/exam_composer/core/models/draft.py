"""
Module: draft

Purpose:
    Provides the Draft dataclass - the persisted envelope of an in-progress
    test composition (config, selection, overrides, filter view).

Key Functions:
    - Draft.has_content: Whether a heartbeat save is worth sending
    - latest_draft(drafts): Pick the most recently updated record
    - Draft.to_dict() / Draft.from_dict(): Serialization

Design:
    The backend may hold several drafts per (user, course). Only the most
    recently updated one is meaningful; records without a timestamp sort
    last. ``version`` is an optimistic-concurrency token the backend bumps
    on every save; it is only checked when strict versioning is enabled.

Dependencies:
    - dataclasses (std)
    - datetime (std)

Used By:
    - composer.sync.draft_sync.DraftSync
    - core.utils.serialization
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Tuple

from .config import TestConfig
from .filters import FilterState
from .overrides import Override
from .questions import Question


@dataclass(frozen=True)
class Draft:
    """
    Persisted snapshot of a test composition.

    Attributes:
        course_id: Course the draft belongs to
        config: Presentation config (title etc.)
        selection: Selected question ids in insertion order
        display_order: Shuffled presentation order, None when unshuffled
        overrides: Local diffs keyed by question id
        questions: Selection-local copies of the selected questions
        filter_state: Candidate filter and page cursors
        persist_requested: Ids whose edits the user asked to keep in the bank
        updated_at: When the snapshot was taken (UTC), None if unknown
        version: Backend version token, None before the first save

    Invariants:
        - selection has no duplicate ids
        - display_order, when set, is a permutation of selection
    """

    course_id: str
    config: TestConfig = field(default_factory=TestConfig)
    selection: Tuple[int, ...] = ()
    display_order: Optional[Tuple[int, ...]] = None
    overrides: Dict[int, Override] = field(default_factory=dict)
    questions: Tuple[Question, ...] = ()
    filter_state: FilterState = field(default_factory=FilterState)
    persist_requested: Tuple[int, ...] = ()
    updated_at: Optional[datetime] = None
    version: Optional[int] = None

    def __post_init__(self) -> None:
        if len(set(self.selection)) != len(self.selection):
            raise ValueError(f"Duplicate question ids in draft selection: {self.selection}")
        if self.display_order is not None and sorted(self.display_order) != sorted(self.selection):
            raise ValueError("display_order must be a permutation of selection")

    @property
    def has_content(self) -> bool:
        """True when the title or the selection is non-empty."""
        return bool(self.config.title.strip() or self.selection)

    def stamped(self, when: Optional[datetime] = None) -> Draft:
        return replace(self, updated_at=when or datetime.now(timezone.utc))

    def with_version(self, version: Optional[int]) -> Draft:
        return replace(self, version=version)

    def to_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "config": self.config.to_dict(),
            "selection": list(self.selection),
            "display_order": list(self.display_order) if self.display_order is not None else None,
            "overrides": {str(qid): o.to_dict() for qid, o in self.overrides.items()},
            "questions": [q.to_dict() for q in self.questions],
            "filter_state": self.filter_state.to_dict(),
            "persist_requested": list(self.persist_requested),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Draft:
        updated = data.get("updated_at")
        order = data.get("display_order")
        return cls(
            course_id=str(data["course_id"]),
            config=TestConfig.from_dict(data.get("config", {})),
            selection=tuple(int(i) for i in data.get("selection", [])),
            display_order=tuple(int(i) for i in order) if order is not None else None,
            overrides={
                int(qid): Override.from_dict(o)
                for qid, o in data.get("overrides", {}).items()
            },
            questions=tuple(Question.from_dict(q) for q in data.get("questions", [])),
            filter_state=FilterState.from_dict(data.get("filter_state", {})),
            persist_requested=tuple(int(i) for i in data.get("persist_requested", [])),
            updated_at=_parse_timestamp(updated) if updated else None,
            version=data.get("version"),
        )

    def __repr__(self) -> str:
        return (
            f"Draft(course={self.course_id!r}, selected={len(self.selection)}, "
            f"overrides={len(self.overrides)}, updated_at={self.updated_at}, "
            f"version={self.version})"
        )


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def latest_draft(drafts: Iterable[Draft]) -> Optional[Draft]:
    """
    Return the most recently updated draft.

    Drafts without a timestamp sort last, so one is only returned when no
    draft carries a timestamp. Ties keep the first record seen.

    Returns:
        The latest Draft, or None for an empty iterable
    """
    best: Optional[Draft] = None
    for draft in drafts:
        if best is None:
            best = draft
        elif draft.updated_at is not None and (
            best.updated_at is None or draft.updated_at > best.updated_at
        ):
            best = draft
    return best
