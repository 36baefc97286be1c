"""
Module: overrides

Purpose:
    Provides the Override dataclass - a per-question local diff layered on
    top of a canonical Question. An override never replaces the question:
    every field is optional and None means "use the canonical value".

Key Functions:
    - Override.merged(partial): Shallow merge, fields in ``partial`` win
    - Override.is_empty: True when the diff changes nothing

Positional conventions:
    ``answer_order[k]`` is the canonical index of the answer shown at
    display position ``k``. ``hidden_answer_mask[k]`` is True when the
    answer at display position ``k`` is hidden. Both are in display
    positions, so reordering answers must move the mask with them.

Dependencies:
    - dataclasses (std)

Used By:
    - composer.selection.store.SelectionStore
    - composer.selection.shuffle.ShuffleEngine
    - composer.selection.effective
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional, Tuple

from .questions import DIFFICULTIES


@dataclass(frozen=True)
class Override:
    """
    Local diff against a canonical question (immutable).

    Attributes:
        edited_text: Replacement question text
        hidden_answer_mask: Per display position, True if hidden
        answer_order: Canonical answer index per display position
        taxonomy_level: Replacement Bloom's level
        difficulty: Replacement difficulty

    Invariants:
        - answer_order is a permutation of range(len(answer_order))
        - hidden_answer_mask and answer_order have equal length when both set

    Example:
        >>> o = Override(edited_text="X")
        >>> o.merged({"difficulty": "hard"})
        Override(edited_text='X', difficulty='hard')
    """

    edited_text: Optional[str] = None
    hidden_answer_mask: Optional[Tuple[bool, ...]] = None
    answer_order: Optional[Tuple[int, ...]] = None
    taxonomy_level: Optional[str] = None
    difficulty: Optional[str] = None

    def __post_init__(self) -> None:
        if self.answer_order is not None:
            if sorted(self.answer_order) != list(range(len(self.answer_order))):
                raise ValueError(f"answer_order is not a permutation: {self.answer_order}")
        if self.hidden_answer_mask is not None and self.answer_order is not None:
            if len(self.hidden_answer_mask) != len(self.answer_order):
                raise ValueError(
                    f"hidden_answer_mask has {len(self.hidden_answer_mask)} entries, "
                    f"answer_order has {len(self.answer_order)}"
                )
        if self.difficulty is not None and self.difficulty.lower() not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty: {self.difficulty!r}")

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.field_names())

    @property
    def hidden_count(self) -> int:
        return sum(self.hidden_answer_mask) if self.hidden_answer_mask else 0

    def merged(self, partial: Mapping[str, Any]) -> Override:
        """
        Shallow merge: every key present in ``partial`` replaces this value.

        An explicit None clears the field back to the canonical value.

        Raises:
            KeyError: If ``partial`` names a field Override does not have
        """
        unknown = set(partial) - set(self.field_names())
        if unknown:
            raise KeyError(f"Unknown override fields: {sorted(unknown)}")
        changes = dict(partial)
        for key in ("hidden_answer_mask", "answer_order"):
            if changes.get(key) is not None:
                changes[key] = tuple(changes[key])
        return replace(self, **changes)

    def to_dict(self) -> dict:
        d: dict = {}
        if self.edited_text is not None:
            d["edited_text"] = self.edited_text
        if self.hidden_answer_mask is not None:
            d["hidden_answer_mask"] = list(self.hidden_answer_mask)
        if self.answer_order is not None:
            d["answer_order"] = list(self.answer_order)
        if self.taxonomy_level is not None:
            d["taxonomy_level"] = self.taxonomy_level
        if self.difficulty is not None:
            d["difficulty"] = self.difficulty
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Override:
        mask = data.get("hidden_answer_mask")
        order = data.get("answer_order")
        return cls(
            edited_text=data.get("edited_text"),
            hidden_answer_mask=tuple(bool(m) for m in mask) if mask is not None else None,
            answer_order=tuple(int(i) for i in order) if order is not None else None,
            taxonomy_level=data.get("taxonomy_level"),
            difficulty=data.get("difficulty"),
        )

    def __repr__(self) -> str:
        set_fields = ", ".join(
            f"{name}={getattr(self, name)!r}"
            for name in self.field_names()
            if getattr(self, name) is not None
        )
        return f"Override({set_fields})"
