"""
Module: banks

Purpose:
    Provides the BankNode dataclass - one named container of questions in
    a course's question-bank forest. Nodes nest to arbitrary depth.

Key Functions:
    - BankNode.to_dict() / BankNode.from_dict(): Serialization (recursive)

Dependencies:
    - dataclasses (std)
    - .questions.Question

Used By:
    - composer.banks.tree.BankTree
    - composer.sync.backend
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .questions import Question


@dataclass(frozen=True)
class BankNode:
    """
    Question bank node (immutable).

    Attributes:
        id: Bank id
        name: Display name
        parent_id: Parent bank id, None for roots
        children: Child banks
        questions: Questions owned by this node only (not its descendants)

    Invariants:
        - ``questions`` are never inherited by ancestors
        - The forest has no cycles (checked by BankTree on load)
    """

    id: str
    name: str
    parent_id: Optional[str] = None
    children: Tuple[BankNode, ...] = ()
    questions: Tuple[Question, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "children": [child.to_dict() for child in self.children],
            "questions": [q.to_dict() for q in self.questions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> BankNode:
        parent = data.get("parent_id")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            parent_id=str(parent) if parent is not None else None,
            children=tuple(cls.from_dict(c) for c in data.get("children", [])),
            questions=tuple(Question.from_dict(q) for q in data.get("questions", [])),
        )

    def __repr__(self) -> str:
        return (
            f"BankNode({self.id!r}, children={len(self.children)}, "
            f"questions={len(self.questions)})"
        )
