"""
Module: questions

Purpose:
    Provides the Question dataclass and its parts (Answer, TaxonomyTag) as
    delivered by the question bank. Questions are immutable: every local
    change is expressed as an Override, never by mutating the question.

Key Classes:
    - Answer: One answer option (text + correctness)
    - TaxonomyTag: One taxonomy classification entry
    - Question: Canonical question record
    - Course: Course the banks belong to

Key Constants:
    - BLOOMS_TAXONOMY: Name of the taxonomy used for filtering/distribution
    - BLOOMS_LEVELS: The six canonical levels, in order
    - DIFFICULTIES: Difficulty buckets, in order

Dependencies:
    - dataclasses (std)

Used By:
    - core.models.banks.BankNode
    - composer.filtering.candidates
    - composer.analysis.distribution
    - composer.selection.effective
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

BLOOMS_TAXONOMY = "Bloom's Taxonomy"

BLOOMS_LEVELS: Tuple[str, ...] = (
    "Remember",
    "Understand",
    "Apply",
    "Analyze",
    "Evaluate",
    "Create",
)

DIFFICULTIES: Tuple[str, ...] = ("easy", "medium", "hard")

DEFAULT_LEVEL = "Remember"
DEFAULT_DIFFICULTY = "medium"


@dataclass(frozen=True)
class Answer:
    """
    Answer option.

    Ordering within a question is significant (it drives the A/B/C
    lettering) but answers are not unique: duplicates are allowed.
    """

    text: str
    is_correct: bool = False

    def to_dict(self) -> dict:
        return {"text": self.text, "is_correct": self.is_correct}

    @classmethod
    def from_dict(cls, data: dict) -> Answer:
        return cls(text=data["text"], is_correct=bool(data.get("is_correct", False)))


@dataclass(frozen=True)
class TaxonomyTag:
    """Single taxonomy entry, e.g. ``TaxonomyTag("Bloom's Taxonomy", "Apply")``."""

    taxonomy: str
    level: str

    def to_dict(self) -> dict:
        return {"taxonomy": self.taxonomy, "level": self.level}

    @classmethod
    def from_dict(cls, data: dict) -> TaxonomyTag:
        return cls(taxonomy=data["taxonomy"], level=data["level"])


@dataclass(frozen=True)
class Question:
    """
    Canonical question record (immutable).

    Attributes:
        id: Backend question id
        text: Question text, may contain HTML markup
        answers: Answer options in canonical order
        bank_id: Id of the bank node that owns the question
        taxonomies: Taxonomy classifications (any number, any taxonomy)
        difficulty: "easy" / "medium" / "hard", or None if unrated
        marks: Marks awarded for the question

    Invariants:
        - marks >= 0
        - The core never mutates a Question; local edits live in Override

    Example:
        >>> q = Question(
        ...     id=7,
        ...     text="<p>What is 2 + 2?</p>",
        ...     answers=(Answer("4", True), Answer("5")),
        ...     bank_id="arith",
        ...     taxonomies=(TaxonomyTag(BLOOMS_TAXONOMY, "Remember"),),
        ...     difficulty="easy",
        ... )
        >>> q.taxonomy_level
        'Remember'
    """

    id: int
    text: str
    answers: Tuple[Answer, ...] = ()
    bank_id: Optional[str] = None
    taxonomies: Tuple[TaxonomyTag, ...] = ()
    difficulty: Optional[str] = None
    marks: int = 1

    def __post_init__(self) -> None:
        """Validate question on construction."""
        if self.marks < 0:
            raise ValueError(f"marks must be non-negative: {self.marks}")

    @property
    def blooms_levels(self) -> Tuple[str, ...]:
        """All Bloom's levels the question is tagged with, in tag order."""
        return tuple(
            tag.level for tag in self.taxonomies if tag.taxonomy == BLOOMS_TAXONOMY
        )

    @property
    def taxonomy_level(self) -> Optional[str]:
        """
        First Bloom's level, or None when the question is untagged.

        Used for the distribution; filtering considers every tag.
        """
        levels = self.blooms_levels
        return levels[0] if levels else None

    @property
    def correct_indices(self) -> Tuple[int, ...]:
        return tuple(i for i, answer in enumerate(self.answers) if answer.is_correct)

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "text": self.text,
            "answers": [answer.to_dict() for answer in self.answers],
            "taxonomies": [tag.to_dict() for tag in self.taxonomies],
            "marks": self.marks,
        }
        if self.bank_id is not None:
            d["bank_id"] = self.bank_id
        if self.difficulty is not None:
            d["difficulty"] = self.difficulty
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Question:
        return cls(
            id=int(data["id"]),
            text=data.get("text", ""),
            answers=tuple(Answer.from_dict(a) for a in data.get("answers", [])),
            bank_id=data.get("bank_id"),
            taxonomies=tuple(TaxonomyTag.from_dict(t) for t in data.get("taxonomies", [])),
            difficulty=data.get("difficulty"),
            marks=data.get("marks", 1),
        )

    def __repr__(self) -> str:
        return (
            f"Question({self.id}, bank={self.bank_id!r}, "
            f"level={self.taxonomy_level!r}, answers={len(self.answers)})"
        )


@dataclass(frozen=True)
class Course:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> Course:
        return cls(id=str(data["id"]), name=data.get("name", ""))
