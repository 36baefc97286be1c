"""
Module: config

Purpose:
    Provides TestConfig - the presentation settings of the test being
    composed (title, answer lettering, shuffling, answer key).

Key Functions:
    - TestConfig.answer_label(index): "A)", "b." ... for a display position
    - TestConfig.with_changes(**changes): Validated copy

Dependencies:
    - dataclasses (std)
    - enum (std)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple

SEPARATORS: Tuple[str, ...] = (")", ".", "/")


class AnswerCase(str, Enum):
    """Letter case for answer labels."""
    UPPER = "upper"
    LOWER = "lower"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TestConfig:
    """
    Presentation configuration for a composed test.

    Attributes:
        title: Test title (required before the test can be created)
        description: Free text shown under the title
        answer_case: Upper ("A") or lower ("a") answer letters
        separator: Character after the letter: ")", "." or "/"
        include_answer_key: Attach the answer key to the created test
        shuffle_questions: Ask delivery to shuffle question order
        shuffle_answers: Ask delivery to shuffle answer order

    Example:
        >>> TestConfig(answer_case=AnswerCase.LOWER, separator=".").answer_label(1)
        'b.'
    """

    __test__ = False  # not a pytest test class

    title: str = ""
    description: str = ""
    answer_case: AnswerCase = AnswerCase.UPPER
    separator: str = ")"
    include_answer_key: bool = False
    shuffle_questions: bool = False
    shuffle_answers: bool = False

    def __post_init__(self) -> None:
        if self.separator not in SEPARATORS:
            raise ValueError(f"separator must be one of {SEPARATORS}: {self.separator!r}")
        if not isinstance(self.answer_case, AnswerCase):
            object.__setattr__(self, "answer_case", AnswerCase(self.answer_case))

    def answer_letter(self, index: int) -> str:
        if not 0 <= index < 26:
            raise ValueError(f"answer index out of range for lettering: {index}")
        base = ord("A") if self.answer_case is AnswerCase.UPPER else ord("a")
        return chr(base + index)

    def answer_label(self, index: int) -> str:
        return f"{self.answer_letter(index)}{self.separator}"

    def with_changes(self, **changes) -> TestConfig:
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "answer_case": self.answer_case.value,
            "separator": self.separator,
            "include_answer_key": self.include_answer_key,
            "shuffle_questions": self.shuffle_questions,
            "shuffle_answers": self.shuffle_answers,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TestConfig:
        defaults = cls()
        return cls(
            title=data.get("title", defaults.title),
            description=data.get("description", defaults.description),
            answer_case=AnswerCase(data.get("answer_case", defaults.answer_case.value)),
            separator=data.get("separator", defaults.separator),
            include_answer_key=bool(data.get("include_answer_key", defaults.include_answer_key)),
            shuffle_questions=bool(data.get("shuffle_questions", defaults.shuffle_questions)),
            shuffle_answers=bool(data.get("shuffle_answers", defaults.shuffle_answers)),
        )
