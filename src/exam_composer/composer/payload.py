"""
Module: composer.payload

Purpose:
    Build the createTest request body from the effective selection and
    the answer key that goes with it.

Key Functions:
    - build_test_payload(): Request body for Backend.create_test
    - build_answer_key(): Correct labels per question number

Rules:
    - Questions appear in display order, numbered from 1
    - Answers appear in effective order; hidden answers are left out and
      the remaining answers are lettered consecutively
    - The answer key follows the same lettering, so a hidden correct
      answer never appears in it
    - The key is only included when the config asks for it

Used By:
    - composer.controller.ComposerSession.create_test
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from exam_composer.core.models import TestConfig

from .selection import EffectiveQuestion


def _question_entry(
    number: int,
    effective: EffectiveQuestion,
    config: TestConfig,
) -> Dict[str, Any]:
    answers = [
        {
            "label": config.answer_label(i),
            "text": answer.text,
            "is_correct": answer.is_correct,
        }
        for i, answer in enumerate(effective.visible_answers)
    ]
    return {
        "number": number,
        "question_id": effective.id,
        "text": effective.text,
        "taxonomy_level": effective.taxonomy_level,
        "difficulty": effective.difficulty,
        "marks": effective.question.marks,
        "answers": answers,
    }


def build_answer_key(
    questions: Sequence[EffectiveQuestion],
    config: TestConfig,
) -> List[Dict[str, Any]]:
    """
    Correct answer labels per question.

    Example:
        >>> build_answer_key([eq], TestConfig())
        [{'number': 1, 'question_id': 7, 'labels': ['B)']}]
    """
    key: List[Dict[str, Any]] = []
    for number, effective in enumerate(questions, start=1):
        labels = [
            config.answer_label(i)
            for i, answer in enumerate(effective.visible_answers)
            if answer.is_correct
        ]
        key.append({"number": number, "question_id": effective.id, "labels": labels})
    return key


def build_test_payload(
    config: TestConfig,
    questions: Sequence[EffectiveQuestion],
) -> Dict[str, Any]:
    """
    Request body for creating a test.

    Args:
        config: Presentation config
        questions: Effective questions in display order

    Returns:
        JSON-ready dictionary
    """
    payload: Dict[str, Any] = {
        **config.to_dict(),
        "total_marks": sum(q.question.marks for q in questions),
        "questions": [
            _question_entry(number, effective, config)
            for number, effective in enumerate(questions, start=1)
        ],
    }
    if config.include_answer_key:
        payload["answer_key"] = build_answer_key(questions, config)
    return payload
