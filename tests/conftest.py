import os
import pytest
import sys
from collections import deque
from concurrent.futures import Executor, Future
from pathlib import Path

# Run Qt headless unless a platform is explicitly configured
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Add src to sys.path so we can import exam_composer
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from exam_composer.core.models import (  # noqa: E402
    Answer,
    BankNode,
    BLOOMS_TAXONOMY,
    Question,
    TaxonomyTag,
)


def build_question(
    qid: int,
    text: str = "",
    level=None,
    difficulty=None,
    answers=None,
    bank_id=None,
    marks: int = 1,
) -> Question:
    """Question with an optional Bloom's tag and three default answers."""
    if answers is None:
        answers = (Answer("alpha", True), Answer("beta"), Answer("gamma"))
    taxonomies = (TaxonomyTag(BLOOMS_TAXONOMY, level),) if level else ()
    return Question(
        id=qid,
        text=text or f"Question {qid}",
        answers=tuple(answers),
        bank_id=bank_id,
        taxonomies=taxonomies,
        difficulty=difficulty,
        marks=marks,
    )


class ManualExecutor(Executor):
    """Executor that only runs work when the test says so."""

    def __init__(self):
        self.queue = deque()

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        self.queue.append((future, fn, args, kwargs))
        return future

    @property
    def pending(self) -> int:
        return len(self.queue)

    def run_next(self):
        future, fn, args, kwargs = self.queue.popleft()
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args, **kwargs)
        except BaseException as e:
            future.set_exception(e)
        else:
            future.set_result(result)

    def run_all(self):
        while self.queue:
            self.run_next()


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


# Common test fixtures
@pytest.fixture
def make_question():
    """Return the question factory."""
    return build_question


@pytest.fixture
def manual_executor():
    return ManualExecutor()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_forest():
    """
    Two roots, three levels deep.

    bio: 1, 2
      cells: 3, 4
        organelles: 5
      genetics: 6
    chem: 7, 8
    """
    organelles = BankNode(
        "organelles", "Organelles", parent_id="cells",
        questions=(build_question(5, "Mitochondria role", "Apply", "medium"),),
    )
    cells = BankNode(
        "cells", "Cells", parent_id="bio",
        children=(organelles,),
        questions=(
            build_question(3, "Explain diffusion", "Understand", "medium"),
            build_question(4, "Untagged cell question"),
        ),
    )
    genetics = BankNode(
        "genetics", "Genetics", parent_id="bio",
        questions=(build_question(6, "Analyse the pedigree", "Analyze", "easy"),),
    )
    bio = BankNode(
        "bio", "Biology",
        children=(cells, genetics),
        questions=(
            build_question(1, "<p>Name the cell <b>membrane</b></p>", "Remember", "easy"),
            build_question(2, "Apply Punnett squares", "Apply", "hard"),
        ),
    )
    chem = BankNode(
        "chem", "Chemistry",
        questions=(
            build_question(7, "Recall the periodic table", "Remember", "hard"),
            build_question(8, "Design a titration", "Create", "medium"),
        ),
    )
    return [bio, chem]
