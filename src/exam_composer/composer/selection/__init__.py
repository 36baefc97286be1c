"""
Module: composer.selection

Purpose:
    The test's selection: membership, per-question overrides, effective
    views and shuffling.

Key Classes:
    - SelectionStore: Ordered selection plus override records
    - ShuffleEngine: Question and answer order permutations
    - EffectiveQuestion: Override-resolved question view
"""

from .effective import EffectiveQuestion, resolve_effective, resolve_level, resolve_difficulty
from .store import SelectionStore, SelectionSnapshot
from .shuffle import ShuffleEngine

__all__ = [
    "EffectiveQuestion",
    "resolve_effective",
    "resolve_level",
    "resolve_difficulty",
    "SelectionStore",
    "SelectionSnapshot",
    "ShuffleEngine",
]
