"""
Test composition engine.

Subpackages:
- banks: arena index over the question-bank forest
- filtering: candidate filter and pagination
- selection: selection store, effective views, shuffling
- analysis: taxonomy × difficulty distribution
- sync: draft persistence and autosave
"""

from .config import ComposerSettings
from .controller import ComposerSession
from .detail import DetailState, DetailView

__all__ = ["ComposerSettings", "ComposerSession", "DetailState", "DetailView"]
