"""
Module: composer.banks

Purpose:
    Arena index over a course's nested question-bank forest.
"""

from .tree import BankTree, flatten

__all__ = ["BankTree", "flatten"]
