"""
Module: composer.analysis

Purpose:
    Derived statistics over the current selection.
"""

from .distribution import Distribution, DistributionAnalyzer, compute_distribution

__all__ = ["Distribution", "DistributionAnalyzer", "compute_distribution"]
