"""
Module: composer.sync

Purpose:
    Draft persistence: the backend contract, shipped stores, and the
    DraftSync autosave state machine.
"""

from .backend import LATEST, Backend, DraftStore, InMemoryBackend
from .draft_sync import DraftSync, Notice, SyncEvent, SyncState
from .file_backend import FileDraftBackend

__all__ = [
    "LATEST",
    "Backend",
    "DraftStore",
    "InMemoryBackend",
    "FileDraftBackend",
    "DraftSync",
    "Notice",
    "SyncEvent",
    "SyncState",
]
