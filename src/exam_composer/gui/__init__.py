"""
Qt integration for the composer: autosave driver and notice logging.
"""

from .autosave import AutosaveTimer
from .logging_utils import NoticeLogHandler, attach_notice_handler, detach_notice_handler

__all__ = [
    "AutosaveTimer",
    "NoticeLogHandler",
    "attach_notice_handler",
    "detach_notice_handler",
]
