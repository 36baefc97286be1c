"""
Logging utilities for surfacing composer warnings in the GUI notice area.
"""
from __future__ import annotations

import logging
from queue import Queue
from typing import Optional

COMPOSER_LOGGER = "exam_composer"


class NoticeLogHandler(logging.Handler):
    """
    A logging handler that sends warning records to a queue.

    The notice area drains the queue on a timer, so swallowed sync
    failures are still visible to the user.
    """

    def __init__(self, notice_queue: Queue, level: int = logging.WARNING):
        super().__init__(level)
        self.notice_queue = notice_queue
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.notice_queue.put((self.format(record), record.levelname))
        except Exception:
            self.handleError(record)


def attach_notice_handler(
    notice_queue: Queue,
    logger_name: Optional[str] = COMPOSER_LOGGER,
    level: int = logging.WARNING,
) -> NoticeLogHandler:
    """
    Attach a NoticeLogHandler to the composer logger.

    Args:
        notice_queue: Queue the notice area reads from.
        logger_name: Logger to attach to. None = root logger.
        level: Lowest level forwarded.

    Returns:
        The attached handler (for later removal).
    """
    logger = logging.getLogger(logger_name)
    handler = NoticeLogHandler(notice_queue, level)
    logger.addHandler(handler)
    return handler


def detach_notice_handler(
    handler: NoticeLogHandler,
    logger_name: Optional[str] = COMPOSER_LOGGER,
) -> None:
    logging.getLogger(logger_name).removeHandler(handler)
