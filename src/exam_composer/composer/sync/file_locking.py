"""
Module: composer.sync.file_locking

Purpose:
    Cross-process locked access to the JSON draft store, so two composer
    windows sharing one file never interleave writes.
    Uses portalocker for Mac, Windows, and Linux compatibility.

Key Functions:
    - locked_file: Context manager for locked file access
    - locked_read_json: Read a JSON document under a shared lock
    - locked_read_modify_write_json: Read-modify-write under an exclusive lock

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - composer.sync.file_backend.FileDraftBackend
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator

import portalocker

logger = logging.getLogger(__name__)


@contextmanager
def locked_file(
    path: Path,
    mode: str = "r",
    lock_type: int = portalocker.LOCK_EX,
) -> Generator:
    """
    Open ``path`` with a portalocker lock held for the whole block.

    Missing parent directories are created; a missing file is created
    empty for read modes.

    Example:
        >>> with locked_file(path, "r", portalocker.LOCK_SH) as f:
        ...     data = f.read()
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    if "r" in mode and not path.exists():
        path.touch()

    with open(path, mode, encoding="utf-8") as f:
        portalocker.lock(f, lock_type)
        try:
            yield f
        finally:
            portalocker.unlock(f)


def locked_read_json(
    path: Path,
    default: Callable[[], Dict[str, Any]] = dict,
) -> Dict[str, Any]:
    """
    Read a JSON document under a shared lock.

    An empty or missing file reads as ``default()``.

    Raises:
        json.JSONDecodeError: If the file holds invalid JSON
    """
    with locked_file(path, "r", portalocker.LOCK_SH) as f:
        content = f.read()
    if not content.strip():
        return default()
    return json.loads(content)


def locked_read_modify_write_json(
    path: Path,
    modifier: Callable[[Dict[str, Any]], Dict[str, Any]],
    default: Callable[[], Dict[str, Any]] = dict,
) -> Dict[str, Any]:
    """
    Read JSON, apply ``modifier``, write back, all under one exclusive lock.

    If ``modifier`` raises, the file is left untouched and the exception
    propagates.

    Returns:
        The document that was written

    Example:
        >>> def drop_course(doc):
        ...     doc["drafts"] = [d for d in doc["drafts"] if d["course_id"] != "c1"]
        ...     return doc
        >>> locked_read_modify_write_json(store_path, drop_course)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    if not path.exists():
        path.write_text(json.dumps(default(), indent=2), encoding="utf-8")

    with open(path, "r+", encoding="utf-8") as f:
        portalocker.lock(f, portalocker.LOCK_EX)
        try:
            f.seek(0)
            content = f.read()
            existing = json.loads(content) if content.strip() else default()

            modified = modifier(existing)

            f.seek(0)
            f.truncate()
            json.dump(modified, f, indent=2, ensure_ascii=False)
            logger.debug(f"Rewrote {path.name}")
            return modified
        finally:
            portalocker.unlock(f)
