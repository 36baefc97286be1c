"""
Module: composer.sync.file_backend

Purpose:
    DraftStore kept in a single JSON file, for local use without the
    remote service.

File Format:
    {
        "schema_version": 1,
        "drafts": [<serialized Draft>, ...]
    }

    Each record is validated against ``draft.schema.json`` when read.
    Invalid records are skipped with a warning, so one corrupt draft
    does not hide the others.

Dependencies:
    - portalocker (via .file_locking): Cross-process locking
    - jsonschema (via core.schemas): Record validation

Used By:
    - composer.sync.draft_sync.DraftSync (as its DraftStore)
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from exam_composer.core.errors import DraftConflict, SchemaError, SyncError
from exam_composer.core.models import Draft
from exam_composer.core.schemas import DRAFT_SCHEMA_VERSION
from exam_composer.core.utils.serialization import deserialize_draft, serialize_draft

from .backend import LATEST, DraftKey, check_expected_version, next_version
from .file_locking import locked_read_json, locked_read_modify_write_json

logger = logging.getLogger(__name__)


def _empty_document() -> Dict[str, Any]:
    return {"schema_version": DRAFT_SCHEMA_VERSION, "drafts": []}


class FileDraftBackend:
    """
    JSON-file DraftStore.

    Attributes:
        path: Location of the store file (created on first write)
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_records(self) -> List[Dict[str, Any]]:
        try:
            document = locked_read_json(self.path, _empty_document)
        except (OSError, json.JSONDecodeError) as e:
            raise SyncError(f"Cannot read draft store {self.path}: {e}") from e
        records = document.get("drafts", [])
        if not isinstance(records, list):
            raise SyncError(f"Draft store {self.path} is malformed: 'drafts' is not a list")
        return records

    def _parse(self, records: List[Dict[str, Any]]) -> List[Draft]:
        drafts: List[Draft] = []
        for index, record in enumerate(records):
            try:
                drafts.append(deserialize_draft(record))
            except (SchemaError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping invalid draft #{index} in {self.path.name}: {e}")
        return drafts

    def load_drafts(self, course_id: str) -> List[Draft]:
        drafts = self._parse(self._read_records())
        if course_id == LATEST:
            return drafts
        return [d for d in drafts if d.course_id == course_id]

    def save_draft(
        self,
        course_id: str,
        draft: Draft,
        *,
        expected_version: Optional[int] = None,
    ) -> Draft:
        stored: Dict[str, Draft] = {}

        def upsert(document: Dict[str, Any]) -> Dict[str, Any]:
            records = document.get("drafts", [])
            mine = [r for r in records if r.get("course_id") == course_id]
            others = [r for r in records if r.get("course_id") != course_id]
            existing = self._parse(mine)
            check_expected_version(course_id, existing, expected_version)

            record = replace(
                draft,
                course_id=course_id,
                version=next_version(existing),
                updated_at=draft.updated_at or datetime.now(timezone.utc),
            )
            stored["draft"] = record
            return {
                "schema_version": DRAFT_SCHEMA_VERSION,
                "drafts": others + [serialize_draft(record)],
            }

        try:
            locked_read_modify_write_json(self.path, upsert, _empty_document)
        except DraftConflict:
            raise
        except (OSError, json.JSONDecodeError) as e:
            raise SyncError(f"Cannot write draft store {self.path}: {e}", course_id) from e

        record = stored["draft"]
        logger.info(f"Saved draft for course {course_id} (v{record.version}) to {self.path.name}")
        return record

    def delete_draft(self, course_id: DraftKey) -> None:
        def remove(document: Dict[str, Any]) -> Dict[str, Any]:
            records = document.get("drafts", [])
            if course_id is not None:
                records = [r for r in records if r.get("course_id") != course_id]
            else:
                records = []
            return {"schema_version": DRAFT_SCHEMA_VERSION, "drafts": records}

        try:
            locked_read_modify_write_json(self.path, remove, _empty_document)
        except (OSError, json.JSONDecodeError) as e:
            raise SyncError(f"Cannot write draft store {self.path}: {e}", course_id) from e
        logger.info(f"Deleted draft(s) for {course_id or 'all courses'} from {self.path.name}")
