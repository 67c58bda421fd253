"""JSON file persistence for the server's schedule snapshot.

File layout:

  {
    "data": [...raw rows...],
    "processedData": {"0": {"dayName": ..., "timeSlots": [...]}},
    "days": [...day segments...],
    "entries": [...schedule entries...],
    "metadata": {"last_updated": ..., "source": ..., ...},
    "lastUpdated": "2025-08-29T14:00:00+00:00"
  }

A file without "metadata" and "days" predates the current layout (or is
corrupt) and is deleted on load.
"""

import json
import os
import uuid
from contextlib import suppress
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from src.court_schedule.cache.ttl import CachedValue
from src.court_schedule.errors import PersistenceFailure, StructuralCacheMismatch
from src.court_schedule.logging import get_logger
from src.court_schedule.models import ScheduleSnapshot, SourceKind
from src.court_schedule.projector import group_by_day

log = get_logger(__name__)

REQUIRED_KEYS = ("metadata", "days")


def _atomic_write_json(path: Path, value: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".tmp-{path.name}-{uuid.uuid4().hex}")
    try:
        payload = json.dumps(value, ensure_ascii=False, indent=2) + "\n"
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError:
        with suppress(FileNotFoundError):
            tmp_path.unlink()
        raise


def snapshot_to_document(snapshot: ScheduleSnapshot, stored_at: float) -> dict:
    return {
        "data": snapshot.raw_rows,
        "processedData": group_by_day(snapshot.entries, snapshot.days),
        "days": [day.model_dump(mode="json") for day in snapshot.days],
        "entries": [entry.model_dump(mode="json") for entry in snapshot.entries],
        "metadata": snapshot.metadata.model_dump(mode="json"),
        "lastUpdated": datetime.fromtimestamp(stored_at, tz=timezone.utc).isoformat(),
    }


def document_to_record(document: object) -> CachedValue[ScheduleSnapshot]:
    """Validate a loaded document and rebuild the cached record.

    Raises:
        StructuralCacheMismatch: Required structure is missing or invalid.
    """
    if not isinstance(document, dict):
        raise StructuralCacheMismatch("cache file is not a JSON object")
    missing = [key for key in REQUIRED_KEYS if key not in document]
    if missing:
        raise StructuralCacheMismatch(f"cache file missing {missing}")

    try:
        snapshot = ScheduleSnapshot.model_validate(
            {
                "entries": document.get("entries", []),
                "days": document["days"],
                "raw_rows": document.get("data") or [],
                "metadata": document["metadata"],
            }
        )
        last_updated = document.get("lastUpdated")
        stored = (
            datetime.fromisoformat(last_updated)
            if isinstance(last_updated, str)
            else snapshot.metadata.last_updated
        )
    except (ValidationError, ValueError, TypeError) as e:
        raise StructuralCacheMismatch(f"cache file failed validation: {e}") from e

    if stored.tzinfo is None:
        stored = stored.replace(tzinfo=timezone.utc)
    return CachedValue(
        value=snapshot,
        stored_at=stored.timestamp(),
        source=snapshot.metadata.source,
    )


class JsonFileRecordStore:
    """RecordStore over a single JSON file holding a ScheduleSnapshot."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> CachedValue[ScheduleSnapshot] | None:
        if not self.path.exists():
            log.debug("cache_file_missing", path=str(self.path))
            return None

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceFailure(f"Cannot read {self.path}: {e}") from e

        try:
            record = document_to_record(json.loads(raw))
        except (json.JSONDecodeError, StructuralCacheMismatch) as e:
            log.warning("cache_file_discarded", path=str(self.path), reason=str(e))
            self._discard()
            return None

        if record.source is SourceKind.FALLBACK:
            log.warning("cache_file_discarded", path=str(self.path), reason="fallback")
            self._discard()
            return None
        return record

    def save(self, record: CachedValue[ScheduleSnapshot]) -> None:
        if record.source is SourceKind.FALLBACK:
            raise PersistenceFailure("Refusing to persist a fallback schedule")
        try:
            _atomic_write_json(self.path, snapshot_to_document(record.value, record.stored_at))
        except OSError as e:
            raise PersistenceFailure(f"Cannot write {self.path}: {e}") from e
        log.info("cache_file_saved", path=str(self.path))

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceFailure(f"Cannot remove {self.path}: {e}") from e

    def _discard(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
            log.info("cache_file_removed", path=str(self.path))
        except OSError as e:
            log.error("cache_file_remove_failed", path=str(self.path), error=str(e))
