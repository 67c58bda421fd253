"""Browser-style local storage for the client mirror.

LocalStorage mimics window.localStorage: string keys, string values, a
whole-document JSON file behind it. LocalStorageRecordStore keeps one cached
payload as two keys (the serialized payload and a millisecond timestamp),
read and written as a pair.
"""

import json
import os
import threading
import uuid
from contextlib import suppress
from pathlib import Path

from src.court_schedule.cache.ttl import CachedValue
from src.court_schedule.errors import PersistenceFailure
from src.court_schedule.logging import get_logger
from src.court_schedule.models import SourceKind

log = get_logger(__name__)

CACHE_KEY = "court_schedule_cache"
CACHE_TIMESTAMP_KEY = "court_schedule_timestamp"


class LocalStorage:
    """A tiny persistent string key/value store."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            items = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Cannot read {self.path}: {e}") from e
        if not isinstance(items, dict):
            raise PersistenceFailure(f"{self.path} is not a key/value document")
        return {str(k): str(v) for k, v in items.items()}

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".tmp-{self.path.name}-{uuid.uuid4().hex}")
        try:
            tmp_path.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            with suppress(FileNotFoundError):
                tmp_path.unlink()
            raise PersistenceFailure(f"Cannot write {self.path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set_items(self, items: dict[str, str]) -> None:
        """Set several keys in one write."""
        with self._lock:
            current = self._read()
            current.update(items)
            self._write(current)

    def set_item(self, key: str, value: str) -> None:
        self.set_items({key: value})

    def remove_items(self, *keys: str) -> None:
        with self._lock:
            current = self._read()
            for key in keys:
                current.pop(key, None)
            self._write(current)


class LocalStorageRecordStore:
    """RecordStore over a LocalStorage payload/timestamp key pair."""

    def __init__(
        self,
        storage: LocalStorage,
        *,
        cache_key: str = CACHE_KEY,
        timestamp_key: str = CACHE_TIMESTAMP_KEY,
    ) -> None:
        self.storage = storage
        self.cache_key = cache_key
        self.timestamp_key = timestamp_key

    def load(self) -> CachedValue[dict] | None:
        raw = self.storage.get_item(self.cache_key)
        timestamp = self.storage.get_item(self.timestamp_key)
        if raw is None or timestamp is None:
            return None

        try:
            payload = json.loads(raw)
            stored_at = int(timestamp) / 1000
        except (json.JSONDecodeError, ValueError) as e:
            log.warning("local_cache_unreadable", error=str(e))
            return None
        if not isinstance(payload, dict):
            return None
        return CachedValue(value=payload, stored_at=stored_at, source=_payload_source(payload))

    def save(self, record: CachedValue[dict]) -> None:
        self.storage.set_items(
            {
                self.cache_key: json.dumps(record.value, ensure_ascii=False),
                self.timestamp_key: str(int(record.stored_at * 1000)),
            }
        )

    def clear(self) -> None:
        self.storage.remove_items(self.cache_key, self.timestamp_key)


def _payload_source(payload: dict) -> SourceKind:
    metadata = payload.get("metadata")
    source = metadata.get("source") if isinstance(metadata, dict) else None
    try:
        return SourceKind(source)
    except ValueError:
        return SourceKind.FRESH
