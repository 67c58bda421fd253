import json

import pytest

from src.court_schedule.cache.local_storage import (
    CACHE_KEY,
    CACHE_TIMESTAMP_KEY,
    LocalStorage,
    LocalStorageRecordStore,
)
from src.court_schedule.cache.ttl import CachedValue
from src.court_schedule.errors import PersistenceFailure
from src.court_schedule.models import SourceKind

PAYLOAD = {"success": True, "processedData": {}, "metadata": {"source": "cache"}}


def test_storage_items(tmp_path) -> None:
    storage = LocalStorage(tmp_path / "storage.json")
    assert storage.get_item("a") is None

    storage.set_item("a", "1")
    storage.set_items({"b": "2", "c": "3"})
    assert storage.get_item("a") == "1"
    assert storage.get_item("c") == "3"

    storage.remove_items("a", "b", "missing")
    assert storage.get_item("a") is None
    assert storage.get_item("c") == "3"


def test_storage_unreadable_document(tmp_path) -> None:
    path = tmp_path / "storage.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(PersistenceFailure):
        LocalStorage(path).get_item("a")


def test_record_saved_as_key_pair(tmp_path) -> None:
    storage = LocalStorage(tmp_path / "storage.json")
    store = LocalStorageRecordStore(storage)
    store.save(CachedValue(value=PAYLOAD, stored_at=1_700_000_000.5, source=SourceKind.CACHE))

    assert json.loads(storage.get_item(CACHE_KEY)) == PAYLOAD
    assert storage.get_item(CACHE_TIMESTAMP_KEY) == "1700000000500"

    loaded = store.load()
    assert loaded.value == PAYLOAD
    assert loaded.stored_at == 1_700_000_000.5
    assert loaded.source is SourceKind.CACHE


@pytest.mark.parametrize("removed", [CACHE_KEY, CACHE_TIMESTAMP_KEY])
def test_half_a_pair_is_absent(tmp_path, removed) -> None:
    storage = LocalStorage(tmp_path / "storage.json")
    store = LocalStorageRecordStore(storage)
    store.save(CachedValue(value=PAYLOAD, stored_at=1_700_000_000.0, source=SourceKind.CACHE))

    storage.remove_items(removed)
    assert store.load() is None


def test_unparseable_pair_is_absent(tmp_path) -> None:
    storage = LocalStorage(tmp_path / "storage.json")
    storage.set_items({CACHE_KEY: "{oops", CACHE_TIMESTAMP_KEY: "1700000000000"})
    assert LocalStorageRecordStore(storage).load() is None

    storage.set_items({CACHE_KEY: "{}", CACHE_TIMESTAMP_KEY: "yesterday"})
    assert LocalStorageRecordStore(storage).load() is None


def test_unknown_source_reads_as_fresh(tmp_path) -> None:
    storage = LocalStorage(tmp_path / "storage.json")
    storage.set_items({CACHE_KEY: json.dumps({"data": []}), CACHE_TIMESTAMP_KEY: "0"})
    assert LocalStorageRecordStore(storage).load().source is SourceKind.FRESH


def test_clear_removes_both_keys(tmp_path) -> None:
    storage = LocalStorage(tmp_path / "storage.json")
    store = LocalStorageRecordStore(storage)
    store.save(CachedValue(value=PAYLOAD, stored_at=1.0, source=SourceKind.CACHE))
    store.clear()
    assert storage.get_item(CACHE_KEY) is None
    assert storage.get_item(CACHE_TIMESTAMP_KEY) is None
