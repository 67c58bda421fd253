from src.court_schedule.cache.file_store import JsonFileRecordStore
from src.court_schedule.cache.local_storage import LocalStorage, LocalStorageRecordStore
from src.court_schedule.cache.ttl import CachedValue, RecordStore, TTLCache

__all__ = [
    "CachedValue",
    "JsonFileRecordStore",
    "LocalStorage",
    "LocalStorageRecordStore",
    "RecordStore",
    "TTLCache",
]
