"""Generic time-to-live record holder shared by the server cache and the client mirror.

A TTLCache owns at most one CachedValue. Freshness is a pure function of the
clock; persistence goes through a RecordStore so the same contract runs over
a JSON file (server) or a browser-style key/value store (client).
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from src.court_schedule.errors import PersistenceFailure
from src.court_schedule.logging import get_logger
from src.court_schedule.models import SourceKind

log = get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CachedValue(Generic[T]):
    value: T
    stored_at: float  # epoch seconds
    source: SourceKind

    def age_seconds(self, now: float) -> float:
        return now - self.stored_at


class RecordStore(Protocol[T]):
    """Durable storage for one CachedValue.

    load() returns None when nothing usable is stored; it raises
    PersistenceFailure on read errors. save() raises PersistenceFailure.
    """

    def load(self) -> CachedValue[T] | None: ...

    def save(self, record: CachedValue[T]) -> None: ...

    def clear(self) -> None: ...


class TTLCache(Generic[T]):
    """Single-record cache with time-based validity.

    The record is replaced as a whole under a lock, so a reader sees either
    the old record or the new one.
    """

    def __init__(
        self,
        store: RecordStore[T],
        ttl_seconds: float,
        *,
        clock: Clock = time.time,
        name: str = "cache",
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.name = name
        self._record: CachedValue[T] | None = None
        self._lock = threading.Lock()

    def peek(self) -> CachedValue[T] | None:
        """Current record regardless of age."""
        with self._lock:
            return self._record

    def is_valid(self, record: CachedValue[T] | None = None) -> bool:
        """True iff a record exists and ``now - stored_at < ttl``."""
        if record is None:
            record = self.peek()
        if record is None:
            return False
        return record.age_seconds(self.clock()) < self.ttl_seconds

    def get_valid(self) -> CachedValue[T] | None:
        record = self.peek()
        return record if self.is_valid(record) else None

    def put(self, value: T, source: SourceKind, *, persist: bool = True) -> CachedValue[T]:
        """Swap in a new record and persist it best-effort.

        A persistence failure is logged; the in-memory record is kept.
        """
        record = CachedValue(value=value, stored_at=self.clock(), source=source)
        with self._lock:
            self._record = record
        if persist:
            try:
                self.store.save(record)
            except PersistenceFailure as e:
                log.error("cache_persist_failed", cache=self.name, error=str(e))
        return record

    def load(self) -> bool:
        """Populate the in-memory record from the store.

        Returns:
            True if a record was loaded. Read failures leave the cache absent.
        """
        try:
            record = self.store.load()
        except PersistenceFailure as e:
            log.warning("cache_load_failed", cache=self.name, error=str(e))
            record = None
        with self._lock:
            self._record = record
        if record is not None:
            log.info(
                "cache_loaded",
                cache=self.name,
                age_seconds=round(record.age_seconds(self.clock()), 1),
                source=record.source.value,
            )
        return record is not None

    def clear(self) -> None:
        with self._lock:
            self._record = None
        try:
            self.store.clear()
        except PersistenceFailure as e:
            log.warning("cache_clear_failed", cache=self.name, error=str(e))
