"""ServerCache - the authoritative, freshness-bounded schedule cache.

States of the single cached record:

  EMPTY   --refresh ok-->          VALID
  EMPTY   --refresh fails-->       VALID(existingFile) if a workbook is on disk,
                                   otherwise FALLBACK (served, never stored)
  VALID   --within TTL-->          VALID (served as source=cache)
  VALID   --stale read/timer-->    REFRESHING --ok--> VALID (replaced whole)
                                              --fails--> previous record, stale

Acquisition and decode errors never reach a reader; they are logged and the
best available schedule is served instead. At most one refresh runs at a
time: concurrent callers join the running one.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from src.court_schedule.acquire import SourceAcquirer, WorkbookFile, fetch_with_timeout
from src.court_schedule.cache.file_store import JsonFileRecordStore
from src.court_schedule.cache.ttl import CachedValue, Clock, TTLCache
from src.court_schedule.config import ServiceConfig
from src.court_schedule.errors import AcquisitionFailure, DecodeFailure
from src.court_schedule.fallback import build_fallback_snapshot
from src.court_schedule.grid import decode_grid
from src.court_schedule.logging import get_logger
from src.court_schedule.models import ScheduleMetadata, ScheduleSnapshot, SourceKind
from src.court_schedule.projector import project_schedule, raw_rows
from src.court_schedule.workbook import read_grid

log = get_logger(__name__)


def build_snapshot(data: bytes, source: SourceKind, now: datetime) -> ScheduleSnapshot:
    """Workbook bytes -> grid -> days/time slots -> entries.

    Raises:
        DecodeFailure: The workbook is unreadable or has no day headers.
    """
    grid = read_grid(data)
    decoded = decode_grid(grid)
    entries = project_schedule(grid, decoded)
    rows = raw_rows(grid)
    return ScheduleSnapshot(
        entries=entries,
        days=decoded.days,
        raw_rows=rows,
        metadata=ScheduleMetadata(
            last_updated=now,
            source=source,
            total_rows=len(rows),
            total_columns=len(rows[0]) if rows else 0,
            total_days=len(decoded.days),
        ),
    )


@dataclass(frozen=True)
class ServedSchedule:
    """A snapshot plus how this particular read obtained it."""

    snapshot: ScheduleSnapshot
    source: SourceKind
    stale: bool = False

    @property
    def is_fallback(self) -> bool:
        return self.source is SourceKind.FALLBACK

    def metadata(self) -> dict:
        """Wire-format metadata; source reflects this read, not the record's origin."""
        stored = self.snapshot.metadata
        last_updated = stored.last_updated.isoformat()
        metadata = {
            "lastUpdated": last_updated,
            "lastUpdatedAt": last_updated,
            "source": self.source.value,
            "origin": stored.source.value,
            "stale": self.stale,
            "totalRows": stored.total_rows,
            "totalColumns": stored.total_columns,
            "totalDays": stored.total_days,
        }
        if stored.message:
            metadata["message"] = stored.message
        return metadata


class ServerCache:
    """Get-or-refresh cache over the workbook acquisition pipeline."""

    def __init__(
        self,
        acquirer: SourceAcquirer,
        cache: TTLCache[ScheduleSnapshot],
        *,
        workbook_file: WorkbookFile | None = None,
        acquisition_timeout: float = 180.0,
    ) -> None:
        self.acquirer = acquirer
        self.cache = cache
        self.workbook_file = workbook_file
        self.acquisition_timeout = acquisition_timeout
        self._inflight: asyncio.Task | None = None
        self._background: asyncio.Task | None = None

    @classmethod
    def from_config(
        cls, config: ServiceConfig, acquirer: SourceAcquirer, *, clock: Clock = time.time
    ) -> "ServerCache":
        cache: TTLCache[ScheduleSnapshot] = TTLCache(
            JsonFileRecordStore(config.cache_path),
            config.cache_ttl_seconds,
            clock=clock,
            name="server",
        )
        return cls(
            acquirer,
            cache,
            workbook_file=WorkbookFile(config.workbook_path),
            acquisition_timeout=config.acquisition_timeout_seconds,
        )

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.cache.clock(), tz=timezone.utc)

    def load(self) -> bool:
        """Load the persisted record at start-up (invalid files are discarded)."""
        return self.cache.load()

    def is_valid(self) -> bool:
        return self.cache.is_valid()

    @property
    def refresh_in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def get(self) -> ServedSchedule:
        """Serve the cached schedule, refreshing it first when stale.

        A stale reader that finds a refresh already running is answered
        with the previous record instead of waiting; only a cold cache
        makes readers wait.
        """
        record = self.cache.peek()
        if record is not None and self.cache.is_valid(record):
            return ServedSchedule(record.value, SourceKind.CACHE)
        if record is not None and self.refresh_in_flight:
            log.debug("serving_stale_during_refresh")
            return ServedSchedule(record.value, SourceKind.CACHE, stale=True)

        fresh = await self.refresh()
        return self._serve_after_refresh(fresh)

    async def force_refresh(self) -> ServedSchedule:
        """Refresh regardless of age; failures still keep the previous record."""
        fresh = await self.refresh()
        return self._serve_after_refresh(fresh)

    def _serve_after_refresh(self, fresh: CachedValue[ScheduleSnapshot] | None) -> ServedSchedule:
        if fresh is not None:
            return ServedSchedule(fresh.value, fresh.source)

        current = self.cache.peek()
        if current is not None:
            return ServedSchedule(current.value, SourceKind.CACHE, stale=not self.cache.is_valid(current))

        log.warning("serving_fallback_schedule")
        snapshot = build_fallback_snapshot(self._now())
        return ServedSchedule(snapshot, SourceKind.FALLBACK)

    async def refresh(self) -> CachedValue[ScheduleSnapshot] | None:
        """Run (or join) the single in-flight refresh.

        Returns:
            The new record, or None if this refresh failed.
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._refresh_once())
        # A client disconnect must not cancel the shared refresh
        return await asyncio.shield(self._inflight)

    async def _refresh_once(self) -> CachedValue[ScheduleSnapshot] | None:
        started = time.monotonic()
        log.info("cache_refresh_started")
        try:
            data = await fetch_with_timeout(self.acquirer, self.acquisition_timeout)
        except AcquisitionFailure as e:
            log.warning("acquisition_failed", error=str(e), type=type(e).__name__)
            return await self._cold_start_from_workbook_file()

        try:
            snapshot = await asyncio.to_thread(build_snapshot, data, SourceKind.FRESH, self._now())
        except DecodeFailure as e:
            log.error("decode_failed", reason=e.reason, detail=e.detail)
            return await self._cold_start_from_workbook_file()
        except Exception:
            log.exception("decode_crashed")
            return await self._cold_start_from_workbook_file()

        self._save_workbook(data)
        record = self.cache.put(snapshot, SourceKind.FRESH)
        log.info(
            "cache_refreshed",
            source=record.source.value,
            days=len(snapshot.days),
            entries=len(snapshot.entries),
            duration_seconds=round(time.monotonic() - started, 2),
        )
        return record

    async def _cold_start_from_workbook_file(self) -> CachedValue[ScheduleSnapshot] | None:
        """Decode the last downloaded workbook, but only when nothing is cached.

        A warm cache keeps its record: re-decoding an old file would reset
        its age without making it any newer.
        """
        if self.cache.peek() is not None:
            return None
        if self.workbook_file is None or not self.workbook_file.exists():
            return None

        try:
            data = self.workbook_file.read()
            snapshot = await asyncio.to_thread(
                build_snapshot, data, SourceKind.EXISTING_FILE, self._now()
            )
        except (OSError, DecodeFailure) as e:
            log.warning("existing_workbook_unusable", path=str(self.workbook_file.path), error=str(e))
            return None
        except Exception:
            log.exception("existing_workbook_crashed", path=str(self.workbook_file.path))
            return None

        record = self.cache.put(snapshot, SourceKind.EXISTING_FILE)
        log.info("cache_loaded_from_existing_workbook", path=str(self.workbook_file.path))
        return record

    def _save_workbook(self, data: bytes) -> None:
        if self.workbook_file is None:
            return
        try:
            self.workbook_file.write(data)
        except OSError as e:
            log.error("workbook_save_failed", path=str(self.workbook_file.path), error=str(e))

    async def fetch_workbook(self) -> bytes:
        """Force a fresh acquisition and return the workbook verbatim.

        Raises:
            AcquisitionFailure: The workbook could not be acquired.
        """
        data = await fetch_with_timeout(self.acquirer, self.acquisition_timeout)
        self._save_workbook(data)
        return data

    async def run_periodic_refresh(self, interval_seconds: float | None = None) -> None:
        """Refresh every interval (default: the TTL) regardless of traffic."""
        interval = interval_seconds or self.cache.ttl_seconds
        log.info("background_refresh_scheduled", interval_seconds=interval)
        while True:
            await asyncio.sleep(interval)
            try:
                record = await self.refresh()
            except Exception:
                log.exception("background_refresh_crashed")
                continue
            if record is None:
                log.warning("background_refresh_failed")

    def start_background_refresh(self, interval_seconds: float | None = None) -> asyncio.Task:
        if self._background is None or self._background.done():
            self._background = asyncio.create_task(self.run_periodic_refresh(interval_seconds))
        return self._background

    async def stop_background_refresh(self) -> None:
        if self._background is None:
            return
        self._background.cancel()
        try:
            await self._background
        except asyncio.CancelledError:
            pass
        self._background = None
