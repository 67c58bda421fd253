"""ClientCacheMirror - the client-side copy of the schedule cache contract.

The client keeps its own TTL-bounded copy of the /schedule-processed payload
in local storage:

  get():  fresh local copy  -> return it now, refresh in a background thread,
                               notify subscribers when the new copy lands
          no fresh copy     -> blocking fetch, store, return
          fetch fails       -> expired local copy if there is one, else raise
  force_refresh():          -> blocking fetch, store, return

A server fallback payload is stored only while there is no real copy.
"""

import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone

import requests

from src.court_schedule.cache.local_storage import LocalStorage, LocalStorageRecordStore
from src.court_schedule.cache.ttl import Clock, TTLCache
from src.court_schedule.config import ServiceConfig
from src.court_schedule.errors import ApiRequestError, ScheduleUnavailable
from src.court_schedule.logging import get_logger
from src.court_schedule.models import SourceKind

log = get_logger(__name__)

Subscriber = Callable[[dict], None]


class ScheduleApiClient:
    """Thin requests wrapper around the schedule API."""

    def __init__(
        self,
        base_url: str,
        *,
        path: str = "/schedule-processed",
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = base_url.rstrip("/") + path
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self) -> dict:
        """GET the schedule payload.

        Raises:
            ApiRequestError: Network error, non-2xx status or a non-object body.
        """
        try:
            resp = self.session.get(self.url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiRequestError(f"Schedule API unreachable: {e}") from e

        if resp.status_code != 200:
            raise ApiRequestError(f"Schedule API returned HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise ApiRequestError(f"Schedule API returned invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ApiRequestError("Schedule API returned a non-object payload")
        return payload


class ClientCacheMirror:
    """Local TTL cache layered over the schedule API."""

    def __init__(self, api: ScheduleApiClient, cache: TTLCache[dict]) -> None:
        self.api = api
        self.cache = cache
        self._subscribers: list[Subscriber] = []
        self._subscribers_lock = threading.Lock()
        self._background: threading.Thread | None = None
        self._background_lock = threading.Lock()
        self.cache.load()

    @classmethod
    def from_config(cls, config: ServiceConfig, *, clock: Clock = time.time) -> "ClientCacheMirror":
        api = ScheduleApiClient(config.api_base_url, timeout=config.client_request_timeout)
        store = LocalStorageRecordStore(LocalStorage(config.client_storage_path))
        cache: TTLCache[dict] = TTLCache(
            store, config.client_ttl_seconds, clock=clock, name="client"
        )
        return cls(api, cache)

    def get(self) -> dict:
        """Return the schedule payload, preferring the local copy when fresh."""
        record = self.cache.peek()
        if record is not None and self.cache.is_valid(record):
            log.debug("client_cache_hit", age_minutes=self._age_minutes())
            self.refresh_in_background()
            return record.value

        try:
            payload, _ = self._fetch_and_store()
            return payload
        except ApiRequestError as e:
            if record is not None:
                log.warning("client_serving_expired_copy", error=str(e))
                return record.value
            raise ScheduleUnavailable(f"No schedule available: {e}") from e

    def force_refresh(self) -> dict:
        """Blocking fetch that ignores local freshness.

        Raises:
            ApiRequestError: The API call failed.
        """
        log.info("client_force_refresh")
        payload, _ = self._fetch_and_store()
        return payload

    def _fetch_and_store(self) -> tuple[dict, bool]:
        """Fetch the payload and store it.

        A fallback payload never replaces a real local copy; the local copy
        is returned instead.

        Returns:
            (payload to serve, whether it was stored)
        """
        payload = self.api.fetch()
        source = _source_of(payload)
        current = self.cache.peek()
        if (
            source is SourceKind.FALLBACK
            and current is not None
            and current.source is not SourceKind.FALLBACK
        ):
            log.warning("client_fallback_not_stored", kept_source=current.source.value)
            return current.value, False
        self.cache.put(payload, source)
        return payload, True

    def refresh_in_background(self) -> threading.Thread:
        """Start (or reuse) a daemon thread that refreshes and notifies."""
        with self._background_lock:
            if self._background is not None and self._background.is_alive():
                return self._background
            self._background = threading.Thread(
                target=self._background_refresh, name="schedule-refresh", daemon=True
            )
            self._background.start()
            return self._background

    def _background_refresh(self) -> None:
        try:
            payload, stored = self._fetch_and_store()
        except ApiRequestError as e:
            log.warning("client_background_refresh_failed", error=str(e))
            return
        if not stored:
            return
        log.debug("client_background_refresh_done")
        self._notify(payload)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register an update observer; returns a function that unregisters it."""
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, payload: dict) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(payload)
            except Exception:
                # One broken observer must not starve the others
                log.exception("client_subscriber_failed")

    def clear_expired(self) -> None:
        record = self.cache.peek()
        if record is not None and not self.cache.is_valid(record):
            self.cache.clear()
            log.info("client_expired_cache_cleared")

    def _age_minutes(self) -> int | None:
        record = self.cache.peek()
        if record is None:
            return None
        return int(record.age_seconds(self.cache.clock()) // 60)

    def status(self) -> dict:
        record = self.cache.peek()
        last_updated = None
        if record is not None:
            last_updated = datetime.fromtimestamp(record.stored_at, tz=timezone.utc).isoformat()
        return {
            "has_data": record is not None,
            "is_valid": self.cache.is_valid(record),
            "age_minutes": self._age_minutes(),
            "last_updated": last_updated,
        }


def _source_of(payload: dict) -> SourceKind:
    metadata = payload.get("metadata")
    if isinstance(metadata, dict) and metadata.get("source") == SourceKind.FALLBACK.value:
        return SourceKind.FALLBACK
    return SourceKind.FRESH
