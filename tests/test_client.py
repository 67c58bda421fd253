import threading

import pytest
import requests

from src.court_schedule.cache.local_storage import (
    CACHE_KEY,
    CACHE_TIMESTAMP_KEY,
    LocalStorage,
    LocalStorageRecordStore,
)
from src.court_schedule.cache.ttl import TTLCache
from src.court_schedule.client import ClientCacheMirror, ScheduleApiClient
from src.court_schedule.errors import ApiRequestError, ScheduleUnavailable
from src.court_schedule.models import SourceKind


def _payload(version: int, source: str = "fresh") -> dict:
    return {"success": True, "data": {}, "days": [], "metadata": {"source": source, "version": version}}


class StubApi:
    """Replays results in order; the last one repeats."""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls = 0

    def fetch(self) -> dict:
        self.calls += 1
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


def _mirror(tmp_path, api, clock) -> ClientCacheMirror:
    store = LocalStorageRecordStore(LocalStorage(tmp_path / "client-storage.json"))
    return ClientCacheMirror(api, TTLCache(store, 1800, clock=clock, name="client"))


def test_cold_get_blocks_and_stores(tmp_path, clock) -> None:
    api = StubApi(_payload(1))
    mirror = _mirror(tmp_path, api, clock)

    assert mirror.get() == _payload(1)
    assert api.calls == 1

    storage = LocalStorage(tmp_path / "client-storage.json")
    assert storage.get_item(CACHE_KEY) is not None
    assert storage.get_item(CACHE_TIMESTAMP_KEY) == str(int(clock.now * 1000))


def test_fresh_get_returns_local_copy_then_notifies(tmp_path, clock) -> None:
    api = StubApi(_payload(1), _payload(2))
    mirror = _mirror(tmp_path, api, clock)
    mirror.get()

    updated = threading.Event()
    received = []

    def on_update(payload: dict) -> None:
        received.append(payload)
        updated.set()

    mirror.subscribe(on_update)
    clock.advance(60)

    assert mirror.get() == _payload(1)
    assert updated.wait(timeout=5)
    assert received == [_payload(2)]
    assert mirror.cache.peek().value == _payload(2)


def test_stale_get_fetches_before_returning(tmp_path, clock) -> None:
    api = StubApi(_payload(1), _payload(2))
    mirror = _mirror(tmp_path, api, clock)
    mirror.get()

    clock.advance(1800)
    assert mirror.get() == _payload(2)
    assert api.calls == 2


def test_failed_fetch_serves_expired_copy(tmp_path, clock) -> None:
    api = StubApi(_payload(1), ApiRequestError("HTTP 502"))
    mirror = _mirror(tmp_path, api, clock)
    mirror.get()

    clock.advance(7200)
    assert mirror.get() == _payload(1)


def test_failed_fetch_without_copy_raises(tmp_path, clock) -> None:
    mirror = _mirror(tmp_path, StubApi(ApiRequestError("unreachable")), clock)
    with pytest.raises(ScheduleUnavailable):
        mirror.get()


def test_force_refresh_bypasses_fresh_copy(tmp_path, clock) -> None:
    api = StubApi(_payload(1), _payload(2), ApiRequestError("HTTP 500"))
    mirror = _mirror(tmp_path, api, clock)
    mirror.get()

    assert mirror.force_refresh() == _payload(2)
    with pytest.raises(ApiRequestError):
        mirror.force_refresh()
    assert mirror.cache.peek().value == _payload(2)


def test_local_copy_survives_restart(tmp_path, clock) -> None:
    _mirror(tmp_path, StubApi(_payload(1)), clock).get()

    api = StubApi(ApiRequestError("offline"))
    restarted = _mirror(tmp_path, api, clock)
    assert restarted.status()["has_data"]
    assert restarted.cache.is_valid()
    assert restarted.cache.peek().value == _payload(1)


def test_missing_timestamp_invalidates_pair(tmp_path, clock) -> None:
    _mirror(tmp_path, StubApi(_payload(1)), clock).get()
    LocalStorage(tmp_path / "client-storage.json").remove_items(CACHE_TIMESTAMP_KEY)

    api = StubApi(_payload(2))
    restarted = _mirror(tmp_path, api, clock)
    assert restarted.cache.peek() is None
    assert restarted.get() == _payload(2)
    assert api.calls == 1


def test_fallback_payload_recorded_as_fallback(tmp_path, clock) -> None:
    mirror = _mirror(tmp_path, StubApi(_payload(1, source="fallback")), clock)
    mirror.get()
    assert mirror.cache.peek().source is SourceKind.FALLBACK


def test_broken_subscriber_does_not_starve_others(tmp_path, clock) -> None:
    mirror = _mirror(tmp_path, StubApi(_payload(1)), clock)
    received = []

    def broken(payload: dict) -> None:
        raise RuntimeError("render failed")

    mirror.subscribe(broken)
    unsubscribe = mirror.subscribe(received.append)
    mirror._notify(_payload(1))
    assert received == [_payload(1)]

    unsubscribe()
    mirror._notify(_payload(2))
    assert received == [_payload(1)]


def test_background_failure_keeps_copy(tmp_path, clock) -> None:
    api = StubApi(_payload(1), ApiRequestError("HTTP 503"))
    mirror = _mirror(tmp_path, api, clock)
    mirror.get()

    received = []
    mirror.subscribe(received.append)
    mirror.refresh_in_background().join(timeout=5)

    assert received == []
    assert mirror.cache.peek().value == _payload(1)


def test_fallback_never_replaces_real_copy(tmp_path, clock) -> None:
    api = StubApi(_payload(1), _payload(2, source="fallback"))
    mirror = _mirror(tmp_path, api, clock)
    mirror.get()

    assert mirror.force_refresh() == _payload(1)
    assert api.calls == 2
    assert mirror.cache.peek().source is SourceKind.FRESH

    restarted = _mirror(tmp_path, StubApi(ApiRequestError("offline")), clock)
    assert restarted.cache.peek().value == _payload(1)


def test_stale_get_keeps_real_copy_over_fallback(tmp_path, clock) -> None:
    api = StubApi(_payload(1), _payload(2, source="fallback"))
    mirror = _mirror(tmp_path, api, clock)
    mirror.get()

    clock.advance(1800)
    assert mirror.get() == _payload(1)
    assert mirror.cache.peek().value == _payload(1)


def test_background_fallback_not_stored_or_notified(tmp_path, clock) -> None:
    api = StubApi(_payload(1), _payload(2, source="fallback"))
    mirror = _mirror(tmp_path, api, clock)
    mirror.get()

    received = []
    mirror.subscribe(received.append)
    mirror.refresh_in_background().join(timeout=5)

    assert api.calls == 2
    assert received == []
    assert mirror.cache.peek().value == _payload(1)


def test_fallback_replaces_fallback(tmp_path, clock) -> None:
    api = StubApi(_payload(1, source="fallback"), _payload(2, source="fallback"))
    mirror = _mirror(tmp_path, api, clock)
    mirror.get()

    assert mirror.force_refresh() == _payload(2, source="fallback")
    assert mirror.cache.peek().value == _payload(2, source="fallback")


def test_clear_expired(tmp_path, clock) -> None:
    mirror = _mirror(tmp_path, StubApi(_payload(1)), clock)
    mirror.get()

    mirror.clear_expired()
    assert mirror.cache.peek() is not None

    clock.advance(1800)
    mirror.clear_expired()
    assert mirror.cache.peek() is None
    assert LocalStorage(tmp_path / "client-storage.json").get_item(CACHE_KEY) is None


def test_status(tmp_path, clock) -> None:
    mirror = _mirror(tmp_path, StubApi(_payload(1)), clock)
    assert mirror.status() == {
        "has_data": False,
        "is_valid": False,
        "age_minutes": None,
        "last_updated": None,
    }

    mirror.get()
    clock.advance(125)
    status = mirror.status()
    assert status["has_data"] is True
    assert status["is_valid"] is True
    assert status["age_minutes"] == 2
    assert status["last_updated"] == "2023-11-14T22:13:20+00:00"


class StubResponse:
    def __init__(self, status_code: int, body=None) -> None:
        self.status_code = status_code
        self.body = body

    def json(self):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class StubSession:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.requests: list[tuple[str, float]] = []

    def get(self, url: str, timeout: float):
        self.requests.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def test_api_client_fetch() -> None:
    session = StubSession(StubResponse(200, _payload(1)))
    client = ScheduleApiClient("http://localhost:3000/", timeout=5.0, session=session)

    assert client.fetch() == _payload(1)
    assert session.requests == [("http://localhost:3000/schedule-processed", 5.0)]


@pytest.mark.parametrize(
    "session",
    [
        StubSession(error=requests.ConnectionError("refused")),
        StubSession(StubResponse(500, {"success": False})),
        StubSession(StubResponse(200, ValueError("Expecting value"))),
        StubSession(StubResponse(200, [1, 2, 3])),
    ],
    ids=["unreachable", "server-error", "invalid-json", "not-an-object"],
)
def test_api_client_errors(session) -> None:
    client = ScheduleApiClient("http://localhost:3000", session=session)
    with pytest.raises(ApiRequestError):
        client.fetch()
