"""HTTP API serving the cached court schedule.

Endpoints:
  GET /                    service info
  GET /schedule-processed  day-grouped schedule (cached, falls back)
  GET /schedule-data       raw worksheet rows (cached, falls back)
  GET /schedule.csv        forces a download and returns the workbook as-is

Schedule reads always answer 200; a fallback payload says so in
metadata.source. Only /schedule.csv reports acquisition failure as 500.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response

from src.court_schedule.config import ServiceConfig
from src.court_schedule.errors import AcquisitionFailure
from src.court_schedule.logging import get_logger
from src.court_schedule.projector import group_by_day
from src.court_schedule.server_cache import ServedSchedule, ServerCache

log = get_logger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def processed_payload(served: ServedSchedule) -> dict:
    snapshot = served.snapshot
    return {
        "success": not served.is_fallback,
        "data": group_by_day(snapshot.entries, snapshot.days),
        "days": [day.model_dump(mode="json") for day in snapshot.days],
        "metadata": served.metadata(),
    }


def raw_payload(served: ServedSchedule) -> dict:
    snapshot = served.snapshot
    return {
        "success": not served.is_fallback,
        # The fallback template has no worksheet rows; hand out its grouped view
        "data": snapshot.raw_rows if not served.is_fallback else group_by_day(snapshot.entries, snapshot.days),
        "days": [day.model_dump(mode="json") for day in snapshot.days],
        "metadata": served.metadata(),
    }


def create_app(
    cache: ServerCache,
    config: ServiceConfig,
    *,
    background_refresh: bool = True,
) -> FastAPI:
    """Build the API around a ServerCache.

    The lifespan loads the persisted cache and, unless disabled, runs the
    periodic refresh for as long as the app is up.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cache.load()
        if background_refresh:
            cache.start_background_refresh()
        log.info(
            "api_started",
            cache_valid=cache.is_valid(),
            ttl_seconds=cache.cache.ttl_seconds,
            background_refresh=background_refresh,
        )
        yield
        await cache.stop_background_refresh()
        log.info("api_stopped")

    app = FastAPI(title="Court Schedule API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST"],
        allow_credentials=True,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.get("/")
    async def index() -> dict:
        return {
            "message": "Court Schedule API",
            "version": "1.0.0",
            "endpoints": {
                "/schedule-processed": "Get processed schedule data",
                "/schedule-data": "Get raw schedule data (legacy)",
                "/schedule.csv": "Download the current schedule workbook",
            },
        }

    @app.get("/schedule-processed")
    async def schedule_processed() -> dict:
        served = await cache.get()
        log.info(
            "schedule_served",
            endpoint="processed",
            source=served.source.value,
            stale=served.stale,
        )
        return processed_payload(served)

    @app.get("/schedule-data")
    async def schedule_data() -> dict:
        served = await cache.get()
        log.info("schedule_served", endpoint="raw", source=served.source.value, stale=served.stale)
        return raw_payload(served)

    @app.get("/schedule.csv")
    async def schedule_workbook() -> Response:
        log.info("workbook_download_requested")
        try:
            data = await cache.fetch_workbook()
        except AcquisitionFailure as e:
            log.error("workbook_download_failed", error=str(e))
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "Failed to generate the Excel file."},
            )
        return Response(
            content=data,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{config.workbook_file_name}"'},
        )

    return app
