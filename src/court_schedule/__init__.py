"""Court schedule service.

Downloads the court schedule workbook from its online viewer, decodes the
day/time/court grid into schedule entries, and serves them through a
freshness-bounded server cache with a client-side mirror.
"""

from src.court_schedule.client import ClientCacheMirror, ScheduleApiClient
from src.court_schedule.grid import Grid, decode_grid
from src.court_schedule.models import (
    ActivityCategory,
    DaySegment,
    RawCell,
    ScheduleEntry,
    SourceKind,
    TimeSlotRow,
)
from src.court_schedule.projector import project_schedule
from src.court_schedule.server_cache import ServedSchedule, ServerCache

__all__ = [
    "ActivityCategory",
    "ClientCacheMirror",
    "DaySegment",
    "Grid",
    "RawCell",
    "ScheduleApiClient",
    "ScheduleEntry",
    "ServedSchedule",
    "ServerCache",
    "SourceKind",
    "TimeSlotRow",
    "decode_grid",
    "project_schedule",
]
