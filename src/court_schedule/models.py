"""Pydantic models for schedule data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ActivityCategory(str, Enum):
    """Classification of a court slot, derived from the cell's fill color."""

    AVAILABLE = "available"
    TENNIS = "tennis"
    PICKLEBALL = "pickleball"
    TENTATIVE = "tentative"
    OTHER = "other"


class SourceKind(str, Enum):
    """Where a served schedule came from."""

    FRESH = "fresh"
    EXISTING_FILE = "existingFile"
    FALLBACK = "fallback"
    CACHE = "cache"


class RawCell(BaseModel):
    """One worksheet cell: its text and its ARGB fill color ("" when none)."""

    model_config = ConfigDict(frozen=True)

    value: str = ""
    fill_color: str = ""


class DaySegment(BaseModel):
    """A day header and the block of court columns that follows it.

    start_column is the position of the first court column in the row;
    court_count is 7 during the summer layout and 5 afterwards.
    """

    model_config = ConfigDict(frozen=True)

    day_index: int
    label: str
    start_column: int
    court_count: int
    weekday: str | None = None  # "Friday", parsed from the label
    month: int | None = None
    day_of_month: int | None = None

    @property
    def end_column(self) -> int:
        """First column after this segment's courts."""
        return self.start_column + self.court_count


class TimeSlotRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    row_index: int  # worksheet row number
    time_label: str  # "6:30 AM"


class ScheduleEntry(BaseModel):
    """A single (day, time, court) slot of the schedule."""

    model_config = ConfigDict(frozen=True)

    day: str  # day header text, e.g. "Friday August 29"
    time: str  # "6:30 AM"
    court: str  # "Clay 1", "PB Ct 2", ...
    activity_category: ActivityCategory
    label: str  # cell text, e.g. "Ro/Je/Lo/Ha"; "" when available
    is_available: bool
    fill_color: str = ""


class ScheduleMetadata(BaseModel):
    last_updated: datetime
    source: SourceKind
    total_rows: int = 0
    total_columns: int = 0
    total_days: int = 0
    message: str | None = None
    stale: bool = False


class ScheduleSnapshot(BaseModel):
    """Everything the server serves for one decoded workbook."""

    entries: list[ScheduleEntry] = Field(default_factory=list)
    days: list[DaySegment] = Field(default_factory=list)
    raw_rows: list[list[dict]] = Field(default_factory=list)
    metadata: ScheduleMetadata
