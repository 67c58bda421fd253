"""Built-in schedule template served when no real schedule can be produced."""

from datetime import datetime, timezone

from src.court_schedule.grid import day_start_column, format_clock, parse_day_label
from src.court_schedule.layout import select_layout
from src.court_schedule.models import (
    ActivityCategory,
    DaySegment,
    ScheduleEntry,
    ScheduleMetadata,
    ScheduleSnapshot,
    SourceKind,
)

FALLBACK_DAY_LABELS: tuple[str, ...] = (
    "Friday August 29",
    "Saturday August 30",
    "Sunday August 31",
    "Monday September 1",
    "Tuesday September 2",
    "Wednesday September 3",
)
# Hourly, 6:00 AM through 9:00 PM
FALLBACK_TIMES: tuple[str, ...] = tuple(format_clock(hour * 60) for hour in range(6, 22))

FALLBACK_MESSAGE = "Schedule workbook could not be processed - showing fallback schedule"


def build_fallback_snapshot(now: datetime | None = None, message: str = FALLBACK_MESSAGE) -> ScheduleSnapshot:
    """Every court open at every hour, marked source=fallback."""
    days: list[DaySegment] = []
    entries: list[ScheduleEntry] = []
    for index, label in enumerate(FALLBACK_DAY_LABELS):
        layout = select_layout(label)
        weekday, month, day_of_month = parse_day_label(label)
        days.append(
            DaySegment(
                day_index=index,
                label=label,
                start_column=day_start_column(index),
                court_count=layout.court_count,
                weekday=weekday,
                month=month,
                day_of_month=day_of_month,
            )
        )
        for time_label in FALLBACK_TIMES:
            for position in layout.court_positions():
                entries.append(
                    ScheduleEntry(
                        day=label,
                        time=time_label,
                        court=layout.court_names[position],
                        activity_category=ActivityCategory.AVAILABLE,
                        label="",
                        is_available=True,
                    )
                )

    return ScheduleSnapshot(
        entries=entries,
        days=days,
        raw_rows=[],
        metadata=ScheduleMetadata(
            last_updated=now or datetime.now(timezone.utc),
            source=SourceKind.FALLBACK,
            total_days=len(days),
            message=message,
        ),
    )
