"""Projection of a decoded grid into schedule entries and API views."""

from src.court_schedule.grid import DecodedGrid, Grid
from src.court_schedule.layout import (
    EXCLUDED_SUBSTRINGS,
    FIRST_DATA_ROW,
    MAX_LABEL_LENGTH,
    SEASON_BANNERS,
    category_for_color,
    layout_for_court_count,
)
from src.court_schedule.models import (
    ActivityCategory,
    DaySegment,
    RawCell,
    ScheduleEntry,
)


def has_content(value: str) -> bool:
    """True when a cell's text is a booking rather than blank or boilerplate."""
    text = value.strip()
    if not text or len(value) >= MAX_LABEL_LENGTH:
        return False
    return not any(marker in value for marker in EXCLUDED_SUBSTRINGS)


def classify_cell(cell: RawCell) -> ActivityCategory:
    """Category of a cell. Content with an unknown color is OTHER, never AVAILABLE."""
    if not has_content(cell.value):
        return ActivityCategory.AVAILABLE
    return category_for_color(cell.fill_color)


def project_schedule(grid: Grid, decoded: DecodedGrid) -> list[ScheduleEntry]:
    """One entry per (day, time slot, court), ordered day, time, court.

    The divider column of each layout is skipped entirely.
    """
    entries: list[ScheduleEntry] = []
    for day in decoded.days:
        layout = layout_for_court_count(day.court_count)
        positions = layout.court_positions()
        for slot in decoded.time_slots:
            for position in positions:
                cell = grid.cell_or_empty(slot.row_index, day.start_column + position)
                category = classify_cell(cell)
                booked = category is not ActivityCategory.AVAILABLE
                entries.append(
                    ScheduleEntry(
                        day=day.label,
                        time=slot.time_label,
                        court=layout.court_names[position],
                        activity_category=category,
                        label=cell.value.strip() if booked else "",
                        is_available=not booked,
                        fill_color=cell.fill_color if booked else "",
                    )
                )
    return entries


def group_by_day(entries: list[ScheduleEntry], days: list[DaySegment]) -> dict[str, dict]:
    """Day-indexed view served by /schedule-processed.

    {"0": {"dayName": ..., "timeSlots": [{"time": ..., "courts": [...]}]}}
    """
    by_label: dict[str, dict[str, list[dict]]] = {day.label: {} for day in days}
    for entry in entries:
        slots = by_label.setdefault(entry.day, {})
        slots.setdefault(entry.time, []).append(
            {
                "court": entry.court,
                "value": entry.label,
                "sportType": entry.activity_category.value,
                "backgroundColor": entry.fill_color,
                "hasContent": not entry.is_available,
            }
        )

    processed: dict[str, dict] = {}
    for day in days:
        processed[str(day.day_index)] = {
            "dayName": day.label,
            "timeSlots": [
                {"time": time, "courts": courts}
                for time, courts in by_label.get(day.label, {}).items()
            ],
        }
    return processed


def raw_rows(grid: Grid) -> list[list[dict]]:
    """Legacy cell-by-cell view served by /schedule-data.

    Cell text is kept as-is except for season banners; sportType carries
    the classification.
    """
    rows = []
    for row_index in range(FIRST_DATA_ROW, grid.height + 1):
        rows.append([_raw_cell_view(cell) for cell in grid.row(row_index)])
    return rows


def _raw_cell_view(cell: RawCell) -> dict:
    if any(banner in cell.value for banner in SEASON_BANNERS):
        return {"value": "", "sportType": ActivityCategory.AVAILABLE.value, "backgroundColor": ""}
    return {
        "value": cell.value,
        "sportType": classify_cell(cell).value,
        "backgroundColor": cell.fill_color,
    }
