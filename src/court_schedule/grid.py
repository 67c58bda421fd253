"""Grid decoding: day headers and time-slot rows of the schedule worksheet.

Worksheet shape (summer 2025 workbook):

  row 1        day headers ("FRIDAY AUGUST 29", "SATURDAY AUGUST 30", ...)
  rows 2-4     banners, court names, season titles
  row 5..36    one row per half hour, 6:30 AM .. 9:30 PM
  columns      per day: a time column, then 7 (summer) or 5 (fall) courts

Nothing in this module does I/O; workbook.py builds the Grid from bytes.
"""

import re
from dataclasses import dataclass

from src.court_schedule.errors import DecodeFailure
from src.court_schedule.layout import (
    ANCHOR_ROW,
    DAY_COLUMN_WIDTH,
    DAY_END_MINUTES,
    DAY_START_MINUTES,
    EXPLICIT_DAY_OFFSETS,
    HEADER_ROW,
    MAX_DAY_SLOTS,
    SLOT_MINUTES,
    select_layout,
)
from src.court_schedule.logging import get_logger
from src.court_schedule.models import DaySegment, RawCell, TimeSlotRow

log = get_logger(__name__)

_EMPTY_CELL = RawCell()

_WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)
_WEEKDAY_PATTERN = re.compile(
    r"\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|mon|tues?|wed|thu(?:rs?)?|fri|sat|sun)\b",
    re.IGNORECASE,
)
_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}  # fmt: skip
_MONTH_DAY_PATTERN = re.compile(
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s+(\d{1,2})\b",
    re.IGNORECASE,
)
_NUMERIC_DATE_PATTERN = re.compile(r"\b(\d{1,2})/(\d{1,2})\b")


class Grid:
    """Rectangular view over worksheet cells.

    Rows are addressed by 1-based worksheet row number; cells by their
    0-based position inside the row. Missing rows and short rows read as
    empty within the grid's width.
    """

    def __init__(self, rows: dict[int, list[RawCell]] | list[list[RawCell]]) -> None:
        if isinstance(rows, list):
            rows = {number: row for number, row in enumerate(rows, start=1)}
        self._rows = {number: list(row) for number, row in rows.items()}
        self.height = max(self._rows, default=0)
        self.width = max((len(row) for row in self._rows.values()), default=0)

    def cell(self, row: int, column: int) -> RawCell:
        """Read one cell, raising IndexError outside the grid's bounds."""
        if not 1 <= row <= self.height or not 0 <= column < self.width:
            raise IndexError(f"cell ({row}, {column}) outside {self.height}x{self.width} grid")
        cells = self._rows.get(row, [])
        return cells[column] if column < len(cells) else _EMPTY_CELL

    def cell_or_empty(self, row: int, column: int) -> RawCell:
        try:
            return self.cell(row, column)
        except IndexError:
            return _EMPTY_CELL

    def row(self, row: int) -> list[RawCell]:
        cells = self._rows.get(row, [])
        return cells + [_EMPTY_CELL] * (self.width - len(cells))


@dataclass(frozen=True)
class DecodedGrid:
    days: list[DaySegment]
    time_slots: list[TimeSlotRow]


def day_start_column(slot: int) -> int:
    """Start column of a day slot: explicit offsets first, then linear."""
    if slot < len(EXPLICIT_DAY_OFFSETS):
        return EXPLICIT_DAY_OFFSETS[slot]
    return slot * DAY_COLUMN_WIDTH + 1


def is_day_header(text: str) -> bool:
    return bool(_WEEKDAY_PATTERN.search(text))


def parse_day_label(label: str) -> tuple[str | None, int | None, int | None]:
    """Pull (weekday, month, day of month) out of a header like "Fri Aug 29".

    Parts that can't be recognized come back as None.
    """
    weekday = None
    match = _WEEKDAY_PATTERN.search(label)
    if match:
        prefix = match.group(1)[:3].lower()
        weekday = next(name for name in _WEEKDAYS if name.lower().startswith(prefix))

    month = day = None
    month_day = _MONTH_DAY_PATTERN.search(label)
    if month_day:
        month = _MONTHS[month_day.group(1).lower()]
        day = int(month_day.group(2))
    else:
        numeric = _NUMERIC_DATE_PATTERN.search(label)
        if numeric:
            month, day = int(numeric.group(1)), int(numeric.group(2))

    if month is not None and not (1 <= month <= 12 and 1 <= (day or 0) <= 31):
        month = day = None
    return weekday, month, day


def time_label_for_row(row_index: int) -> str | None:
    """Clock label of a worksheet row, or None outside operating hours.

    ANCHOR_ROW is 6:30 AM and every row below it adds half an hour.
    """
    if row_index < ANCHOR_ROW:
        return None
    minutes = DAY_START_MINUTES + (row_index - ANCHOR_ROW) * SLOT_MINUTES
    if minutes > DAY_END_MINUTES:
        return None
    return format_clock(minutes)


def format_clock(minutes: int) -> str:
    """Format minutes after midnight as "6:30 AM" / "12:00 PM"."""
    hour, minute = divmod(minutes, 60)
    period = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minute:02d} {period}"


def header_position(start_column: int) -> int:
    """Row position of a day header.

    Headers sit in the worksheet column numbered start_column (A1 for the
    first day), which is the day's time column; its courts follow at
    start_column + 0, 1, ...
    """
    return start_column - 1


def find_day_segments(grid: Grid) -> list[DaySegment]:
    """Scan the header row for day headers at the known slot offsets.

    The scan stops at the first structural error: once a slot's column is
    out of range or collides with the previous day's block, every later
    offset is unreliable too.
    """
    days: list[DaySegment] = []
    block_end = 0
    for slot in range(MAX_DAY_SLOTS):
        column = day_start_column(slot)
        position = header_position(column)
        try:
            cell = grid.cell(HEADER_ROW, position)
        except IndexError:
            log.debug("day_scan_stopped", slot=slot, column=column, reason="out_of_range")
            break

        text = cell.value.strip()
        if not text or not is_day_header(text):
            log.debug("day_header_rejected", slot=slot, column=column, value=text)
            continue

        if days and position < block_end:
            log.warning(
                "day_scan_stopped",
                slot=slot,
                column=column,
                reason="overlaps_previous_day",
                previous=days[-1].label,
            )
            break

        layout = select_layout(text)
        block_end = position + layout.column_width
        weekday, month, day_of_month = parse_day_label(text)
        days.append(
            DaySegment(
                day_index=slot,
                label=text,
                start_column=column,
                court_count=layout.court_count,
                weekday=weekday,
                month=month,
                day_of_month=day_of_month,
            )
        )
        log.debug("day_header_found", slot=slot, column=column, label=text, layout=layout.name)

    return days


def find_time_slots(grid: Grid) -> list[TimeSlotRow]:
    slots = []
    for row_index in range(ANCHOR_ROW, grid.height + 1):
        label = time_label_for_row(row_index)
        if label is None:
            break
        slots.append(TimeSlotRow(row_index=row_index, time_label=label))
    return slots


def decode_grid(grid: Grid) -> DecodedGrid:
    """Decode day segments and time-slot rows from a worksheet grid.

    Raises:
        DecodeFailure: "malformed-grid" for an empty grid or one without a
            header row, "no-day-headers-found" when no slot holds a weekday.
    """
    if grid.height < HEADER_ROW or grid.width == 0:
        raise DecodeFailure("malformed-grid", f"grid is {grid.height}x{grid.width}")

    days = find_day_segments(grid)
    if not days:
        raise DecodeFailure("no-day-headers-found")

    time_slots = find_time_slots(grid)
    log.info(
        "grid_decoded",
        days=[d.label for d in days],
        time_slots=len(time_slots),
        rows=grid.height,
        columns=grid.width,
    )
    return DecodedGrid(days=days, time_slots=time_slots)
