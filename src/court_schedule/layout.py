"""Worksheet layout rules and the fill-color lookup table.

The schedule workbook puts one day per block of columns: a time column
followed by the day's courts. Summer days carry seven court columns (two clay
courts plus four pickleball courts around a divider column); from September
on the clay courts are gone and a day carries five.

Layouts are plain values selected per day header, so nothing here is mutated
at decode time.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from src.court_schedule.models import ActivityCategory

HEADER_ROW = 1

# Start column of each day slot as laid out in the workbook. Slots past the
# last explicit offset extrapolate with DAY_COLUMN_WIDTH.
EXPLICIT_DAY_OFFSETS: tuple[int, ...] = (1, 9, 17, 25, 31, 37)
DAY_COLUMN_WIDTH = 8
MAX_DAY_SLOTS = 7

# First worksheet row carrying a time slot, and the time it stands for.
ANCHOR_ROW = 5
DAY_START_MINUTES = 6 * 60 + 30  # 6:30 AM
DAY_END_MINUTES = 21 * 60 + 30  # 9:30 PM, inclusive
SLOT_MINUTES = 30

# Rows read from the worksheet; the legacy raw view starts at FIRST_DATA_ROW.
FIRST_DATA_ROW = 4
LAST_GRID_ROW = 50

MAX_LABEL_LENGTH = 50
EXCLUDED_SUBSTRINGS: tuple[str, ...] = (
    "1899-12-30T",  # serialized Excel time values
    "Time",
    "SEASON",
    "SUMMER",
    "FALL",
)

# Season title rows; the raw view blanks these and keeps all other text.
SEASON_BANNERS: tuple[str, ...] = ("SUMMER SEASON", "FALL SEASON")


@dataclass(frozen=True)
class LayoutRule:
    """Court layout of one day block.

    column_width spans the time column plus the court columns.

    court_names is aligned with the court columns; the entry at
    divider_index is None because that column never holds a booking.
    """

    name: str
    period_predicate: Callable[[str], bool]
    column_width: int
    court_count: int
    divider_index: int
    court_names: tuple[str | None, ...]

    def court_positions(self) -> list[int]:
        """Court column offsets that carry data (the divider excluded)."""
        return [i for i in range(self.court_count) if i != self.divider_index]


_FALL_PERIOD = re.compile(r"\b(SEPTEMBER|OCTOBER|SEPT?|OCT)\b", re.IGNORECASE)

FIVE_COURT_LAYOUT = LayoutRule(
    name="five-court",
    period_predicate=lambda label: bool(_FALL_PERIOD.search(label)),
    column_width=6,
    court_count=5,
    divider_index=3,
    court_names=("PB Ct 1", "PB Ct 2", "PB Ct 3", None, "PB Ct 4"),
)

SEVEN_COURT_LAYOUT = LayoutRule(
    name="seven-court",
    period_predicate=lambda label: True,
    column_width=8,
    court_count=7,
    divider_index=3,
    court_names=("Clay 1", "PB Ct 1", "PB Ct 2", None, "PB Ct 3", "PB Ct 4", "Clay 2"),
)

# First match wins; the seven-court layout is the catch-all.
LAYOUT_RULES: tuple[LayoutRule, ...] = (FIVE_COURT_LAYOUT, SEVEN_COURT_LAYOUT)

_LAYOUTS_BY_COURT_COUNT = {rule.court_count: rule for rule in LAYOUT_RULES}


def select_layout(label: str) -> LayoutRule:
    for rule in LAYOUT_RULES:
        if rule.period_predicate(label):
            return rule
    return SEVEN_COURT_LAYOUT


def layout_for_court_count(court_count: int) -> LayoutRule:
    try:
        return _LAYOUTS_BY_COURT_COUNT[court_count]
    except KeyError:
        raise ValueError(
            f"No layout with {court_count} courts. "
            f"Valid: {sorted(_LAYOUTS_BY_COURT_COUNT)}"
        ) from None


# ARGB fill colors used by the front desk, in the order they were catalogued.
# Any other color on a cell with content means category OTHER.
COLOR_CATEGORIES: tuple[tuple[str, ActivityCategory], ...] = (
    ("FF00B0F0", ActivityCategory.PICKLEBALL),
    ("FF87CEEB", ActivityCategory.PICKLEBALL),
    ("FF0000FF", ActivityCategory.PICKLEBALL),
    ("FF4169E1", ActivityCategory.PICKLEBALL),
    ("FF1E90FF", ActivityCategory.PICKLEBALL),
    ("FF00BFFF", ActivityCategory.PICKLEBALL),
    ("FF87CEFA", ActivityCategory.PICKLEBALL),
    ("FFADD8E6", ActivityCategory.PICKLEBALL),
    ("FFB0E0E6", ActivityCategory.PICKLEBALL),
    ("FF92D050", ActivityCategory.TENNIS),
    ("FF90EE90", ActivityCategory.TENNIS),
    ("FF00FF00", ActivityCategory.TENNIS),
    ("FF008000", ActivityCategory.TENNIS),
    ("FF32CD32", ActivityCategory.TENNIS),
    ("FF228B22", ActivityCategory.TENNIS),
    ("FF006400", ActivityCategory.TENNIS),
    ("FF98FB98", ActivityCategory.TENNIS),
    ("FFADFF2F", ActivityCategory.TENNIS),
    ("FFFFFF00", ActivityCategory.TENTATIVE),
    ("FFFFD700", ActivityCategory.TENTATIVE),
    ("FFFFEB3B", ActivityCategory.TENTATIVE),
    ("FFFFC107", ActivityCategory.TENTATIVE),
    ("FFFF9800", ActivityCategory.TENTATIVE),
    ("FFFFA500", ActivityCategory.TENTATIVE),
)
DEFAULT_BOOKED_CATEGORY = ActivityCategory.OTHER

_COLOR_LOOKUP: dict[str, ActivityCategory] = dict(COLOR_CATEGORIES)


def category_for_color(fill_color: str) -> ActivityCategory:
    """Map an ARGB fill color to the category of a booked cell."""
    return _COLOR_LOOKUP.get(fill_color.upper(), DEFAULT_BOOKED_CATEGORY)
