import io
import zipfile

from openpyxl import Workbook
from openpyxl.styles import PatternFill

from src.court_schedule.grid import Grid
from src.court_schedule.models import RawCell

TENNIS_GREEN = "FF92D050"
PICKLEBALL_BLUE = "FF00B0F0"
TENTATIVE_YELLOW = "FFFFFF00"

# Day start columns as laid out in the workbook: the header sits in that
# worksheet column (A1, I1, ...) and courts fill the positions after it.
SUMMER_HEADERS = {
    1: "FRIDAY AUGUST 29",
    9: "SATURDAY AUGUST 30",
    17: "SUNDAY AUGUST 31",
    25: "MONDAY SEPTEMBER 1",
    31: "TUESDAY SEPTEMBER 2",
    37: "WEDNESDAY SEPTEMBER 3",
}


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_grid(
    headers: dict[int, str],
    cells: dict[tuple[int, int], tuple[str, str]] | None = None,
    *,
    height: int = 36,
    width: int = 43,
) -> Grid:
    """Grid with day headers keyed by start column and (value, color) cells at (row, position)."""
    rows: dict[int, list[RawCell]] = {}
    for row in range(1, height + 1):
        rows[row] = [RawCell() for _ in range(width)]
    for column, label in headers.items():
        rows[1][column - 1] = RawCell(value=label)
    for (row, column), (value, color) in (cells or {}).items():
        rows[row][column] = RawCell(value=value, fill_color=color)
    return Grid(rows)


def make_workbook_bytes(
    headers: dict[int, str],
    cells: dict[tuple[int, int], tuple[str, str]] | None = None,
    *,
    height: int = 36,
    merge_width: int = 0,
) -> bytes:
    """Same layout as make_grid, as an .xlsx payload.

    Headers go to worksheet column ``column`` (merged across ``merge_width``
    columns when set); cell positions are 0-based, so position 3 is column D.
    """
    workbook = Workbook()
    sheet = workbook.active
    for column, label in headers.items():
        sheet.cell(row=1, column=column, value=label)
        if merge_width:
            sheet.merge_cells(
                start_row=1, start_column=column, end_row=1, end_column=column + merge_width - 1
            )
    for (row, column), (value, color) in (cells or {}).items():
        cell = sheet.cell(row=row, column=column + 1, value=value)
        if color:
            cell.fill = PatternFill(fill_type="solid", fgColor=color)
    # Time column, so the sheet spans the whole operating day
    for row in range(5, height + 1):
        sheet.cell(row=row, column=1, value=f"row {row}")
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def truncate_worksheet(data: bytes, keep: int = 40) -> bytes:
    """A valid archive whose first worksheet XML is cut short."""
    source = zipfile.ZipFile(io.BytesIO(data))
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as target:
        for item in source.infolist():
            content = source.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                content = content[:keep]
            target.writestr(item, content)
    return buffer.getvalue()
