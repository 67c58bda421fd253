"""Read the downloaded .xlsx workbook into a Grid with openpyxl."""

import io
import zipfile
from datetime import date, datetime, time
from pathlib import Path
from xml.etree.ElementTree import ParseError

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from src.court_schedule.errors import DecodeFailure
from src.court_schedule.grid import Grid
from src.court_schedule.layout import LAST_GRID_ROW
from src.court_schedule.logging import get_logger
from src.court_schedule.models import RawCell

log = get_logger(__name__)


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _fill_color(cell) -> str:
    """ARGB of the cell's pattern fill, foreground first, "" if none."""
    fill = cell.fill
    if fill is None or fill.fill_type is None:
        return ""
    for color in (fill.fgColor, fill.bgColor):
        # Theme and indexed colors carry no literal ARGB
        if color is not None and color.type == "rgb" and isinstance(color.rgb, str):
            if color.rgb not in ("00000000", "FFFFFFFF"):
                return color.rgb.upper()
    return ""


def read_grid(data: bytes, *, max_row: int = LAST_GRID_ROW) -> Grid:
    """Build a Grid from the first worksheet of an .xlsx payload.

    Every cell of a merged range reads as the range's top-left cell.

    Raises:
        DecodeFailure: "malformed-grid" when the bytes are not a readable workbook.
    """
    try:
        workbook = load_workbook(io.BytesIO(data), data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, ParseError, KeyError, OSError, ValueError) as e:
        raise DecodeFailure("malformed-grid", f"unreadable workbook: {e}") from e
    except Exception as e:
        # Broken parts inside a valid archive surface as arbitrary parser errors
        raise DecodeFailure("malformed-grid", f"{type(e).__name__}: {e}") from e

    try:
        worksheet = workbook.worksheets[0]
    except IndexError:
        raise DecodeFailure("malformed-grid", "workbook has no worksheet") from None

    last_row = min(max_row, worksheet.max_row or 0)
    rows: dict[int, list[RawCell]] = {}
    for row_number, row in enumerate(
        worksheet.iter_rows(min_row=1, max_row=last_row), start=1
    ):
        rows[row_number] = [_raw_cell(cell) for cell in row]

    for merged in worksheet.merged_cells.ranges:
        top_left = _raw_cell(worksheet.cell(row=merged.min_row, column=merged.min_col))
        for row_number in range(merged.min_row, min(merged.max_row, last_row) + 1):
            cells = rows.get(row_number, [])
            for position in range(merged.min_col - 1, min(merged.max_col, len(cells))):
                cells[position] = top_left

    workbook.close()
    grid = Grid(rows)
    log.debug("workbook_read", rows=grid.height, columns=grid.width)
    return grid


def _raw_cell(cell) -> RawCell:
    text = _cell_text(cell.value)
    # Styling only matters on cells that say something
    color = _fill_color(cell) if text else ""
    return RawCell(value=text, fill_color=color)


def read_grid_file(path: Path | str) -> Grid:
    return read_grid(Path(path).read_bytes())
