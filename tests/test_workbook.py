import io

import pytest
from openpyxl import Workbook
from openpyxl.styles import PatternFill

from src.court_schedule.errors import DecodeFailure
from src.court_schedule.grid import decode_grid
from src.court_schedule.models import ActivityCategory
from src.court_schedule.projector import project_schedule
from src.court_schedule.workbook import read_grid, read_grid_file
from tests.helpers import (
    PICKLEBALL_BLUE,
    SUMMER_HEADERS,
    TENNIS_GREEN,
    make_workbook_bytes,
    truncate_worksheet,
)


def test_read_grid_keeps_text_and_fill(summer_workbook: bytes) -> None:
    grid = read_grid(summer_workbook)

    assert grid.height == 36
    assert grid.cell(1, 0).value == "FRIDAY AUGUST 29"
    assert grid.cell(5, 3).value == "Ro/Je/Lo/Ha"
    assert grid.cell(5, 3).fill_color == TENNIS_GREEN
    assert grid.cell(10, 26).fill_color == PICKLEBALL_BLUE
    assert grid.cell(6, 3).value == ""


def test_workbook_decodes_end_to_end(summer_workbook: bytes) -> None:
    grid = read_grid(summer_workbook)
    decoded = decode_grid(grid)
    entries = project_schedule(grid, decoded)

    assert [d.label for d in decoded.days] == list(SUMMER_HEADERS.values())
    booked = {(e.day, e.time, e.court): e for e in entries if not e.is_available}
    assert set(booked) == {
        ("FRIDAY AUGUST 29", "6:30 AM", "PB Ct 2"),
        ("MONDAY SEPTEMBER 1", "9:00 AM", "PB Ct 2"),
    }
    assert booked[("FRIDAY AUGUST 29", "6:30 AM", "PB Ct 2")].activity_category is (
        ActivityCategory.TENNIS
    )
    assert booked[("MONDAY SEPTEMBER 1", "9:00 AM", "PB Ct 2")].activity_category is (
        ActivityCategory.PICKLEBALL
    )


def test_fill_ignored_on_empty_cells() -> None:
    data = make_workbook_bytes({1: "Friday"}, {(6, 2): ("", TENNIS_GREEN)})
    grid = read_grid(data)
    assert grid.cell(6, 2).fill_color == ""


def test_number_values_become_text() -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet.cell(row=1, column=2, value="Friday")
    sheet.cell(row=5, column=2, value=4.0)
    sheet.cell(row=5, column=3, value=2.5)
    sheet.cell(row=5, column=4).fill = PatternFill(fill_type="solid", fgColor=TENNIS_GREEN)
    buffer = io.BytesIO()
    workbook.save(buffer)

    grid = read_grid(buffer.getvalue())
    assert grid.cell(5, 1).value == "4"
    assert grid.cell(5, 2).value == "2.5"


def test_rows_beyond_max_row_are_not_read() -> None:
    data = make_workbook_bytes({1: "Friday"}, height=60)
    assert read_grid(data).height == 50
    assert read_grid(data, max_row=20).height == 20


def test_unreadable_bytes_are_a_malformed_grid() -> None:
    with pytest.raises(DecodeFailure) as excinfo:
        read_grid(b"<html>Sign in to continue</html>")
    assert excinfo.value.reason == "malformed-grid"


def test_read_grid_file(tmp_path, summer_workbook: bytes) -> None:
    path = tmp_path / "schedule.xlsx"
    path.write_bytes(summer_workbook)
    assert read_grid_file(path).cell(1, 8).value == "SATURDAY AUGUST 30"


@pytest.mark.parametrize("merge_width", [0, 8], ids=["plain", "merged"])
def test_header_in_first_column_decodes_courts(merge_width: int) -> None:
    data = make_workbook_bytes(
        {1: "FRIDAY AUGUST 29"},
        {(5, 3): ("Ro/Je/Lo/Ha", TENNIS_GREEN)},
        merge_width=merge_width,
    )
    grid = read_grid(data)
    decoded = decode_grid(grid)
    entries = project_schedule(grid, decoded)

    assert [(d.label, d.start_column) for d in decoded.days] == [("FRIDAY AUGUST 29", 1)]
    booked = [e for e in entries if not e.is_available]
    assert [(e.time, e.court, e.activity_category) for e in booked] == [
        ("6:30 AM", "PB Ct 2", ActivityCategory.TENNIS)
    ]


def test_merged_range_reads_as_top_left_cell() -> None:
    data = make_workbook_bytes({1: "FRIDAY AUGUST 29"}, merge_width=8)
    grid = read_grid(data)
    assert [grid.cell(1, p).value for p in range(8)] == ["FRIDAY AUGUST 29"] * 8
    assert grid.cell_or_empty(1, 8).value == ""


def test_broken_worksheet_xml_is_a_malformed_grid(summer_workbook: bytes) -> None:
    with pytest.raises(DecodeFailure) as excinfo:
        read_grid(truncate_worksheet(summer_workbook))
    assert excinfo.value.reason == "malformed-grid"
