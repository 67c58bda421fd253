"""Run the court schedule API, download the workbook, or decode one locally.

Run with: python scripts/schedule_cli.py --serve
Debug:    python scripts/schedule_cli.py --download --headed
Decode:   python scripts/schedule_cli.py --decode data/schedule.xlsx --table
JSON:     python scripts/schedule_cli.py --decode data/schedule.xlsx --output data/entries.json

Exit codes:
  0 = success
  1 = error (message on stderr)
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import uvicorn  # noqa: E402

from src.court_schedule.acquire import (  # noqa: E402
    PlaywrightAcquirer,
    WorkbookFile,
    fetch_with_timeout,
)
from src.court_schedule.api import create_app  # noqa: E402
from src.court_schedule.config import get_config  # noqa: E402
from src.court_schedule.grid import decode_grid  # noqa: E402
from src.court_schedule.logging import setup_logging  # noqa: E402
from src.court_schedule.models import ScheduleEntry  # noqa: E402
from src.court_schedule.projector import project_schedule  # noqa: E402
from src.court_schedule.server_cache import ServerCache  # noqa: E402
from src.court_schedule.workbook import read_grid_file  # noqa: E402


def _log(msg: str) -> None:
    """Write diagnostic messages to stderr so stdout stays clean for JSON."""
    print(msg, file=sys.stderr)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Court schedule API and workbook tools.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP API with the background cache refresh.",
    )
    mode.add_argument(
        "--download",
        action="store_true",
        help="Download the workbook once and save it to the data directory.",
    )
    mode.add_argument(
        "--decode",
        type=str,
        metavar="XLSX",
        help="Decode a local workbook and print its schedule entries.",
    )

    parser.add_argument(
        "--headed",
        action="store_true",
        help="Launch browser in headed mode (visible window).",
    )
    parser.add_argument(
        "--table",
        action="store_true",
        help="With --decode: print booked slots as a human-readable table.",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="With --decode: write entries as JSON to this file instead of stdout.",
    )
    return parser.parse_args()


def _format_table(entries: list[ScheduleEntry]) -> str:
    """Format booked entries as a table.

    Columns: Day | Time | Court | Category | Label
    """
    booked = [e for e in entries if not e.is_available]
    if not booked:
        return "(no bookings)"

    headers = ["Day", "Time", "Court", "Category", "Label"]
    rows = [
        [e.day, e.time, e.court, e.activity_category.value, e.label]
        for e in booked
    ]

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)
    row_lines = [
        " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)) for row in rows
    ]
    return "\n".join([header_line, separator, *row_lines])


def _decode(path: str, table: bool, output: str | None) -> None:
    grid = read_grid_file(path)
    decoded = decode_grid(grid)
    entries = project_schedule(grid, decoded)
    _log(
        f"  {len(decoded.days)} days, {len(decoded.time_slots)} time slots, "
        f"{sum(not e.is_available for e in entries)} bookings"
    )

    if table:
        print(_format_table(entries))
        return

    document = json.dumps([e.model_dump(mode="json") for e in entries], indent=2)
    if output:
        output_file = Path(output)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(document, encoding="utf-8")
        _log(f"  Entries written to {output}")
    else:
        print(document)


async def _download(headed: bool) -> None:
    config = get_config()
    if headed:
        config.browser_headless = False
    data = await fetch_with_timeout(
        PlaywrightAcquirer(config), config.acquisition_timeout_seconds
    )
    WorkbookFile(config.workbook_path).write(data)
    _log(f"  Workbook saved to {config.workbook_path} ({len(data)} bytes)")


def _serve(headed: bool) -> None:
    config = get_config()
    if headed:
        config.browser_headless = False
    cache = ServerCache.from_config(config, PlaywrightAcquirer(config))
    app = create_app(cache, config)
    _log(f"  Serving on http://{config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)


def main(args: argparse.Namespace) -> None:
    config = get_config()
    setup_logging(
        json_output=config.log_json,
        log_level=config.log_level,
        stream=sys.stdout if args.serve else sys.stderr,
    )

    if args.serve:
        _serve(args.headed)
    elif args.download:
        asyncio.run(_download(args.headed))
    else:
        _decode(args.decode, args.table, args.output)


if __name__ == "__main__":
    args = _parse_args()
    try:
        main(args)
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
