"""Workbook acquisition: the boundary between the cache and the document viewer.

The cache only ever sees ``SourceAcquirer.fetch() -> bytes`` which either
returns the .xlsx payload or raises AcquisitionFailure. PlaywrightAcquirer is
the production implementation; tests plug in stubs.
"""

import asyncio
import os
import uuid
from contextlib import suppress
from pathlib import Path
from typing import Protocol

from playwright.async_api import Error as PlaywrightError, async_playwright
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from src.court_schedule.config import ServiceConfig
from src.court_schedule.errors import AcquisitionFailure, AcquisitionTimeout
from src.court_schedule.logging import get_logger
from src.court_schedule.pages.workbook_viewer import WorkbookViewerPage
from src.court_schedule.utils import configure_page_for_viewer

log = get_logger(__name__)

_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
]


class SourceAcquirer(Protocol):
    async def fetch(self) -> bytes:
        """Return the current workbook bytes or raise AcquisitionFailure."""
        ...


class PlaywrightAcquirer:
    """Downloads the shared workbook through a headless Chromium."""

    def __init__(self, config: ServiceConfig) -> None:
        self.config = config

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_fixed(5),
        retry=retry_if_exception_type(AcquisitionFailure),
        reraise=True,
    )
    async def fetch(self) -> bytes:
        """Launch a browser, open the viewer and download a copy.

        Retries once on AcquisitionFailure; the viewer occasionally never
        renders its File menu on the first load.
        """
        log.info("acquisition_started", headless=self.config.browser_headless)
        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.launch(
                    headless=self.config.browser_headless, args=_BROWSER_ARGS
                )
                try:
                    context = await browser.new_context(accept_downloads=True)
                    page = await context.new_page()
                    await configure_page_for_viewer(
                        page, timeout_ms=self.config.navigation_timeout_ms
                    )

                    viewer = WorkbookViewerPage(page)
                    await viewer.navigate(
                        self.config.workbook_url,
                        timeout_ms=self.config.navigation_timeout_ms,
                    )
                    data, _ = await viewer.download_copy(
                        menu_timeout_ms=self.config.navigation_timeout_ms,
                        download_timeout_ms=self.config.download_timeout_ms,
                    )
                finally:
                    await browser.close()
        except PlaywrightError as e:
            log.warning("acquisition_browser_error", error=str(e))
            raise AcquisitionFailure(f"Browser error during acquisition: {e}") from e

        if not data:
            raise AcquisitionFailure("Downloaded workbook is empty")
        return data


async def fetch_with_timeout(acquirer: SourceAcquirer, timeout_seconds: float) -> bytes:
    """Run one acquisition under an overall deadline.

    Raises:
        AcquisitionTimeout: The deadline passed.
        AcquisitionFailure: Any other acquisition error, including
            unexpected exceptions from the acquirer.
    """
    try:
        return await asyncio.wait_for(acquirer.fetch(), timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        raise AcquisitionTimeout(
            f"Workbook acquisition exceeded {timeout_seconds:.0f}s"
        ) from e
    except AcquisitionFailure:
        raise
    except Exception as e:
        raise AcquisitionFailure(f"{type(e).__name__}: {e}") from e


class WorkbookFile:
    """The last successfully downloaded workbook, kept on disk.

    Lets a cold start without network still decode something real.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> bytes:
        return self.path.read_bytes()

    def write(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".tmp-{self.path.name}-{uuid.uuid4().hex}")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, self.path)
        except OSError:
            with suppress(FileNotFoundError):
                tmp_path.unlink()
            raise
        log.debug("workbook_saved", path=str(self.path), size_bytes=len(data))
