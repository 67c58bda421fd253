"""WorkbookViewerPage - downloads the schedule workbook from the online viewer.

The schedule is shared as a read-only Excel-for-the-web link. There is no
direct download URL, so the workbook is fetched the way a visitor would:

  div#WopiDocWACContainer
    iframe#WacFrame_Excel_0           -> the Excel web app
      button#FileMenuFlyoutLauncher   -> "File" menu
        "Create a Copy"               -> submenu
          "Download a Copy"           -> triggers an .xlsx attachment download

Selectors confirmed against the viewer in August 2025.
"""

from pathlib import Path

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from src.court_schedule.errors import AcquisitionFailure
from src.court_schedule.logging import get_logger

log = get_logger(__name__)


class WorkbookViewerPage:
    """Page object for the shared workbook in the online spreadsheet viewer."""

    CONTAINER = "#WopiDocWACContainer"
    FRAME = "#WopiDocWACContainer #WacFrame_Excel_0"
    FILE_MENU = "#FileMenuFlyoutLauncher"
    CREATE_COPY_TEXT = "Create a Copy"
    DOWNLOAD_COPY_TEXT = "Download a Copy"

    def __init__(self, page: Page) -> None:
        self.page = page

    async def navigate(self, url: str, *, timeout_ms: int = 90000) -> None:
        """Open the shared link and wait for the Excel iframe.

        Raises:
            AcquisitionFailure: If the viewer fails to load within timeout.
        """
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            await self.page.locator(self.CONTAINER).wait_for(
                state="attached", timeout=timeout_ms
            )
            await self.page.locator(self.FRAME).wait_for(
                state="attached", timeout=timeout_ms
            )
        except PlaywrightTimeoutError as e:
            raise AcquisitionFailure("Workbook viewer failed to load") from e

        log.info("workbook_viewer_loaded", url=url.split("?")[0])

    async def download_copy(
        self, *, menu_timeout_ms: int = 90000, download_timeout_ms: int = 30000
    ) -> tuple[bytes, str]:
        """Walk File > Create a Copy > Download a Copy and return the file.

        Returns:
            (workbook bytes, suggested file name)

        Raises:
            AcquisitionFailure: If a menu entry never appears or the
                download does not complete in time.
        """
        frame = self.page.frame_locator(self.FRAME)
        try:
            file_menu = frame.locator(self.FILE_MENU)
            await file_menu.wait_for(state="visible", timeout=menu_timeout_ms)
            await file_menu.click()
            log.debug("file_menu_opened")

            create_copy = frame.get_by_text(self.CREATE_COPY_TEXT, exact=True)
            await create_copy.wait_for(state="visible", timeout=10000)
            await create_copy.click()

            download_copy = frame.get_by_text(self.DOWNLOAD_COPY_TEXT, exact=True)
            await download_copy.wait_for(state="visible", timeout=10000)

            async with self.page.expect_download(timeout=download_timeout_ms) as info:
                await download_copy.click()
            download = await info.value
        except PlaywrightTimeoutError as e:
            raise AcquisitionFailure(f"Workbook download did not complete: {e}") from e

        failure = await download.failure()
        if failure:
            raise AcquisitionFailure(f"Workbook download failed: {failure}")

        path = await download.path()
        data = Path(path).read_bytes()
        log.info(
            "workbook_downloaded",
            file_name=download.suggested_filename,
            size_bytes=len(data),
        )
        return data, download.suggested_filename
