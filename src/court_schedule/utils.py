"""Shared Playwright utilities for the document viewer."""

from playwright.async_api import Page, Route

from src.court_schedule.logging import get_logger

log = get_logger(__name__)

# The spreadsheet viewer renders cells on canvas and needs its stylesheets,
# so only heavy media is dropped.
BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset({"image", "font", "media"})

# Telemetry beacons fired by the viewer while it loads.
BLOCKED_URL_FRAGMENTS: frozenset[str] = frozenset(
    {
        "browser.events.data.microsoft.com",
        "/OneCollector/",
        "c.bing.com",
    }
)


async def configure_page_for_viewer(page: Page, *, timeout_ms: int = 90000) -> None:
    """Set up a Playwright page for driving the spreadsheet viewer.

    Blocks images, fonts, media and telemetry to speed up the (slow) viewer
    load, and applies the navigation timeout to every wait on the page.

    Args:
        page: Playwright Page instance.
        timeout_ms: Default timeout for actions and navigations.
    """

    async def _block_resources(route: Route) -> None:
        request = route.request
        if any(fragment in request.url for fragment in BLOCKED_URL_FRAGMENTS):
            log.debug("blocked_telemetry_request", url=request.url)
            await route.abort("blockedbyclient")
            return

        if request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    await page.route("**/*", _block_resources)
    page.set_default_timeout(timeout_ms)
    page.set_default_navigation_timeout(timeout_ms)
