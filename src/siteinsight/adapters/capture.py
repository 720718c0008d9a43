from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlparse
from uuid import uuid4

from playwright.sync_api import Error as PlaywrightError

from siteinsight.adapters.base import CaptureOptions, ImageRef
from siteinsight.adapters.browser import BrowserSession
from siteinsight.config import Settings
from siteinsight.errors import CaptureFailure

logger = logging.getLogger(__name__)


def screenshot_path(directory: Path, url: str) -> Path:
    host = urlparse(url).hostname or "page"
    safe_host = "".join(ch if ch.isalnum() else "-" for ch in host).strip("-") or "page"
    return directory / f"{safe_host}-{uuid4().hex[:8]}.png"


class BrowserScreenshotCapture:
    """Renders a page at the requested viewport and stores it as a PNG."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def capture(self, url: str, options: CaptureOptions) -> ImageRef:
        output_path = screenshot_path(self.settings.ensure_screenshot_dir(), url)
        try:
            async with BrowserSession(
                self.settings, viewport=(options.width, options.height)
            ) as session:
                async with session.page() as page:
                    await page.goto(url, wait_until="networkidle")
                    await page.screenshot(path=str(output_path), full_page=options.full_page)
        except PlaywrightError as exc:
            raise CaptureFailure(
                f"Failed to capture {url}: {exc}", payload={"url": url}
            ) from exc

        logger.debug("Captured %s into %s", url, output_path)
        return ImageRef(
            location=output_path.resolve().as_uri(),
            width=options.width,
            height=options.height,
            full_page=options.full_page,
        )
