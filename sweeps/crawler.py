# sweeps/crawler.py

import logging
from typing import Dict, Optional

from django.conf import settings
from playwright.sync_api import sync_playwright

logger = logging.getLogger(__name__)


def default_viewport() -> Dict[str, int]:
    return {
        "width": settings.SWEEP_VIEWPORT_WIDTH,
        "height": settings.SWEEP_VIEWPORT_HEIGHT,
    }


class ScreenshotSession:
    """One headless Chromium page reused for every screen of a sweep."""

    def __init__(self, viewport: Optional[Dict[str, int]] = None, wait_ms: Optional[int] = None):
        self.viewport = viewport or default_viewport()
        self.wait_ms = settings.SWEEP_WAIT_MS if wait_ms is None else wait_ms
        self._playwright = None
        self._browser = None
        self._page = None

    def __enter__(self):
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(headless=True)
        self._page = self._browser.new_page(viewport=self.viewport)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._browser is not None:
            self._browser.close()
        if self._playwright is not None:
            self._playwright.stop()
        return False

    def capture(self, url: str) -> bytes:
        logger.info("Visiting %s", url)
        self._page.goto(url, wait_until="networkidle")
        if self.wait_ms:
            self._page.wait_for_timeout(self.wait_ms)
        return self._page.screenshot(full_page=False, type="png")
