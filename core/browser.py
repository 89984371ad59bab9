"""
Browser pool manager for ReviewWeb
Keeps one long-lived Firefox and one long-lived Chromium instance for reuse
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, Literal, Optional

from playwright.async_api import async_playwright, Browser, Playwright

logger = logging.getLogger(__name__)

BrowserType = Literal["firefox", "chromium"]
BROWSER_TYPES = ("firefox", "chromium")

CHROMIUM_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",  # Prevents memory issues in Docker
    "--no-sandbox",  # Required in some containerized environments
    "--disable-setuid-sandbox",
    "--disable-gpu",
]


class BrowserPool:
    """
    Holds at most one browser per engine. Instances are launched lazily (or
    eagerly through initialize()) and reused by every scrape and screenshot
    call; only browser contexts are created and closed per call.
    """

    def __init__(
        self,
        headless: bool = True,
        launcher: Optional[Callable[[str], Awaitable[Browser]]] = None,
    ):
        """
        Args:
            headless: Launch browsers without a window
            launcher: Optional coroutine ``launcher(browser_type)`` used instead
                of Playwright (lets tests and alternative runtimes plug in)
        """
        self.headless = headless
        self.playwright: Optional[Playwright] = None
        self._launcher = launcher or self._launch_with_playwright
        self._browsers: Dict[str, Browser] = {}
        self._launching: Dict[str, "asyncio.Future[Browser]"] = {}
        self._launched_at: Dict[str, datetime] = {}
        self._playwright_lock = asyncio.Lock()
        self._initialized = False

    async def initialize(self):
        """Launch both browser types up front"""
        if self._initialized:
            return

        try:
            logger.info("🚀 Initializing browser pool (firefox + chromium)...")
            await asyncio.gather(*(self.get_browser(t) for t in BROWSER_TYPES))
            self._initialized = True
            logger.info("✅ Browser pool initialized")
        except Exception as e:
            logger.error(f"❌ Failed to initialize browser pool: {str(e)}")
            await self.close_browsers()
            raise

    async def _ensure_playwright(self) -> Playwright:
        async with self._playwright_lock:
            if self.playwright is None:
                self.playwright = await async_playwright().start()
            return self.playwright

    async def _launch_with_playwright(self, browser_type: str) -> Browser:
        playwright = await self._ensure_playwright()
        launcher = getattr(playwright, browser_type)
        if browser_type == "chromium":
            return await launcher.launch(headless=self.headless, args=CHROMIUM_ARGS)
        return await launcher.launch(headless=self.headless)

    async def _launch(self, browser_type: str) -> Browser:
        browser = await self._launcher(browser_type)
        logger.info(f"✅ {browser_type} launched")
        return browser

    async def get_browser(self, browser_type: BrowserType) -> Browser:
        """
        Return the cached browser for ``browser_type``, launching it on first use.

        Concurrent first callers await the same in-flight launch, so a type is
        never launched twice. A failed launch is not cached.
        """
        if browser_type not in BROWSER_TYPES:
            raise ValueError(f"Unsupported browser type: {browser_type}")

        browser = self._browsers.get(browser_type)
        if browser is not None:
            return browser

        pending = self._launching.get(browser_type)
        if pending is None:
            pending = asyncio.ensure_future(self._launch(browser_type))
            self._launching[browser_type] = pending

        try:
            browser = await asyncio.shield(pending)
        except Exception:
            if self._launching.get(browser_type) is pending:
                del self._launching[browser_type]
            raise

        if browser_type not in self._browsers:
            self._browsers[browser_type] = browser
            self._launched_at[browser_type] = datetime.now()
        self._launching.pop(browser_type, None)
        return self._browsers[browser_type]

    async def health_check(self) -> dict:
        """
        Report which engines are running and for how long.

        Returns:
            Dictionary with health status
        """
        now = datetime.now()
        browsers = {
            browser_type: {
                "launched": browser_type in self._browsers,
                "age_seconds": round(
                    (now - self._launched_at[browser_type]).total_seconds(), 2
                )
                if browser_type in self._launched_at
                else None,
            }
            for browser_type in BROWSER_TYPES
        }
        return {
            "browsers": browsers,
            "status": "healthy" if self._browsers else "idle",
        }

    async def close_browsers(self):
        """Close both browsers and stop Playwright (graceful shutdown only)"""
        logger.info("🧹 Closing browser pool...")

        for browser_type, browser in list(self._browsers.items()):
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"⚠️  Error closing {browser_type}: {str(e)}")

        self._browsers.clear()
        self._launched_at.clear()

        if self.playwright:
            try:
                await self.playwright.stop()
            except Exception as e:
                logger.warning(f"⚠️  Error stopping Playwright: {str(e)}")
            self.playwright = None

        self._initialized = False
        logger.info("✅ Browser pool closed")
