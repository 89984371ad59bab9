"""
Headless browser extractors for ReviewWeb.

Every extractor walks the same browser/proxy ladder against the shared
BrowserPool: a fresh context per attempt, the pooled browser is never closed.
"""

import logging
import random
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

from playwright.async_api import Page

from core.browser import BrowserPool
from scraping.errors import BotProtectionError, ScrapeError
from scraping.ladder import Rung, run_ladder
from scraping.proxy import playwright_proxy

logger = logging.getLogger(__name__)

# (browser_type, use_proxy) in the order they are tried
BROWSER_LADDER: Sequence[Tuple[str, bool]] = (
    ("firefox", False),
    ("firefox", True),
    ("chromium", True),
    ("chromium", False),
)

INTRUSIVE_SELECTORS = [
    "#cookie-consent",
    "#credential_picker_container",
    "#CybotCookiebotDialog",
    "div.__fb-light-mode",
]

CLOUDFLARE_ERROR_MARKER = "cloudflare.com/5xx-error-landing"

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
]

# Removes (or hides, for screenshots) every element matching the selectors
STRIP_ELEMENTS_JS = """
([selectors, hide]) => {
    for (const selector of selectors) {
        let elements = [];
        try {
            elements = document.querySelectorAll(selector);
        } catch (e) {
            continue;
        }
        elements.forEach((element) => {
            if (hide) {
                element.setAttribute("style", "opacity: 0 !important;");
            } else {
                element.remove();
            }
        });
    }
}
"""

IMAGE_SOURCES_JS = """
() => Array.from(document.querySelectorAll("img")).map((img) => img.src)
"""

SelectorMode = Literal["first", "all"]


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def _keep_image_src(src: Optional[str]) -> bool:
    return bool(src) and (src.startswith("http") or src.startswith("data:image"))


class BrowserScraper:
    """
    Runs page extractions through the browser ladder.

    Args:
        pool: Shared browser pool
        proxy_url: Proxy used by the proxied rungs
        navigation_timeout: Default page timeout in seconds
        ladder_delay: Seconds to wait between rungs
        viewport: Default (width, height)
    """

    def __init__(
        self,
        pool: BrowserPool,
        proxy_url: Optional[str] = None,
        navigation_timeout: float = 60.0,
        ladder_delay: float = 2.0,
        viewport: Tuple[int, int] = (1400, 948),
    ):
        self.pool = pool
        self.proxy_url = proxy_url
        self.navigation_timeout = navigation_timeout
        self.ladder_delay = ladder_delay
        self.viewport = viewport

    @asynccontextmanager
    async def _page(
        self,
        browser_type: str,
        use_proxy: bool,
        viewport: Optional[Dict[str, int]] = None,
        timeout: Optional[float] = None,
    ):
        if use_proxy and not self.proxy_url:
            raise ScrapeError("No proxy configured for proxied attempt")

        browser = await self.pool.get_browser(browser_type)
        context = await browser.new_context(
            user_agent=random_user_agent(),
            viewport=viewport or {"width": self.viewport[0], "height": self.viewport[1]},
            ignore_https_errors=True,
            bypass_csp=True,
            proxy=playwright_proxy(self.proxy_url) if use_proxy else None,
        )
        try:
            page = await context.new_page()
            timeout_ms = (timeout or self.navigation_timeout) * 1000
            page.set_default_timeout(timeout_ms)
            page.set_default_navigation_timeout(timeout_ms)
            yield page
        finally:
            await context.close()

    async def _load(
        self,
        page: Page,
        url: str,
        delay_after_load: Optional[float],
        strip_selectors: List[str],
        hide: bool = False,
    ):
        await page.goto(url, wait_until="domcontentloaded")
        if delay_after_load:
            await page.wait_for_timeout(delay_after_load * 1000)
        await page.evaluate(STRIP_ELEMENTS_JS, [strip_selectors, hide])

    def _rungs(self, attempt) -> List[Rung]:
        return [
            Rung(
                strategy="playwright",
                run=lambda b=browser_type, p=use_proxy: attempt(b, p),
                browser_type=browser_type,
                use_proxy=use_proxy,
                # No proxy known: the proxied rungs are skipped without the ladder delay
                available=bool(self.proxy_url) or not use_proxy,
            )
            for browser_type, use_proxy in BROWSER_LADDER
        ]

    async def get_html_content(
        self,
        url: str,
        delay_after_load: Optional[float] = None,
        timeout: Optional[float] = None,
        selectors: Optional[List[str]] = None,
        selector_mode: SelectorMode = "first",
        debug: bool = False,
    ) -> Union[str, List[str]]:
        """
        Rendered HTML of ``url``.

        Without selectors the whole document is returned. With selectors, the
        outer HTML of the first (or every) match of each selector is returned
        as a list, in selector order.

        Raises:
            LadderExhaustedError: If every browser/proxy combination failed
        """
        logger.info(f"🌐 Getting rendered HTML of {url}")

        async def attempt(browser_type: str, use_proxy: bool):
            async with self._page(browser_type, use_proxy, timeout=timeout) as page:
                await self._load(page, url, delay_after_load, INTRUSIVE_SELECTORS)

                if selectors:
                    fragments: List[str] = []
                    for selector in selectors:
                        if selector_mode == "all":
                            elements = await page.query_selector_all(selector)
                        else:
                            element = await page.query_selector(selector)
                            elements = [element] if element else []
                        for element in elements:
                            fragments.append(await element.evaluate("el => el.outerHTML"))
                    return fragments

                html = await page.content()
                if CLOUDFLARE_ERROR_MARKER in html:
                    raise BotProtectionError(f"Cloudflare error page served for {url}")
                return html

        return await run_ladder(
            self._rungs(attempt),
            "Failed to retrieve HTML content after trying all combinations",
            delay=self.ladder_delay,
            is_success=(lambda r: r is not None) if selectors else (lambda r: bool(r)),
            debug=debug,
        )

    async def get_all_images(
        self,
        url: str,
        delay_after_load: Optional[float] = None,
        timeout: Optional[float] = None,
        exclude_selectors: Optional[List[str]] = None,
        debug: bool = False,
    ) -> List[str]:
        """
        ``src`` of every ``<img>`` left after intrusive and excluded elements
        are removed. Only http(s) and ``data:image`` sources are kept.
        """
        logger.info(f"🖼️  Extracting images from {url}")

        async def attempt(browser_type: str, use_proxy: bool):
            async with self._page(browser_type, use_proxy, timeout=timeout) as page:
                await self._load(
                    page,
                    url,
                    delay_after_load,
                    INTRUSIVE_SELECTORS + list(exclude_selectors or []),
                )
                sources = await page.evaluate(IMAGE_SOURCES_JS)
                images = [src for src in sources if _keep_image_src(src)]
                logger.info(f"🖼️  Found {len(images)} images on {url}")
                return images

        return await run_ladder(
            self._rungs(attempt),
            "Failed to retrieve images after trying all combinations",
            delay=self.ladder_delay,
            is_success=lambda r: r is not None,
            debug=debug,
        )

    async def screenshot(
        self,
        url: str,
        full_page: bool = False,
        image_type: Literal["png", "jpeg"] = "png",
        quality: Optional[int] = None,
        size: Optional[Dict[str, int]] = None,
        clip: Optional[Dict[str, float]] = None,
        delay_after_load: Optional[float] = None,
        timeout: Optional[float] = None,
        debug: bool = False,
    ) -> bytes:
        """
        Capture ``url`` as PNG or JPEG bytes. Intrusive overlays are made
        transparent rather than removed so the layout is unchanged.
        """
        logger.info(f"📸 Taking screenshot of {url}")

        async def attempt(browser_type: str, use_proxy: bool):
            async with self._page(browser_type, use_proxy, viewport=size, timeout=timeout) as page:
                await self._load(page, url, delay_after_load, INTRUSIVE_SELECTORS, hide=True)

                kwargs: Dict[str, Any] = {"full_page": full_page, "type": image_type}
                if image_type == "jpeg" and quality is not None:
                    kwargs["quality"] = quality
                if clip:
                    kwargs["clip"] = clip
                return await page.screenshot(**kwargs)

        return await run_ladder(
            self._rungs(attempt),
            "Failed to take screenshot after trying all combinations",
            delay=self.ladder_delay,
            debug=debug,
        )


async def scrape_web_url(
    scraper: BrowserScraper, url: str, options: Optional[Dict[str, Any]] = None
) -> Union[str, List[str]]:
    """Rendered HTML with a 3 second settle delay unless told otherwise"""
    options = {"delay_after_load": 3, **(options or {})}
    return await scraper.get_html_content(url, **options)
