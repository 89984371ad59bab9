"""
HTML retrieval with fallbacks.

Order: direct HTTP, headless browser, scrape.do, scrappey, firecrawl.
The first strategy that returns content wins.
"""

import logging
from typing import Dict, List, Literal, Optional, Union

import httpx
from pydantic import BaseModel, Field

from config import Settings
from scraping import strategies
from scraping.browser import BrowserScraper
from scraping.errors import FallbackExhaustedError
from scraping.html import simplify_html
from scraping.ladder import Rung, run_ladder

logger = logging.getLogger(__name__)


class HtmlFetchOptions(BaseModel):
    """Options for get_html_with_fallbacks (durations in seconds)"""

    delay_between_retries: float = Field(default=0, ge=0)
    delay_after_load: Optional[float] = Field(default=None, ge=0)
    timeout: float = Field(default=30.0, gt=0)
    headers: Optional[Dict[str, str]] = None
    proxy_url: Optional[str] = None
    debug: bool = False
    selectors: Optional[List[str]] = None
    selector_mode: Literal["first", "all"] = "first"
    simple_html: bool = False


class HtmlFetcher:
    """Runs the five HTML strategies in order for one URL at a time"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        browser_scraper: BrowserScraper,
        settings: Settings,
    ):
        self.client = client
        self.browser_scraper = browser_scraper
        self.settings = settings

    async def _direct(self, url: str, options: HtmlFetchOptions) -> str:
        return await strategies.fetch_html_direct(
            self.client,
            url,
            timeout=options.timeout,
            headers=options.headers,
            proxy_url=options.proxy_url or self.settings.PROXY_URL,
        )

    async def _headless(self, url: str, options: HtmlFetchOptions) -> Union[str, List[str]]:
        return await self.browser_scraper.get_html_content(
            url,
            delay_after_load=options.delay_after_load,
            timeout=options.timeout,
            selectors=options.selectors,
            selector_mode=options.selector_mode,
            debug=options.debug,
        )

    async def _scrapedo(self, url: str, options: HtmlFetchOptions) -> str:
        return await strategies.fetch_html_scrapedo(
            self.client,
            url,
            token=self.settings.SCRAPE_DO_API_KEY,
            timeout=options.timeout,
            proxy_url=options.proxy_url or self.settings.PROXY_URL,
        )

    async def _scrappey(self, url: str, options: HtmlFetchOptions) -> str:
        return await strategies.fetch_html_scrappey(
            self.client,
            url,
            api_key=self.settings.RAPID_API_KEY,
            timeout=options.timeout,
        )

    async def _firecrawl(self, url: str, options: HtmlFetchOptions) -> str:
        return await strategies.fetch_html_firecrawl(
            self.client,
            url,
            api_key=self.settings.FIRECRAWL_API_KEY,
            base_url=self.settings.FIRECRAWL_BASE_URL,
            timeout=options.timeout,
        )

    async def get_html_with_fallbacks(
        self, url: str, options: Optional[HtmlFetchOptions] = None
    ) -> str:
        """
        Fetch the HTML of ``url`` with the first strategy that succeeds.

        Scoped selector results are joined with newlines. Strategies whose
        credentials are not configured are skipped without delay.

        Raises:
            FallbackExhaustedError: If every available strategy failed
        """
        options = options or HtmlFetchOptions()

        rungs = [
            Rung("axios", lambda: self._direct(url, options)),
            Rung("playwright", lambda: self._headless(url, options)),
            Rung(
                "scrapedo",
                lambda: self._scrapedo(url, options),
                available=bool(self.settings.SCRAPE_DO_API_KEY),
            ),
            Rung(
                "scrappey",
                lambda: self._scrappey(url, options),
                available=bool(self.settings.RAPID_API_KEY),
            ),
            Rung("firecrawl", lambda: self._firecrawl(url, options)),
        ]

        result = await run_ladder(
            rungs,
            f"Failed to fetch HTML content for {url} after trying all available methods",
            delay=options.delay_between_retries,
            error_cls=FallbackExhaustedError,
            debug=options.debug,
        )

        html = "\n".join(result) if isinstance(result, list) else result
        return simplify_html(html) if options.simple_html else html
