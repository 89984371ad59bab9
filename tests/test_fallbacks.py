"""
Tests for HTML retrieval with fallbacks.
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from scraping.errors import FallbackExhaustedError, ScrapeError
from scraping.fallbacks import HtmlFetcher, HtmlFetchOptions


@pytest.fixture
def fetcher(test_settings):
    fetcher = HtmlFetcher(httpx.AsyncClient(), browser_scraper=None, settings=test_settings)
    fetcher._direct = AsyncMock(side_effect=ScrapeError("Direct HTTP returned empty content"))
    fetcher._headless = AsyncMock(side_effect=ScrapeError("browser failed"))
    fetcher._scrapedo = AsyncMock(return_value="<html>scrapedo</html>")
    fetcher._scrappey = AsyncMock(return_value="<html>scrappey</html>")
    fetcher._firecrawl = AsyncMock(side_effect=ScrapeError("FIRECRAWL_API_KEY is not configured"))
    return fetcher


class TestGetHtmlWithFallbacks:
    @pytest.mark.asyncio
    async def test_direct_success_skips_the_rest(self, fetcher):
        fetcher._direct = AsyncMock(return_value="<html>direct</html>")

        html = await fetcher.get_html_with_fallbacks("https://example.com")

        assert html == "<html>direct</html>"
        fetcher._headless.assert_not_called()
        fetcher._firecrawl.assert_not_called()

    @pytest.mark.asyncio
    async def test_headless_fragments_are_joined(self, fetcher):
        fetcher._headless = AsyncMock(return_value=["<h1>A</h1>", "<p>B</p>"])

        html = await fetcher.get_html_with_fallbacks(
            "https://example.com", HtmlFetchOptions(selectors=["h1", "p"])
        )

        assert html == "<h1>A</h1>\n<p>B</p>"

    @pytest.mark.asyncio
    async def test_unconfigured_providers_are_skipped(self, fetcher):
        with pytest.raises(FallbackExhaustedError) as exc_info:
            await fetcher.get_html_with_fallbacks("https://example.com")

        error = exc_info.value
        assert str(error) == (
            "Failed to fetch HTML content for https://example.com after trying all available methods"
        )
        assert [(a.strategy, a.outcome) for a in error.attempts] == [
            ("axios", "failure"),
            ("playwright", "failure"),
            ("scrapedo", "skipped"),
            ("scrappey", "skipped"),
            ("firecrawl", "failure"),
        ]
        fetcher._scrapedo.assert_not_called()
        fetcher._scrappey.assert_not_called()

    @pytest.mark.asyncio
    async def test_configured_provider_is_used(self, fetcher):
        fetcher.settings = fetcher.settings.model_copy(update={"SCRAPE_DO_API_KEY": "tok"})

        html = await fetcher.get_html_with_fallbacks("https://example.com")

        assert html == "<html>scrapedo</html>"
        fetcher._scrappey.assert_not_called()

    @pytest.mark.asyncio
    async def test_simple_html(self, fetcher):
        fetcher._direct = AsyncMock(
            return_value='<html><head><title>x</title></head><body><div class="a">Hi<script>x()</script></div></body></html>'
        )

        html = await fetcher.get_html_with_fallbacks(
            "https://example.com", HtmlFetchOptions(simple_html=True)
        )

        assert "<script>" not in html
        assert 'class="a"' not in html
        assert "Hi" in html
