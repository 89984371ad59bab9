"""
Tests for the HTTP HTML retrieval strategies, against httpx.MockTransport.
"""

import json

import httpx
import pytest

from scraping import strategies
from scraping.errors import ScrapeError


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestDirect:
    @pytest.mark.asyncio
    async def test_returns_body_with_browser_headers(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers["user-agent"]
            seen["extra"] = request.headers.get("x-test")
            return httpx.Response(200, text="<html>hello</html>")

        async with _client(handler) as client:
            html = await strategies.fetch_html_direct(
                client, "https://example.com", headers={"X-Test": "1"}
            )

        assert html == "<html>hello</html>"
        assert "Mozilla/5.0" in seen["ua"]
        assert seen["extra"] == "1"

    @pytest.mark.asyncio
    async def test_empty_body_is_a_failure(self):
        async with _client(lambda request: httpx.Response(200, text="")) as client:
            with pytest.raises(ScrapeError, match="empty content"):
                await strategies.fetch_html_direct(client, "https://example.com")

    @pytest.mark.asyncio
    async def test_http_error_without_proxy(self):
        async with _client(lambda request: httpx.Response(403, text="denied")) as client:
            with pytest.raises(ScrapeError, match="failed"):
                await strategies.fetch_html_direct(client, "https://example.com")


class TestScrapeDo:
    @pytest.mark.asyncio
    async def test_missing_token(self):
        async with _client(lambda request: httpx.Response(200, text="x")) as client:
            with pytest.raises(ScrapeError, match="SCRAPE_DO_API_KEY"):
                await strategies.fetch_html_scrapedo(client, "https://example.com", token="")

    @pytest.mark.asyncio
    async def test_token_and_url_in_query(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, text="<html>rendered</html>")

        async with _client(handler) as client:
            html = await strategies.fetch_html_scrapedo(
                client, "https://example.com/page", token="tok"
            )

        assert html == "<html>rendered</html>"
        assert seen["params"] == {"token": "tok", "url": "https://example.com/page"}


class TestScrappey:
    @pytest.mark.asyncio
    async def test_reads_solution_response(self):
        def handler(request):
            body = json.loads(request.content)
            assert body == {"cmd": "request.get", "url": "https://example.com"}
            assert request.headers["x-rapidapi-key"] == "rapid"
            return httpx.Response(200, json={"solution": {"response": "<html>solved</html>"}})

        async with _client(handler) as client:
            html = await strategies.fetch_html_scrappey(client, "https://example.com", api_key="rapid")

        assert html == "<html>solved</html>"

    @pytest.mark.asyncio
    async def test_error_payload(self):
        handler = lambda request: httpx.Response(200, json={"error": "captcha unsolved"})

        async with _client(handler) as client:
            with pytest.raises(ScrapeError, match="captcha unsolved"):
                await strategies.fetch_html_scrappey(client, "https://example.com", api_key="rapid")


class TestFirecrawl:
    @pytest.mark.asyncio
    async def test_missing_key(self):
        async with _client(lambda request: httpx.Response(200)) as client:
            with pytest.raises(ScrapeError, match="FIRECRAWL_API_KEY"):
                await strategies.fetch_html_firecrawl(client, "https://example.com", api_key=None)

    @pytest.mark.asyncio
    async def test_success(self):
        def handler(request):
            assert request.url.path == "/v1/scrape"
            assert request.headers["authorization"] == "Bearer fc-key"
            return httpx.Response(200, json={"success": True, "data": {"html": "<html>fc</html>"}})

        async with _client(handler) as client:
            html = await strategies.fetch_html_firecrawl(
                client, "https://example.com", api_key="fc-key"
            )

        assert html == "<html>fc</html>"

    @pytest.mark.asyncio
    async def test_unsuccessful_payload(self):
        handler = lambda request: httpx.Response(200, json={"success": False, "error": "blocked"})

        async with _client(handler) as client:
            with pytest.raises(ScrapeError, match="blocked"):
                await strategies.fetch_html_firecrawl(client, "https://example.com", api_key="fc-key")
