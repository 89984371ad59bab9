"""
HTML retrieval strategies.

Each strategy returns non-empty HTML or raises ScrapeError. The headless
browser strategy lives in scraping.browser; the rest are plain HTTP calls.
"""

import logging
from typing import Dict, Optional

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from scraping.errors import ScrapeError

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

SCRAPE_DO_URL = "https://api.scrape.do"
SCRAPPEY_URL = "https://scrappey-com.p.rapidapi.com/api/v1"
SCRAPPEY_HOST = "scrappey-com.p.rapidapi.com"


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True,
)
async def _send(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
    """Issue a request, retrying transient transport errors"""
    response = await client.request(method, url, **kwargs)
    response.raise_for_status()
    return response


async def _send_with_proxy_fallback(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    proxy_url: Optional[str],
    timeout: float,
    **kwargs,
) -> httpx.Response:
    """Send directly; on failure send once more through ``proxy_url`` if given"""
    try:
        return await _send(client, method, url, timeout=timeout, **kwargs)
    except httpx.HTTPError as e:
        if not proxy_url:
            raise ScrapeError(f"Request to {url} failed: {str(e)}") from e
        logger.info(f"🔁 Retrying {url} through proxy after: {str(e)}")

    try:
        async with httpx.AsyncClient(
            proxy=proxy_url, timeout=timeout, follow_redirects=True
        ) as proxied:
            return await _send(proxied, method, url, **kwargs)
    except httpx.HTTPError as e:
        raise ScrapeError(f"Proxied request to {url} failed: {str(e)}") from e


def _require_html(html: Optional[str], source: str, url: str) -> str:
    if not html:
        # A 200 with an empty body is treated as a failed attempt
        logger.warning(f"⚠️  {source} returned an empty body for {url}")
        raise ScrapeError(f"{source} returned empty content for {url}")
    return html


async def fetch_html_direct(
    client: httpx.AsyncClient,
    url: str,
    timeout: float = 30.0,
    headers: Optional[Dict[str, str]] = None,
    proxy_url: Optional[str] = None,
) -> str:
    """Plain GET with browser-like headers; no JavaScript execution"""
    logger.info(f"🌐 Fetching {url} directly")
    response = await _send_with_proxy_fallback(
        client,
        "GET",
        url,
        proxy_url,
        timeout,
        headers={**BROWSER_HEADERS, **(headers or {})},
        follow_redirects=True,
    )
    return _require_html(response.text, "Direct HTTP", url)


async def fetch_html_scrapedo(
    client: httpx.AsyncClient,
    url: str,
    token: str,
    timeout: float = 30.0,
    proxy_url: Optional[str] = None,
) -> str:
    """Scrape.do rendering proxy, token passed in the query string"""
    if not token:
        raise ScrapeError("SCRAPE_DO_API_KEY is not configured")

    logger.info(f"🌐 Fetching {url} through scrape.do")
    response = await _send_with_proxy_fallback(
        client,
        "GET",
        SCRAPE_DO_URL,
        proxy_url,
        timeout,
        params={"token": token, "url": url},
    )
    return _require_html(response.text, "Scrape.do", url)


async def fetch_html_scrappey(
    client: httpx.AsyncClient,
    url: str,
    api_key: str,
    timeout: float = 30.0,
) -> str:
    """Scrappey through the RapidAPI gateway"""
    if not api_key:
        raise ScrapeError("RAPID_API_KEY is not configured")

    logger.info(f"🌐 Fetching {url} through scrappey")
    try:
        response = await _send(
            client,
            "POST",
            SCRAPPEY_URL,
            timeout=timeout,
            headers={
                "x-rapidapi-key": api_key,
                "x-rapidapi-host": SCRAPPEY_HOST,
                "Content-Type": "application/json",
            },
            json={"cmd": "request.get", "url": url},
        )
    except httpx.HTTPError as e:
        raise ScrapeError(f"Scrappey request for {url} failed: {str(e)}") from e

    html = response.text
    if "application/json" in response.headers.get("content-type", ""):
        payload = response.json()
        if isinstance(payload, dict):
            solution = payload.get("solution") or {}
            html = solution.get("response") or payload.get("html") or ""
            if payload.get("error") and not html:
                raise ScrapeError(f"Scrappey error for {url}: {payload.get('error')}")
    return _require_html(html, "Scrappey", url)


async def fetch_html_firecrawl(
    client: httpx.AsyncClient,
    url: str,
    api_key: Optional[str],
    base_url: str = "https://api.firecrawl.dev/v1",
    timeout: float = 30.0,
) -> str:
    """Firecrawl headless rendering service, HTML format"""
    if not api_key:
        raise ScrapeError("FIRECRAWL_API_KEY is not configured")

    logger.info(f"🌐 Fetching {url} through firecrawl")
    try:
        response = await _send(
            client,
            "POST",
            f"{base_url.rstrip('/')}/scrape",
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json={"url": url, "formats": ["html"]},
        )
    except httpx.HTTPError as e:
        raise ScrapeError(f"Firecrawl request for {url} failed: {str(e)}") from e

    payload = response.json()
    if not payload.get("success"):
        raise ScrapeError(f"Firecrawl could not scrape {url}: {payload.get('error', 'unknown error')}")
    return _require_html((payload.get("data") or {}).get("html"), "Firecrawl", url)
