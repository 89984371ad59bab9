"""
Link extraction from a rendered page.
"""

import asyncio
import logging
import re
from typing import Dict, List, Literal, Optional

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel

from scraping import strategies
from scraping.browser import BrowserScraper
from scraping.urls import normalize_link, same_origin

logger = logging.getLogger(__name__)

LinkType = Literal["all", "internal", "external", "web", "image", "file"]

FILE_EXTENSIONS: Dict[str, List[str]] = {
    "web": [".html", ".htm", ".php", ".asp", ".aspx"],
    "image": [".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp", ".tiff"],
    "file": [".pdf", ".doc", ".docx", ".xls", ".xlsx", ".txt", ".csv", ".zip", ".rar"],
}

HREF_PATTERN = re.compile(r"""href\s*=\s*["']([^"'\s>]+)["']""", re.IGNORECASE)


class ExtractedLink(BaseModel):
    link: str
    status_code: Optional[int] = None


def _collect_hrefs(html: str) -> List[str]:
    """Anchor hrefs first, then any other href= attribute in document order"""
    soup = BeautifulSoup(html, "html.parser")
    hrefs = [a.get("href") for a in soup.find_all("a") if a.get("href")]
    hrefs.extend(HREF_PATTERN.findall(html))
    return hrefs


def _matches_type(link: str, base_url: str, link_type: LinkType) -> bool:
    if link_type == "all":
        return True
    if link_type == "internal":
        return same_origin(link, base_url)
    if link_type == "external":
        return not same_origin(link, base_url)

    lowered = link.lower()
    has_extension = any(ext in lowered for ext in FILE_EXTENSIONS[link_type])
    if link_type == "web":
        known = [ext for exts in FILE_EXTENSIONS.values() for ext in exts]
        return has_extension or not any(ext in lowered for ext in known)
    return has_extension


async def _status_code(client: httpx.AsyncClient, link: str, timeout: float) -> Optional[int]:
    try:
        response = await client.get(link, timeout=timeout, follow_redirects=True)
        return response.status_code
    except httpx.TimeoutException:
        return 504
    except httpx.HTTPError as e:
        logger.debug(f"Status check failed for {link}: {str(e)}")
        return None


async def extract_all_links_from_url(
    client: httpx.AsyncClient,
    browser_scraper: BrowserScraper,
    url: str,
    link_type: LinkType = "all",
    max_links: int = 500,
    get_status_code: bool = False,
    delay_after_load: Optional[float] = 5.0,
    status_timeout: float = 10.0,
    debug: bool = False,
) -> List[ExtractedLink]:
    """
    Collect the links of ``url`` as absolute, de-duplicated URLs.

    The page is rendered in the headless browser, with a plain GET as
    fallback. When both fail the result is an empty list.
    """
    try:
        html = await browser_scraper.get_html_content(
            url, delay_after_load=delay_after_load, debug=debug
        )
    except Exception as e:
        logger.warning(f"⚠️  Browser HTML failed for {url}, falling back to direct HTTP: {str(e)}")
        try:
            html = await strategies.fetch_html_direct(client, url)
        except Exception as e:
            logger.error(f"❌ Could not fetch {url} for link extraction: {str(e)}")
            return []

    if isinstance(html, list):
        html = "\n".join(html)

    links: List[str] = []
    seen = set()
    for href in _collect_hrefs(html):
        link = normalize_link(href, url)
        if link and link not in seen:
            seen.add(link)
            links.append(link)

    links = [link for link in links if _matches_type(link, url, link_type)][:max_links]

    if get_status_code:
        codes = await asyncio.gather(*(_status_code(client, link, status_timeout) for link in links))
        logger.info(f"✅ Extracted {len(links)} links (with status codes) from {url}")
        return [ExtractedLink(link=link, status_code=code) for link, code in zip(links, codes)]

    logger.info(f"✅ Extracted {len(links)} links from {url}")
    return [ExtractedLink(link=link) for link in links]
