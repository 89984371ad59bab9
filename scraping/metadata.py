"""
Page metadata scraping (title, meta tags, Open Graph, Twitter cards).
"""

import logging
from typing import List, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel

from scraping.errors import ScrapeError
from scraping.strategies import BROWSER_HEADERS

logger = logging.getLogger(__name__)


class PageMetadata(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    language: str = "en"
    image: Optional[str] = None
    keywords: Optional[List[str]] = None
    url: Optional[str] = None
    author: Optional[str] = None
    publisher: Optional[str] = None
    published_time: Optional[str] = None
    copyright: Optional[str] = None
    favicon: Optional[str] = None
    video: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None
    location: Optional[str] = None
    robots: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    og_url: Optional[str] = None
    twitter_title: Optional[str] = None
    twitter_description: Optional[str] = None
    twitter_image: Optional[str] = None
    twitter_url: Optional[str] = None


def _meta(soup: BeautifulSoup, attr: str, value: str) -> Optional[str]:
    tag = soup.find("meta", attrs={attr: value})
    if tag is None:
        return None
    return tag.get("content")


def parse_metadata(html: str, base_url: Optional[str] = None) -> PageMetadata:
    soup = BeautifulSoup(html, "html.parser")

    title = soup.title.get_text(strip=True) if soup.title else None
    html_tag = soup.find("html")
    language = _meta(soup, "name", "language") or (html_tag.get("lang") if html_tag else None) or "en"
    keywords = _meta(soup, "name", "keywords")

    favicon = None
    # rel is multi-valued: the filter sees each token separately
    icon = soup.find("link", rel=lambda token: bool(token) and token.lower() == "icon")
    if icon and icon.get("href"):
        favicon = urljoin(base_url, icon["href"]) if base_url else icon["href"]

    return PageMetadata(
        title=title,
        description=_meta(soup, "name", "description"),
        language=language,
        image=_meta(soup, "name", "image"),
        keywords=[k.strip() for k in keywords.split(",") if k.strip()] if keywords else None,
        url=_meta(soup, "name", "url"),
        author=_meta(soup, "name", "author"),
        publisher=_meta(soup, "name", "publisher"),
        published_time=_meta(soup, "name", "published-time"),
        copyright=_meta(soup, "name", "copyright"),
        favicon=favicon,
        video=_meta(soup, "name", "video"),
        type=_meta(soup, "name", "type"),
        category=_meta(soup, "name", "category"),
        tags=_meta(soup, "name", "tags"),
        location=_meta(soup, "name", "location"),
        robots=_meta(soup, "name", "robots"),
        og_title=_meta(soup, "property", "og:title"),
        og_description=_meta(soup, "property", "og:description"),
        og_image=_meta(soup, "property", "og:image"),
        og_url=_meta(soup, "property", "og:url"),
        twitter_title=_meta(soup, "name", "twitter:title"),
        twitter_description=_meta(soup, "name", "twitter:description"),
        twitter_image=_meta(soup, "name", "twitter:image"),
        twitter_url=_meta(soup, "name", "twitter:url"),
    )


async def scrape_metadata(
    client: httpx.AsyncClient, url: str, timeout: float = 30.0
) -> PageMetadata:
    """
    Fetch ``url`` directly and read its metadata.

    Raises:
        ScrapeError: If the page cannot be fetched
    """
    try:
        response = await client.get(
            url, timeout=timeout, headers=BROWSER_HEADERS, follow_redirects=True
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ScrapeError(f"Failed to fetch metadata for {url}: {str(e)}") from e

    logger.info(f"🏷️  Scraped metadata of {url}")
    return parse_metadata(response.text, base_url=str(response.url))
