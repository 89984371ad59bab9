"""
URL helpers: liveness checks and normalisation.
"""

import logging
import time
from typing import Annotated, Optional
from urllib.parse import urljoin, urlparse

import httpx
from pydantic import AfterValidator, BaseModel, HttpUrl, TypeAdapter, ValidationError

from scraping.strategies import BROWSER_HEADERS

logger = logging.getLogger(__name__)

SKIPPED_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "#")

_HTTP_URL = TypeAdapter(HttpUrl)


def _check_http_url(value: str) -> str:
    value = value.strip()
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError:
        raise ValueError(f"Invalid URL: {value}")
    return value


# Validated as an http(s) URL but kept exactly as given (no trailing slash added)
PageUrl = Annotated[str, AfterValidator(_check_http_url)]


class UrlAliveResult(BaseModel):
    alive: bool
    status_code: Optional[int] = None
    response_time_ms: Optional[int] = None
    message: str = ""


async def is_url_alive(
    client: httpx.AsyncClient,
    url: str,
    timeout: float = 10.0,
    proxy_url: Optional[str] = None,
) -> UrlAliveResult:
    """
    GET ``url`` and report whether it answered with HTTP 200.

    Never raises; transport and status problems are reported in ``message``.
    """
    started = time.monotonic()
    try:
        if proxy_url:
            async with httpx.AsyncClient(proxy=proxy_url, follow_redirects=True) as proxied:
                response = await proxied.get(url, timeout=timeout, headers=BROWSER_HEADERS)
        else:
            response = await client.get(
                url, timeout=timeout, headers=BROWSER_HEADERS, follow_redirects=True
            )
    except httpx.HTTPError as e:
        logger.warning(f"⚠️  {url} is not reachable: {str(e) or e.__class__.__name__}")
        return UrlAliveResult(
            alive=False,
            response_time_ms=int((time.monotonic() - started) * 1000),
            message=str(e) or e.__class__.__name__,
        )

    elapsed = int((time.monotonic() - started) * 1000)
    if response.status_code != 200:
        return UrlAliveResult(
            alive=False,
            status_code=response.status_code,
            response_time_ms=elapsed,
            message=f"HTTP status {response.status_code}",
        )
    return UrlAliveResult(
        alive=True, status_code=200, response_time_ms=elapsed, message="URL is alive"
    )


def normalize_link(href: str, base_url: str) -> Optional[str]:
    """
    Resolve ``href`` against ``base_url``.

    Returns None for empty, javascript:, mailto:, tel: and fragment-only links
    and for anything that does not resolve to an http(s) URL. A trailing slash
    is dropped unless the path is the root.
    """
    href = (href or "").strip()
    if not href or href.startswith(SKIPPED_HREF_PREFIXES):
        return None

    try:
        absolute = urljoin(base_url, href)
        parsed = urlparse(absolute)
    except ValueError:
        logger.debug(f"Skipping invalid link {href} on {base_url}")
        return None

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None

    if parsed.path in ("", "/") and not parsed.query and not parsed.fragment:
        return f"{parsed.scheme}://{parsed.netloc}/"
    if absolute.endswith("/"):
        absolute = absolute[:-1]
    return absolute


def same_origin(a: str, b: str) -> bool:
    pa, pb = urlparse(a), urlparse(b)
    return (pa.scheme, pa.netloc.lower()) == (pb.scheme, pb.netloc.lower())
