"""
Screenshot-based review of a URL.
"""

import logging
from typing import Optional

from ai.analyze import analyze_image_base64
from ai.client import AiClient
from ai.schemas import AnalysisResult
from review.schemas import utcnow
from scraping.browser import BrowserScraper
from utils.images import resize_screenshot_if_needed

logger = logging.getLogger(__name__)

SCREENSHOT_SYSTEM_PROMPT = (
    "You are an image checker and detector of harmful content, including sexual content, "
    "political, religious, gender, racial discrimination, etc."
)
SCREENSHOT_INSTRUCTIONS = "Analyze the image and determine if it contains harmful content."


async def review_url_by_screenshot(
    ai: AiClient,
    browser_scraper: BrowserScraper,
    url: str,
    model: Optional[str] = None,
    delay_after_load: float = 3.0,
    timeout: float = 60.0,
    debug: bool = False,
) -> dict:
    """
    Screenshot ``url`` and run the image safety analysis on it.

    Returns:
        The analysis (data, usage, model) plus a ``screenshot`` summary
    """
    image = await browser_scraper.screenshot(
        url, delay_after_load=delay_after_load, timeout=timeout, debug=debug
    )
    base64_image = resize_screenshot_if_needed(image)
    logger.info(f"📸 Screenshot of {url} captured ({len(image)} bytes)")

    analysis: AnalysisResult = await analyze_image_base64(
        ai,
        base64_image,
        system_prompt=SCREENSHOT_SYSTEM_PROMPT,
        instructions=SCREENSHOT_INSTRUCTIONS,
        model=model,
        mime_type="image/jpeg",
        debug=debug,
    )

    return {
        **analysis.model_dump(),
        "screenshot": {
            "url": url,
            "captured_at": utcnow().isoformat(),
            "size_bytes": len(image),
        },
    }
