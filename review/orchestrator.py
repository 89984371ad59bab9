"""
Review workflow: scrape a URL, run every AI analysis, persist the outcome.
"""

import logging
import time
from typing import Callable, List, Optional

import httpx

from ai.analyze import analyze_image_base64, analyze_url
from ai.client import AiClient
from review.schemas import (
    LinkAnalysis,
    ReviewCreateData,
    ReviewResult,
    ReviewStartOptions,
    ReviewStatus,
)
from review.screenshot import review_url_by_screenshot
from review.store import ReviewStore
from scraping.browser import BrowserScraper
from scraping.fallbacks import HtmlFetcher
from scraping.links import extract_all_links_from_url
from scraping.metadata import scrape_metadata
from utils.concurrency import gather_or_cancel
from utils.images import image_url_to_base64

logger = logging.getLogger(__name__)

HTML_SYSTEM_PROMPT = "Analyze the website content for safety, quality, and potential improvements."
IMAGE_INSTRUCTIONS = "Analyze the image for content, safety, and potential issues"
LINK_INSTRUCTIONS = "Provide a comprehensive assessment of the webpage's content and potential issues"
DEFAULT_IMAGE_MODEL = "google/gemini-flash-1.5-8b"

ProgressCallback = Callable[[str, int], None]


class ReviewOrchestrator:
    """
    Runs one review per call to start_review.

    Stages run in a fixed order; per-image and per-link analyses run
    concurrently within their stage. Image and link analysis failures are
    absorbed unless the matching continue flag is off. Any other failure
    marks the review FAILED and is re-raised.
    """

    def __init__(
        self,
        store: ReviewStore,
        ai: AiClient,
        fetcher: HtmlFetcher,
        browser_scraper: BrowserScraper,
        client: httpx.AsyncClient,
        default_debug: bool = False,
    ):
        self.store = store
        self.ai = ai
        self.fetcher = fetcher
        self.browser_scraper = browser_scraper
        self.client = client
        self.default_debug = default_debug

    # Stage implementations, one per external capability

    async def _extract_images(self, url: str, options: ReviewStartOptions) -> List[str]:
        return await self.browser_scraper.get_all_images(
            url,
            delay_after_load=options.delay_after_load / 1000,
            exclude_selectors=options.exclude_image_selectors,
            debug=options.debug,
        )

    async def _extract_links(self, url: str, options: ReviewStartOptions) -> List[str]:
        links = await extract_all_links_from_url(
            self.client,
            self.browser_scraper,
            url,
            max_links=options.max_extracted_links,
            debug=options.debug,
        )
        return [item.link for item in links]

    async def _scrape_metadata(self, url: str) -> dict:
        metadata = await scrape_metadata(self.client, url)
        return metadata.model_dump()

    async def _analyze_html(self, data: ReviewCreateData, options: ReviewStartOptions) -> dict:
        result = await analyze_url(
            self.ai,
            self.fetcher,
            self.client,
            str(data.url),
            system_prompt=HTML_SYSTEM_PROMPT,
            instructions=data.instructions or None,
            model=options.text_model,
            debug=options.debug,
        )
        return result.model_dump()

    async def _analyze_screenshot(self, url: str, options: ReviewStartOptions) -> dict:
        return await review_url_by_screenshot(
            self.ai,
            self.browser_scraper,
            url,
            model=options.vision_model,
            debug=options.debug,
        )

    async def _analyze_image(self, image_url: str, options: ReviewStartOptions) -> Optional[dict]:
        try:
            base64_image = await image_url_to_base64(self.client, image_url)
            if not base64_image:
                logger.warning(f"⚠️  No image data for {image_url}")
                return None
            result = await analyze_image_base64(
                self.ai,
                base64_image,
                instructions=IMAGE_INSTRUCTIONS,
                model=options.vision_model or DEFAULT_IMAGE_MODEL,
            )
            return result.model_dump()
        except Exception as e:
            logger.error(f"❌ Image analysis failed for {image_url}: {str(e)}")
            if not options.continue_on_image_analysis_error:
                raise
            return None

    async def _analyze_link(
        self, link: str, data: ReviewCreateData, options: ReviewStartOptions
    ) -> dict:
        try:
            result = await analyze_url(
                self.ai,
                self.fetcher,
                self.client,
                link,
                system_prompt=(
                    "Analyze the linked webpage for content safety, relevance, and potential "
                    f"risks. {data.instructions or ''}"
                ).strip(),
                instructions=LINK_INSTRUCTIONS,
                model=options.text_model,
            )
            return LinkAnalysis(
                url=link, status="completed", analysis=result.model_dump()
            ).model_dump(exclude_none=True)
        except Exception as e:
            logger.error(f"❌ Link analysis failed for {link}: {str(e)}")
            if not options.continue_on_link_analysis_error:
                raise
            return LinkAnalysis(
                url=link, status="failed", error=str(e) or "Unknown error"
            ).model_dump(exclude_none=True)

    async def start_review(
        self,
        data: ReviewCreateData,
        options: Optional[ReviewStartOptions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ReviewResult:
        """
        Run the full review of ``data.url``.

        Args:
            data: URL, owner and optional instructions
            options: Review tuning (defaults apply when omitted)
            progress: Optional ``progress(stage, percent)`` callback

        Returns:
            The COMPLETED review

        Raises:
            Exception: Whatever stopped the review; the stored review is FAILED
        """
        options = options.model_copy() if options else ReviewStartOptions()
        if options.debug is None:
            options.debug = self.default_debug

        def report(stage: str, percent: int):
            if options.debug:
                logger.debug(f"🔎 [{percent}%] {stage}")
            if progress is not None:
                progress(stage, percent)

        url = str(data.url)
        started = time.monotonic()
        review = await self.store.create(data)
        logger.info(f"🚀 Starting review {review.id} for {url}")

        try:
            report("Extracting images", 5)
            images: List[str] = []
            if not options.skip_image_extraction:
                images = await self._extract_images(url, options)
            images = images[: options.max_extracted_images]

            report("Extracting links", 15)
            links: List[str] = []
            if not options.skip_link_extraction:
                links = await self._extract_links(url, options)

            report("Scraping metadata", 25)
            metadata = await self._scrape_metadata(url)

            report("Analyzing page content", 35)
            html_analysis = await self._analyze_html(data, options)

            report("Analyzing screenshot", 55)
            screenshot_analysis = await self._analyze_screenshot(url, options)

            report(f"Analyzing {len(images)} images", 70)
            images_analysis = await gather_or_cancel(
                self._analyze_image(image, options) for image in images
            )

            report(f"Analyzing {len(links)} links", 85)
            links_analysis = await gather_or_cancel(
                self._analyze_link(link, data, options) for link in links
            )

            review = await self.store.update(
                review.id,
                status=ReviewStatus.COMPLETED,
                metadata=metadata,
                ai_analysis={
                    "html": html_analysis,
                    "screenshot": screenshot_analysis,
                    "images": [a for a in images_analysis if a is not None],
                    "links": list(links_analysis),
                },
            )
            report("Completed", 100)
            logger.info(
                f"✅ Review {review.id} completed in {time.monotonic() - started:.1f}s"
            )
            return review

        except Exception as e:
            logger.error(
                f"❌ Review {review.id} failed after {time.monotonic() - started:.1f}s: {str(e)}"
            )
            await self.store.update(
                review.id,
                status=ReviewStatus.FAILED,
                error_message=str(e) or "Unknown error occurred",
            )
            raise
