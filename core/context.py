"""
Service context: every long-lived dependency of the service in one object.

FastAPI builds one in its lifespan; each Celery task run builds its own.
"""

import logging
from typing import Optional

import httpx

from ai.client import AiClient
from ai.models import AiModelRegistry
from config import Settings
from core.browser import BrowserPool
from core.cache import RedisClient
from review.orchestrator import ReviewOrchestrator
from review.store import RedisReviewStore, ReviewStore
from scraping.browser import BrowserScraper
from scraping.fallbacks import HtmlFetcher

logger = logging.getLogger(__name__)


class ServiceContext:
    def __init__(
        self,
        settings: Settings,
        browser_pool: Optional[BrowserPool] = None,
        http: Optional[httpx.AsyncClient] = None,
        redis: Optional[RedisClient] = None,
        store: Optional[ReviewStore] = None,
    ):
        self.settings = settings
        self.browser_pool = browser_pool or BrowserPool(headless=True)
        self.http = http or httpx.AsyncClient(
            timeout=settings.SCRAPE_TIMEOUT,
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        )
        self.redis = redis
        self._store = store

        self.models = AiModelRegistry(
            self.http,
            settings.OPENROUTER_BASE_URL,
            cache=redis,
            cache_ttl=settings.AI_MODELS_CACHE_TTL,
        )
        self.ai = AiClient(
            self.http,
            api_key=settings.OPENROUTER_KEY,
            base_url=settings.OPENROUTER_BASE_URL,
            referer=settings.BASE_URL,
            title=f"{settings.SITE_NAME} ({settings.APP_ENV})",
            registry=self.models,
            timeout=settings.AI_TIMEOUT,
            max_retries=settings.AI_MAX_RETRIES,
        )
        self.browser_scraper = BrowserScraper(
            self.browser_pool,
            proxy_url=settings.PROXY_URL,
            navigation_timeout=settings.BROWSER_NAVIGATION_TIMEOUT,
            ladder_delay=settings.BROWSER_LADDER_DELAY,
            viewport=(settings.VIEWPORT_WIDTH, settings.VIEWPORT_HEIGHT),
        )
        self.fetcher = HtmlFetcher(self.http, self.browser_scraper, settings)

    @property
    def store(self) -> ReviewStore:
        if self._store is None:
            if self.redis is None:
                raise RuntimeError("Review store unavailable: Redis is not connected")
            self._store = RedisReviewStore(self.redis, ttl=self.settings.REVIEW_TTL)
        return self._store

    def orchestrator(self) -> ReviewOrchestrator:
        return ReviewOrchestrator(
            store=self.store,
            ai=self.ai,
            fetcher=self.fetcher,
            browser_scraper=self.browser_scraper,
            client=self.http,
            default_debug=self.settings.DEBUG or self.settings.is_dev,
        )

    async def init(self, launch_browsers: bool = True):
        """Connect Redis, warm the model list and (optionally) the browsers"""
        logger.info("🚀 Initializing service context...")

        if self.redis is None:
            try:
                self.redis = RedisClient(self.settings.REDIS_URL)
                self.models.cache = self.redis
            except RuntimeError as e:
                logger.warning(f"⚠️  Continuing without Redis: {str(e)}")

        await self.models.fetch_models()

        if launch_browsers:
            try:
                await self.browser_pool.initialize()
            except Exception as e:
                # Browsers are launched lazily on first use instead
                logger.warning(f"⚠️  Browser pool warm-up failed: {str(e)}")

        logger.info("✅ Service context ready")

    async def shutdown(self):
        logger.info("🛑 Shutting down service context...")
        await self.browser_pool.close_browsers()
        await self.http.aclose()
        if self.redis is not None:
            self.redis.close()
