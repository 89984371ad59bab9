# Scraping package - HTML, image, link and metadata retrieval
from .errors import ScrapeError, BotProtectionError, LadderExhaustedError, FallbackExhaustedError
from .ladder import Rung, ScrapeAttempt, run_ladder
from .browser import BrowserScraper, scrape_web_url
from .fallbacks import HtmlFetcher, HtmlFetchOptions

__all__ = [
    # Errors
    "ScrapeError",
    "BotProtectionError",
    "LadderExhaustedError",
    "FallbackExhaustedError",
    # Ladder
    "Rung",
    "ScrapeAttempt",
    "run_ladder",
    # Extractors
    "BrowserScraper",
    "scrape_web_url",
    "HtmlFetcher",
    "HtmlFetchOptions",
]
