"""Exceptions raised by the scraping pipeline."""

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from scraping.ladder import ScrapeAttempt


class ScrapeError(Exception):
    """A single strategy failed to produce content"""

    pass


class BotProtectionError(ScrapeError):
    """The target served a bot-protection interstitial instead of content"""

    pass


class LadderExhaustedError(ScrapeError):
    """Every rung of a fallback ladder failed"""

    def __init__(self, message: str, attempts: "List[ScrapeAttempt]"):
        super().__init__(message)
        self.attempts = attempts

    @property
    def errors(self) -> List[str]:
        return [a.error for a in self.attempts if a.error]


class FallbackExhaustedError(LadderExhaustedError):
    """All HTML retrieval methods failed for a URL"""

    pass
