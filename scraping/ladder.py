"""
Fallback ladder executor.

A ladder is an ordered list of rungs. Rungs run strictly one after another;
the first one that produces content wins, and when every rung fails the
collected attempts are raised together.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Literal, Optional, Sequence, Type

from pydantic import BaseModel

from scraping.errors import LadderExhaustedError

logger = logging.getLogger(__name__)

Strategy = Literal["axios", "playwright", "scrapedo", "scrappey", "firecrawl"]


class ScrapeAttempt(BaseModel):
    """Outcome of one rung; kept only until the ladder resolves"""

    strategy: Strategy
    browser_type: Optional[Literal["firefox", "chromium"]] = None
    use_proxy: bool = False
    outcome: Literal["success", "failure", "skipped"]
    error: Optional[str] = None


@dataclass
class Rung:
    strategy: Strategy
    run: Callable[[], Awaitable[Any]]
    browser_type: Optional[str] = None
    use_proxy: bool = False
    # False means the rung's credential is missing: it is skipped, not failed
    available: bool = True

    @property
    def label(self) -> str:
        if self.browser_type:
            proxy = "with proxy" if self.use_proxy else "no proxy"
            return f"{self.browser_type} ({proxy})"
        return self.strategy


class LadderRungEmpty(Exception):
    """A rung completed but produced nothing usable"""

    pass


def has_content(result: Any) -> bool:
    """Non-empty string/bytes, or non-empty list"""
    if result is None:
        return False
    if isinstance(result, (str, bytes, list, tuple)):
        return len(result) > 0
    return True


async def run_ladder(
    rungs: Sequence[Rung],
    error_message: str,
    delay: float = 0,
    is_success: Callable[[Any], bool] = has_content,
    error_cls: Type[LadderExhaustedError] = LadderExhaustedError,
    debug: bool = False,
) -> Any:
    """
    Try each rung in order and return the first successful result.

    Args:
        rungs: Ordered rungs
        error_message: Message of the terminal error
        delay: Seconds to sleep after a failed rung when another rung follows
        is_success: Predicate a result must satisfy to count as success
        error_cls: Terminal exception class
        debug: Log each attempt

    Raises:
        error_cls: Carrying one ScrapeAttempt per rung
    """
    attempts: List[ScrapeAttempt] = []

    for index, rung in enumerate(rungs):
        if not rung.available:
            if debug:
                logger.debug(f"⏭️  Skipping {rung.label} (not configured)")
            attempts.append(
                ScrapeAttempt(
                    strategy=rung.strategy,
                    browser_type=rung.browser_type,
                    use_proxy=rung.use_proxy,
                    outcome="skipped",
                )
            )
            continue

        if debug:
            logger.debug(f"🔄 Attempt {index + 1}/{len(rungs)}: {rung.label}")

        try:
            result = await rung.run()
            if not is_success(result):
                raise LadderRungEmpty(f"{rung.label} returned empty content")
        except Exception as e:
            logger.warning(f"⚠️  {rung.label} failed: {str(e)}")
            attempts.append(
                ScrapeAttempt(
                    strategy=rung.strategy,
                    browser_type=rung.browser_type,
                    use_proxy=rung.use_proxy,
                    outcome="failure",
                    error=str(e) or e.__class__.__name__,
                )
            )
            if delay and _has_next_runnable(rungs, index):
                await asyncio.sleep(delay)
            continue

        if debug:
            logger.debug(f"✅ {rung.label} succeeded")
        return result

    logger.error(f"❌ {error_message}")
    raise error_cls(error_message, attempts)


def _has_next_runnable(rungs: Sequence[Rung], index: int) -> bool:
    return any(r.available for r in rungs[index + 1:])
