"""
Pytest configuration and shared fixtures.
"""

import uuid
from typing import Dict, List, Optional, Tuple

import pytest

from ai.schemas import AskAiResponse, Choice, ChoiceMessage, Usage
from config import Settings
from review.schemas import ReviewCreateData, ReviewResult, utcnow
from review.store import ReviewNotFoundError, ReviewStore


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Keep tests independent of the developer's environment."""
    monkeypatch.setenv("OPENROUTER_KEY", "test-openrouter-key")
    monkeypatch.setenv("APP_ENV", "test")
    for key in ("PROXY_URL", "SCRAPE_DO_API_KEY", "RAPID_API_KEY", "FIRECRAWL_API_KEY"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        APP_ENV="test",
        OPENROUTER_KEY="test-openrouter-key",
        PROXY_URL=None,
        SCRAPE_DO_API_KEY=None,
        RAPID_API_KEY=None,
        FIRECRAWL_API_KEY=None,
        BROWSER_LADDER_DELAY=0,
        RATE_LIMIT_PER_MINUTE=0,
    )


# ============================================
# AI fakes
# ============================================


def make_ai_response(
    text: Optional[str], model: str = "test/model", prompt_tokens: int = 10, completion_tokens: int = 5
) -> AskAiResponse:
    return AskAiResponse(
        id=f"gen-{uuid.uuid4().hex[:8]}",
        model=model,
        choices=[Choice(message=ChoiceMessage(role="assistant", content=text))],
        usage=Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


class FakeAi:
    """Returns queued answers in order and records every request."""

    def __init__(self, answers: List[Optional[str]]):
        self.answers = list(answers)
        self.requests = []

    async def fetch_ai(self, params, stream=False, timeout=None, debug=False):
        self.requests.append(params)
        return make_ai_response(self.answers.pop(0))


# ============================================
# Playwright fakes
# ============================================


class FakeElement:
    def __init__(self, html: str):
        self.html = html

    async def evaluate(self, script: str):
        return self.html


class FakePage:
    def __init__(
        self,
        html: str = "<html><body>ok</body></html>",
        images: Optional[List[str]] = None,
        elements: Optional[Dict[str, List[str]]] = None,
        goto_error: Optional[Exception] = None,
        screenshot_bytes: bytes = b"\x89PNG fake",
    ):
        self.html = html
        self.images = images or []
        self.elements = elements or {}
        self.goto_error = goto_error
        self.screenshot_bytes = screenshot_bytes
        self.visited: List[str] = []
        self.evaluated: List[Tuple[str, object]] = []
        self.screenshot_kwargs: Optional[dict] = None
        self.waited_ms: Optional[float] = None

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    def set_default_navigation_timeout(self, timeout):
        self.navigation_timeout = timeout

    async def goto(self, url, wait_until=None):
        if self.goto_error is not None:
            raise self.goto_error
        self.visited.append(url)

    async def wait_for_timeout(self, timeout):
        self.waited_ms = timeout

    async def evaluate(self, script, arg=None):
        self.evaluated.append((script, arg))
        if "querySelectorAll(\"img\")" in script:
            return list(self.images)
        return None

    async def content(self):
        return self.html

    async def query_selector(self, selector):
        matches = self.elements.get(selector) or []
        return FakeElement(matches[0]) if matches else None

    async def query_selector_all(self, selector):
        return [FakeElement(html) for html in self.elements.get(selector) or []]

    async def screenshot(self, **kwargs):
        self.screenshot_kwargs = kwargs
        return self.screenshot_bytes


class FakeContext:
    def __init__(self, page: FakePage):
        self.page = page
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory):
        self.page_factory = page_factory
        self.contexts: List[FakeContext] = []
        self.context_kwargs: List[dict] = []
        self.closed = False

    async def new_context(self, **kwargs):
        self.context_kwargs.append(kwargs)
        context = FakeContext(self.page_factory())
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakePool:
    """BrowserPool stand-in serving one FakeBrowser per engine."""

    def __init__(self, firefox_page=None, chromium_page=None):
        self.browsers = {
            "firefox": FakeBrowser(firefox_page or FakePage),
            "chromium": FakeBrowser(chromium_page or FakePage),
        }

    async def get_browser(self, browser_type):
        return self.browsers[browser_type]

    async def health_check(self):
        return {"browsers": {}, "status": "idle"}

    async def close_browsers(self):
        pass


# ============================================
# Storage fakes
# ============================================


class MemoryReviewStore(ReviewStore):
    def __init__(self):
        self.reviews: Dict[str, ReviewResult] = {}

    async def create(self, data: ReviewCreateData) -> ReviewResult:
        review = ReviewResult(
            id=str(uuid.uuid4()),
            url=str(data.url),
            user_id=data.user_id,
            project_id=data.project_id,
            instructions=data.instructions,
        )
        self.reviews[review.id] = review
        return review

    async def update(self, review_id: str, **fields) -> ReviewResult:
        if review_id not in self.reviews:
            raise ReviewNotFoundError(review_id)
        review = self.reviews[review_id].model_copy(update={**fields, "updated_at": utcnow()})
        self.reviews[review_id] = review
        return review

    async def get(self, review_id: str, user_id: Optional[str] = None):
        review = self.reviews.get(review_id)
        if review is None or (user_id is not None and review.user_id != user_id):
            return None
        return review

    async def list_user_reviews(self, user_id: str, page: int = 1, page_size: int = 20):
        owned = sorted(
            (r for r in self.reviews.values() if r.user_id == user_id),
            key=lambda r: r.created_at,
            reverse=True,
        )
        start = (page - 1) * page_size
        return owned[start:start + page_size], len(owned)

    async def delete(self, review_id: str) -> bool:
        return self.reviews.pop(review_id, None) is not None


@pytest.fixture
def memory_store():
    return MemoryReviewStore()


class FakeRedis:
    """In-memory subset of the redis.Redis commands RedisClient uses."""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.sorted_sets: Dict[str, Dict[str, float]] = {}
        self.expirations: Dict[str, int] = {}

    def ping(self):
        return True

    def set(self, key, value):
        self.values[key] = value
        return True

    def setex(self, key, ttl, value):
        self.values[key] = value
        self.expirations[key] = ttl
        return True

    def get(self, key):
        return self.values.get(key)

    def delete(self, key):
        removed = self.values.pop(key, None) is not None
        removed = self.sorted_sets.pop(key, None) is not None or removed
        return int(removed)

    def incr(self, key):
        value = int(self.values.get(key, 0)) + 1
        self.values[key] = str(value)
        return value

    def expire(self, key, ttl):
        self.expirations[key] = ttl
        return True

    def zadd(self, key, mapping):
        self.sorted_sets.setdefault(key, {}).update(mapping)
        return len(mapping)

    def zrem(self, key, member):
        return int(self.sorted_sets.get(key, {}).pop(member, None) is not None)

    def zrevrange(self, key, start, end):
        members = sorted(self.sorted_sets.get(key, {}).items(), key=lambda kv: kv[1], reverse=True)
        return [m for m, _ in members][start:end + 1]

    def zcard(self, key):
        return len(self.sorted_sets.get(key, {}))

    def info(self):
        return {"connected_clients": 1, "used_memory_human": "1M", "total_commands_processed": 3}


@pytest.fixture
def fake_redis():
    return FakeRedis()
