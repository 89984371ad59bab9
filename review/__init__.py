# Review package - Review records, persistence and the review workflow
from .schemas import ReviewStatus, ReviewCreateData, ReviewStartOptions, ReviewResult
from .store import ReviewStore, RedisReviewStore, ReviewNotFoundError
from .orchestrator import ReviewOrchestrator

__all__ = [
    "ReviewStatus",
    "ReviewCreateData",
    "ReviewStartOptions",
    "ReviewResult",
    "ReviewStore",
    "RedisReviewStore",
    "ReviewNotFoundError",
    "ReviewOrchestrator",
]
