"""
Review persistence.

ReviewStore is the repository interface the orchestrator and the API talk
to; RedisReviewStore keeps records as JSON documents with a per-user
sorted-set index.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from core.cache import RedisClient
from review.schemas import ReviewCreateData, ReviewResult, utcnow

logger = logging.getLogger(__name__)


class ReviewNotFoundError(Exception):
    def __init__(self, review_id: str):
        super().__init__(f"Review {review_id} not found")
        self.review_id = review_id


class ReviewStore:
    async def create(self, data: ReviewCreateData) -> ReviewResult:
        raise NotImplementedError

    async def update(self, review_id: str, **fields) -> ReviewResult:
        raise NotImplementedError

    async def get(self, review_id: str, user_id: Optional[str] = None) -> Optional[ReviewResult]:
        raise NotImplementedError

    async def list_user_reviews(
        self, user_id: str, page: int = 1, page_size: int = 20
    ) -> Tuple[List[ReviewResult], int]:
        raise NotImplementedError

    async def delete(self, review_id: str) -> bool:
        raise NotImplementedError


class RedisReviewStore(ReviewStore):
    def __init__(self, redis: RedisClient, ttl: Optional[int] = None):
        self.redis = redis
        self.ttl = ttl

    @staticmethod
    def _key(review_id: str) -> str:
        return f"review:{review_id}"

    @staticmethod
    def _user_index(user_id: str) -> str:
        return f"reviews:user:{user_id}"

    def _save(self, review: ReviewResult):
        if not self.redis.set_json(self._key(review.id), review.model_dump(mode="json"), ttl=self.ttl):
            raise RuntimeError(f"Failed to persist review {review.id}")

    async def create(self, data: ReviewCreateData) -> ReviewResult:
        review = ReviewResult(
            id=str(uuid.uuid4()),
            url=str(data.url),
            user_id=data.user_id,
            project_id=data.project_id,
            instructions=data.instructions,
        )
        self._save(review)
        self.redis.index_add(
            self._user_index(review.user_id),
            review.id,
            review.created_at.timestamp(),
            ttl=self.ttl,
        )
        logger.info(f"📝 Created review {review.id} for {review.url}")
        return review

    async def update(self, review_id: str, **fields) -> ReviewResult:
        review = await self.get(review_id)
        if review is None:
            raise ReviewNotFoundError(review_id)

        updated = review.model_copy(update={**fields, "updated_at": utcnow()})
        self._save(updated)
        return updated

    async def get(self, review_id: str, user_id: Optional[str] = None) -> Optional[ReviewResult]:
        raw = self.redis.get_json(self._key(review_id))
        if not raw:
            return None
        review = ReviewResult.model_validate(raw)
        if user_id is not None and review.user_id != user_id:
            return None
        return review

    async def list_user_reviews(
        self, user_id: str, page: int = 1, page_size: int = 20
    ) -> Tuple[List[ReviewResult], int]:
        index = self._user_index(user_id)
        ids = self.redis.index_page(index, (page - 1) * page_size, page_size)
        reviews = []
        for review_id in ids:
            review = await self.get(review_id, user_id=user_id)
            if review is None:
                # Record expired before its index entry
                self.redis.index_remove(index, review_id)
                continue
            reviews.append(review)
        return reviews, self.redis.index_count(index)

    async def delete(self, review_id: str) -> bool:
        review = await self.get(review_id)
        if review is None:
            return False
        self.redis.index_remove(self._user_index(review.user_id), review_id)
        return self.redis.delete(self._key(review_id))
