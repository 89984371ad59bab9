"""
Tests for the Redis-backed review store and the Redis client helpers.
"""

import pytest
from pydantic import ValidationError

from core.cache import RedisClient
from review.schemas import ReviewCreateData, ReviewStatus
from review.store import RedisReviewStore, ReviewNotFoundError


@pytest.fixture
def redis_client(fake_redis):
    return RedisClient("redis://test", client=fake_redis)


@pytest.fixture
def store(redis_client):
    return RedisReviewStore(redis_client, ttl=3600)


def _data(user_id="user-1", url="https://example.com"):
    return ReviewCreateData(url=url, user_id=user_id)


class TestRedisReviewStore:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store, fake_redis):
        review = await store.create(_data())

        stored = await store.get(review.id)

        assert stored.status == ReviewStatus.PENDING
        assert stored.url == "https://example.com"
        assert fake_redis.expirations[f"review:{review.id}"] == 3600

    @pytest.mark.asyncio
    async def test_get_hides_other_users_reviews(self, store):
        review = await store.create(_data(user_id="owner"))

        assert await store.get(review.id, user_id="someone-else") is None
        assert await store.get(review.id, user_id="owner") is not None

    @pytest.mark.asyncio
    async def test_update(self, store):
        review = await store.create(_data())

        updated = await store.update(
            review.id, status=ReviewStatus.COMPLETED, ai_analysis={"images": []}
        )

        assert updated.status == ReviewStatus.COMPLETED
        assert updated.updated_at >= review.updated_at
        assert (await store.get(review.id)).ai_analysis == {"images": []}

    @pytest.mark.asyncio
    async def test_update_missing_review(self, store):
        with pytest.raises(ReviewNotFoundError):
            await store.update("missing", status=ReviewStatus.FAILED)

    @pytest.mark.asyncio
    async def test_list_is_paged_newest_first(self, store, fake_redis):
        ids = []
        for i in range(3):
            review = await store.create(_data(url=f"https://example.com/{i}"))
            # Distinct scores regardless of clock resolution
            fake_redis.sorted_sets["reviews:user:user-1"][review.id] = float(i)
            ids.append(review.id)
        await store.create(_data(user_id="user-2"))

        first_page, total = await store.list_user_reviews("user-1", page=1, page_size=2)
        second_page, _ = await store.list_user_reviews("user-1", page=2, page_size=2)

        assert total == 3
        assert [r.id for r in first_page] == [ids[2], ids[1]]
        assert [r.id for r in second_page] == [ids[0]]

    @pytest.mark.asyncio
    async def test_expired_records_are_pruned_from_index(self, store, fake_redis):
        review = await store.create(_data())
        del fake_redis.values[f"review:{review.id}"]

        items, total = await store.list_user_reviews("user-1")

        assert items == []
        assert total == 0

    @pytest.mark.asyncio
    async def test_delete(self, store):
        review = await store.create(_data())

        assert await store.delete(review.id) is True
        assert await store.get(review.id) is None
        assert await store.delete(review.id) is False


class TestRedisClient:
    def test_increment_sets_expiry_once(self, redis_client, fake_redis):
        assert redis_client.increment("ratelimit:u:1", ttl=60) == 1
        fake_redis.expirations.clear()
        assert redis_client.increment("ratelimit:u:1", ttl=60) == 2
        assert "ratelimit:u:1" not in fake_redis.expirations

    def test_json_roundtrip_and_stats(self, redis_client):
        assert redis_client.set_json("k", {"a": [1, 2]})
        assert redis_client.get_json("k") == {"a": [1, 2]}
        assert redis_client.get_json("missing") is None
        assert redis_client.get_stats()["connected_clients"] == 1
        assert redis_client.ping()


class TestReviewCreateData:
    def test_url_is_kept_as_given(self):
        assert ReviewCreateData(url="https://example.com", user_id="u").url == "https://example.com"
        assert (
            ReviewCreateData(url=" https://example.com/shop?q=1 ", user_id="u").url
            == "https://example.com/shop?q=1"
        )

    @pytest.mark.parametrize("url", ["not a url", "ftp://example.com/file", ""])
    def test_non_http_urls_are_rejected(self, url):
        with pytest.raises(ValidationError):
            ReviewCreateData(url=url, user_id="u")
