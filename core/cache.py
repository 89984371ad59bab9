"""
Redis client manager for ReviewWeb
Handles connection pooling, JSON caching, counters and health checks
"""

import json
import logging
from typing import Any, List, Optional

import redis

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Redis connection manager with connection pooling.

    Read and write helpers log and swallow Redis errors so that a cache
    outage degrades features instead of failing requests.
    """

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        """
        Args:
            redis_url: Connection URL
            client: Pre-built client (skips pool creation and the ping check)
        """
        self.redis_url = redis_url
        self.pool: Optional[redis.ConnectionPool] = None

        if client is not None:
            self.client = client
            return

        try:
            self.pool = redis.ConnectionPool.from_url(
                redis_url,
                max_connections=20,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)
            self.client.ping()
            logger.info(f"✅ Redis connected successfully: {redis_url}")
        except redis.ConnectionError as e:
            logger.error(f"❌ Redis connection failed: {str(e)}")
            raise RuntimeError(f"Failed to connect to Redis: {str(e)}")

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store ``value`` JSON-encoded.

        Args:
            key: Redis key
            value: JSON-serialisable value
            ttl: Time to live in seconds (None = no expiration)
        """
        try:
            payload = json.dumps(value, default=str)
            if ttl:
                return bool(self.client.setex(key, ttl, payload))
            return bool(self.client.set(key, payload))
        except (redis.RedisError, TypeError) as e:
            logger.error(f"Redis SET failed for key '{key}': {str(e)}")
            return False

    def get_json(self, key: str) -> Optional[Any]:
        try:
            value = self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis GET failed for key '{key}': {str(e)}")
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    def delete(self, key: str) -> bool:
        try:
            return bool(self.client.delete(key))
        except redis.RedisError as e:
            logger.error(f"Redis DELETE failed for key '{key}': {str(e)}")
            return False

    def increment(self, key: str, ttl: int) -> Optional[int]:
        """
        Increment a counter, setting its expiry on first use.

        Returns:
            The new value, or None if Redis is unavailable
        """
        try:
            count = int(self.client.incr(key))
            if count == 1:
                self.client.expire(key, ttl)
            return count
        except redis.RedisError as e:
            logger.error(f"Redis INCR failed for key '{key}': {str(e)}")
            return None

    def index_add(self, key: str, member: str, score: float, ttl: Optional[int] = None) -> bool:
        """Add ``member`` to the sorted-set index ``key``"""
        try:
            self.client.zadd(key, {member: score})
            if ttl:
                self.client.expire(key, ttl)
            return True
        except redis.RedisError as e:
            logger.error(f"Redis ZADD failed for key '{key}': {str(e)}")
            return False

    def index_remove(self, key: str, member: str) -> bool:
        try:
            return bool(self.client.zrem(key, member))
        except redis.RedisError as e:
            logger.error(f"Redis ZREM failed for key '{key}': {str(e)}")
            return False

    def index_page(self, key: str, offset: int, limit: int) -> List[str]:
        """Members of the index, newest first"""
        try:
            return list(self.client.zrevrange(key, offset, offset + limit - 1))
        except redis.RedisError as e:
            logger.error(f"Redis ZREVRANGE failed for key '{key}': {str(e)}")
            return []

    def index_count(self, key: str) -> int:
        try:
            return int(self.client.zcard(key))
        except redis.RedisError as e:
            logger.error(f"Redis ZCARD failed for key '{key}': {str(e)}")
            return 0

    def get_stats(self) -> dict:
        """
        Get Redis connection and memory stats.

        Returns:
            Dictionary with Redis statistics
        """
        try:
            info = self.client.info()
            return {
                "connected_clients": info.get("connected_clients", 0),
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "total_commands_processed": info.get("total_commands_processed", 0),
            }
        except redis.RedisError as e:
            logger.error(f"Failed to get Redis stats: {str(e)}")
            return {"error": str(e)}

    def close(self):
        """Close Redis connection pool"""
        if self.pool is None:
            return
        try:
            self.pool.disconnect()
            logger.info("Redis connection closed")
        except redis.RedisError as e:
            logger.error(f"Error closing Redis connection: {str(e)}")
