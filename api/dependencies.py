"""
FastAPI dependencies: service context, caller identity and rate limiting.
"""

import logging
import time

from fastapi import Depends, Header, HTTPException, Request

from core.context import ServiceContext

logger = logging.getLogger(__name__)


def get_context(request: Request) -> ServiceContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return context


def get_user_id(x_user_id: str = Header(..., min_length=1)) -> str:
    """Caller identity, supplied by the upstream gateway"""
    return x_user_id


def rate_limit(
    user_id: str = Depends(get_user_id),
    context: ServiceContext = Depends(get_context),
) -> str:
    """
    Per-user requests-per-minute limit backed by a Redis counter.

    Skipped when the limit is 0 or Redis is unavailable.
    """
    limit = context.settings.RATE_LIMIT_PER_MINUTE
    if limit <= 0 or context.redis is None:
        return user_id

    window = int(time.time() // 60)
    count = context.redis.increment(f"ratelimit:{user_id}:{window}", ttl=60)
    if count is not None and count > limit:
        logger.warning(f"🚦 Rate limit exceeded for user {user_id}")
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit of {limit} requests per minute exceeded",
            headers={"Retry-After": str(60 - int(time.time()) % 60)},
        )
    return user_id
