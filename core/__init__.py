# Core package - Infrastructure components
from .browser import BrowserPool
from .cache import RedisClient
from .celery import celery_app

__all__ = [
    "BrowserPool",
    "RedisClient",
    "celery_app",
]
