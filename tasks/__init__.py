# Tasks package - Celery background tasks
from .review import run_review, ReviewTask

__all__ = [
    "run_review",
    "ReviewTask",
]
