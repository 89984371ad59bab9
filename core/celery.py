"""
Celery application for ReviewWeb background reviews.

Start a worker with: celery -A core.celery worker --loglevel=info -Q reviews
"""

import logging

from celery import Celery
from celery.signals import (
    after_setup_logger,
    task_failure,
    task_postrun,
    task_prerun,
    task_revoked,
    worker_ready,
    worker_shutdown,
)
from kombu import Queue

from config import settings

logger = logging.getLogger(__name__)

REVIEW_QUEUE = "reviews"

celery_app = Celery(
    "review_web",
    broker=settings.celery_broker,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["tasks.review"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # A review holds browsers for minutes: one at a time per worker process,
    # acknowledged only once finished so a crashed worker's review is redelivered
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    worker_prefetch_multiplier=settings.WORKER_PREFETCH_MULTIPLIER,
    worker_max_tasks_per_child=settings.WORKER_MAX_TASKS_PER_CHILD,
    task_time_limit=settings.TASK_TIME_LIMIT,
    task_soft_time_limit=settings.TASK_SOFT_TIME_LIMIT,
    # PROGRESS meta and the finished review are read back by the status endpoint
    result_expires=settings.CELERY_RESULT_EXPIRES,
    result_extended=True,
    task_default_queue=REVIEW_QUEUE,
    task_queues=(Queue(REVIEW_QUEUE, routing_key="review.run"),),
    task_routes={"tasks.review.run_review": {"queue": REVIEW_QUEUE}},
    worker_send_task_events=True,
    broker_connection_retry_on_startup=True,
)


@after_setup_logger.connect
def setup_worker_logging(logger=None, **kwargs):
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))


@worker_ready.connect
def on_worker_ready(sender=None, **kwargs):
    logger.info(f"🚀 Review worker ready on queue '{REVIEW_QUEUE}'")


@worker_shutdown.connect
def on_worker_shutdown(sender=None, **kwargs):
    logger.info("🛑 Review worker shutting down")


@task_prerun.connect
def on_task_prerun(sender=None, task_id=None, task=None, **kwargs):
    logger.info(f"⏳ {task.name} started [ID: {task_id}]")


@task_postrun.connect
def on_task_postrun(sender=None, task_id=None, task=None, state=None, **kwargs):
    logger.info(f"🏁 {task.name} finished [ID: {task_id}] [State: {state}]")


@task_failure.connect
def on_task_failure(sender=None, task_id=None, exception=None, **kwargs):
    logger.error(f"❌ {sender.name} failed [ID: {task_id}]: {str(exception)}")


@task_revoked.connect
def on_task_revoked(sender=None, request=None, terminated=None, expired=None, **kwargs):
    reason = "expired" if expired else "terminated" if terminated else "revoked"
    logger.warning(f"🚫 Review task {getattr(request, 'id', '?')} {reason}")
