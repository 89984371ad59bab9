"""
Celery background tasks for ReviewWeb
Runs full URL reviews in worker processes
"""

import asyncio
import logging
from typing import Optional

from celery import Task

from config import settings
from core.celery import celery_app
from core.context import ServiceContext
from review.schemas import ReviewCreateData, ReviewStartOptions

logger = logging.getLogger(__name__)


class ReviewTask(Task):
    """Logs the outcome of a background review with its review id and URL."""

    def on_success(self, retval, task_id, args, kwargs):
        logger.info(
            f"✅ Review {retval.get('id')} for {retval.get('url')} ended {retval.get('status')} "
            f"[task {task_id}]"
        )

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        url = (args[0] or {}).get("url") if args else None
        logger.error(f"❌ Review of {url} aborted [task {task_id}]: {type(exc).__name__}: {exc}")


async def _run_review_async(
    data: ReviewCreateData,
    options: ReviewStartOptions,
    task: Optional[Task] = None,
    context: Optional[ServiceContext] = None,
) -> dict:
    """
    Run one review in a fresh service context and shut it down afterwards.

    Args:
        data: Review input
        options: Review options
        task: Celery task used for PROGRESS updates
        context: Pre-built context (its lifecycle is then the caller's)
    """
    owns_context = context is None
    context = context or ServiceContext(settings)
    if owns_context:
        # Browsers are launched lazily by the stages that need them
        await context.init(launch_browsers=False)

    def progress(stage: str, percent: int):
        if task is not None:
            task.update_state(
                state="PROGRESS",
                meta={"status": stage, "percent": percent, "url": str(data.url)},
            )

    try:
        review = await context.orchestrator().start_review(data, options, progress=progress)
        return review.model_dump(mode="json")
    finally:
        if owns_context:
            await context.shutdown()


@celery_app.task(
    bind=True,
    base=ReviewTask,
    name="tasks.review.run_review",
    max_retries=0,
)
def run_review(self, data: dict, options: Optional[dict] = None) -> dict:
    """
    Celery task running start_review for one URL.

    Args:
        data: ReviewCreateData as a dict
        options: ReviewStartOptions as a dict

    Returns:
        The completed review as JSON-compatible dict
    """
    review_data = ReviewCreateData.model_validate(data)
    review_options = ReviewStartOptions.model_validate(options or {})
    logger.info(f"🚀 Starting review task {self.request.id} for {review_data.url}")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(
            _run_review_async(review_data, review_options, task=self)
        )
    finally:
        loop.close()
