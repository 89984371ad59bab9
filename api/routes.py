import logging
from typing import List

from celery.result import AsyncResult
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import ValidationError

from ai.errors import AiError, AiTimeoutError, JsonValidatorError
from api.dependencies import get_context, rate_limit
from api.models import (
    BatchScrapeItem,
    BatchScrapeRequest,
    ImagesRequest,
    LinksRequest,
    ReviewListResponse,
    ReviewRequest,
    ScrapeRequest,
    ScrapeResponse,
    ScreenshotRequest,
    TaskSubmittedResponse,
)
from core.celery import celery_app
from core.context import ServiceContext
from review.schemas import ReviewCreateData, ReviewResult
from review.store import ReviewNotFoundError
from scraping.browser import scrape_web_url
from scraping.errors import LadderExhaustedError, ScrapeError
from scraping.fallbacks import HtmlFetchOptions
from scraping.html import simplify_html
from scraping.links import ExtractedLink, extract_all_links_from_url
from scraping.metadata import scrape_metadata
from utils.concurrency import gather_in_chunks

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http_error(e: Exception, action: str) -> HTTPException:
    """Map a pipeline exception to the HTTP error returned to the caller"""
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, (ValidationError, ValueError)):
        return HTTPException(status_code=422, detail=f"Invalid input: {str(e)}")
    if isinstance(e, JsonValidatorError):
        return HTTPException(status_code=422, detail=f"Analysis parsing failed: {str(e)}")
    if isinstance(e, AiTimeoutError):
        return HTTPException(status_code=504, detail="AI analysis timed out")
    if isinstance(e, AiError):
        return HTTPException(status_code=502, detail=f"AI analysis service failed: {str(e)}")
    if isinstance(e, LadderExhaustedError):
        return HTTPException(
            status_code=502, detail={"message": str(e), "errors": e.errors}
        )
    if isinstance(e, ScrapeError):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, ReviewNotFoundError):
        return HTTPException(status_code=404, detail=str(e))

    logger.exception(f"❌ Unexpected failure while trying to {action}")
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(e)}")


@router.get("/")
async def root():
    return {
        "service": "ReviewWeb",
        "status": "running",
        "endpoints": {
            "review": "/api/v1/review (POST)",
            "review_async": "/api/v1/review/async (POST)",
            "scrape": "/api/v1/scrape (POST)",
            "screenshot": "/api/v1/screenshot (POST)",
        },
    }


@router.get("/health")
async def health_check():
    return {"status": "healthy"}


@router.get("/status/detailed")
async def detailed_status_check(context: ServiceContext = Depends(get_context)):
    """
    Status of Redis, Celery workers, the browser pool and the AI key.
    """
    status_info = {
        "api": "healthy",
        "redis": "unknown",
        "celery": "unknown",
        "browser_pool": await context.browser_pool.health_check(),
        "openrouter_api": "configured" if context.settings.OPENROUTER_KEY else "missing",
    }

    if context.redis is None:
        status_info["redis"] = "disconnected"
    elif context.redis.ping():
        status_info["redis"] = "connected"
        status_info["redis_stats"] = context.redis.get_stats()
    else:
        status_info["redis"] = "disconnected"

    try:
        active_workers = celery_app.control.inspect(timeout=1.0).active()
        if active_workers:
            status_info["celery"] = "workers_active"
            status_info["celery_workers"] = list(active_workers.keys())
        else:
            status_info["celery"] = "no_workers"
    except Exception as e:
        status_info["celery"] = f"error: {str(e)}"

    critical = [status_info["redis"], status_info["openrouter_api"]]
    degraded = any(
        "error" in c or "missing" in c or "disconnected" in c for c in critical
    )
    status_info["overall_status"] = "degraded" if degraded else "healthy"
    return status_info


# ======================
# Reviews
# ======================


@router.post("/api/v1/review", response_model=ReviewResult, status_code=201)
async def create_review(
    request: ReviewRequest,
    user_id: str = Depends(rate_limit),
    context: ServiceContext = Depends(get_context),
):
    """
    Review a URL synchronously: scraping, AI analyses and persistence.

    Image and link analysis are skipped unless enabled in ``options``.
    """
    data = ReviewCreateData(
        url=request.url,
        user_id=user_id,
        instructions=request.instructions,
        project_id=request.project_id,
    )
    try:
        return await context.orchestrator().start_review(data, request.options)
    except Exception as e:
        raise _to_http_error(e, f"review {request.url}")


@router.post("/api/v1/review/async", response_model=TaskSubmittedResponse, status_code=202)
async def create_review_async(request: ReviewRequest, user_id: str = Depends(rate_limit)):
    """
    Submit a review for background processing.
    Returns immediately with a task_id for status polling.
    """
    from tasks.review import run_review

    data = ReviewCreateData(
        url=request.url,
        user_id=user_id,
        instructions=request.instructions,
        project_id=request.project_id,
    )
    try:
        task = run_review.delay(
            data.model_dump(mode="json"), request.options.model_dump(mode="json")
        )
    except Exception as e:
        raise HTTPException(
            status_code=500, detail=f"Failed to submit review task: {str(e)}"
        )

    return TaskSubmittedResponse(
        task_id=task.id,
        message="Review task submitted successfully",
        poll_url=f"/api/v1/review/status/{task.id}",
    )


@router.get("/api/v1/review/status/{task_id}")
async def get_review_task_status(task_id: str):
    """
    State of a background review task.

    PENDING, STARTED, PROGRESS (with stage and percent), SUCCESS (with the
    review) or FAILURE (with the error).
    """
    task = AsyncResult(task_id, app=celery_app)
    response = {"task_id": task_id, "status": task.state}

    if task.state == "PENDING":
        response["message"] = "Task is waiting in queue"
    elif task.state == "STARTED":
        response["message"] = "Task is being processed"
    elif task.state == "PROGRESS":
        response["message"] = "Task is in progress"
        response["progress"] = task.info
    elif task.state == "SUCCESS":
        response["message"] = "Task completed successfully"
        response["result"] = task.result
    elif task.state == "FAILURE":
        response["message"] = "Task failed"
        response["error"] = str(task.info)
    else:
        response["message"] = f"Unknown state: {task.state}"

    return response


@router.get("/api/v1/review", response_model=ReviewListResponse)
async def list_reviews(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(rate_limit),
    context: ServiceContext = Depends(get_context),
):
    try:
        items, total = await context.store.list_user_reviews(user_id, page, page_size)
    except Exception as e:
        raise _to_http_error(e, "list reviews")
    return ReviewListResponse(items=items, total=total, page=page, page_size=page_size)


@router.get("/api/v1/review/{review_id}", response_model=ReviewResult)
async def get_review(
    review_id: str,
    user_id: str = Depends(rate_limit),
    context: ServiceContext = Depends(get_context),
):
    review = await context.store.get(review_id, user_id=user_id)
    if review is None:
        raise HTTPException(status_code=404, detail=f"Review {review_id} not found")
    return review


@router.delete("/api/v1/review/{review_id}")
async def delete_review(
    review_id: str,
    user_id: str = Depends(rate_limit),
    context: ServiceContext = Depends(get_context),
):
    review = await context.store.get(review_id, user_id=user_id)
    if review is None:
        raise HTTPException(status_code=404, detail=f"Review {review_id} not found")
    return {"deleted": await context.store.delete(review_id), "review_id": review_id}


# ======================
# Scraping
# ======================


@router.post("/api/v1/scrape", response_model=ScrapeResponse)
async def scrape_url(
    request: ScrapeRequest,
    user_id: str = Depends(rate_limit),
    context: ServiceContext = Depends(get_context),
):
    """
    HTML of a URL, through every fallback strategy or only the headless
    browser (``use_fallbacks=false``), plus its metadata.
    """
    url = str(request.url)
    try:
        if request.use_fallbacks:
            html = await context.fetcher.get_html_with_fallbacks(
                url,
                HtmlFetchOptions(
                    delay_after_load=request.delay_after_load,
                    timeout=context.settings.SCRAPE_TIMEOUT,
                    selectors=request.selectors,
                    selector_mode=request.selector_mode,
                    simple_html=request.simple_html,
                ),
            )
        else:
            options = {"selectors": request.selectors, "selector_mode": request.selector_mode}
            if request.delay_after_load is not None:
                options["delay_after_load"] = request.delay_after_load
            result = await scrape_web_url(context.browser_scraper, url, options)
            html = "\n".join(result) if isinstance(result, list) else result
            if request.simple_html:
                html = simplify_html(html)
    except Exception as e:
        raise _to_http_error(e, f"scrape {url}")

    metadata = None
    if request.include_metadata:
        try:
            metadata = (await scrape_metadata(context.http, url)).model_dump()
        except ScrapeError as e:
            logger.warning(f"⚠️  Metadata unavailable for {url}: {str(e)}")

    return ScrapeResponse(url=url, html=html, metadata=metadata)


@router.post("/api/v1/scrape/urls", response_model=List[BatchScrapeItem])
async def scrape_urls(
    request: BatchScrapeRequest,
    user_id: str = Depends(rate_limit),
    context: ServiceContext = Depends(get_context),
):
    """
    HTML of several URLs. Failures are reported per item; the batch itself
    always succeeds.
    """

    async def scrape_one(url) -> BatchScrapeItem:
        try:
            html = await context.fetcher.get_html_with_fallbacks(
                str(url),
                HtmlFetchOptions(
                    timeout=context.settings.SCRAPE_TIMEOUT,
                    simple_html=request.simple_html,
                ),
            )
            return BatchScrapeItem(url=str(url), html=html)
        except Exception as e:
            logger.warning(f"⚠️  Batch item {url} failed: {str(e)}")
            return BatchScrapeItem(url=str(url), error=str(e) or e.__class__.__name__)

    return await gather_in_chunks(
        request.urls, scrape_one, context.settings.BATCH_CONCURRENCY
    )


@router.post("/api/v1/scrape/links", response_model=List[ExtractedLink])
async def scrape_links(
    request: LinksRequest,
    user_id: str = Depends(rate_limit),
    context: ServiceContext = Depends(get_context),
):
    return await extract_all_links_from_url(
        context.http,
        context.browser_scraper,
        str(request.url),
        link_type=request.type,
        max_links=request.max_links,
        get_status_code=request.get_status_code,
        delay_after_load=request.delay_after_load,
    )


@router.post("/api/v1/scrape/images")
async def scrape_images(
    request: ImagesRequest,
    user_id: str = Depends(rate_limit),
    context: ServiceContext = Depends(get_context),
):
    try:
        images = await context.browser_scraper.get_all_images(
            str(request.url),
            delay_after_load=request.delay_after_load,
            exclude_selectors=request.exclude_selectors,
        )
    except Exception as e:
        raise _to_http_error(e, f"extract images from {request.url}")

    return {"url": str(request.url), "images": images[: request.max_images]}


@router.post("/api/v1/screenshot")
async def take_screenshot(
    request: ScreenshotRequest,
    user_id: str = Depends(rate_limit),
    context: ServiceContext = Depends(get_context),
):
    """PNG or JPEG capture of a URL"""
    size = None
    if request.width and request.height:
        size = {"width": request.width, "height": request.height}

    try:
        image = await context.browser_scraper.screenshot(
            str(request.url),
            full_page=request.full_page,
            image_type=request.type,
            quality=request.quality,
            size=size,
            delay_after_load=request.delay_after_load,
        )
    except Exception as e:
        raise _to_http_error(e, f"take screenshot of {request.url}")

    return Response(content=image, media_type=f"image/{request.type}")


# ======================
# AI
# ======================


@router.get("/api/v1/ai/models")
async def list_ai_models(context: ServiceContext = Depends(get_context)):
    models = await context.models.fetch_models()
    return {
        "models": [m.model_dump() for m in models],
        "vision_models": [m.model_dump() for m in context.models.vision_models],
    }
