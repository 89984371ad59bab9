from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from review.schemas import ReviewResult, ReviewStartOptions
from scraping.links import LinkType
from scraping.urls import PageUrl


# Review models
class ReviewRequest(BaseModel):
    url: PageUrl
    instructions: Optional[str] = None
    project_id: Optional[str] = None
    options: ReviewStartOptions = Field(default_factory=ReviewStartOptions)


class ReviewListResponse(BaseModel):
    items: List[ReviewResult]
    total: int
    page: int
    page_size: int


class TaskSubmittedResponse(BaseModel):
    task_id: str
    status: str = "PENDING"
    message: str
    poll_url: str


# Scrape models
class ScrapeRequest(BaseModel):
    url: PageUrl
    use_fallbacks: bool = True
    delay_after_load: Optional[float] = Field(default=None, ge=0, le=60)
    selectors: Optional[List[str]] = None
    selector_mode: Literal["first", "all"] = "first"
    simple_html: bool = False
    include_metadata: bool = True


class ScrapeResponse(BaseModel):
    url: str
    html: str
    metadata: Optional[Dict[str, Any]] = None


class BatchScrapeRequest(BaseModel):
    urls: List[PageUrl] = Field(min_length=1, max_length=50)
    simple_html: bool = False


class BatchScrapeItem(BaseModel):
    url: str
    html: Optional[str] = None
    error: Optional[str] = None


class LinksRequest(BaseModel):
    url: PageUrl
    type: LinkType = "all"
    max_links: int = Field(default=500, ge=1, le=5000)
    get_status_code: bool = False
    delay_after_load: float = Field(default=5.0, ge=0, le=600)


class ImagesRequest(BaseModel):
    url: PageUrl
    max_images: int = Field(default=50, ge=1, le=500)
    delay_after_load: Optional[float] = Field(default=None, ge=0, le=60)
    exclude_selectors: Optional[List[str]] = None


class ScreenshotRequest(BaseModel):
    url: PageUrl
    full_page: bool = False
    type: Literal["png", "jpeg"] = "png"
    quality: Optional[int] = Field(default=None, ge=0, le=100)
    width: Optional[int] = Field(default=None, ge=100, le=3840)
    height: Optional[int] = Field(default=None, ge=100, le=10000)
    delay_after_load: Optional[float] = Field(default=None, ge=0, le=60)
