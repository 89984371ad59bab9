"""
Review records and review options.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from scraping.urls import PageUrl


class ReviewStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


DEFAULT_EXCLUDE_IMAGE_SELECTORS = ["svg", 'img[alt=""]', 'img[src^="data:image/svg"]']


class ReviewCreateData(BaseModel):
    url: PageUrl
    user_id: str = Field(min_length=1)
    instructions: Optional[str] = None
    project_id: Optional[str] = None


class ReviewStartOptions(BaseModel):
    """
    Tuning for one review run.

    ``delay_after_load`` is in milliseconds. ``debug`` defaults to the
    development flag of the running environment when left unset.
    """

    debug: Optional[bool] = None

    skip_image_extraction: bool = True
    max_extracted_images: int = Field(default=50, ge=1, le=100)

    skip_link_extraction: bool = True
    max_extracted_links: int = Field(default=50, ge=1, le=100)

    text_model: Optional[str] = None
    vision_model: Optional[str] = None

    delay_after_load: int = Field(default=3000, ge=0, le=60_000)
    exclude_image_selectors: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_IMAGE_SELECTORS)
    )

    continue_on_image_analysis_error: bool = True
    continue_on_link_analysis_error: bool = True

    @field_validator("exclude_image_selectors", mode="before")
    @classmethod
    def default_selectors_when_empty(cls, value):
        return value or list(DEFAULT_EXCLUDE_IMAGE_SELECTORS)


class LinkAnalysis(BaseModel):
    url: str
    status: str
    analysis: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewResult(BaseModel):
    id: str
    url: str
    user_id: str
    project_id: Optional[str] = None
    status: ReviewStatus = ReviewStatus.PENDING
    instructions: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    ai_analysis: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
