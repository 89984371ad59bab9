"""
AI content safety analyses for pages and images.
"""

import logging
from typing import Optional, Type

import httpx
from pydantic import BaseModel

from ai.client import AiClient
from ai.errors import AiError
from ai.json_validator import json_validator
from ai.models import DEFAULT_VISION_MODEL
from ai.prompts import (
    CONTENT_SAFETY_SYSTEM_PROMPT,
    IMAGE_SYSTEM_PROMPT,
    get_image_analysis_prompt,
    get_url_analysis_prompt,
)
from ai.schemas import (
    AnalysisResult,
    AskAiMessage,
    AskAiParams,
    AskAiResponse,
    ContentSafetyAnalysis,
    ImagePart,
    ImageSafetyAnalysis,
    TextPart,
)
from scraping.errors import ScrapeError
from scraping.fallbacks import HtmlFetcher, HtmlFetchOptions
from scraping.html import html_to_text
from scraping.urls import is_url_alive

logger = logging.getLogger(__name__)


async def _validated_result(
    ai: AiClient, response: AskAiResponse, schema: Type[BaseModel], debug: bool = False
) -> AnalysisResult:
    content = response.choices[0].message.content if response.choices else None
    if not content:
        error = response.choices[0].error if response.choices else None
        raise AiError(error.message if error else "No response content found")

    data = await json_validator(content, ai, parse=True, max_retries=5, schema=schema, debug=debug)
    return AnalysisResult(
        data=schema.model_validate(data).model_dump(by_alias=True),
        usage=response.usage,
        model=response.model,
    )


async def analyze_url(
    ai: AiClient,
    fetcher: HtmlFetcher,
    client: httpx.AsyncClient,
    url: str,
    system_prompt: Optional[str] = None,
    instructions: Optional[str] = None,
    model: Optional[str] = None,
    delay_after_load: float = 3.0,
    debug: bool = False,
) -> AnalysisResult:
    """
    Judge the text content of ``url``.

    Raises:
        ScrapeError: If the URL is not alive
        FallbackExhaustedError: If no strategy could fetch the HTML
        AiError: If the AI call or JSON repair failed
    """
    alive = await is_url_alive(client, url, timeout=15.0)
    if not alive.alive:
        raise ScrapeError(f"URL {url} is not alive: {alive.message}")

    html = await fetcher.get_html_with_fallbacks(
        url, HtmlFetchOptions(delay_after_load=delay_after_load, debug=debug)
    )
    website_content = html_to_text(html)
    logger.info(f"📝 Analyzing {len(website_content)} characters of text from {url}")

    response = await ai.fetch_ai(
        AskAiParams(
            model=model,
            messages=[
                AskAiMessage(role="system", content=system_prompt or CONTENT_SAFETY_SYSTEM_PROMPT),
                AskAiMessage(
                    role="user",
                    content=get_url_analysis_prompt(website_content, instructions),
                ),
            ],
        ),
        debug=debug,
    )
    return await _validated_result(ai, response, ContentSafetyAnalysis, debug=debug)


async def analyze_image(
    ai: AiClient,
    image: str,
    system_prompt: Optional[str] = None,
    instructions: Optional[str] = None,
    model: Optional[str] = None,
    debug: bool = False,
) -> AnalysisResult:
    """Judge one image given as an http(s) or data: URL"""
    response = await ai.fetch_ai(
        AskAiParams(
            model=model or DEFAULT_VISION_MODEL,
            messages=[
                AskAiMessage(role="system", content=system_prompt or IMAGE_SYSTEM_PROMPT),
                AskAiMessage(
                    role="user",
                    content=[
                        TextPart(text=get_image_analysis_prompt(instructions)),
                        ImagePart(image_url=image),
                    ],
                ),
            ],
        ),
        debug=debug,
    )
    return await _validated_result(ai, response, ImageSafetyAnalysis, debug=debug)


async def analyze_image_base64(
    ai: AiClient,
    base64: str,
    system_prompt: Optional[str] = None,
    instructions: Optional[str] = None,
    model: Optional[str] = None,
    mime_type: str = "image/png",
    debug: bool = False,
) -> AnalysisResult:
    return await analyze_image(
        ai,
        f"data:{mime_type};base64,{base64}",
        system_prompt=system_prompt,
        instructions=instructions,
        model=model,
        debug=debug,
    )
