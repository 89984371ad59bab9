"""
AI model catalogue: default model lists, repair tiers, pricing and cost.
"""

import logging
from typing import Dict, List, Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ai.schemas import Usage

logger = logging.getLogger(__name__)

DEFAULT_AI_MODELS = [
    "google/gemini-2.5-flash-preview",
    "openai/gpt-4.1-mini",
    "google/gemini-2.0-flash-001",
    "google/gemini-2.0-flash-lite-001",
    "google/gemini-flash-1.5",
    "google/gemini-flash-1.5-8b",
    "google/gemini-pro-1.5",
    "openai/chatgpt-4o-latest",
    "openai/gpt-4o-mini",
    "anthropic/claude-3-5-haiku",
    "anthropic/claude-3.5-sonnet",
    "meta-llama/llama-4-maverick",
    "meta-llama/llama-4-scout",
    "qwen/qwen-2.5-72b-instruct",
]

DEFAULT_VISION_MODELS = [
    "google/gemini-pro-1.5",
    "google/gemini-flash-1.5",
    "google/gemini-flash-1.5-8b",
    "anthropic/claude-3.5-sonnet",
    "anthropic/claude-3.5-haiku",
    "openai/chatgpt-4o-latest",
    "openai/gpt-4o-mini",
    "meta-llama/llama-3.2-90b-vision-instruct",
    "meta-llama/llama-3.2-11b-vision-instruct",
    "qwen/qwen-2-vl-72b-instruct",
]

DEFAULT_VISION_MODEL = "google/gemini-flash-1.5"

Tier = Literal["low", "medium", "high"]

MODEL_TIERS: Dict[str, str] = {
    "low": "google/gemini-flash-1.5-8b",
    "medium": "google/gemini-2.0-flash-001",
    "high": "openai/gpt-4.1-mini",
}

MODELS_CACHE_KEY = "ai:models"
VISION_MODELS_CACHE_KEY = "ai:vision_models"
MAX_VISION_MODELS = 24


class ModelPricing(BaseModel):
    prompt: float = 0
    completion: float = 0
    image: float = 0
    request: float = 0


class AiModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    description: str = ""
    context_length: Optional[int] = None
    pricing: ModelPricing = Field(default_factory=ModelPricing)


def model_for_tier(tier: Tier) -> str:
    return MODEL_TIERS[tier]


def is_vision_model(model_id: str) -> bool:
    return (
        "vision" in model_id
        or model_id == "google/gemini-pro-1.5"
        or ("openai/gpt-4o" in model_id and "openai/gpt-4o-2024-05-13" not in model_id)
        or "anthropic/claude-3" in model_id
    )


def _clean_pricing(raw: dict) -> ModelPricing:
    values = {}
    for key in ("prompt", "completion", "image", "request"):
        try:
            values[key] = max(float(raw.get(key) or 0), 0.0)
        except (TypeError, ValueError):
            values[key] = 0.0
    return ModelPricing(**values)


class AiModelRegistry:
    """
    Model list fetched from the router, cached in Redis.

    Pricing is kept in memory after the first fetch so cost calculation
    stays synchronous.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        cache=None,
        cache_ttl: int = 86400,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.models: List[AiModel] = []
        self.vision_models: List[AiModel] = []

    async def fetch_models(self, skip_cache: bool = False) -> List[AiModel]:
        """
        Load the priced model list. Returns an empty list when the router
        cannot be reached.
        """
        if self.cache is not None and not skip_cache:
            cached = self.cache.get_json(MODELS_CACHE_KEY)
            if cached:
                self.models = [AiModel(**m) for m in cached]
                cached_vision = self.cache.get_json(VISION_MODELS_CACHE_KEY) or []
                self.vision_models = [AiModel(**m) for m in cached_vision]
                return self.models

        try:
            response = await self.client.get(f"{self.base_url}/models", timeout=30.0)
            response.raise_for_status()
            raw_models = response.json().get("data", [])
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Failed to fetch AI models: {str(e)}")
            return []

        models = [
            AiModel(**{**raw, "pricing": _clean_pricing(raw.get("pricing") or {})})
            for raw in raw_models
            if raw.get("id")
        ]
        vision = sorted(
            (m for m in models if is_vision_model(m.id)),
            key=lambda m: (not m.id.startswith("openai/"), m.id),
        )[:MAX_VISION_MODELS]

        # Free models are not offered for selection
        self.models = [m for m in models if m.pricing.prompt and m.pricing.completion]
        self.vision_models = vision
        logger.info(
            f"🤖 Loaded {len(self.models)} AI models ({len(self.vision_models)} vision)"
        )

        if self.cache is not None:
            self.cache.set_json(
                MODELS_CACHE_KEY, [m.model_dump() for m in self.models], ttl=self.cache_ttl
            )
            self.cache.set_json(
                VISION_MODELS_CACHE_KEY,
                [m.model_dump() for m in self.vision_models],
                ttl=self.cache_ttl,
            )
        return self.models

    def get_model(self, model_id: str) -> Optional[AiModel]:
        return next((m for m in self.models if m.id == model_id), None)

    def calculate_cost(self, model_id: str, usage: Usage) -> float:
        """Cost of a completion in USD; 0 for unknown models or missing usage"""
        if not usage.prompt_tokens or not usage.completion_tokens:
            return 0.0
        model = self.get_model(model_id)
        if model is None:
            return 0.0
        return (
            usage.completion_tokens * model.pricing.completion
            + usage.prompt_tokens * model.pricing.prompt
        )
