"""
Tests for the chat-completion gateway and the model registry.
"""

import json

import httpx
import pytest

from ai.client import AiClient, route_models
from ai.errors import AiHttpError, AiTimeoutError, FetchAiError
from ai.models import DEFAULT_AI_MODELS, AiModel, AiModelRegistry, ModelPricing, is_vision_model
from ai.schemas import AskAiMessage, AskAiParams, Usage

COMPLETION = {
    "id": "gen-123",
    "model": "openai/gpt-4.1-mini",
    "choices": [{"finish_reason": "stop", "message": {"role": "assistant", "content": "hello"}}],
    "usage": {"prompt_tokens": 100, "completion_tokens": 20, "total_tokens": 120},
}


def _params(**kwargs):
    return AskAiParams(messages=[AskAiMessage(role="user", content="hi")], **kwargs)


def _ai(handler, registry=None, max_retries=0):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AiClient(
        http,
        api_key="sk-test",
        referer="https://reviewweb.site",
        title="ReviewWeb (test)",
        registry=registry,
        max_retries=max_retries,
    )


class TestRouteModels:
    def test_no_model_uses_three_defaults(self):
        assert route_models(None, None) == DEFAULT_AI_MODELS[:3]

    def test_explicit_list(self):
        assert route_models(None, ["a/b", "c/d"]) == ["a/b", "c/d"]

    def test_single_model_gets_two_fallbacks(self):
        assert route_models("x/y", None) == ["x/y", *DEFAULT_AI_MODELS[:2]]


class TestFetchAi:
    @pytest.mark.asyncio
    async def test_request_shape_and_response(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["headers"] = request.headers
            return httpx.Response(200, json=COMPLETION)

        result = await _ai(handler).fetch_ai(_params(model="x/y", temperature=0.2))

        assert result.text == "hello"
        assert seen["body"]["models"] == ["x/y", *DEFAULT_AI_MODELS[:2]]
        assert seen["body"]["stream"] is False
        assert seen["body"]["temperature"] == 0.2
        assert "model" not in seen["body"]
        assert seen["headers"]["authorization"] == "Bearer sk-test"
        assert seen["headers"]["x-title"] == "ReviewWeb (test)"

    @pytest.mark.asyncio
    async def test_error_payload(self):
        handler = lambda request: httpx.Response(
            200, json={"error": {"code": 402, "message": "Insufficient credits"}}
        )

        with pytest.raises(FetchAiError) as exc_info:
            await _ai(handler).fetch_ai(_params())

        assert exc_info.value.code == 402
        assert exc_info.value.message == "Insufficient credits"

    @pytest.mark.asyncio
    async def test_nested_provider_error(self):
        nested = json.dumps({"error": {"code": 429, "message": "Provider rate limited"}})
        handler = lambda request: httpx.Response(200, json={"error": {"code": 400, "message": nested}})

        with pytest.raises(FetchAiError) as exc_info:
            await _ai(handler).fetch_ai(_params())

        assert exc_info.value.code == 429
        assert exc_info.value.message == "Provider rate limited"

    @pytest.mark.asyncio
    async def test_timeout_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(AiTimeoutError, match="Request timed out"):
            await _ai(handler, max_retries=3).fetch_ai(_params())

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_client_error_carries_status_and_data(self):
        handler = lambda request: httpx.Response(400, json={"error": "bad request"})

        with pytest.raises(AiHttpError) as exc_info:
            await _ai(handler).fetch_ai(_params())

        assert exc_info.value.status == 400
        assert exc_info.value.data == {"error": "bad request"}
        assert str(exc_info.value).startswith("HTTP error! status: 400")

    @pytest.mark.asyncio
    async def test_transient_status_is_retried(self):
        responses = [httpx.Response(503, text="overloaded"), httpx.Response(200, json=COMPLETION)]

        result = await _ai(lambda request: responses.pop(0), max_retries=1).fetch_ai(_params())

        assert result.id == "gen-123"
        assert responses == []

    @pytest.mark.asyncio
    async def test_cost_from_registry(self):
        registry = AiModelRegistry(httpx.AsyncClient(), "https://openrouter.ai/api/v1")
        registry.models = [
            AiModel(id="openai/gpt-4.1-mini", pricing=ModelPricing(prompt=0.0001, completion=0.0005))
        ]

        result = await _ai(lambda request: httpx.Response(200, json=COMPLETION), registry=registry).fetch_ai(
            _params()
        )

        assert result.usage.total_cost == pytest.approx(100 * 0.0001 + 20 * 0.0005)


class TestModelRegistry:
    @pytest.mark.asyncio
    async def test_fetch_models_filters_free_and_caches(self, fake_redis):
        from core.cache import RedisClient

        payload = {
            "data": [
                {"id": "openai/gpt-4o-mini", "name": "GPT-4o mini", "pricing": {"prompt": "0.00015", "completion": "0.0006"}},
                {"id": "some/free-model", "pricing": {"prompt": "0", "completion": "0"}},
                {"id": "meta-llama/llama-3.2-11b-vision-instruct", "pricing": {"prompt": "-1", "completion": "0.1"}},
            ]
        }
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=payload)))
        cache = RedisClient("redis://test", client=fake_redis)
        registry = AiModelRegistry(http, "https://openrouter.ai/api/v1", cache=cache)

        models = await registry.fetch_models()

        assert [m.id for m in models] == ["openai/gpt-4o-mini"]
        assert [m.id for m in registry.vision_models] == [
            "openai/gpt-4o-mini",
            "meta-llama/llama-3.2-11b-vision-instruct",
        ]
        assert registry.vision_models[1].pricing.prompt == 0
        assert cache.get_json("ai:models")[0]["id"] == "openai/gpt-4o-mini"

        # Second registry is served from the cache without HTTP
        offline = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        cached = await AiModelRegistry(offline, "https://openrouter.ai/api/v1", cache=cache).fetch_models()
        assert [m.id for m in cached] == ["openai/gpt-4o-mini"]

    @pytest.mark.asyncio
    async def test_fetch_failure_returns_empty(self):
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500)))

        assert await AiModelRegistry(http, "https://openrouter.ai/api/v1").fetch_models() == []

    def test_cost_of_unknown_model_is_zero(self):
        registry = AiModelRegistry(httpx.AsyncClient(), "https://openrouter.ai/api/v1")

        assert registry.calculate_cost("nope", Usage(prompt_tokens=5, completion_tokens=5)) == 0.0

    def test_vision_detection(self):
        assert is_vision_model("anthropic/claude-3.5-sonnet")
        assert is_vision_model("openai/gpt-4o-mini")
        assert not is_vision_model("openai/gpt-4o-2024-05-13")
        assert not is_vision_model("qwen/qwen-2.5-72b-instruct")
