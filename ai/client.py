"""
Chat-completion gateway over the OpenRouter API.

Transient failures (transport errors, 429 and 5xx) are retried with
exponential backoff. Timeouts are not retried.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ai.errors import AiHttpError, AiTimeoutError, FetchAiError
from ai.models import DEFAULT_AI_MODELS, AiModelRegistry
from ai.schemas import AskAiParams, AskAiResponse

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, httpx.TimeoutException):
        return False
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    return False


def route_models(model: Optional[str], models: Optional[List[str]]) -> List[str]:
    """
    Fallback model list sent to the router.

    No model: the first three defaults. ``models``: as given. ``model``: the
    model followed by the first two defaults.
    """
    if model:
        return [model, *DEFAULT_AI_MODELS[:2]]
    if models:
        return list(models)
    return list(DEFAULT_AI_MODELS[:3])


def _error_from_payload(error: Any) -> FetchAiError:
    """Build a FetchAiError from an upstream ``error`` object"""
    if not isinstance(error, dict):
        return FetchAiError(code=500, message=str(error))

    message = error.get("message", "")
    # The router sometimes nests the provider error as a JSON string
    if isinstance(message, str) and message.startswith("{"):
        try:
            nested = json.loads(message).get("error")
            if isinstance(nested, dict):
                error = nested
                message = nested.get("message", message)
        except (ValueError, AttributeError):
            pass

    try:
        code = int(error.get("code", 500))
    except (TypeError, ValueError):
        code = 500
    return FetchAiError(code=code, message=str(message), status=str(error.get("status", "")))


class AiClient:
    """
    Args:
        http: Shared async HTTP client
        api_key: OpenRouter key
        base_url: Router base URL
        referer: Sent as HTTP-Referer
        title: Sent as X-Title
        registry: Model registry used for cost calculation
        timeout: Default request timeout in seconds
        max_retries: Retries for transient failures
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        referer: str = "",
        title: str = "",
        registry: Optional[AiModelRegistry] = None,
        timeout: float = 300.0,
        max_retries: int = 3,
    ):
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.referer = referer
        self.title = title
        self.registry = registry
        self.timeout = timeout
        self.max_retries = max_retries

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }

    def build_payload(self, params: AskAiParams, stream: bool = False) -> Dict[str, Any]:
        payload = params.model_dump(exclude_none=True, exclude={"model", "models"})
        payload["stream"] = stream
        payload["models"] = route_models(params.model, params.models)
        return payload

    async def _post(self, payload: dict, stream: bool, timeout: float) -> httpx.Response:
        url = f"{self.base_url}/chat/completions"
        if not stream:
            response = await self.http.post(url, json=payload, headers=self.headers, timeout=timeout)
            response.raise_for_status()
            return response

        request = self.http.build_request(
            "POST", url, json=payload, headers=self.headers, timeout=timeout
        )
        response = await self.http.send(request, stream=True)
        if response.is_error:
            await response.aread()
            await response.aclose()
            response.raise_for_status()
        return response

    async def fetch_ai(
        self,
        params: AskAiParams,
        stream: bool = False,
        timeout: Optional[float] = None,
        debug: bool = False,
    ) -> Union[AskAiResponse, httpx.Response]:
        """
        Send one chat completion.

        Returns:
            AskAiResponse, or with ``stream=True`` the open httpx.Response
            (the caller iterates and closes it)

        Raises:
            FetchAiError: Upstream returned an ``error`` payload
            AiTimeoutError: The request timed out
            AiHttpError: Non-2xx response after retries
        """
        payload = self.build_payload(params, stream=stream)
        timeout = timeout or self.timeout

        if debug:
            logger.debug(f"🤖 AI request: models={payload['models']} messages={len(payload['messages'])}")

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries + 1),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception(_is_transient),
                reraise=True,
            ):
                with attempt:
                    response = await self._post(payload, stream, timeout)
        except httpx.TimeoutException as e:
            logger.error(f"❌ AI request timed out after {timeout}s")
            raise AiTimeoutError() from e
        except httpx.HTTPStatusError as e:
            try:
                data = e.response.json()
            except ValueError:
                data = e.response.text or None
            raise AiHttpError(e.response.status_code, str(e), data) from e
        except httpx.HTTPError as e:
            raise AiHttpError(None, str(e) or e.__class__.__name__) from e

        if stream:
            return response

        body = response.json()
        if body.get("error"):
            raise _error_from_payload(body["error"])

        result = AskAiResponse.model_validate(body)
        if self.registry is not None:
            result.usage.total_cost = self.registry.calculate_cost(result.model, result.usage)

        logger.info(
            f"🤖 AI completion from {result.model} "
            f"({result.usage.total_tokens} tokens)"
        )
        return result
