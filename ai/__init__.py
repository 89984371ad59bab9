# AI package - Chat-completion gateway, JSON repair and safety analyses
from .errors import AiError, FetchAiError, AiTimeoutError, AiHttpError, JsonValidatorError
from .client import AiClient
from .models import AiModelRegistry
from .json_validator import json_validator

__all__ = [
    # Errors
    "AiError",
    "FetchAiError",
    "AiTimeoutError",
    "AiHttpError",
    "JsonValidatorError",
    # Gateway
    "AiClient",
    "AiModelRegistry",
    "json_validator",
]
