"""Exceptions raised by the AI gateway."""

from typing import Any, Optional


class AiError(Exception):
    """Base class for AI gateway failures"""

    pass


class FetchAiError(AiError):
    """The router answered with an ``error`` payload"""

    def __init__(self, code: int, message: str, status: str = ""):
        super().__init__(message)
        self.code = code
        self.status = status
        self.message = message


class AiTimeoutError(AiError):
    def __init__(self, message: str = "Request timed out"):
        super().__init__(message)


class AiHttpError(AiError):
    """Non-2xx HTTP response from the router"""

    def __init__(self, status: Optional[int], message: str, data: Any = None):
        super().__init__(
            f"HTTP error! status: {status}, message: {message}, data: "
            f"{data if data is not None else '<no data>'}"
        )
        self.status = status
        self.data = data


class JsonValidatorError(AiError):
    """JSON could not be repaired; ``json`` is the last text seen"""

    def __init__(self, message: str, json: Optional[str] = None):
        super().__init__(message)
        self.json = json
