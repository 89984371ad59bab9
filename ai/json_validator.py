"""
JSON validation with AI-assisted repair.

Text is first parsed locally through increasingly tolerant layers. When every
layer fails, the broken text and the parser error are sent to the AI gateway
for repair, escalating the model tier on each attempt.
"""

import json
import logging
import math
import re
from typing import Any, Optional, Tuple, Type

import demjson3
import json5
from pydantic import BaseModel, ValidationError

from ai.errors import JsonValidatorError
from ai.models import model_for_tier
from ai.schemas import AskAiMessage, AskAiParams

logger = logging.getLogger(__name__)

MAX_RETRIES_LIMIT = 5

# Model tier by repair attempt index
REPAIR_TIERS = ("low", "medium", "high", "high", "high")

REPAIR_SYSTEM_PROMPT = (
    "You are an expert in JSON validating & formatting. You are given a json and a "
    "parsing error message, you will need to revise the json to make it valid."
)

REPAIR_USER_PROMPT = """I'm unable to parse this JSON, check the error parsing message and revise the JSON with the following instructions:
<json>{json}</json>
<parsing_error_message>{error}</parsing_error_message>
<instructions>
- only return the json content
- when formatting the json, carefully escape double quotes, linebreaks, etc.
- do not escape single quotes
- do not use markdown format in your response
- do not include backticks in your response
- IMPORTANT: do not include any explanations in your response
</instructions>"""

CODE_FENCE_PATTERN = re.compile(r"^```(?:json|JSON)?\s*(.*?)\s*```$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    text = text.strip()
    match = CODE_FENCE_PATTERN.match(text)
    return match.group(1) if match else text


def _reject_constant(name: str):
    raise ValueError(f"{name} is not a valid JSON value")


def is_json_value(value: Any) -> bool:
    """True when ``value`` only holds types standard JSON can represent."""
    if value is None or isinstance(value, (str, bool, int)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, list):
        return all(is_json_value(item) for item in value)
    if isinstance(value, dict):
        return all(isinstance(key, str) and is_json_value(item) for key, item in value.items())
    # demjson3.undefined and anything else a lenient parser invents
    return False


def parse_json_layers(text: str) -> Tuple[Any, bool]:
    """
    Parse ``text`` with json, then json5, then demjson3.

    A lenient layer only counts when its result is representable as
    standard JSON (no NaN, Infinity or undefined).

    Returns:
        (value, strict) where ``strict`` is True when the standard parser
        accepted the text as-is

    Raises:
        ValueError: With the standard parser's message if every layer failed
    """
    try:
        return json.loads(text, parse_constant=_reject_constant), True
    except ValueError as e:
        strict_error = e

    try:
        value = json5.loads(text)
    except ValueError:
        pass
    else:
        if is_json_value(value):
            return value, False

    try:
        value = demjson3.decode(text)
    except demjson3.JSONDecodeError:
        pass
    else:
        if is_json_value(value):
            return value, False

    raise ValueError(str(strict_error))


async def json_validator(
    text: str,
    ai,
    parse: bool = False,
    max_retries: int = 5,
    schema: Optional[Type[BaseModel]] = None,
    debug: bool = False,
) -> Any:
    """
    Validate (and if needed repair) a JSON string.

    Args:
        text: Candidate JSON
        ai: AiClient used for repairs
        parse: Return the parsed value instead of the JSON text
        max_retries: Number of AI repair attempts (at most 5)
        schema: Optional pydantic model the parsed value must satisfy
        debug: Log every attempt

    Returns:
        The parsed value, or the valid JSON text when ``parse`` is False

    Raises:
        JsonValidatorError: If the JSON could not be repaired
    """
    if max_retries > MAX_RETRIES_LIMIT:
        raise JsonValidatorError(
            f"max_retries must be at most {MAX_RETRIES_LIMIT}, got {max_retries}", json=text
        )

    current = text
    for attempt in range(max_retries + 1):
        if debug:
            logger.debug(f"🔧 JSON validation attempt {attempt + 1}/{max_retries + 1}")

        candidate = strip_code_fences(current or "")
        try:
            value, strict = parse_json_layers(candidate)
            if schema is not None:
                schema.model_validate(value)
        except (ValueError, ValidationError) as e:
            error_message = str(e)
            logger.warning(f"⚠️  JSON attempt {attempt + 1} failed: {error_message[:200]}")
        else:
            if parse:
                return value
            return candidate if strict else json.dumps(value, allow_nan=False)

        if attempt >= max_retries:
            break

        tier = REPAIR_TIERS[attempt]
        logger.info(f"🔁 Repairing JSON with {tier} tier model")
        response = await ai.fetch_ai(
            AskAiParams(
                model=model_for_tier(tier),
                messages=[
                    AskAiMessage(role="system", content=REPAIR_SYSTEM_PROMPT),
                    AskAiMessage(
                        role="user",
                        content=REPAIR_USER_PROMPT.format(json=current, error=error_message),
                    ),
                ],
            )
        )
        current = response.text
        if not current:
            raise JsonValidatorError("Fixed JSON content not found.", json=text)

    logger.error("❌ Unable to validate & fix JSON: maximum number of attempts reached")
    raise JsonValidatorError(
        "Unable to validate & fix this json: Maximum number of attempts reached.",
        json=current,
    )
