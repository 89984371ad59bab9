"""
Prompts for the content safety analyses.
"""

import json
from typing import Optional

CONTENT_SAFETY_FORMAT = json.dumps(
    {
        "properties": {
            "isAppropriate": {
                "type": "boolean",
                "description": "Whether the content is appropriate based on the instructions",
            },
            "isHarmful": {"type": "boolean"},
            "reason": {"type": "string"},
            "score": {
                "type": "number",
                "minimum": 0,
                "maximum": 10,
                "description": "Appropriateness score based on the scale of 0 to 10, "
                "where 0 is not appropriate and 10 is appropriate",
            },
            "harmfulContentTypes": {
                "type": "array",
                "items": {
                    "type": "string",
                    "enum": [
                        "sexual_content",
                        "hate_speech",
                        "violence",
                        "discrimination",
                        "explicit_language",
                        "political_extremism",
                        "misinformation",
                    ],
                },
            },
        }
    }
)

IMAGE_SAFETY_FORMAT = json.dumps(
    {
        "isAppropriate": {
            "type": "boolean",
            "description": "Whether the content is appropriate based on the instructions",
        },
        "isHarmful": {"type": "boolean", "description": "Whether the content is harmful"},
        "reason": {"type": "string"},
        "score": {
            "type": "number",
            "minimum": 0,
            "maximum": 10,
            "description": "Appropriateness score based on the scale of 0 to 10, "
            "where 0 is not appropriate and 10 is appropriate",
        },
    }
)

CONTENT_SAFETY_SYSTEM_PROMPT = (
    "You are an AI content safety detector specialized in identifying harmful, "
    "inappropriate, or dangerous website content."
)

IMAGE_SYSTEM_PROMPT = "You are an AI image analysis tool."


def get_url_analysis_prompt(
    website_content: str,
    instructions: Optional[str] = None,
    response_format: str = CONTENT_SAFETY_FORMAT,
) -> str:
    """User prompt for a page's text content"""
    if instructions:
        return f"""{instructions}

## JSON Response Format:
<json_response_format>
{response_format}
</json_response_format>

## Here is the website content:
<website_content>
{website_content}
</website_content>"""

    return f"""Carefully analyze the website content and detect any harmful elements:

## Harmful Content Detection Instructions:
- Thoroughly scan the content for potentially harmful material
- Identify specific types of harmful content
- Provide a comprehensive safety assessment
- Return a structured JSON object based on this format:
## JSON Response Format:
{response_format}

## Specific Areas to Evaluate:
- Sexual or explicit content
- Hate speech or discriminatory language
- Violent or graphic descriptions
- Political extremism
- Misinformation or dangerous propaganda
- Explicit or offensive language

## Here is the website content:
<website_content>
{website_content}
</website_content>"""


def get_image_analysis_prompt(
    instructions: Optional[str] = None,
    response_format: str = IMAGE_SAFETY_FORMAT,
) -> str:
    review = f"## Review Instructions:\n{instructions}\n" if instructions else ""
    return f"""Analyze the image following these instructions:
{review}## Additional Instructions:
- Thoroughly scan the content for potentially harmful material
- Identify specific types of harmful content
- Return a JSON object based on this format:
## JSON Response Format:
{response_format}"""
