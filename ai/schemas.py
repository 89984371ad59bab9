"""
Pydantic models for the AI gateway and the safety analyses built on it.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str
    detail: Optional[str] = None


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: Union[str, ImageUrl]


MessageContent = Union[str, List[Union[TextPart, ImagePart]]]


class AskAiMessage(BaseModel):
    role: Literal["system", "assistant", "user"]
    content: MessageContent


class AskAiParams(BaseModel):
    """Chat-completion request; ``model`` and ``models`` drive routing"""

    model: Optional[str] = None
    models: Optional[List[str]] = None
    messages: List[AskAiMessage]
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    response_format: Optional[dict] = None
    max_tokens: Optional[int] = None
    frequency_penalty: Optional[float] = None
    top_p: Optional[float] = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    total_cost: Optional[float] = None


class AiErrorPayload(BaseModel):
    code: int
    message: str


class ChoiceMessage(BaseModel):
    role: str
    content: Optional[str] = None


class Choice(BaseModel):
    finish_reason: Optional[str] = None
    message: ChoiceMessage
    error: Optional[AiErrorPayload] = None


class AskAiResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    choices: List[Choice]
    created: Optional[int] = None
    model: str
    object: Optional[str] = None
    system_fingerprint: Optional[str] = None
    usage: Usage = Field(default_factory=Usage)

    @property
    def text(self) -> str:
        """Contents of every choice joined by newlines"""
        return "\n".join(c.message.content for c in self.choices if c.message.content)


HarmfulContentType = Literal[
    "sexual_content",
    "hate_speech",
    "violence",
    "discrimination",
    "explicit_language",
    "political_extremism",
    "misinformation",
]


class ContentSafetyAnalysis(BaseModel):
    """Verdict on the text content of a page"""

    is_appropriate: bool = Field(alias="isAppropriate")
    is_harmful: bool = Field(alias="isHarmful")
    reason: str = ""
    score: float = Field(ge=0, le=10)
    harmful_content_types: List[HarmfulContentType] = Field(
        default_factory=list, alias="harmfulContentTypes"
    )

    model_config = ConfigDict(populate_by_name=True)


class ImageSafetyAnalysis(ContentSafetyAnalysis):
    """Verdict on a single image or screenshot"""

    description: Optional[str] = None


class AnalysisResult(BaseModel):
    """One AI analysis: validated data plus what it cost"""

    data: dict
    usage: Optional[Usage] = None
    model: Optional[str] = None
