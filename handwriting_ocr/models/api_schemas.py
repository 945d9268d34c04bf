"""Request and response schemas for the Gemini generateContent endpoint."""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class InlineData(BaseModel):
    mime_type: str
    data: str = Field(description="Base64-encoded image bytes")


class TextPart(BaseModel):
    text: str


class InlineDataPart(BaseModel):
    inline_data: InlineData


class RequestContent(BaseModel):
    parts: List[Union[TextPart, InlineDataPart]]


class GenerationConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature: float = 0.1
    max_output_tokens: int = Field(default=8192, alias="maxOutputTokens")


class GenerateContentRequest(BaseModel):
    """Body of a generateContent call: one text part followed by the page images."""

    model_config = ConfigDict(populate_by_name=True)

    contents: List[RequestContent]
    generation_config: GenerationConfig = Field(
        default_factory=GenerationConfig, alias="generationConfig"
    )


class ResponsePart(BaseModel):
    text: Optional[str] = None


class ResponseContent(BaseModel):
    parts: List[ResponsePart] = Field(default_factory=list)


class Candidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: Optional[ResponseContent] = None
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")


class ErrorInfo(BaseModel):
    message: Optional[str] = None
    code: Optional[int] = None
    status: Optional[str] = None


class GenerateContentResponse(BaseModel):
    candidates: List[Candidate] = Field(default_factory=list)
    error: Optional[ErrorInfo] = None

    def first_text(self) -> Optional[str]:
        """Text of the first part of the first candidate, if any."""
        if not self.candidates:
            return None
        content = self.candidates[0].content
        if content is None or not content.parts:
            return None
        return content.parts[0].text
