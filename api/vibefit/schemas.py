from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import AnalysisResult, AspectRatio, ConversationTurn, ImageQuality, Role
from .parsing import technical_details


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AnalyzeRequest(_CamelModel):
    user_image_base64: str = Field(alias="userImageBase64")
    cloth_image_base64: str = Field(alias="clothImageBase64")


class AnalysisPayload(BaseModel):
    instructions: str
    styling: str
    technical_json: str = Field(serialization_alias="technicalJson")
    technical: Optional[Dict[str, Any]] = None

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisPayload":
        return cls(
            instructions=result.instructions,
            styling=result.styling,
            technical_json=result.technical_json,
            technical=technical_details(result),
        )


class AnalyzeResponse(BaseModel):
    text: str
    analysis: AnalysisPayload


class GenerateImageRequest(_CamelModel):
    prompt: str = Field(min_length=1)
    user_image_base64: str = Field(alias="userImageBase64")
    aspect_ratio: Optional[AspectRatio] = Field(default=None, alias="aspectRatio")
    image_size: ImageQuality = Field(default=ImageQuality.K1, alias="imageSize")


class TryOnRequest(_CamelModel):
    user_image_base64: str = Field(alias="userImageBase64")
    cloth_image_base64: str = Field(alias="clothImageBase64")
    aspect_ratio: Optional[AspectRatio] = Field(default=None, alias="aspectRatio")
    image_size: ImageQuality = Field(default=ImageQuality.K1, alias="imageSize")


class ImageResponse(BaseModel):
    image_url: str = Field(serialization_alias="imageUrl")
    model: Optional[str] = None


class TryOnResponse(BaseModel):
    analysis: AnalysisPayload
    image_url: str = Field(serialization_alias="imageUrl")
    model: str


class EditImageRequest(_CamelModel):
    image_base64: str = Field(alias="imageBase64")
    prompt: str = Field(min_length=1)
    aspect_ratio: AspectRatio = Field(default=AspectRatio.SQUARE, alias="aspectRatio")


class ChatPart(BaseModel):
    text: str = ""


class ChatTurn(BaseModel):
    """One history entry, either ``{role, text}`` or ``{role, parts: [{text}]}``."""

    role: Literal["user", "model", "assistant"]
    text: Optional[str] = None
    parts: List[ChatPart] = Field(default_factory=list)
    timestamp: Optional[float] = None

    @model_validator(mode="after")
    def validate_text_presence(self) -> "ChatTurn":
        if self.text is None and not self.parts:
            raise ValueError("history entries need text or parts.")
        return self

    def to_turn(self) -> ConversationTurn:
        role = Role.USER if self.role == "user" else Role.ASSISTANT
        text = self.text if self.text is not None else "".join(part.text for part in self.parts)
        if self.timestamp is None:
            return ConversationTurn(role=role, text=text)
        return ConversationTurn(role=role, text=text, timestamp=self.timestamp)


class ChatRequest(_CamelModel):
    history: List[ChatTurn] = Field(default_factory=list)
    message: str = Field(min_length=1)
    use_search: bool = Field(default=False, alias="useSearch")
    use_thinking: bool = Field(default=False, alias="useThinking")


class TextResponse(BaseModel):
    text: str


class TranscribeRequest(_CamelModel):
    audio_base64: str = Field(alias="audioBase64")
    mime_type: str = Field(alias="mimeType")
