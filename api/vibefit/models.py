from __future__ import annotations

import base64
import binascii
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple, Union

from .errors import FailureReason, InvalidInput, VibefitError

DEFAULT_IMAGE_MIME = "image/png"


def decode_base64(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInput("Payload is not valid base64.") from exc


@dataclass(frozen=True)
class ImageAsset:
    data: bytes
    mime_type: str = DEFAULT_IMAGE_MIME

    @classmethod
    def from_base64(cls, payload: str, mime_type: str = DEFAULT_IMAGE_MIME) -> "ImageAsset":
        return cls(data=decode_base64(payload), mime_type=mime_type)

    @classmethod
    def from_data_uri(cls, uri: str) -> "ImageAsset":
        header, sep, payload = uri.partition(",")
        if not sep or not header.startswith("data:") or not header.endswith(";base64"):
            raise InvalidInput("Expected a base64 data URI.")
        mime_type = header[len("data:"):-len(";base64")] or DEFAULT_IMAGE_MIME
        return cls.from_base64(payload, mime_type=mime_type)

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


@dataclass(frozen=True)
class AudioClip:
    data: bytes
    mime_type: str


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    PORTRAIT_3_4 = "3:4"
    PORTRAIT_9_16 = "9:16"
    LANDSCAPE_4_3 = "4:3"
    LANDSCAPE_16_9 = "16:9"

    @property
    def value_ratio(self) -> float:
        width, height = self.value.split(":")
        return int(width) / int(height)


class ImageQuality(str, Enum):
    K1 = "1K"
    K2 = "2K"
    K4 = "4K"


@dataclass(frozen=True)
class AnalysisResult:
    instructions: str
    styling: str
    # Opaque text; the model claims it is JSON but nothing here relies on that.
    technical_json: str


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    text: str
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def user(cls, text: str) -> "ConversationTurn":
        return cls(role=Role.USER, text=text)

    @classmethod
    def assistant(cls, text: str) -> "ConversationTurn":
        return cls(role=Role.ASSISTANT, text=text)


@dataclass(frozen=True)
class ContentPart:
    text: Optional[str] = None
    data: Optional[bytes] = None
    mime_type: Optional[str] = None

    @classmethod
    def of_text(cls, text: str) -> "ContentPart":
        return cls(text=text)

    @classmethod
    def of_binary(cls, asset: Union[ImageAsset, AudioClip]) -> "ContentPart":
        return cls(data=asset.data, mime_type=asset.mime_type)

    @property
    def is_binary(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class Message:
    role: Role
    parts: Tuple[ContentPart, ...]


@dataclass(frozen=True)
class GenerationConfig:
    aspect_ratio: Optional[AspectRatio] = None
    quality: Optional[ImageQuality] = None
    search_enabled: bool = False
    thinking_budget: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.aspect_ratio is None
            and self.quality is None
            and not self.search_enabled
            and self.thinking_budget is None
        )


@dataclass(frozen=True)
class ModelRequest:
    contents: Tuple[Message, ...]
    config: GenerationConfig = GenerationConfig()


@dataclass(frozen=True)
class Success:
    response: Any


@dataclass(frozen=True)
class Failure:
    error: VibefitError

    @property
    def reason(self) -> FailureReason:
        return self.error.reason

    @property
    def status_code(self) -> Optional[int]:
        return self.error.status_code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def is_retryable(self) -> bool:
        return self.reason is FailureReason.CAPABILITY_UNAVAILABLE


ModelCallOutcome = Union[Success, Failure]


@dataclass(frozen=True)
class GenerationResult:
    payload: Any
    model: str
    fallback_used: bool = False


@dataclass(frozen=True)
class TryOnResult:
    analysis: AnalysisResult
    image: Optional[ImageAsset]
    model: str
