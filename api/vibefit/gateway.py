"""
Access to the remote generation service.

The rest of the package only sees ``GenerationGateway.invoke``. API errors
from the SDK and httpx, socket or timeout errors come back as ``Failure``;
retry decisions are left to the fallback orchestrator. Errors of other
transports (e.g. aiohttp, when the SDK picks it up) still propagate.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from . import config as app_config
from .errors import CapabilityUnavailable, RequestRejected, TransportFailure, VibefitError
from .models import (
    ContentPart,
    Failure,
    GenerationConfig,
    Message,
    ModelCallOutcome,
    ModelRequest,
    Role,
    Success,
)

logger = logging.getLogger(__name__)

CAPABILITY_STATUS_CODES = frozenset({403, 404})
CAPABILITY_MESSAGE_MARKERS = ("PERMISSION_DENIED", "not found")

_REMOTE_ROLES = {Role.USER: "user", Role.ASSISTANT: "model"}


class GenerationGateway(Protocol):
    async def invoke(self, model_id: str, request: ModelRequest) -> ModelCallOutcome:
        ...


def classify_failure(status_code: Optional[int], message: Optional[str]) -> VibefitError:
    """Map a remote error to the taxonomy the orchestrator understands.

    Only 403/404 (or their textual equivalents) mean the model is out of
    reach for this key; everything else is a rejection of the request itself.
    """
    text = message or "Generation request failed."
    if status_code in CAPABILITY_STATUS_CODES or any(
        marker in text for marker in CAPABILITY_MESSAGE_MARKERS
    ):
        return CapabilityUnavailable(text, status_code=status_code)
    return RequestRejected(text, status_code=status_code)


def failure_from_api_error(exc: genai_errors.APIError) -> VibefitError:
    code = exc.code if isinstance(exc.code, int) else None
    # ``status`` carries the canonical name (e.g. PERMISSION_DENIED).
    details = " ".join(str(item) for item in (exc.status, exc.message) if item)
    return classify_failure(code, details or str(exc))


class GeminiGateway:
    """``GenerationGateway`` backed by the google-genai async client."""

    def __init__(self, api_key: Optional[str] = None, *, client: Optional[genai.Client] = None) -> None:
        if client is None:
            key = api_key or app_config.GEMINI_API_KEY
            if not key:
                raise RuntimeError("GEMINI_API_KEY is not set.")
            client = genai.Client(api_key=key)
        self._client = client

    async def invoke(self, model_id: str, request: ModelRequest) -> ModelCallOutcome:
        contents = [self._to_content(message) for message in request.contents]
        try:
            response = await self._client.aio.models.generate_content(
                model=model_id,
                contents=contents,
                config=self._to_config(request.config),
            )
        except genai_errors.APIError as exc:
            logger.debug("Model %s answered with an error: %s", model_id, exc)
            return Failure(failure_from_api_error(exc))
        except (httpx.HTTPError, asyncio.TimeoutError, TimeoutError, OSError) as exc:
            logger.debug("Model %s unreachable: %r", model_id, exc)
            return Failure(TransportFailure(str(exc) or exc.__class__.__name__))
        return Success(response)

    @staticmethod
    def _to_part(part: ContentPart) -> types.Part:
        if part.is_binary:
            return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
        return types.Part.from_text(text=part.text or "")

    def _to_content(self, message: Message) -> types.Content:
        return types.Content(
            role=_REMOTE_ROLES[message.role],
            parts=[self._to_part(part) for part in message.parts],
        )

    @staticmethod
    def _to_config(config: GenerationConfig) -> Optional[types.GenerateContentConfig]:
        if config.is_empty:
            return None
        kwargs = {}
        if config.aspect_ratio is not None or config.quality is not None:
            kwargs["image_config"] = types.ImageConfig(
                aspect_ratio=config.aspect_ratio.value if config.aspect_ratio else None,
                image_size=config.quality.value if config.quality else None,
            )
        if config.search_enabled:
            tools: List[types.Tool] = [types.Tool(google_search=types.GoogleSearch())]
            kwargs["tools"] = tools
        if config.thinking_budget is not None:
            kwargs["thinking_config"] = types.ThinkingConfig(
                thinking_budget=config.thinking_budget
            )
        return types.GenerateContentConfig(**kwargs)
