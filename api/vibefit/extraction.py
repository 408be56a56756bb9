from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Iterable, Optional

from .models import DEFAULT_IMAGE_MIME, ImageAsset

logger = logging.getLogger(__name__)


def _field(obj: Any, name: str, alias: Optional[str] = None) -> Any:
    """Read ``name`` from an SDK object or a plain (snake or camel case) dict."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        value = obj.get(name)
        if value is None and alias:
            value = obj.get(alias)
        return value
    return getattr(obj, name, None)


def _first_candidate_parts(response: Any) -> Iterable[Any]:
    candidates = _field(response, "candidates") or []
    if not candidates:
        return []
    content = _field(candidates[0], "content")
    return _field(content, "parts") or []


def extract_image(response: Any) -> Optional[ImageAsset]:
    """Return the first inline image of the first candidate, if any.

    ``None`` means the model answered without producing an image; callers
    decide whether that is a failure.
    """
    for part in _first_candidate_parts(response):
        inline = _field(part, "inline_data", "inlineData")
        data = _field(inline, "data")
        if not data:
            continue
        mime_type = _field(inline, "mime_type", "mimeType") or DEFAULT_IMAGE_MIME
        if isinstance(data, str):
            try:
                data = base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError):
                logger.warning("Skipping inline part with undecodable payload.")
                continue
        return ImageAsset(data=bytes(data), mime_type=mime_type)
    return None


def extract_text(response: Any) -> str:
    chunks = []
    for part in _first_candidate_parts(response):
        if _field(part, "thought"):
            continue
        text = _field(part, "text")
        if text:
            chunks.append(text)
    return "".join(chunks)
