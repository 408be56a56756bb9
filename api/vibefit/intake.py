from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import Image

from . import config as app_config
from .errors import InvalidInput
from .models import AudioClip, ImageAsset, decode_base64

logger = logging.getLogger(__name__)

IMAGE_MIME_BY_FORMAT = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "HEIF": "image/heic",
}


@dataclass
class PayloadIssue:
    code: str
    message: str
    field: Optional[str] = None


class PayloadRejected(InvalidInput):
    """Raised with every issue found in an incoming payload."""

    def __init__(self, issues: List[PayloadIssue]) -> None:
        super().__init__("; ".join(issue.message for issue in issues))
        self.issues = issues

    @property
    def too_large(self) -> bool:
        return any(issue.code == "too_large" for issue in self.issues)


def _strip_data_uri(payload: str) -> str:
    if payload.startswith("data:") and "," in payload:
        return payload.split(",", 1)[1]
    return payload


def _decode(field: str, payload: str, issues: List[PayloadIssue]) -> Optional[bytes]:
    raw = _strip_data_uri(payload.strip())
    if not raw:
        issues.append(PayloadIssue(code="empty", message=f"{field} is empty.", field=field))
        return None
    # base64 inflates by 4/3; reject before decoding.
    if len(raw) * 3 // 4 > app_config.MAX_REQUEST_BYTES:
        issues.append(
            PayloadIssue(
                code="too_large",
                message=f"{field} exceeds {app_config.MAX_REQUEST_BYTES} bytes.",
                field=field,
            )
        )
        return None
    try:
        return decode_base64(raw)
    except InvalidInput:
        issues.append(
            PayloadIssue(code="invalid_base64", message=f"{field} is not valid base64.", field=field)
        )
        return None


def evaluate_image_payload(field: str, payload: str) -> Tuple[Optional[ImageAsset], List[PayloadIssue]]:
    issues: List[PayloadIssue] = []
    data = _decode(field, payload, issues)
    if data is None:
        return None, issues
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format or ""
            image.verify()
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Failed to parse %s: %s", field, exc)
        issues.append(
            PayloadIssue(code="invalid_image", message=f"Could not process {field} as an image.", field=field)
        )
        return None, issues
    mime_type = IMAGE_MIME_BY_FORMAT.get(image_format, "image/jpeg")
    return ImageAsset(data=data, mime_type=mime_type), issues


def require_images(**payloads: str) -> List[ImageAsset]:
    """Decode and check every named image payload, raising once for all issues."""
    assets: List[ImageAsset] = []
    issues: List[PayloadIssue] = []
    for field, payload in payloads.items():
        asset, found = evaluate_image_payload(field, payload)
        issues.extend(found)
        if asset is not None:
            assets.append(asset)
    total = sum(len(asset.data) for asset in assets)
    if total > app_config.MAX_REQUEST_BYTES:
        issues.append(
            PayloadIssue(code="too_large", message=f"Request exceeds {app_config.MAX_REQUEST_BYTES} bytes.")
        )
    if issues:
        raise PayloadRejected(issues)
    return assets


def require_audio(payload: str, mime_type: str) -> AudioClip:
    issues: List[PayloadIssue] = []
    if not mime_type.startswith("audio/"):
        issues.append(
            PayloadIssue(code="invalid_mime", message=f"Unsupported audio type {mime_type!r}.", field="mimeType")
        )
    data = _decode("audioBase64", payload, issues)
    if issues or data is None:
        raise PayloadRejected(issues)
    return AudioClip(data=data, mime_type=mime_type)
