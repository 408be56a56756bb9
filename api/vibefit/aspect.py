from __future__ import annotations

import io
import logging
import math
from numbers import Real

from PIL import Image, UnidentifiedImageError

from .errors import InvalidInput
from .models import AspectRatio, ImageAsset

logger = logging.getLogger(__name__)


def _check_dimension(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInput(f"{name} must be a number, got {value!r}.")
    if not math.isfinite(value) or value <= 0:
        raise InvalidInput(f"{name} must be positive and finite, got {value!r}.")
    return float(value)


def classify_aspect_ratio(width: float, height: float) -> AspectRatio:
    """Return the supported aspect ratio closest to ``width / height``.

    Ties resolve to the member that comes first in ``AspectRatio``.
    """
    ratio = _check_dimension("width", width) / _check_dimension("height", height)
    closest = AspectRatio.SQUARE
    best = abs(closest.value_ratio - ratio)
    for candidate in AspectRatio:
        distance = abs(candidate.value_ratio - ratio)
        if distance < best:
            closest, best = candidate, distance
    return closest


def aspect_ratio_for_image(asset: ImageAsset) -> AspectRatio:
    try:
        with Image.open(io.BytesIO(asset.data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidInput("Could not read the image dimensions.") from exc
    ratio = classify_aspect_ratio(width, height)
    logger.debug("Classified %sx%s as %s", width, height, ratio.value)
    return ratio
