from __future__ import annotations

import math

import pytest

from api.vibefit.aspect import aspect_ratio_for_image, classify_aspect_ratio
from api.vibefit.errors import InvalidInput
from api.vibefit.models import AspectRatio, ImageAsset

from fakes import make_asset


@pytest.mark.parametrize(
    "width,height,expected",
    [
        (1000, 1000, AspectRatio.SQUARE),
        (1080, 1920, AspectRatio.PORTRAIT_9_16),
        (800, 600, AspectRatio.LANDSCAPE_4_3),
        (600, 800, AspectRatio.PORTRAIT_3_4),
        (1920, 1080, AspectRatio.LANDSCAPE_16_9),
        (4000, 1000, AspectRatio.LANDSCAPE_16_9),
        (1, 50, AspectRatio.PORTRAIT_9_16),
    ],
)
def test_classify_known_dimensions(width, height, expected):
    assert classify_aspect_ratio(width, height) is expected


@pytest.mark.parametrize("width,height", [(1000, 1000), (1080, 1920), (800, 600), (333, 517)])
@pytest.mark.parametrize("scale", [2, 3, 10])
def test_classify_is_scale_invariant(width, height, scale):
    assert classify_aspect_ratio(width, height) is classify_aspect_ratio(width * scale, height * scale)


def test_tie_goes_to_first_member():
    # Exactly halfway between 1:1 and 3:4.
    assert classify_aspect_ratio(0.875, 1) is AspectRatio.SQUARE


@pytest.mark.parametrize(
    "width,height",
    [(0, 100), (100, 0), (-5, 10), (math.inf, 10), (10, math.nan), (True, 1), ("10", 5)],
)
def test_classify_rejects_invalid_dimensions(width, height):
    with pytest.raises(InvalidInput):
        classify_aspect_ratio(width, height)


def test_aspect_ratio_for_image_reads_dimensions():
    assert aspect_ratio_for_image(make_asset(1080, 1920)) is AspectRatio.PORTRAIT_9_16


def test_aspect_ratio_for_image_rejects_garbage():
    with pytest.raises(InvalidInput):
        aspect_ratio_for_image(ImageAsset(data=b"not an image"))
