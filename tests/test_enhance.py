from __future__ import annotations

import io

import pytest
from PIL import Image, ImageStat

from checkmeter.ai.enhance import (
    EnhancementSettings,
    enhance_image,
    scale_factor_for,
    stretch_contrast,
)


def _png(width: int, height: int, color=(90, 120, 150)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.mark.parametrize(
    ("size", "expected"),
    [((640, 480), 2.0), ((1024, 768), 1.5), ((799, 10), 2.0), ((1600, 1200), 1.0), ((4000, 3000), 1.0)],
)
def test_scale_factor_by_longest_edge(size, expected) -> None:
    assert scale_factor_for(*size) == expected


def test_small_image_is_upscaled_and_reencoded_as_jpeg() -> None:
    enhanced = enhance_image(_png(400, 300))
    with Image.open(io.BytesIO(enhanced)) as image:
        assert image.format == "JPEG"
        assert image.size == (800, 600)


def test_upscale_is_capped_at_max_dimension() -> None:
    settings = EnhancementSettings(max_dimension=800)
    enhanced = enhance_image(_png(500, 250), settings)
    with Image.open(io.BytesIO(enhanced)) as image:
        assert image.size == (800, 400)


def test_large_image_keeps_its_size() -> None:
    enhanced = enhance_image(_png(1800, 1200))
    with Image.open(io.BytesIO(enhanced)) as image:
        assert image.size == (1800, 1200)


def test_undecodable_bytes_raise_value_error() -> None:
    with pytest.raises(ValueError):
        enhance_image(b"not an image")


def test_contrast_stretch_spreads_values_around_mean() -> None:
    image = Image.new("RGB", (2, 1))
    image.putpixel((0, 0), (100, 100, 100))
    image.putpixel((1, 0), (150, 150, 150))

    stretched = stretch_contrast(image, 2.0)

    dark = stretched.getpixel((0, 0))[0]
    light = stretched.getpixel((1, 0))[0]
    assert dark < 100
    assert light > 150
    mean_before = ImageStat.Stat(image.convert("L")).mean[0]
    mean_after = ImageStat.Stat(stretched.convert("L")).mean[0]
    assert abs(mean_before - mean_after) <= 1


def test_oversized_output_falls_back_to_lower_quality() -> None:
    buffer = io.BytesIO()
    Image.linear_gradient("L").convert("RGB").save(buffer, format="PNG")
    source = buffer.getvalue()
    roomy = enhance_image(source, EnhancementSettings(max_bytes=10**8))
    squeezed = enhance_image(
        source, EnhancementSettings(max_bytes=1, jpeg_quality=95, fallback_quality=10)
    )
    assert len(squeezed) < len(roomy)
