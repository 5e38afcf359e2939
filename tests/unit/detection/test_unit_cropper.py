# tests/unit/detection/test_unit_cropper.py — v1
"""Tests for detection/cropper.py — padding, clamping, fallbacks."""

from __future__ import annotations

from PIL import Image

from tomatoscan.core.models import Detection, NormalizedRect, PixelRect
from tomatoscan.detection.cropper import crop, pad_and_clamp, to_pixel_rect


def _det(left, top, right, bottom) -> Detection:
    return Detection(
        box=NormalizedRect(left=left, top=top, right=right, bottom=bottom),
        confidence=0.9,
    )


class TestToPixelRect:
    def test_scales_to_image(self):
        rect = to_pixel_rect(_det(0.1, 0.2, 0.5, 0.6), 200, 100)
        assert rect == PixelRect(20, 20, 100, 60)


class TestPadAndClamp:
    def test_pads_each_side(self):
        padded = pad_and_clamp(PixelRect(20, 20, 60, 60), 100, 100, 0.1)
        assert padded == PixelRect(16, 16, 64, 64)

    def test_clamps_to_image(self):
        padded = pad_and_clamp(PixelRect(0, 0, 50, 50), 100, 100, 0.1)
        assert padded.left == 0 and padded.top == 0
        assert padded.right == 55 and padded.bottom == 55

    def test_clamps_far_edge(self):
        padded = pad_and_clamp(PixelRect(60, 60, 100, 100), 100, 100, 0.5)
        assert padded.right == 100 and padded.bottom == 100


class TestCrop:
    def test_padded_crop_from_original(self):
        image = Image.new("RGB", (1000, 800), (0, 128, 0))
        result = crop(image, _det(0.1, 0.1, 0.5, 0.5), 0.1)
        assert result.fallback is None
        assert result.source_rect == PixelRect(100, 80, 500, 400)
        assert result.padded_rect == PixelRect(60, 48, 540, 432)
        assert result.pixels.size == (480, 384)

    def test_left_edge_clamped(self):
        image = Image.new("RGB", (100, 100))
        result = crop(image, _det(0.0, 0.0, 0.5, 0.5), 0.1)
        assert result.padded_rect.left == 0
        assert result.pixels.size == (55, 55)

    def test_degenerate_box_uses_full_image(self):
        image = Image.new("RGB", (64, 48))
        result = crop(image, _det(0.5, 0.5, 0.5, 0.5), 0.1)
        assert result.fallback == "full_image"
        assert result.pixels.size == (64, 48)

    def test_negative_padding_falls_back_to_unpadded(self):
        image = Image.new("RGB", (100, 100))
        result = crop(image, _det(0.0, 0.0, 0.5, 0.5), -0.6)
        assert result.fallback == "unpadded"
        assert result.pixels.size == (50, 50)

    def test_never_empty(self):
        image = Image.new("RGB", (10, 10))
        result = crop(image, _det(0.99, 0.99, 1.0, 1.0), 0.0)
        width, height = result.pixels.size
        assert width > 0 and height > 0
