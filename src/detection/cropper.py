# src/detection/cropper.py — v1
"""Padded crop of a detection from the original, full-resolution image."""

from __future__ import annotations

import logging

from PIL import Image

from tomatoscan.core.models import Crop, Detection, PixelRect

logger = logging.getLogger(__name__)


def to_pixel_rect(detection: Detection, width: int, height: int) -> PixelRect:
    """Scale a normalized box to pixel coordinates of a ``width`` x ``height`` image."""
    box = detection.box
    return PixelRect(
        left=int(box.left * width),
        top=int(box.top * height),
        right=int(box.right * width),
        bottom=int(box.bottom * height),
    )


def pad_and_clamp(
    rect: PixelRect, width: int, height: int, padding_fraction: float
) -> PixelRect:
    """Expand ``rect`` by ``padding_fraction`` of its size per axis, clamped to the image."""
    pad_x = int(rect.width * padding_fraction)
    pad_y = int(rect.height * padding_fraction)
    return PixelRect(
        left=max(0, rect.left - pad_x),
        top=max(0, rect.top - pad_y),
        right=min(width, rect.right + pad_x),
        bottom=min(height, rect.bottom + pad_y),
    )


def _clamp(rect: PixelRect, width: int, height: int) -> PixelRect:
    return PixelRect(
        left=max(0, rect.left),
        top=max(0, rect.top),
        right=min(width, rect.right),
        bottom=min(height, rect.bottom),
    )


def crop(image: Image.Image, detection: Detection, padding_fraction: float = 0.1) -> Crop:
    """Cut the padded detection region out of ``image``.

    Degenerate padded regions fall back to the unpadded region, then to the
    whole image. The returned crop never has zero width or height.
    """
    width, height = image.size
    source = to_pixel_rect(detection, width, height)
    padded = pad_and_clamp(source, width, height, padding_fraction)

    if not padded.is_empty:
        return Crop(source_rect=source, padded_rect=padded, pixels=image.crop(padded.as_box()))

    unpadded = _clamp(source, width, height)
    if not unpadded.is_empty:
        logger.warning("Padded crop is degenerate, using unpadded region %s", unpadded)
        return Crop(
            source_rect=source,
            padded_rect=unpadded,
            pixels=image.crop(unpadded.as_box()),
            fallback="unpadded",
        )

    full = PixelRect(0, 0, width, height)
    logger.warning("Detection region is degenerate, using full image")
    return Crop(
        source_rect=source,
        padded_rect=full,
        pixels=image.copy(),
        fallback="full_image",
    )
