# src/core/images.py — v1
"""Image loading and tensor conversion helpers built on Pillow + numpy."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Literal, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from tomatoscan.core.errors import InvalidImageError

ImageSource = Union[bytes, str, Path, Image.Image]
TensorLayout = Literal["nchw", "nhwc"]


def load_image(source: ImageSource) -> Image.Image:
    """Decode an image source into an RGB Pillow image.

    Args:
        source: Encoded bytes, a filesystem path, or an already decoded image.

    Raises:
        InvalidImageError: If the source is missing, undecodable or empty.
    """
    if isinstance(source, Image.Image):
        image = source
    else:
        try:
            if isinstance(source, bytes):
                image = Image.open(io.BytesIO(source))
            else:
                image = Image.open(Path(source))
            image.load()
        except (FileNotFoundError, IsADirectoryError) as e:
            raise InvalidImageError(f"Image file not found: {source}") from e
        except (
            UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError,
        ) as e:
            raise InvalidImageError(f"Cannot decode image: {e}") from e

    if image.width <= 0 or image.height <= 0:
        raise InvalidImageError("Image has no pixels")
    return image.convert("RGB") if image.mode != "RGB" else image


def to_input_tensor(
    image: Image.Image, size: int, layout: TensorLayout = "nchw"
) -> np.ndarray:
    """Resize to ``size`` x ``size`` and return a float32 batch of one in [0, 1].

    The result is [1, 3, size, size] for ``nchw`` and [1, size, size, 3]
    for ``nhwc``.
    """
    resized = image.convert("RGB").resize((size, size), Image.Resampling.BILINEAR)
    array = np.asarray(resized, dtype=np.float32) / 255.0
    if layout == "nchw":
        array = array.transpose(2, 0, 1)
    return array[np.newaxis, ...]
