# src/cache/fingerprint.py — v3
"""DCT perceptual hash used as the result-cache key.

The fingerprint is a string of '0'/'1' characters. For a hash grid of
``S`` it holds ``(S/2)² − 1`` bits: the low-frequency DCT block without
its DC term. Tolerant to recompression and rescaling, which also means
near-identical photos of different leaves may share a fingerprint.
"""

from __future__ import annotations

from functools import lru_cache

import numpy as np
from PIL import Image

_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float64)


@lru_cache(maxsize=8)
def _dct_matrix(size: int) -> np.ndarray:
    """Orthonormal DCT-II basis: row ``u`` holds the u-th cosine."""
    n = np.arange(size)
    basis = np.cos((2 * n[np.newaxis, :] + 1) * n[:, np.newaxis] * np.pi / (2 * size))
    scale = np.full(size, np.sqrt(2.0 / size))
    scale[0] = np.sqrt(1.0 / size)
    return basis * scale[:, np.newaxis]


def luminance(image: Image.Image, size: int) -> np.ndarray:
    """Resample to ``size`` x ``size`` and convert to a luminance matrix."""
    small = image.convert("RGB").resize((size, size), Image.Resampling.LANCZOS)
    return np.asarray(small, dtype=np.float64) @ _LUMA


def dct2(matrix: np.ndarray) -> np.ndarray:
    """2-D orthonormal DCT-II of a square matrix."""
    basis = _dct_matrix(matrix.shape[0])
    return basis @ matrix @ basis.T


def fingerprint(image: Image.Image, hash_size: int = 8) -> str:
    """Compute the perceptual hash of ``image``.

    Args:
        image: Decoded image; the full original, never a crop.
        hash_size: Grid size ``S``; must be even.

    Returns:
        Bit string in row-major order over the low-frequency block.
    """
    if hash_size < 2 or hash_size % 2:
        raise ValueError(f"hash_size must be an even integer >= 2, got {hash_size}")

    coeffs = dct2(luminance(image, hash_size))
    half = hash_size // 2
    low = coeffs[:half, :half].ravel()[1:]
    mean = low.mean()
    return "".join("1" if c > mean else "0" for c in low)


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """Number of differing positions between two equal-length fingerprints."""
    if len(hash_a) != len(hash_b):
        raise ValueError("fingerprints differ in length")
    return sum(1 for a, b in zip(hash_a, hash_b) if a != b)


def similarity(hash_a: str, hash_b: str) -> float:
    """``1 − hamming/length``; 0.0 for unequal or empty fingerprints."""
    if len(hash_a) != len(hash_b) or not hash_a:
        return 0.0
    return 1.0 - hamming_distance(hash_a, hash_b) / len(hash_a)


def are_similar(hash_a: str, hash_b: str, threshold: float = 0.95) -> bool:
    return similarity(hash_a, hash_b) >= threshold
