# src/detection/decoder.py — v1
"""Decode raw detector output into confidence-filtered detections.

The detector emits a ``[1][C][N]`` tensor where ``C = 4 + K``: rows 0-3
are corner-format ``x1, y1, x2, y2`` already normalized to [0, 1] and rows
4 onwards are per-class scores. Each of the ``N`` columns is one proposal.
"""

from __future__ import annotations

import logging

import numpy as np

from tomatoscan.core.models import Detection, NormalizedRect

logger = logging.getLogger(__name__)

_BOX_ROWS = 4


def _as_proposal_matrix(tensor: np.ndarray) -> np.ndarray:
    """Return the tensor as a float [C, N] matrix, dropping the batch axis."""
    array = np.asarray(tensor, dtype=np.float32)
    if array.ndim == 3:
        if array.shape[0] != 1:
            raise ValueError(f"Expected batch size 1, got shape {array.shape}")
        array = array[0]
    if array.ndim != 2:
        raise ValueError(f"Expected a [1][C][N] or [C][N] tensor, got shape {array.shape}")
    if array.shape[0] < _BOX_ROWS + 1:
        raise ValueError(
            f"Tensor needs at least {_BOX_ROWS + 1} rows (4 box + 1 class), got {array.shape[0]}"
        )
    return array


def decode(tensor: np.ndarray, confidence_threshold: float = 0.6) -> list[Detection]:
    """Decode proposals whose best class score reaches ``confidence_threshold``.

    Args:
        tensor: Raw detector output, ``[1][C][N]`` or ``[C][N]``.
        confidence_threshold: Minimum best-class score to keep a proposal.

    Returns:
        Detections in proposal (column) order.

    Raises:
        ValueError: If the tensor shape is not a valid detector output.
    """
    matrix = _as_proposal_matrix(tensor)
    raw_boxes = matrix[:_BOX_ROWS]
    boxes = np.clip(raw_boxes, 0.0, 1.0)
    scores = np.clip(np.nan_to_num(matrix[_BOX_ROWS:], nan=0.0), 0.0, 1.0)

    best_idx = np.argmax(scores, axis=0)
    best_score = scores[best_idx, np.arange(scores.shape[1])]
    # Proposals with a NaN or infinite corner carry no usable geometry.
    keep = (best_score >= confidence_threshold) & np.isfinite(raw_boxes).all(axis=0)

    detections: list[Detection] = []
    for col in np.flatnonzero(keep):
        x1, y1, x2, y2 = (float(v) for v in boxes[:, col])
        box = NormalizedRect(
            left=min(x1, x2),
            top=min(y1, y2),
            right=max(x1, x2),
            bottom=max(y1, y2),
        )
        class_scores = {k: float(s) for k, s in enumerate(scores[:, col])}
        detections.append(
            Detection(
                box=box,
                confidence=float(best_score[col]),
                class_index=int(best_idx[col]),
                class_scores=class_scores,
            )
        )

    logger.debug(
        "Decoded %d/%d proposals above %.2f",
        len(detections), matrix.shape[1], confidence_threshold,
    )
    return detections
