# src/detection/nms.py — v1
"""Intersection-over-union and greedy non-maximum suppression."""

from __future__ import annotations

from tomatoscan.core.models import Detection, NormalizedRect


def iou(a: NormalizedRect, b: NormalizedRect) -> float:
    """Intersection over union of two boxes; 0.0 when they do not overlap."""
    inter_left = max(a.left, b.left)
    inter_top = max(a.top, b.top)
    inter_right = min(a.right, b.right)
    inter_bottom = min(a.bottom, b.bottom)

    if inter_right <= inter_left or inter_bottom <= inter_top:
        return 0.0

    intersection = (inter_right - inter_left) * (inter_bottom - inter_top)
    union = a.area + b.area - intersection
    if union <= 0.0:
        return 0.0
    return intersection / union


def non_max_suppress(
    detections: list[Detection], iou_threshold: float = 0.45
) -> list[Detection]:
    """Greedy NMS, highest confidence first.

    A detection is dropped only when its IoU with an already kept one is
    strictly greater than ``iou_threshold``. Equal confidences keep input
    order, so the first-seen detection wins.
    """
    ordered = sorted(detections, key=lambda d: d.confidence, reverse=True)
    kept: list[Detection] = []
    for candidate in ordered:
        if all(iou(candidate.box, k.box) <= iou_threshold for k in kept):
            kept.append(candidate)
    return kept


def best_detection(detections: list[Detection]) -> Detection | None:
    """Highest-confidence detection, first-seen on ties."""
    if not detections:
        return None
    return max(detections, key=lambda d: d.confidence)
