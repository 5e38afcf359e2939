# tests/unit/detection/test_unit_nms.py — v1
"""Tests for detection/nms.py — IoU and greedy suppression."""

from __future__ import annotations

import pytest

from tomatoscan.core.models import Detection, NormalizedRect
from tomatoscan.detection.nms import best_detection, iou, non_max_suppress


def _det(left, top, right, bottom, confidence) -> Detection:
    return Detection(
        box=NormalizedRect(left=left, top=top, right=right, bottom=bottom),
        confidence=confidence,
    )


class TestIoU:
    def test_identical(self):
        box = NormalizedRect(left=0.1, top=0.1, right=0.4, bottom=0.4)
        assert iou(box, box) == pytest.approx(1.0)

    def test_disjoint(self):
        a = NormalizedRect(left=0.0, top=0.0, right=0.2, bottom=0.2)
        b = NormalizedRect(left=0.5, top=0.5, right=0.7, bottom=0.7)
        assert iou(a, b) == 0.0

    def test_touching_edges(self):
        a = NormalizedRect(left=0.0, top=0.0, right=0.2, bottom=0.2)
        b = NormalizedRect(left=0.2, top=0.0, right=0.4, bottom=0.2)
        assert iou(a, b) == 0.0

    def test_half_overlap(self):
        a = NormalizedRect(left=0.0, top=0.0, right=0.3, bottom=0.3)
        b = NormalizedRect(left=0.1, top=0.0, right=0.4, bottom=0.3)
        assert iou(a, b) == pytest.approx(0.5)

    def test_zero_area(self):
        point = NormalizedRect(left=0.5, top=0.5, right=0.5, bottom=0.5)
        assert iou(point, point) == 0.0


class TestNonMaxSuppress:
    def test_suppresses_heavy_overlap(self):
        kept = non_max_suppress(
            [_det(0.0, 0.0, 0.3, 0.3, 0.7), _det(0.1, 0.0, 0.4, 0.3, 0.9)], 0.45
        )
        assert [d.confidence for d in kept] == [0.9]

    def test_keeps_light_overlap(self):
        kept = non_max_suppress(
            [_det(0.0, 0.0, 0.3, 0.3, 0.7), _det(0.13, 0.0, 0.43, 0.3, 0.9)], 0.45
        )
        assert [d.confidence for d in kept] == [0.9, 0.7]

    def test_tie_keeps_first_seen(self):
        first = _det(0.0, 0.0, 0.3, 0.3, 0.8)
        second = _det(0.0, 0.0, 0.3, 0.3, 0.8)
        kept = non_max_suppress([first, second])
        assert len(kept) == 1
        assert kept[0] is first

    def test_empty(self):
        assert non_max_suppress([]) == []

    def test_output_sorted_descending(self):
        kept = non_max_suppress(
            [
                _det(0.0, 0.0, 0.1, 0.1, 0.61),
                _det(0.5, 0.5, 0.6, 0.6, 0.95),
                _det(0.8, 0.8, 0.9, 0.9, 0.7),
            ]
        )
        assert [d.confidence for d in kept] == [0.95, 0.7, 0.61]


class TestBestDetection:
    def test_none_when_empty(self):
        assert best_detection([]) is None

    def test_highest(self):
        dets = [_det(0.0, 0.0, 0.1, 0.1, 0.6), _det(0.2, 0.2, 0.3, 0.3, 0.9)]
        assert best_detection(dets).confidence == 0.9

    def test_first_on_tie(self):
        a = _det(0.0, 0.0, 0.1, 0.1, 0.8)
        b = _det(0.2, 0.2, 0.3, 0.3, 0.8)
        assert best_detection([a, b]) is a
