# tests/unit/reports/test_unit_templates.py — v1
"""Tests for reports/templates.py — fallback and Uncertain reports."""

from __future__ import annotations

from tomatoscan.core.models import ClassificationResult, DiseaseClass
from tomatoscan.reports.templates import (
    PRELIMINARY_NOTE,
    build_fallback_report,
    build_uncertain_report,
    format_confidence,
    low_confidence_reason,
)


def test_format_confidence():
    assert format_confidence(0.9) == "90.0%"
    assert format_confidence(0.12345) == "12.3%"


class TestFallbackReport:
    def test_tagged_preliminary(self):
        classification = ClassificationResult(
            disease_class=DiseaseClass.LATE_BLIGHT, confidence=0.82
        )
        report = build_fallback_report(classification, model_version="1.2.0")
        assert report.disease_name == "Late Blight"
        assert report.source == "fallback"
        assert report.is_preliminary
        assert PRELIMINARY_NOTE in report.full_report
        assert "**Late Blight**" in report.full_report
        assert "82.0%" in report.confidence_level
        assert report.model_version == "1.2.0"
        assert not report.is_uncertain

    def test_uncertain_flag_below_threshold(self):
        classification = ClassificationResult(
            disease_class=DiseaseClass.HEALTHY, confidence=0.4
        )
        assert build_fallback_report(classification, confidence_threshold=0.5).is_uncertain


class TestUncertainReport:
    def test_fixed_template(self):
        report = build_uncertain_report(low_confidence_reason(0.31))
        assert report.disease_name == "Uncertain"
        assert report.is_uncertain
        assert report.source == "uncertain"
        assert report.confidence_level == (
            "Low confidence - Low classification confidence (31.0%)"
        )
