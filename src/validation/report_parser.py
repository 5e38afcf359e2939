# src/validation/report_parser.py — v1
"""Parse free-text validator output into a DiagnosticReport."""

from __future__ import annotations

import re

from tomatoscan.core.models import DiagnosticReport, DiseaseClass

MIN_REPORT_LENGTH = 50

_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")

SYMPTOM_KEYWORDS = ("exhibit", "show", "display", "observe", "lesion", "spot", "discolor", "pattern")
CONFIDENCE_KEYWORDS = ("confidence", "certain", "likely", "probable")
ACTION_KEYWORDS = ("recommend", "apply", "remove", "treat", "spray", "prune", "improve")

DEFAULT_SYMPTOMS = "Visual symptoms consistent with the identified disease."
DEFAULT_CONFIDENCE = "Moderate confidence based on visual analysis."
DEFAULT_RECOMMENDATION = "Consult with agricultural expert for specific treatment recommendations."


class ReportParseError(ValueError):
    """Validator text does not meet the report contract."""


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in text.split(". ") if s.strip()]


def _has_keyword(sentence: str, keywords: tuple[str, ...]) -> bool:
    lowered = sentence.lower()
    return any(k in lowered for k in keywords)


def _first_with(sentences: list[str], keywords: tuple[str, ...], default: str) -> str:
    return next((s for s in sentences if _has_keyword(s, keywords)), default)


def _last_with(sentences: list[str], keywords: tuple[str, ...], default: str) -> str:
    return next((s for s in reversed(sentences) if _has_keyword(s, keywords)), default)


def parse_report(
    text: str,
    predicted: DiseaseClass,
    model_version: str = "1.0.0",
) -> DiagnosticReport:
    """Build a validated report from the validator's prose.

    Raises:
        ReportParseError: If the text is shorter than ``MIN_REPORT_LENGTH``.
    """
    full_report = text.strip()
    if len(full_report) < MIN_REPORT_LENGTH:
        raise ReportParseError(
            f"Report too short ({len(full_report)} chars, need {MIN_REPORT_LENGTH})"
        )

    match = _BOLD_RE.search(full_report)
    disease_name = match.group(1).strip() if match else predicted.display_name

    sentences = split_sentences(full_report)
    return DiagnosticReport(
        disease_name=disease_name,
        observed_symptoms=_first_with(sentences, SYMPTOM_KEYWORDS, DEFAULT_SYMPTOMS),
        confidence_level=_first_with(sentences, CONFIDENCE_KEYWORDS, DEFAULT_CONFIDENCE),
        management_recommendation=_last_with(sentences, ACTION_KEYWORDS, DEFAULT_RECOMMENDATION),
        full_report=full_report,
        is_uncertain=False,
        model_version=model_version,
        source="validator",
    )
