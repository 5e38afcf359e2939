# src/reports/templates.py — v1
"""Fixed report templates used when no validated report is available."""

from __future__ import annotations

from tomatoscan.core.models import ClassificationResult, DiagnosticReport

PRELIMINARY_NOTE = "Note: This is a preliminary classification without formal validation."
CONSULT_EXPERT = "Consult with agricultural expert for specific treatment recommendations."


def format_confidence(confidence: float) -> str:
    """Render a [0, 1] confidence as a one-decimal percentage."""
    return f"{confidence * 100:.1f}%"


def build_fallback_report(
    classification: ClassificationResult,
    model_version: str = "1.0.0",
    confidence_threshold: float = 0.5,
) -> DiagnosticReport:
    """Report synthesized from the local classification alone.

    The text carries an explicit preliminary disclaimer and the report is
    tagged ``source="fallback"``.
    """
    name = classification.disease_class.display_name
    confidence = format_confidence(classification.confidence)
    full_report = (
        f"Based on the image analysis, the tomato leaf is identified as **{name}**. "
        f"Classification confidence: {confidence}. "
        f"{PRELIMINARY_NOTE} "
        "Consult with an agricultural expert for detailed diagnosis and treatment recommendations."
    )
    return DiagnosticReport(
        disease_name=name,
        observed_symptoms="Automated classification based on visual patterns.",
        confidence_level=f"Classification confidence: {confidence} (preliminary)",
        management_recommendation=CONSULT_EXPERT,
        full_report=full_report,
        is_uncertain=classification.confidence < confidence_threshold,
        model_version=model_version,
        source="fallback",
    )


def build_uncertain_report(reason: str, model_version: str = "1.0.0") -> DiagnosticReport:
    """Fixed Uncertain report, used whatever label the classifier predicted."""
    return DiagnosticReport(
        disease_name="Uncertain",
        observed_symptoms="Unable to clearly identify symptoms due to image quality issues.",
        confidence_level=f"Low confidence - {reason}",
        management_recommendation=(
            "Please capture a clearer image with better lighting and focus for "
            "accurate diagnosis."
        ),
        full_report=(
            "The analysis result is **Uncertain** due to poor image quality, lighting, "
            "or focus. A clearer photo is recommended for a more reliable diagnosis."
        ),
        is_uncertain=True,
        model_version=model_version,
        source="uncertain",
    )


def low_confidence_reason(confidence: float) -> str:
    return f"Low classification confidence ({format_confidence(confidence)})"
