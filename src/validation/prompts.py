# src/validation/prompts.py — v1
"""Prompt for the formal diagnostic report."""

from __future__ import annotations

from tomatoscan.core.models import DiseaseClass
from tomatoscan.reports.templates import format_confidence

SYSTEM_PROMPT = (
    "You are a plant pathology expert specializing in tomato leaf diseases. "
    "You write formal, evidence-based diagnostic reports."
)

_REPORT_PROMPT = """\
An on-device classification model has analyzed this tomato leaf image and predicted:
- Disease: {disease}
- Confidence: {confidence}

Your task is to validate this prediction and generate a formal diagnostic report.

REPORT STRUCTURE (3-5 sentences):
1. Disease Identification: Start with "Based on the image analysis, the tomato leaf is identified as **[Disease Name]**."
2. Observed Symptoms: Describe the specific visual symptoms you observe (e.g., lesion patterns, discoloration, texture).
3. Confidence Assessment: State your confidence level in this diagnosis (e.g., "High confidence", "Moderate confidence").
4. Management Recommendation: Provide specific management or treatment recommendations.

FORMATTING REQUIREMENTS:
- Use bold formatting (**Disease Name**) for the disease name
- Write in formal, academic tone
- Be concise: 3-5 sentences total
- Do not use conversational language
- Focus on observable evidence

EXAMPLE FORMAT:
"Based on the image analysis, the tomato leaf is identified as **Early Blight**. The leaf exhibits characteristic concentric ring patterns forming target-like lesions with dark brown coloration and yellow halos, primarily affecting the lower leaf sections. High confidence in this diagnosis based on the distinct symptom presentation. Immediate removal of affected leaves is recommended, followed by application of copper-based fungicides and improved air circulation around plants."

Generate the formal diagnostic report now:"""


def build_report_prompt(disease: DiseaseClass, confidence: float) -> str:
    """Prompt embedding the preliminary label; identical inputs give identical text."""
    return _REPORT_PROMPT.format(
        disease=disease.display_name,
        confidence=format_confidence(confidence),
    )
