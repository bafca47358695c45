"""Prompt builders for crop disease narratives and history reports."""

from datetime import datetime, timezone
from typing import Iterable

from models.scan_report import ModelChoice, Prediction, ScanReport


def narrative_system_prompt() -> str:
    """Return the system prompt for the per-scan advice."""
    return (
        "You are an agricultural plant pathologist advising farmers. "
        "You are practical and cautious: when the classifier is not confident, say the diagnosis is uncertain. "
        "Do not invent facts that are not supported by the detection result."
    )


def narrative_user_prompt(model: ModelChoice, prediction: Prediction) -> str:
    """Return the user prompt embedding the model, predicted label and confidence."""
    return (
        "Generate a diagnosis and recommended action plan for this plant disease detection result.\n"
        "Structure your response as clean HTML. Use headings (h3, h4), lists (ul, li), and paragraphs (p). "
        "Do not include '<html>' or '<body>' tags.\n\n"
        f"- Model Used: {model.value}\n"
        f"- Disease Detected: {prediction.label}\n"
        f"- Confidence Score: {prediction.confidence * 100:.1f}%\n\n"
        "Based on this, suggest:\n"
        "- Disease Name (if identifiable, otherwise state \"Unknown\")\n"
        "- Recommended Treatment or Action (clear, actionable steps)\n"
        "- Severity Level (Low/Moderate/Severe)\n"
        "- Preventive Tips (how to avoid this in the future)\n"
        "- Chemical/Pesticide Recommendations (specific products if applicable, otherwise "
        "\"None recommended at this time\")"
    )


def analytics_system_prompt() -> str:
    return (
        "You are an expert agricultural analyst. Analyze a farmer's crop scan history "
        "and provide a concise, insightful report."
    )


def analytics_user_prompt(reports: Iterable[ScanReport]) -> str:
    """Return the history listing plus the report instructions."""
    rows = [
        f"- Scan Time: {_iso(report.created_at)} | Disease Detected: {report.prediction.label} | "
        f"Confidence: {report.prediction.confidence:.2f} | Model Used: {report.model_used.value}"
        for report in reports
    ]
    return (
        "Each entry below represents one scan:\n"
        + "\n".join(rows)
        + "\n\nGenerate a summary as clean HTML using headings (h3, h4), lists (ul, li), and paragraphs (p). "
        "Do not include '<html>' or '<body>' tags. Include:\n"
        "- Overall Health Summary: a one-paragraph overview of crop health.\n"
        "- Key Trends & Observations: the most frequently detected diseases, changes over time, "
        "and model performance differences if several models were used.\n"
        "- Recommendations: actionable steps to improve crop health or monitoring."
    )


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
