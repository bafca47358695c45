"""Aggregations over a user's scan history.

Everything here is pure and synchronous: callers fetch the full history and
recompute the summaries on every request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from models.scan_report import ScanReport

NO_LABEL = "None"


def severity_for(confidence: float) -> str:
    """Bucket a confidence score: > 0.8 high, > 0.6 medium, otherwise low."""
    if confidence > 0.8:
        return "high"
    if confidence > 0.6:
        return "medium"
    return "low"


def label_frequencies(reports: Sequence[ScanReport]) -> List[Tuple[str, int]]:
    """Return (label, count) pairs sorted by count descending.

    Labels with equal counts keep the order in which they were first seen.
    """
    counts: Dict[str, int] = {}
    for report in reports:
        label = report.prediction.label
        counts[label] = counts.get(label, 0) + 1
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def most_common_label(reports: Sequence[ScanReport]) -> str:
    frequencies = label_frequencies(reports)
    return frequencies[0][0] if frequencies else NO_LABEL


def average_confidence(reports: Sequence[ScanReport]) -> float:
    if not reports:
        return 0.0
    return sum(r.prediction.confidence for r in reports) / len(reports)


def month_key(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m")


def monthly_counts(reports: Sequence[ScanReport]) -> List[Tuple[str, int]]:
    """Return (YYYY-MM, count) pairs in ascending month order (UTC)."""
    counts: Dict[str, int] = {}
    for report in reports:
        key = month_key(report.created_at)
        counts[key] = counts.get(key, 0) + 1
    return sorted(counts.items())


@dataclass
class InsightsSummary:
    total_scans: int
    unique_labels: int
    average_confidence: float
    most_common_label: str
    label_frequencies: List[Tuple[str, int]] = field(default_factory=list)
    monthly_counts: List[Tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_scans": self.total_scans,
            "unique_labels": self.unique_labels,
            "average_confidence": self.average_confidence,
            "most_common_label": self.most_common_label,
            "label_frequencies": [{"label": label, "count": count} for label, count in self.label_frequencies],
            "monthly_counts": [
                {"month": month, "display": _month_display(month), "count": count}
                for month, count in self.monthly_counts
            ],
        }


def summarize(reports: Sequence[ScanReport]) -> InsightsSummary:
    frequencies = label_frequencies(reports)
    return InsightsSummary(
        total_scans=len(reports),
        unique_labels=len(frequencies),
        average_confidence=average_confidence(reports),
        most_common_label=frequencies[0][0] if frequencies else NO_LABEL,
        label_frequencies=frequencies,
        monthly_counts=monthly_counts(reports),
    )


def dashboard_summary(
    history: Sequence[ScanReport],
    recent: Sequence[ScanReport],
    now: Optional[float] = None,
) -> dict:
    """Aggregate stats for the dashboard.

    Args:
        history: The owner's full history.
        recent: The most recent reports, already limited by the caller.
        now: Reference time for "this month"; defaults to the current time.
    """
    current_month = month_key(now if now is not None else datetime.now(tz=timezone.utc).timestamp())
    return {
        "total_scans": len(history),
        "scans_this_month": sum(1 for r in history if month_key(r.created_at) == current_month),
        "average_confidence": average_confidence(history),
        "most_common_label": most_common_label(history),
        "recent": [dict(r.to_public_dict(), severity=severity_for(r.prediction.confidence)) for r in recent],
    }


def _month_display(key: str) -> str:
    return datetime.strptime(key, "%Y-%m").strftime("%b %Y")
