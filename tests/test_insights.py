from datetime import datetime, timezone

import pytest

from services import insights
from tests.conftest import make_report


def _ts(year, month, day=15):
    return datetime(year, month, day, 12, tzinfo=timezone.utc).timestamp()


@pytest.mark.parametrize(
    "confidence, expected",
    [
        (1.0, "high"),
        (0.81, "high"),
        (0.8, "medium"),
        (0.61, "medium"),
        (0.6, "low"),
        (0.0, "low"),
    ],
)
def test_severity_thresholds(confidence, expected):
    assert insights.severity_for(confidence) == expected


def test_most_common_and_unique_labels():
    reports = [make_report("u", label) for label in ["Rust", "Rust", "Blight"]]

    summary = insights.summarize(reports)

    assert summary.most_common_label == "Rust"
    assert summary.unique_labels == 2
    assert summary.label_frequencies == [("Rust", 2), ("Blight", 1)]


def test_tie_keeps_first_seen_label():
    reports = [make_report("u", label) for label in ["Blight", "Rust", "Rust", "Blight"]]

    assert insights.most_common_label(reports) == "Blight"


def test_empty_history():
    summary = insights.summarize([])

    assert summary.total_scans == 0
    assert summary.average_confidence == 0.0
    assert summary.most_common_label == "None"
    assert summary.monthly_counts == []


def test_average_confidence():
    reports = [make_report("u", confidence=c) for c in (0.5, 0.7, 0.9)]

    assert insights.average_confidence(reports) == pytest.approx(0.7)


def test_monthly_counts_sorted_by_month():
    reports = [
        make_report("u", created_at=_ts(2025, 3)),
        make_report("u", created_at=_ts(2024, 12)),
        make_report("u", created_at=_ts(2025, 3, 1)),
    ]

    assert insights.monthly_counts(reports) == [("2024-12", 1), ("2025-03", 2)]
    payload = insights.summarize(reports).to_dict()
    assert payload["monthly_counts"][0] == {"month": "2024-12", "display": "Dec 2024", "count": 1}


def test_dashboard_summary_counts_current_month():
    now = _ts(2025, 6, 20)
    history = [
        make_report("u", "Rust", 0.9, created_at=_ts(2025, 6, 2)),
        make_report("u", "Rust", 0.7, created_at=_ts(2025, 6, 1)),
        make_report("u", "Blight", 0.5, created_at=_ts(2025, 5, 30)),
    ]

    summary = insights.dashboard_summary(history, history[:2], now=now)

    assert summary["total_scans"] == 3
    assert summary["scans_this_month"] == 2
    assert summary["most_common_label"] == "Rust"
    assert [r["severity"] for r in summary["recent"]] == ["high", "medium"]
