from __future__ import annotations

from collections import Counter
from typing import Any

from bugbridge.domain.models import ChartData, NormalizedIssueRecord

# (label, severity key, color)
SEVERITY_BUCKETS: tuple[tuple[str, str, str], ...] = (
    ("Critical", "critical", "#EF4444"),
    ("Important", "important", "#F59E0B"),
    ("Normal", "normal", "#3B82F6"),
    ("Minor", "minor", "#6B7280"),
    ("Not Set", "not set", "#E5E7EB"),
)
_KNOWN_SEVERITIES = {key for _, key, _ in SEVERITY_BUCKETS}
UNKNOWN_STATUS = "Unknown"


def _severity_key(severity: str) -> str:
    key = (severity or "").strip().lower()
    return key if key in _KNOWN_SEVERITIES else "not set"


def severity_counts(records: list[NormalizedIssueRecord]) -> dict[str, int]:
    counts = Counter(_severity_key(r.severity) for r in records)
    return {key: counts.get(key, 0) for _, key, _ in SEVERITY_BUCKETS}


def status_counts(records: list[NormalizedIssueRecord]) -> dict[str, int]:
    """Count records per status text, in first-seen order."""
    counts: dict[str, int] = {}
    for record in records:
        status = record.status or UNKNOWN_STATUS
        counts[status] = counts.get(status, 0) + 1
    return counts


def spread_colors(count: int) -> list[str]:
    if count <= 0:
        return []
    step = 360 / count
    return [f"hsl({round(i * step) % 360}, 70%, 60%)" for i in range(count)]


def severity_chart_data(records: list[NormalizedIssueRecord]) -> ChartData:
    counts = severity_counts(records)
    return ChartData(
        labels=[label for label, _, _ in SEVERITY_BUCKETS],
        values=[counts[key] for _, key, _ in SEVERITY_BUCKETS],
        colors=[color for _, _, color in SEVERITY_BUCKETS],
    )


def status_chart_data(records: list[NormalizedIssueRecord]) -> ChartData:
    counts = status_counts(records)
    return ChartData(
        labels=list(counts),
        values=list(counts.values()),
        colors=spread_colors(len(counts)),
    )


def chart_config(data: ChartData, chart_type: str, *, legend: bool = True, cutout: str = "60%") -> dict[str, Any]:
    """Chart.js configuration for a doughnut or pie chart."""
    return {
        "type": chart_type,
        "data": {
            "labels": data.labels,
            "datasets": [
                {"data": data.values, "backgroundColor": data.colors, "borderWidth": 0}
            ],
        },
        "options": {
            "responsive": True,
            "maintainAspectRatio": False,
            "plugins": {
                "legend": {"display": legend, "position": "bottom"},
            },
            "cutout": cutout,
        },
    }


def severity_chart_config(records: list[NormalizedIssueRecord]) -> dict[str, Any]:
    return chart_config(severity_chart_data(records), "doughnut", cutout="70%")


def status_chart_config(records: list[NormalizedIssueRecord]) -> dict[str, Any]:
    return chart_config(status_chart_data(records), "pie", legend=False)
