from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from bugbridge.domain.models import NormalizedIssueRecord
from bugbridge.exports import charts
from bugbridge.exports.registry import ReportFormatter

logger = logging.getLogger("bugbridge.exports.html")

REPORT_TEMPLATE = "report.html"
DEFAULT_PROJECT_NAME = "Project"


def build_environment(template_dir: str | Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def display_date(day: date) -> str:
    """Format as ``October 19, 2026``."""
    return f"{day:%B} {day.day}, {day.year}"


def record_payloads(records: list[NormalizedIssueRecord]) -> list[dict[str, Any]]:
    """Dump records for embedding, dropping any that cannot be serialized."""
    payloads: list[dict[str, Any]] = []
    for record in records:
        try:
            payloads.append(record.model_dump(mode="json", by_alias=True))
        except (TypeError, ValueError) as e:
            logger.warning("html.record_dropped bug=%s: %s", record.bug_id, e)
    return payloads


class HtmlReportFormatter(ReportFormatter):
    media_type = "text/html; charset=utf-8"

    def __init__(
        self,
        env: Environment,
        project_name: str | None = None,
        generated_on: date | None = None,
    ) -> None:
        self._env = env
        self.project_name = project_name or DEFAULT_PROJECT_NAME
        self.generated_on = generated_on or date.today()

    @property
    def format_name(self) -> str:
        return "html"

    def context(self, records: list[NormalizedIssueRecord]) -> dict[str, Any]:
        current_date = display_date(self.generated_on)
        return {
            "title": f"Bug Report - {self.project_name} - {current_date}",
            "project_name": self.project_name,
            "current_date": current_date,
            "total": len(records),
            "severity_counts": charts.severity_counts(records),
            "status_counts": charts.status_counts(records),
            "bug_data": record_payloads(records),
            "severity_chart": charts.severity_chart_config(records),
            "status_chart": charts.status_chart_config(records),
        }

    def format(self, records: list[NormalizedIssueRecord]) -> str:
        return self._env.get_template(REPORT_TEMPLATE).render(**self.context(records))
