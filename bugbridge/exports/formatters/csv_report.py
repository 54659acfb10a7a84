from __future__ import annotations

import logging

from bugbridge.domain.extraction import stringify
from bugbridge.domain.models import NormalizedIssueRecord
from bugbridge.exports.registry import ReportFormatter

logger = logging.getLogger("bugbridge.exports.csv")

# (header, record attribute) in output order
CSV_COLUMNS: tuple[tuple[str, str], ...] = (
    ("BugID", "bug_id"),
    ("Bug Status", "bug_status"),
    ("Bug Type", "bug_type"),
    ("Severity", "severity"),
    ("Tags/Categories", "tags"),
    ("Description", "description"),
    ("Site/URL", "site_url"),
    ("OS", "os"),
    ("Browser", "browser"),
    ("Browser Size", "browser_size"),
    ("Resolution", "resolution"),
    ("Screenshot URL", "screenshot"),
    ("Reporter", "reporter"),
)

_NEEDS_QUOTING = (",", '"', "\n", "\r")


def escape_cell(value: object) -> str:
    text = value if isinstance(value, str) else stringify(value)
    if any(ch in text for ch in _NEEDS_QUOTING):
        return '"' + text.replace('"', '""') + '"'
    return text


class CsvReportFormatter(ReportFormatter):
    media_type = "text/csv; charset=utf-8"

    @property
    def format_name(self) -> str:
        return "csv"

    def format(self, records: list[NormalizedIssueRecord]) -> str:
        lines = [",".join(header for header, _ in CSV_COLUMNS)]
        for record in records:
            try:
                lines.append(",".join(escape_cell(getattr(record, attr)) for _, attr in CSV_COLUMNS))
            except (TypeError, ValueError) as e:
                logger.warning("csv.row_dropped bug=%s: %s", getattr(record, "bug_id", "?"), e)
        return "\n".join(lines) + "\n"
