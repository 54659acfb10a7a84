"""Client-facing audit report grouped by page."""

from __future__ import annotations

import re
from datetime import date
from typing import Any
from urllib.parse import urlsplit

from jinja2 import Environment

from bugbridge.domain.models import NormalizedIssueRecord
from bugbridge.exports.formatters.html_report import DEFAULT_PROJECT_NAME, display_date
from bugbridge.exports.registry import ReportFormatter

BRAND_TEMPLATE = "brand_report.html"
HOMEPAGE = "Homepage"

_SEVERITY_GROUPS = {
    "critical": ("critical", "high", "blocker"),
    "important": ("important", "major", "moderate"),
    "normal": ("normal", "medium", "average"),
    "minor": ("low", "minor", "trivial"),
}
_FILE_LIKE = re.compile(r"\.[a-z0-9]{2,5}$", re.IGNORECASE)


def ensure_scheme(url: str) -> str:
    return url if url.lower().startswith(("http://", "https://")) else f"https://{url}"


def normalize_page_url(url: str) -> str:
    """Host without ``www.`` plus path, no trailing slash; used to compare pages."""
    if not url:
        return ""
    try:
        parts = urlsplit(ensure_scheme(url))
    except ValueError:
        return url
    host = re.sub(r"^www\.", "", parts.hostname or "", flags=re.IGNORECASE)
    path = "" if parts.path in ("", "/") else parts.path
    return (host + path).rstrip("/")


def project_site(project: dict[str, Any]) -> str:
    site = project.get("site")
    if isinstance(site, dict) and site.get("url"):
        return str(site["url"])
    if isinstance(site, str) and site:
        return site
    if project.get("devurl"):
        return str(project["devurl"])
    sites = project.get("sites")
    if isinstance(sites, list) and sites and sites[0]:
        first = sites[0]
        return str(first.get("url", "")) if isinstance(first, dict) else str(first)
    return ""


def site_display(site_url: str, fallback: str) -> str:
    if not site_url:
        return fallback
    try:
        host = urlsplit(ensure_scheme(site_url)).hostname
    except ValueError:
        host = None
    if host:
        return host.lstrip(".")
    return re.sub(r"^https?://", "", site_url).lstrip(".")


def page_name(page_url: str, site_url: str = "") -> str:
    """Readable page name from the last meaningful path segment of ``page_url``."""
    if not page_url:
        return HOMEPAGE
    try:
        path = urlsplit(ensure_scheme(page_url)).path
    except ValueError:
        return HOMEPAGE
    if not path or path == "/" or (site_url and normalize_page_url(page_url) == normalize_page_url(site_url)):
        return HOMEPAGE

    segments = [s for s in path.split("/") if s.strip()]
    if not segments:
        return HOMEPAGE
    for segment in reversed(segments):
        if _FILE_LIKE.search(segment) or segment.isdigit():
            continue
        name = re.sub(r"[-_]+", " ", segment).strip().title()
        if name:
            return name
    return " > ".join(segments)


def severity_group(severity: str) -> str:
    key = (severity or "").strip().lower()
    for group, names in _SEVERITY_GROUPS.items():
        if key in names:
            return group
    return "notSet"


def findings_by_page(records: list[NormalizedIssueRecord], site_url: str = "") -> list[dict[str, Any]]:
    """Per-page severity counts, largest pages first."""
    pages: dict[str, dict[str, int]] = {}
    for record in records:
        name = page_name(record.site_url, site_url)
        counts = pages.setdefault(
            name,
            {"total": 0, "critical": 0, "important": 0, "normal": 0, "minor": 0, "notSet": 0},
        )
        counts["total"] += 1
        counts[severity_group(record.severity)] += 1
    findings = [{"pageName": name, **counts} for name, counts in pages.items()]
    # sorted() is stable, so ties keep first-seen order
    return sorted(findings, key=lambda f: f["total"], reverse=True)


def audit_log(records: list[NormalizedIssueRecord], site_url: str = "") -> list[dict[str, Any]]:
    return [
        {
            "id": r.bug_id,
            "page_url": r.site_url,
            "pageName": page_name(r.site_url, site_url),
            "issueType": r.bug_type or "bug",
            "description": r.description or "No description",
            "priority": (r.severity or "normal").lower(),
            "status": (r.status or "new").lower(),
            "screenshot": r.screenshot,
            "tags": r.tags,
            "requester_email": r.reporter,
            "os": r.os,
            "browser": r.browser,
            "resolution": r.resolution,
        }
        for r in records
    ]


class BrandReportFormatter(ReportFormatter):
    media_type = "text/html; charset=utf-8"

    def __init__(
        self,
        env: Environment,
        project: dict[str, Any] | None = None,
        generated_on: date | None = None,
    ) -> None:
        self._env = env
        self.project = project or {}
        self.generated_on = generated_on or date.today()

    @property
    def format_name(self) -> str:
        return "brand_html"

    def context(self, records: list[NormalizedIssueRecord]) -> dict[str, Any]:
        project_name = str(self.project.get("name") or DEFAULT_PROJECT_NAME)
        site_url = project_site(self.project)
        return {
            "project_name": project_name,
            "current_date": display_date(self.generated_on),
            "total_issues": len(records),
            "site_display": site_display(site_url, project_name),
            "site_url": ensure_scheme(site_url) if site_url else "#",
            "findings_data": findings_by_page(records, site_url),
            "audit_log_data": audit_log(records, site_url),
        }

    def format(self, records: list[NormalizedIssueRecord]) -> str:
        return self._env.get_template(BRAND_TEMPLATE).render(**self.context(records))
