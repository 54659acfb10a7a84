import json
import re
from datetime import date

from bugbridge.container import container
from bugbridge.domain.models import NormalizedIssueRecord
from bugbridge.exports import charts
from bugbridge.exports.formatters.brand_report import (
    BrandReportFormatter,
    findings_by_page,
    page_name,
    site_display,
)
from bugbridge.exports.formatters.html_report import HtmlReportFormatter, display_date

DAY = date(2026, 3, 5)


def record(bug_id, severity="normal", status="Backlog", **fields) -> NormalizedIssueRecord:
    return NormalizedIssueRecord(bug_id=bug_id, severity=severity, status=status, **fields)


def embedded(html: str, name: str):
    match = re.search(rf"window\.{name} = (.*?);\n", html)
    assert match, name
    return json.loads(match.group(1))


# --- charts ---


def test_severity_chart_has_fixed_buckets_and_colors():
    data = charts.severity_chart_data(
        [record(1, "critical"), record(2, "critical"), record(3, "minor"), record(4, "weird")]
    )
    assert data.labels == ["Critical", "Important", "Normal", "Minor", "Not Set"]
    assert data.values == [2, 0, 0, 1, 1]
    assert data.colors == ["#EF4444", "#F59E0B", "#3B82F6", "#6B7280", "#E5E7EB"]


def test_status_chart_groups_in_first_seen_order():
    data = charts.status_chart_data([record(1, status="Done"), record(2, status="Backlog"), record(3, status="Done"), record(4, status="")])
    assert data.labels == ["Done", "Backlog", "Unknown"]
    assert data.values == [2, 1, 1]
    assert data.colors == ["hsl(0, 70%, 60%)", "hsl(120, 70%, 60%)", "hsl(240, 70%, 60%)"]


def test_chart_config_wraps_chart_data():
    config = charts.severity_chart_config([record(1, "important")])
    assert config["type"] == "doughnut"
    assert config["data"]["datasets"][0]["data"] == [0, 1, 0, 0, 0]


# --- HTML report ---


def test_display_date():
    assert display_date(DAY) == "March 5, 2026"


def test_html_report_embeds_records_and_placeholders():
    formatter = HtmlReportFormatter(container.template_env, project_name="Acme Site", generated_on=DAY)
    records = [
        record(1, "critical", description="</script><b>x</b>", site_url="https://acme.test/a"),
        record(2, "minor", status="Done"),
    ]

    html = formatter.format(records)

    assert "<title>Bug Report - Acme Site - March 5, 2026</title>" in html
    assert '<span class="report-title">Bug Report - Acme Site - March 5, 2026</span>' in html
    assert "</script><b>" not in html
    bug_data = embedded(html, "bugData")
    assert [b["id"] for b in bug_data] == [1, 2]
    assert bug_data[0]["siteUrl"] == "https://acme.test/a"
    assert bug_data[0]["description"] == "</script><b>x</b>"
    assert embedded(html, "severityChartConfig")["data"]["datasets"][0]["data"] == [1, 0, 0, 1, 0]
    assert "No issues found" not in html


def test_html_report_with_no_issues_shows_empty_state():
    html = HtmlReportFormatter(container.template_env, project_name="Acme", generated_on=DAY).format([])
    assert "No issues found" in html
    assert embedded(html, "bugData") == []


# --- brand report ---


def test_page_name_from_last_meaningful_segment():
    assert page_name("https://acme.test/") == "Homepage"
    assert page_name("") == "Homepage"
    assert page_name("https://acme.test/about-us") == "About Us"
    assert page_name("https://acme.test/blog/my_first-post/123") == "My First Post"
    assert page_name("https://acme.test/products/index.html") == "Products"
    assert page_name("https://www.acme.test/", "https://acme.test") == "Homepage"


def test_site_display_uses_host():
    assert site_display("https://www.acme.test/path", "Acme") == "www.acme.test"
    assert site_display("acme.test", "Acme") == "acme.test"
    assert site_display("", "Acme") == "Acme"


def test_findings_grouped_by_page_sorted_by_total():
    records = [
        record(1, "critical", site_url="https://acme.test/contact"),
        record(2, "minor", site_url="https://acme.test/pricing"),
        record(3, "not set", site_url="https://acme.test/pricing"),
        record(4, "important", site_url=""),
    ]
    findings = findings_by_page(records, "https://acme.test")
    assert [f["pageName"] for f in findings] == ["Pricing", "Contact", "Homepage"]
    assert findings[0] == {
        "pageName": "Pricing",
        "total": 2,
        "critical": 0,
        "important": 0,
        "normal": 0,
        "minor": 1,
        "notSet": 1,
    }


def test_brand_report_renders_project_placeholders():
    project = {"name": "Acme Site", "devurl": "https://www.acme.test"}
    formatter = BrandReportFormatter(container.template_env, project=project, generated_on=DAY)

    html = formatter.format([record(1, "critical", site_url="https://www.acme.test/about")])

    assert "Acme Site" in html
    assert "March 5, 2026" in html
    assert 'href="https://www.acme.test"' in html
    assert ">www.acme.test</a>" in html
    assert embedded(html, "findingsData")[0]["pageName"] == "About"
    audit = embedded(html, "auditLogData")
    assert audit[0]["priority"] == "critical"
    assert audit[0]["pageName"] == "About"
