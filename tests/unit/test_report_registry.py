import pytest

from bugbridge.container import container
from bugbridge.exports.formatters.csv_report import CsvReportFormatter
from bugbridge.exports.formatters.html_report import HtmlReportFormatter
from bugbridge.exports.registry import ReportFormatterRegistry


def test_registry_rejects_duplicate_formatter() -> None:
    registry = ReportFormatterRegistry()
    registry.register(CsvReportFormatter())
    with pytest.raises(ValueError, match="Duplicate"):
        registry.register(CsvReportFormatter())


def test_registry_unknown_format_raises() -> None:
    registry = ReportFormatterRegistry()
    with pytest.raises(ValueError, match=r"Unknown report format 'pdf' \(available: none\)"):
        registry.create("pdf")


def test_unknown_format_error_lists_registered_names() -> None:
    registry = ReportFormatterRegistry()
    registry.register(CsvReportFormatter())
    with pytest.raises(ValueError, match="available: csv"):
        registry.create("xlsx")


def test_registry_factory_receives_kwargs() -> None:
    registry = ReportFormatterRegistry()
    seen = {}

    def factory(**kwargs):
        seen.update(kwargs)
        return CsvReportFormatter()

    registry.register_factory("custom", factory)
    formatter = registry.create("custom", project_name="Acme")
    assert isinstance(formatter, CsvReportFormatter)
    assert seen == {"project_name": "Acme"}


def test_container_registers_all_report_formats() -> None:
    registry = container.formatter_registry
    assert registry.names() == ["brand_html", "csv", "html"]
    formatter = registry.create("html", project_name="Acme")
    assert isinstance(formatter, HtmlReportFormatter)
    assert formatter.project_name == "Acme"
