from __future__ import annotations

import logging
from typing import Any

from fastapi.responses import HTMLResponse, Response

from bugbridge.adapters.tracker.base import TrackerClient
from bugbridge.core.telemetry import record_report_records
from bugbridge.domain.models import FilterSelection
from bugbridge.exports.pipeline import ReportPipeline, csv_filename
from bugbridge.exports.registry import ReportFormatterRegistry
from bugbridge.services.issue_export_service import ExportOutcome, IssueExportService

logger = logging.getLogger("bugbridge.services.reports")


def project_object(data: Any) -> dict[str, Any]:
    """Unwrap a project response (``{"project": {...}}`` or the bare object)."""
    if not isinstance(data, dict):
        return {}
    project = data.get("project", data)
    return project if isinstance(project, dict) else {}


class ReportService:
    """Turns a project's tasks into CSV, HTML and brand HTML documents."""

    def __init__(
        self,
        tracker: TrackerClient,
        export_service: IssueExportService,
        formatter_registry: ReportFormatterRegistry,
        pipeline: ReportPipeline,
        *,
        project_timeout: float | None = 10.0,
        brand_page_size: int = 50,
        brand_page_timeout: float | None = 60.0,
        report_output_path: str | None = None,
        brand_report_output_path: str | None = None,
    ):
        self.tracker = tracker
        self.export_service = export_service
        self.formatter_registry = formatter_registry
        self.pipeline = pipeline
        self.project_timeout = project_timeout
        self.brand_page_size = brand_page_size
        self.brand_page_timeout = brand_page_timeout
        self.report_output_path = report_output_path
        self.brand_report_output_path = brand_report_output_path

    async def fetch_project(self, project_id: str) -> dict[str, Any]:
        data = await self.tracker.get_project(project_id, timeout=self.project_timeout)
        return project_object(data)

    async def export_csv(
        self, project_id: str, selection: FilterSelection
    ) -> tuple[ExportOutcome, Response | None]:
        """Build the CSV attachment; the response is ``None`` when nothing matched."""
        outcome = await self.export_service.collect(project_id, selection)
        if outcome.is_empty:
            return outcome, None
        formatter = self.formatter_registry.create("csv")
        body = formatter.format(outcome.records)
        response = await self.pipeline.deliver_attachment(
            body.encode("utf-8"), csv_filename(project_id), formatter.media_type
        )
        logger.info("report.csv project=%s rows=%d", project_id, len(outcome.records))
        record_report_records(project_id, "csv", len(outcome.records))
        return outcome, response

    async def html_report(self, project_id: str, selection: FilterSelection) -> HTMLResponse:
        project = await self.fetch_project(project_id)
        outcome = await self.export_service.collect(
            project_id, selection, include_all_when_unfiltered=True
        )
        formatter = self.formatter_registry.create("html", project_name=project.get("name"))
        html = formatter.format(outcome.records)
        logger.info("report.html project=%s issues=%d", project_id, len(outcome.records))
        record_report_records(project_id, "html", len(outcome.records))
        return await self.pipeline.deliver_document(html, self.report_output_path)

    async def brand_report(self, project_id: str, selection: FilterSelection) -> HTMLResponse:
        project = await self.fetch_project(project_id)
        outcome = await self.export_service.collect(
            project_id,
            selection,
            include_all_when_unfiltered=True,
            page_size=self.brand_page_size,
            timeout=self.brand_page_timeout,
        )
        if outcome.is_empty:
            logger.warning("report.brand project=%s no tasks matched", project_id)
        formatter = self.formatter_registry.create("brand_html", project=project)
        html = formatter.format(outcome.records)
        logger.info("report.brand project=%s issues=%d", project_id, len(outcome.records))
        record_report_records(project_id, "brand_html", len(outcome.records))
        return await self.pipeline.deliver_document(html, self.brand_report_output_path)
