from __future__ import annotations

import logging
from typing import cast

from jinja2 import Environment

from bugbridge.core.config import settings
from bugbridge.adapters.tracker.base import TrackerClient
from bugbridge.adapters.tracker.bugherd import BugherdClient
from bugbridge.exports.formatters.brand_report import BrandReportFormatter
from bugbridge.exports.formatters.csv_report import CsvReportFormatter
from bugbridge.exports.formatters.html_report import HtmlReportFormatter, build_environment
from bugbridge.exports.pipeline import ReportPipeline
from bugbridge.exports.registry import ReportFormatterRegistry
from bugbridge.exports.storage.base import ReportStorage
from bugbridge.exports.storage.local import LocalReportStorage
from bugbridge.services.issue_creation_service import IssueCreationService
from bugbridge.services.issue_export_service import IssueExportService
from bugbridge.services.report_service import ReportService


logger = logging.getLogger("bugbridge.container")


class Container:
    # Class-level annotations so static checkers understand intended types
    tracker: TrackerClient
    creation_service: IssueCreationService
    export_service: IssueExportService
    report_service: ReportService
    template_env: Environment
    report_storage: ReportStorage
    report_pipeline: ReportPipeline
    formatter_registry: ReportFormatterRegistry

    def __init__(self) -> None:
        # The tracker client binds to an event loop, so it is created by
        # init_tracker() from the app lifespan or by test fixtures.
        self.tracker = cast(TrackerClient, None)
        self.creation_service = cast(IssueCreationService, None)
        self.export_service = cast(IssueExportService, None)
        self.report_service = cast(ReportService, None)
        self.template_env = build_environment(settings.TEMPLATE_DIR)
        self.report_storage = LocalReportStorage(base_dir=".")
        self.formatter_registry = self._build_formatter_registry()
        self.report_pipeline = ReportPipeline(self.report_storage)

    def _build_formatter_registry(self) -> ReportFormatterRegistry:
        registry = ReportFormatterRegistry()
        registry.register(CsvReportFormatter())
        registry.register_factory(
            "html",
            lambda project_name=None, generated_on=None: HtmlReportFormatter(
                self.template_env,
                project_name=project_name,
                generated_on=generated_on,
            ),
        )
        registry.register_factory(
            "brand_html",
            lambda project=None, generated_on=None: BrandReportFormatter(
                self.template_env,
                project=project,
                generated_on=generated_on,
            ),
        )
        return registry

    def _build_bugherd_client(self) -> BugherdClient:
        key = settings.TRACKER_API_KEY.get_secret_value() if settings.TRACKER_API_KEY else ""
        if not key:
            raise RuntimeError("Tracker API key is not configured")
        return BugherdClient(
            api_key=key,
            base_url=settings.TRACKER_BASE_URL,
            timeout_seconds=settings.TRACKER_TIMEOUT_SECONDS,
        )

    def init_tracker(self, tracker: TrackerClient | None = None) -> None:
        """Wire the tracker client and every service that depends on it.

        Pass ``tracker`` to inject a preconfigured client (tests do this);
        otherwise a BugHerd client is built from settings.
        """
        self.tracker = tracker if tracker is not None else self._build_bugherd_client()
        self.creation_service = IssueCreationService(self.tracker)
        self.export_service = IssueExportService(
            self.tracker,
            page_size=settings.PAGE_SIZE,
            page_timeout=settings.PAGE_TIMEOUT_SECONDS,
            detail_concurrency=settings.DETAIL_CONCURRENCY,
            archive_status_id=settings.ARCHIVE_STATUS_ID,
            deep_url_scan=settings.DEEP_URL_SCAN,
        )
        self.report_service = ReportService(
            self.tracker,
            self.export_service,
            self.formatter_registry,
            self.report_pipeline,
            project_timeout=settings.PROJECT_TIMEOUT_SECONDS,
            brand_page_size=settings.BRAND_PAGE_SIZE,
            brand_page_timeout=settings.BRAND_PAGE_TIMEOUT_SECONDS,
            report_output_path=settings.REPORT_OUTPUT_PATH,
            brand_report_output_path=settings.BRAND_REPORT_OUTPUT_PATH,
        )
        logger.info(
            "Tracker client wired (%s, base_url=%s)",
            type(self.tracker).__name__,
            getattr(self.tracker, "base_url", "n/a"),
        )

    async def shutdown(self) -> None:
        if self.tracker is not None:
            await self.tracker.aclose()
        self.tracker = cast(TrackerClient, None)


container = Container()
