from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from bugbridge.adapters.tracker.base import TrackerClient
from bugbridge.core.errors import TrackerError
from bugbridge.domain.buckets import select_and_dedupe
from bugbridge.domain.extraction import normalize_issue
from bugbridge.domain.models import FilterSelection, NormalizedIssueRecord, RemoteIssue

logger = logging.getLogger("bugbridge.services.export")

SAMPLE_TASK_COUNT = 3


@dataclass
class ExportOutcome:
    """Records produced by one pipeline run plus the counters behind them."""

    records: list[NormalizedIssueRecord]
    total_fetched: int = 0
    filtered_count: int = 0
    unique_count: int = 0
    duplicate_ids: list[str] = field(default_factory=list)
    sample_tasks: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def debug_payload(self) -> dict[str, Any]:
        return {
            "totalFetched": self.total_fetched,
            "filteredCount": self.filtered_count,
            "uniqueCount": self.unique_count,
            "duplicateIds": self.duplicate_ids,
            "recordCount": len(self.records),
            "sampleTasks": self.sample_tasks,
        }


def page_items(data: Any) -> list[dict[str, Any]]:
    """Extract the task list from a page response (``{"tasks": [...]}`` or a bare list)."""
    if isinstance(data, dict):
        data = data.get("tasks")
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def detail_object(data: Any) -> dict[str, Any] | None:
    if not isinstance(data, dict):
        return None
    task = data.get("task", data)
    return task if isinstance(task, dict) else None


class IssueExportService:
    def __init__(
        self,
        tracker: TrackerClient,
        *,
        page_size: int = 100,
        page_timeout: float | None = 30.0,
        detail_concurrency: int = 8,
        archive_status_id: int | None = 5,
        deep_url_scan: bool = False,
    ):
        self.tracker = tracker
        self.page_size = page_size
        self.page_timeout = page_timeout
        self.detail_concurrency = max(1, detail_concurrency)
        self.archive_status_id = archive_status_id
        self.deep_url_scan = deep_url_scan

    async def fetch_all(
        self,
        project_id: str,
        *,
        page_size: int | None = None,
        timeout: float | None = None,
    ) -> list[RemoteIssue]:
        """Read every page of the project's task list.

        Stops at the first page shorter than the page size. Tracker errors
        propagate; there is no partial result.
        """
        per_page = page_size or self.page_size
        timeout = timeout if timeout is not None else self.page_timeout
        issues: list[RemoteIssue] = []
        page = 1
        while True:
            data = await self.tracker.list_tasks_page(project_id, page, per_page, timeout=timeout)
            items = page_items(data)
            for item in items:
                try:
                    issues.append(RemoteIssue.model_validate(item))
                except ValidationError as e:
                    logger.warning("export.task_skipped id=%s: %s", item.get("id"), e)
            logger.debug("export.page project=%s page=%d items=%d", project_id, page, len(items))
            if len(items) < per_page:
                break
            page += 1
        logger.info("export.fetched project=%s pages=%d tasks=%d", project_id, page, len(issues))
        return issues

    async def _enrich_one(
        self, project_id: str, issue: RemoteIssue, semaphore: asyncio.Semaphore
    ) -> RemoteIssue:
        if issue.id is None:
            return issue
        async with semaphore:
            try:
                data = await self.tracker.get_task(project_id, str(issue.id))
            except TrackerError as e:
                logger.warning("export.detail_failed task=%s: %s", issue.id, e)
                return issue
        detail = detail_object(data)
        if detail is None:
            return issue
        try:
            return issue.merged_with(detail)
        except ValidationError as e:
            logger.warning("export.detail_unusable task=%s: %s", issue.id, e)
            return issue

    async def enrich(self, project_id: str, issues: list[RemoteIssue]) -> list[RemoteIssue]:
        """Merge each task's detail representation over its list entry.

        Fetches run concurrently up to ``detail_concurrency`` at a time; the
        result keeps input order.
        """
        semaphore = asyncio.Semaphore(self.detail_concurrency)
        return list(
            await asyncio.gather(*(self._enrich_one(project_id, i, semaphore) for i in issues))
        )

    def normalize(self, issues: list[RemoteIssue]) -> list[NormalizedIssueRecord]:
        records: list[NormalizedIssueRecord] = []
        for issue in issues:
            try:
                records.append(normalize_issue(issue, len(records) + 1, self.deep_url_scan))
            except (ValidationError, TypeError, ValueError) as e:
                logger.warning("export.record_dropped task=%s: %s", issue.id, e)
        return records

    async def collect(
        self,
        project_id: str,
        selection: FilterSelection,
        *,
        include_all_when_unfiltered: bool = False,
        page_size: int | None = None,
        timeout: float | None = None,
    ) -> ExportOutcome:
        """Run fetch, filter, dedupe, enrich and normalize for one project.

        With ``include_all_when_unfiltered`` an empty selection keeps every
        task instead of none.
        """
        fetched = await self.fetch_all(project_id, page_size=page_size, timeout=timeout)

        if include_all_when_unfiltered and not selection.any_enabled:
            filtered, duplicates = fetched, []
            unique = list(fetched)
        else:
            filtered, unique, duplicates = select_and_dedupe(
                fetched, selection, self.archive_status_id
            )
        logger.info(
            "export.filtered project=%s buckets=%s matched=%d unique=%d duplicates=%d",
            project_id,
            [b.value for b in selection.enabled],
            len(filtered),
            len(unique),
            len(duplicates),
        )

        enriched = await self.enrich(project_id, unique) if unique else []
        records = self.normalize(enriched)
        return ExportOutcome(
            records=records,
            total_fetched=len(fetched),
            filtered_count=len(filtered),
            unique_count=len(unique),
            duplicate_ids=duplicates,
            sample_tasks=[
                i.model_dump(mode="json") for i in enriched[:SAMPLE_TASK_COUNT]
            ],
        )
