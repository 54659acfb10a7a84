from __future__ import annotations

import logging
from typing import Any

from bugbridge.adapters.tracker.base import TrackerClient
from bugbridge.core.errors import TrackerError
from bugbridge.core.telemetry import record_import_rows
from bugbridge.domain.enums import Priority
from bugbridge.domain.models import ImportedRow, RowFailure, RowResult, RowSuccess
from bugbridge.domain.priority import DEFAULT_PRIORITY_NAME, needs_priority_update, resolve_priority

logger = logging.getLogger("bugbridge.services.creation")

REQUESTER_NAME = "CSV Importer"
DEFAULT_STATUS = "backlog"


def build_description(row: ImportedRow) -> str:
    """Append the row's environment details to its description.

    Details go after a blank line, one ``Label: value`` per line.
    """
    details: list[str] = []
    if row.os:
        details.append(f"OS: {row.os}")
    if row.browser:
        details.append(f"Browser: {row.browser} {row.browser_version or ''}".strip())
    if row.resolution:
        details.append(f"Resolution: {row.resolution}")
    if row.browser_size:
        details.append(f"Browser Window: {row.browser_size}")
    if row.site_url:
        details.append(f"URL: {row.site_url}")

    description = row.description or ""
    if details:
        description += "\n\n" + "\n".join(details)
    return description


def split_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def build_task_payload(row: ImportedRow, priority: Priority) -> dict[str, Any]:
    task: dict[str, Any] = {
        "description": build_description(row),
        "priority": priority.label,
        "priority_id": priority.value,
        "status": row.status or DEFAULT_STATUS,
        "tag_names": split_tags(row.tags),
        "requester_email": row.requester_email,
        "requester_name": REQUESTER_NAME,
        "browser": row.browser or "",
        "os": row.os or "",
        "resolution": row.resolution or "",
        "site_page": row.site or "",
    }
    severity = (row.severity or "").strip().lower()
    if severity:
        task["tag_names"].append(f"severity:{severity}")
        task["custom_fields"] = [{"id": "severity", "value": severity}]
    return {"task": task}


def _created_task(data: Any) -> dict[str, Any]:
    if isinstance(data, dict):
        task = data.get("task", data)
        if isinstance(task, dict):
            return task
    return {}


class IssueCreationService:
    def __init__(self, tracker: TrackerClient):
        self.tracker = tracker

    async def _update_priority(self, project_id: str, task_id: Any, priority: Priority) -> None:
        payload = {"task": {"priority": priority.label, "priority_id": priority.value}}
        try:
            await self.tracker.update_task(project_id, str(task_id), payload)
        except TrackerError as e:
            # The task exists already; a failed priority update leaves it at the default
            logger.warning(
                "creation.priority_update_failed task=%s priority=%s: %s",
                task_id,
                priority.label,
                e,
            )

    async def create_one(self, project_id: str, row: ImportedRow, row_id: int | str) -> RowResult:
        priority = resolve_priority(row.priority or DEFAULT_PRIORITY_NAME)
        try:
            data = await self.tracker.create_task(project_id, build_task_payload(row, priority))
        except TrackerError as e:
            logger.warning("creation.row_failed row=%s: %s", row_id, e)
            return RowFailure(id=row_id, error=str(e))

        created = _created_task(data)
        task_id = created.get("id")
        if task_id is None:
            logger.warning("creation.row_failed row=%s: response carried no task id", row_id)
            return RowFailure(id=row_id, error="Tracker response did not include a task id")

        if needs_priority_update(priority):
            await self._update_priority(project_id, task_id, priority)
        return RowSuccess(id=row_id, bugherd_id=task_id, url=created.get("url"))

    async def create_all(self, project_id: str, rows: list[ImportedRow]) -> list[RowResult]:
        """Create one task per row, strictly in order.

        A failing row is recorded and processing continues with the next one.
        """
        results: list[RowResult] = []
        for index, row in enumerate(rows, start=1):
            row_id: int | str = row.id if row.id is not None else index
            results.append(await self.create_one(project_id, row, row_id))

        created = sum(1 for r in results if isinstance(r, RowSuccess))
        logger.info(
            "creation.done project=%s total=%d created=%d failed=%d",
            project_id,
            len(results),
            created,
            len(results) - created,
        )
        record_import_rows(project_id, created, len(results) - created)
        return results
