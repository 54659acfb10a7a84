from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Query
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field, field_validator

from bugbridge.container import container
from bugbridge.core.errors import BadRequestError, NotFoundError, TrackerError, upstream_error_from
from bugbridge.domain.models import FilterSelection

logger = logging.getLogger("bugbridge.api.exports")

router = APIRouter()


class ReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str | None = Field(default=None, alias="projectId")
    filters: FilterSelection = Field(default_factory=FilterSelection)

    @field_validator("project_id", mode="before")
    @classmethod
    def _coerce_project_id(cls, v: Any) -> str | None:
        if v is None or isinstance(v, bool):
            return None
        text = str(v).strip()
        return text or None

    @field_validator("filters", mode="before")
    @classmethod
    def _null_filters(cls, v: Any) -> Any:
        return {} if v is None else v


def is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@router.post("/export", response_model=None)
async def export_tasks(
    payload: ReportRequest,
    debug: str | None = Query(default=None),
) -> Response | dict[str, Any]:
    if not payload.project_id:
        raise BadRequestError("Project ID is required")
    if not payload.filters.any_enabled:
        raise BadRequestError("At least one filter must be selected")

    try:
        outcome, response = await container.report_service.export_csv(
            payload.project_id, payload.filters
        )
    except TrackerError as e:
        raise upstream_error_from(e, "Failed to export tasks")

    debug_on = is_truthy(debug)
    filters = payload.filters.model_dump(by_alias=True)
    if response is None:
        extra: dict[str, Any] = {
            "message": "No tasks match the selected filters",
            "filters": filters,
        }
        if debug_on:
            extra["debug"] = outcome.debug_payload()
        raise NotFoundError("No tasks found", **extra)

    if debug_on:
        return {"success": True, "filters": filters, "debug": outcome.debug_payload()}
    return response
