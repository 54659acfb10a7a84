from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from bugbridge.container import container
from bugbridge.core.errors import ApiError, TrackerError, upstream_error_from

logger = logging.getLogger("bugbridge.api.projects")

router = APIRouter()


def unwrap_projects(data: Any) -> list[Any] | None:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("projects"), list):
        return data["projects"]
    return None


@router.get("/projects")
async def list_projects() -> dict[str, Any]:
    try:
        data = await container.tracker.list_projects()
    except TrackerError as e:
        raise upstream_error_from(e, "Failed to fetch projects")

    projects = unwrap_projects(data)
    if projects is None:
        logger.warning("projects.unexpected_shape type=%s", type(data).__name__)
        raise ApiError(500, "Unexpected API response format", data=data)
    return {"success": True, "projects": projects}
