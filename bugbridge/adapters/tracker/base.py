from __future__ import annotations

from typing import Any, Protocol


class TrackerClient(Protocol):
    """Remote issue tracker operations used by the pipelines.

    Implementations raise ``TrackerError`` for transport failures and non-2xx
    responses and return decoded JSON bodies as-is.
    """

    async def list_projects(self) -> Any: ...

    async def get_project(self, project_id: str, *, timeout: float | None = None) -> Any: ...

    async def list_tasks_page(
        self,
        project_id: str,
        page: int,
        per_page: int,
        *,
        timeout: float | None = None,
    ) -> Any: ...

    async def get_task(self, project_id: str, task_id: str) -> Any: ...

    async def create_task(self, project_id: str, payload: dict[str, Any]) -> Any: ...

    async def update_task(self, project_id: str, task_id: str, payload: dict[str, Any]) -> Any: ...

    async def aclose(self) -> None: ...
