from __future__ import annotations

import logging
from typing import Any

import httpx

from bugbridge.adapters.tracker.base import TrackerClient
from bugbridge.core.errors import TrackerError

logger = logging.getLogger("bugbridge.tracker")


class BugherdClient(TrackerClient):
    """Thin async client for the BugHerd v2 REST API.

    Authenticates with HTTP basic auth using the API key as the user name and
    ``x`` as the password.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://www.bugherd.com/api_v2",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required for BugherdClient")
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.BasicAuth(api_key, "x"),
            headers={"Accept": "application/json"},
            timeout=timeout_seconds,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        kwargs: dict[str, Any] = {"params": params, "json": json}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            try:
                payload: Any = e.response.json()
            except ValueError:
                payload = e.response.text or None
            logger.warning("tracker.%s %s failed status=%s", method.lower(), path, status)
            raise TrackerError(
                f"Tracker API returned {status} for {method} {path}",
                status_code=status,
                payload=payload,
            ) from e
        except httpx.RequestError as e:
            logger.warning("tracker.%s %s transport error: %s", method.lower(), path, e)
            raise TrackerError(f"Tracker API request failed: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TrackerError(
                f"Tracker API returned a non-JSON body for {method} {path}",
                status_code=response.status_code,
            ) from e

    async def list_projects(self) -> Any:
        return await self._request("GET", "/projects.json")

    async def get_project(self, project_id: str, *, timeout: float | None = None) -> Any:
        return await self._request("GET", f"/projects/{project_id}.json", timeout=timeout)

    async def list_tasks_page(
        self,
        project_id: str,
        page: int,
        per_page: int,
        *,
        timeout: float | None = None,
    ) -> Any:
        params = {"page": page, "per_page": per_page, "include": "attachments"}
        return await self._request(
            "GET", f"/projects/{project_id}/tasks.json", params=params, timeout=timeout
        )

    async def get_task(self, project_id: str, task_id: str) -> Any:
        return await self._request("GET", f"/projects/{project_id}/tasks/{task_id}.json")

    async def create_task(self, project_id: str, payload: dict[str, Any]) -> Any:
        return await self._request("POST", f"/projects/{project_id}/tasks.json", json=payload)

    async def update_task(self, project_id: str, task_id: str, payload: dict[str, Any]) -> Any:
        return await self._request(
            "PUT", f"/projects/{project_id}/tasks/{task_id}.json", json=payload
        )

    async def aclose(self) -> None:
        await self._client.aclose()
