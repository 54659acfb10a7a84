from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from bugbridge.container import container
from bugbridge.core.config import settings
from bugbridge.core.errors import TrackerError


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


class FakeTracker:
    """In-memory TrackerClient. Tests fill in the canned responses they need."""

    def __init__(self) -> None:
        self.projects: Any = {"projects": [{"id": 42, "name": "Acme Site"}]}
        self.project: Any = {"project": {"id": 42, "name": "Acme Site", "devurl": "https://acme.test"}}
        self.project_error: TrackerError | None = None
        self.pages: list[Any] = []
        self.page_error: TrackerError | None = None
        self.details: dict[str, Any] = {}
        self.detail_errors: set[str] = set()
        self.create_errors: set[str] = set()  # fail rows whose description contains one of these
        self.update_error: TrackerError | None = None
        self.page_calls: list[tuple[int, int]] = []
        self.detail_calls: list[str] = []
        self.created: list[dict[str, Any]] = []
        self.updated: list[tuple[str, dict[str, Any]]] = []
        self.closed = False
        self._next_id = 100

    async def list_projects(self) -> Any:
        return self.projects

    async def get_project(self, project_id: str, *, timeout: float | None = None) -> Any:
        if self.project_error:
            raise self.project_error
        return self.project

    async def list_tasks_page(
        self, project_id: str, page: int, per_page: int, *, timeout: float | None = None
    ) -> Any:
        self.page_calls.append((page, per_page))
        if self.page_error:
            raise self.page_error
        if page <= len(self.pages):
            return self.pages[page - 1]
        return {"tasks": []}

    async def get_task(self, project_id: str, task_id: str) -> Any:
        self.detail_calls.append(task_id)
        if task_id in self.detail_errors:
            raise TrackerError("detail unavailable", status_code=500)
        return self.details.get(task_id, {"task": {}})

    async def create_task(self, project_id: str, payload: dict[str, Any]) -> Any:
        description = payload["task"]["description"]
        if any(marker in description for marker in self.create_errors):
            raise TrackerError("Tracker API returned 422", status_code=422)
        self._next_id += 1
        self.created.append(payload)
        return {"task": {"id": self._next_id, "url": f"https://tracker.test/tasks/{self._next_id}"}}

    async def update_task(self, project_id: str, task_id: str, payload: dict[str, Any]) -> Any:
        if self.update_error:
            raise self.update_error
        self.updated.append((task_id, payload))
        return {"task": {"id": task_id}}

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def tracker(fake_tracker):
    """Tracker wired into the app; modules override this to use a real client."""
    return fake_tracker


@pytest.fixture
def isolated_paths(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "REPORT_OUTPUT_PATH", str(tmp_path / "generated-report.html"))
    monkeypatch.setattr(
        settings, "BRAND_REPORT_OUTPUT_PATH", str(tmp_path / "generated-brand-report.html")
    )
    return tmp_path


@pytest.fixture
async def live_app(tracker, isolated_paths):
    """App with the given tracker wired in, run through startup and shutdown."""
    from asgi_lifespan import LifespanManager

    from bugbridge.main import create_app

    app = create_app()
    container.init_tracker(tracker)
    async with LifespanManager(app):
        yield app


@pytest.fixture
async def async_client(live_app):
    transport = ASGITransport(app=live_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


# Tests that mock the tracker's HTTP API depend on `respx_mock`.
@pytest.fixture
def respx_mock():
    import respx

    with respx.mock(assert_all_called=False) as mock:
        yield mock
