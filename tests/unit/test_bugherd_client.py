import base64
import json

import httpx
import pytest

from bugbridge.adapters.tracker import BugherdClient
from bugbridge.core.errors import TrackerError

TRACKER_BASE = "https://tracker.test/api_v2"


@pytest.fixture
async def client():
    c = BugherdClient(api_key="secret-key", base_url=TRACKER_BASE + "/")
    yield c
    await c.aclose()


def test_client_requires_api_key():
    with pytest.raises(ValueError):
        BugherdClient(api_key="")


@pytest.mark.anyio
async def test_uses_basic_auth_with_key_and_x(client, respx_mock):
    route = respx_mock.get(f"{TRACKER_BASE}/projects.json").mock(
        return_value=httpx.Response(200, json={"projects": []})
    )

    data = await client.list_projects()

    assert data == {"projects": []}
    expected = "Basic " + base64.b64encode(b"secret-key:x").decode()
    request = route.calls.last.request
    assert request.headers["authorization"] == expected
    assert request.headers["accept"] == "application/json"


@pytest.mark.anyio
async def test_task_page_requests_attachments(client, respx_mock):
    route = respx_mock.get(f"{TRACKER_BASE}/projects/42/tasks.json").mock(
        return_value=httpx.Response(200, json={"tasks": [{"id": 1}]})
    )

    data = await client.list_tasks_page("42", 3, 50)

    assert data == {"tasks": [{"id": 1}]}
    params = route.calls.last.request.url.params
    assert params["page"] == "3"
    assert params["per_page"] == "50"
    assert params["include"] == "attachments"


@pytest.mark.anyio
async def test_update_sends_json_body(client, respx_mock):
    route = respx_mock.put(f"{TRACKER_BASE}/projects/42/tasks/101.json").mock(
        return_value=httpx.Response(200, json={"task": {"id": 101}})
    )

    await client.update_task("42", "101", {"task": {"priority": "minor", "priority_id": 4}})

    assert json.loads(route.calls.last.request.content) == {
        "task": {"priority": "minor", "priority_id": 4}
    }


@pytest.mark.anyio
async def test_non_2xx_becomes_tracker_error_with_payload(client, respx_mock):
    respx_mock.get(f"{TRACKER_BASE}/projects.json").mock(
        return_value=httpx.Response(401, json={"error": "Unauthorized"})
    )

    with pytest.raises(TrackerError) as info:
        await client.list_projects()

    assert info.value.status_code == 401
    assert info.value.is_auth_error
    assert info.value.payload == {"error": "Unauthorized"}


@pytest.mark.anyio
async def test_transport_failure_has_no_status(client, respx_mock):
    respx_mock.get(f"{TRACKER_BASE}/projects/7.json").mock(side_effect=httpx.ConnectError)

    with pytest.raises(TrackerError) as info:
        await client.get_project("7", timeout=1.0)

    assert info.value.status_code is None
    assert not info.value.is_auth_error


@pytest.mark.anyio
async def test_empty_body_is_empty_object(client, respx_mock):
    respx_mock.get(f"{TRACKER_BASE}/projects/42/tasks/9.json").mock(
        return_value=httpx.Response(200, content=b"")
    )
    assert await client.get_task("42", "9") == {}


@pytest.mark.anyio
async def test_non_json_body_is_an_error(client, respx_mock):
    respx_mock.post(f"{TRACKER_BASE}/projects/42/tasks.json").mock(
        return_value=httpx.Response(200, text="<html>maintenance</html>")
    )
    with pytest.raises(TrackerError, match="non-JSON"):
        await client.create_task("42", {"task": {"description": "x"}})
