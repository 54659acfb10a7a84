import logging
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

import bugbridge.core.config as config
import bugbridge.main as main
from bugbridge.container import container
from bugbridge.core.config import settings, validate_startup


def test_validate_startup_accepts_defaults_with_key():
    cfg = settings.model_copy(update={"TRACKER_API_KEY": SecretStr("abc")})
    assert validate_startup(cfg) == []


def test_validate_startup_reports_missing_key_and_bad_url():
    cfg = settings.model_copy(
        update={"TRACKER_API_KEY": None, "TRACKER_BASE_URL": "ftp://tracker", "PAGE_SIZE": 0}
    )
    problems = validate_startup(cfg)
    assert len(problems) == 3
    assert "BUGHERD_API_KEY" in problems[0]
    assert "ftp://tracker" in problems[1]


def test_api_key_read_from_plain_env_name(monkeypatch):
    monkeypatch.setenv("BUGHERD_API_KEY", "from-env")
    assert config.Settings(_env_file=None).TRACKER_API_KEY.get_secret_value() == "from-env"


def test_prefixed_env_overrides_defaults(monkeypatch):
    monkeypatch.setenv("BUGBRIDGE_PAGE_SIZE", "25")
    cfg = config.Settings(_env_file=None)
    assert cfg.PAGE_SIZE == 25


def test_blank_archive_status_id_disables_numeric_rule(monkeypatch):
    monkeypatch.setenv("BUGBRIDGE_ARCHIVE_STATUS_ID", "")
    assert config.Settings(_env_file=None).ARCHIVE_STATUS_ID is None
    monkeypatch.setenv("BUGBRIDGE_ARCHIVE_STATUS_ID", "7")
    assert config.Settings(_env_file=None).ARCHIVE_STATUS_ID == 7


@pytest.mark.anyio
async def test_lifespan_refuses_to_start_without_key(monkeypatch):
    monkeypatch.setattr(config, "settings", settings.model_copy(update={"TRACKER_API_KEY": None}))
    monkeypatch.setattr(container, "tracker", None)
    app = main.create_app()

    with pytest.raises(RuntimeError, match="Invalid configuration"):
        async with main.lifespan(app):
            pass


def test_run_exits_when_misconfigured(monkeypatch):
    monkeypatch.setattr(config, "settings", settings.model_copy(update={"TRACKER_API_KEY": None}))
    with pytest.raises(SystemExit) as info:
        main.run()
    assert info.value.code == 1


@pytest.mark.anyio
async def test_openapi_served_under_api_prefix():
    app = main.create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/api/openapi.json")
        assert r.status_code == 200
        paths = r.json()["paths"]
        for path in ("/api/projects", "/api/upload", "/api/export", "/api/generate-html-report"):
            assert path in paths


@pytest.mark.anyio
async def test_frontend_serves_index_and_deep_routes(tmp_path: Path, monkeypatch):
    (tmp_path / "index.html").write_text("<html><body>Bridge UI</body></html>")
    monkeypatch.setattr(settings, "FRONTEND_DIR", str(tmp_path))
    app = main.create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        assert "Bridge UI" in (await ac.get("/")).text
        assert "Bridge UI" in (await ac.get("/reports/latest")).text
        assert (await ac.get("/healthz")).json() == {"status": "ok"}


@pytest.mark.anyio
async def test_frontend_disabled_without_index(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(settings, "FRONTEND_DIR", str(tmp_path))
    app = main.create_app()
    assert app.state.spa_enabled is False


def _ensure_test_route(app):  # type: ignore[no-untyped-def]
    if any(getattr(r, "path", None) == "/_test_log" for r in app.router.routes):
        return

    @app.get("/_test_log")
    def _test_log_route():  # type: ignore[no-untyped-def]
        logging.getLogger("bugbridge.test").info("test log event")
        return {"ok": True}


@pytest.mark.anyio
async def test_logs_carry_request_id(caplog, live_app):
    _ensure_test_route(live_app)
    caplog.set_level(logging.INFO, logger="bugbridge.test")
    transport = ASGITransport(app=live_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/_test_log", headers={"X-Request-Id": "abc123"})
    assert r.status_code == 200
    ids = [getattr(rec, "request_id", None) for rec in caplog.records if rec.name == "bugbridge.test"]
    assert ids == ["abc123"]


def test_validation_message_names_nested_fields():
    errors = [
        {"type": "bool_parsing", "loc": ("body", "filters", "archive"), "msg": "Input should be a valid boolean"},
        {"type": "int_type", "loc": ("query", "page"), "msg": "Input should be a valid integer"},
    ]
    assert main.validation_message(errors) == (
        "Invalid request: filters.archive: Input should be a valid boolean; "
        "query.page: Input should be a valid integer"
    )


def test_validation_message_for_missing_body():
    errors = [{"type": "missing", "loc": ("body",), "msg": "Field required"}]
    assert main.validation_message(errors) == "Request body is required"
