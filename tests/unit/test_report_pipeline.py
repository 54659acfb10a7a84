from datetime import date
from pathlib import Path

import pytest

from bugbridge.exports.pipeline import ReportPipeline, csv_filename
from bugbridge.exports.storage.local import LocalReportStorage


def test_csv_filename_embeds_project_and_day():
    assert csv_filename("42", date(2026, 1, 9)) == "bugherd-tasks-42-2026-01-09.csv"


@pytest.mark.anyio
async def test_attachment_sets_content_disposition(tmp_path):
    pipeline = ReportPipeline(LocalReportStorage(base_dir=tmp_path))

    response = await pipeline.deliver_attachment(b"BugID\n", "report.csv")

    assert response.headers["content-disposition"] == 'attachment; filename="report.csv"'
    assert response.media_type.startswith("text/csv")
    assert response.body == b"BugID\n"


@pytest.mark.anyio
async def test_document_is_saved_and_overwritten(tmp_path):
    pipeline = ReportPipeline(LocalReportStorage(base_dir=tmp_path))
    target = tmp_path / "out" / "report.html"

    await pipeline.deliver_document("<p>first</p>", str(target))
    response = await pipeline.deliver_document("<p>second</p>", str(target))

    assert target.read_text(encoding="utf-8") == "<p>second</p>"
    assert response.body == b"<p>second</p>"


@pytest.mark.anyio
async def test_document_save_failure_still_returns_html(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    pipeline = ReportPipeline(LocalReportStorage(base_dir=tmp_path))

    response = await pipeline.deliver_document("<p>ok</p>", str(Path(blocker) / "report.html"))

    assert response.status_code == 200
    assert response.body == b"<p>ok</p>"


@pytest.mark.anyio
async def test_local_storage_resolves_relative_keys_under_base(tmp_path):
    storage = LocalReportStorage(base_dir=tmp_path)

    path = await storage.write_text("reports/a.html", "x")

    assert path == tmp_path / "reports" / "a.html"
    assert path.read_text(encoding="utf-8") == "x"


@pytest.mark.anyio
async def test_local_storage_keeps_absolute_keys(tmp_path):
    storage = LocalReportStorage(base_dir=tmp_path / "base")
    target = tmp_path / "elsewhere" / "b.html"

    assert await storage.write_text(str(target), "y") == target
    assert not (tmp_path / "base").exists()
