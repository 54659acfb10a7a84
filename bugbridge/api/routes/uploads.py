from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any

from fastapi import APIRouter, File, Form, UploadFile, status
from starlette.concurrency import run_in_threadpool

import bugbridge.core.config as config
from bugbridge.container import container
from bugbridge.core.errors import ApiError, BadRequestError, UnsupportedFormatError
from bugbridge.services.spreadsheet_importer import detect_format, read_rows

logger = logging.getLogger("bugbridge.api.uploads")

router = APIRouter()

CHUNK_SIZE = 1024 * 1024


async def save_upload(upload: UploadFile, dest: Path, max_bytes: int) -> int:
    """Stream ``upload`` to ``dest``, refusing files over ``max_bytes``."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with dest.open("wb") as handle:
        while chunk := await upload.read(CHUNK_SIZE):
            written += len(chunk)
            if written > max_bytes:
                raise ApiError(
                    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    f"File exceeds the {max_bytes} byte upload limit",
                )
            handle.write(chunk)
    return written


@router.post("/upload")
async def upload_spreadsheet(
    file: UploadFile | None = File(default=None),
    project_id: str | None = Form(default=None, alias="projectId"),
) -> dict[str, Any]:
    if file is None or not file.filename:
        raise BadRequestError("No file uploaded")
    if not project_id or not project_id.strip():
        raise BadRequestError("Project ID is required")
    project_id = project_id.strip()

    try:
        fmt = detect_format(file.filename)
    except UnsupportedFormatError as e:
        raise BadRequestError(str(e))

    path = Path(config.settings.UPLOAD_DIR) / f"{uuid.uuid4().hex}{fmt.value}"
    try:
        size = await save_upload(file, path, config.settings.UPLOAD_MAX_BYTES)
        logger.info("upload.received name=%s bytes=%d project=%s", file.filename, size, project_id)
        try:
            rows = await run_in_threadpool(read_rows, path, fmt.value)
        except Exception as e:
            logger.warning("upload.parse_failed name=%s: %s", file.filename, e)
            raise BadRequestError(f"Could not parse uploaded file: {e}") from e
        results = await container.creation_service.create_all(project_id, rows)
    finally:
        path.unlink(missing_ok=True)

    return {
        "success": True,
        "total": len(rows),
        "results": [r.model_dump(by_alias=True, exclude_none=True) for r in results],
    }
