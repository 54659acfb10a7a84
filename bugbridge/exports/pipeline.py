from __future__ import annotations

import logging
from datetime import date

from fastapi.responses import HTMLResponse, Response

from bugbridge.exports.storage.base import ReportStorage

logger = logging.getLogger("bugbridge.exports.pipeline")


def csv_filename(project_id: str, day: date | None = None) -> str:
    day = day or date.today()
    return f"bugherd-tasks-{project_id}-{day.isoformat()}.csv"


class ReportPipeline:
    def __init__(self, storage: ReportStorage) -> None:
        self._storage = storage

    async def deliver_attachment(
        self, payload: str | bytes, filename: str, media_type: str = "text/csv; charset=utf-8"
    ) -> Response:
        return Response(
            content=payload,
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    async def deliver_document(self, html: str, output_key: str | None = None) -> HTMLResponse:
        """Return ``html`` inline, first saving a copy to ``output_key`` when given.

        The saved copy is overwritten on every call. Failing to save is logged
        and does not affect the response.
        """
        if output_key:
            try:
                path = await self._storage.write_text(output_key, html)
                logger.info("report.saved path=%s bytes=%d", path, len(html))
            except OSError as e:
                logger.warning("report.save_failed key=%s: %s", output_key, e)
        return HTMLResponse(content=html)
