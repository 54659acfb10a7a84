from __future__ import annotations

from pathlib import Path

from bugbridge.exports.storage.base import ReportStorage


class LocalReportStorage(ReportStorage):
    def __init__(self, base_dir: str | Path = ".") -> None:
        self._base_dir = Path(base_dir)

    async def write_text(self, key: str, text: str) -> Path:
        path = self._resolve_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            handle.write(text)
        return path

    def _resolve_path(self, key: str) -> Path:
        path = Path(key)
        if path.is_absolute():
            return path
        return self._base_dir / path
