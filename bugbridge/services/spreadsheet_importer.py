from __future__ import annotations

import csv
import logging
from pathlib import Path

import pandas as pd

from bugbridge.core.errors import UnsupportedFormatError
from bugbridge.domain.enums import SpreadsheetFormat
from bugbridge.domain.models import ImportedRow

logger = logging.getLogger("bugbridge.importer")


def detect_format(filename: str) -> SpreadsheetFormat:
    """Resolve a filename or a bare extension such as ``.xlsx``."""
    suffix = Path(filename).suffix.lower() or filename.strip().lower()
    try:
        return SpreadsheetFormat(suffix)
    except ValueError:
        raise UnsupportedFormatError(
            f"Unsupported file format '{suffix or filename}'. Upload a .csv, .xlsx or .xls file."
        )


def _read_csv(path: Path) -> list[dict[str, str]]:
    with path.open("r", encoding="utf-8-sig", newline="") as handle:
        return [dict(row) for row in csv.DictReader(handle)]


def _read_excel(path: Path, fmt: SpreadsheetFormat) -> list[dict[str, str]]:
    engine = "openpyxl" if fmt is SpreadsheetFormat.xlsx else "xlrd"
    frame = pd.read_excel(path, sheet_name=0, dtype=str, keep_default_na=False, engine=engine)
    return frame.to_dict(orient="records")


def read_rows(path: str | Path, extension: str | None = None) -> list[ImportedRow]:
    """Parse a spreadsheet into rows keyed by normalised header.

    Only the first sheet of a workbook is read. Fully blank rows are skipped.
    The caller owns ``path`` and is responsible for deleting it.
    """
    path = Path(path)
    fmt = detect_format(extension or path.name)
    raw = _read_csv(path) if fmt is SpreadsheetFormat.csv else _read_excel(path, fmt)

    rows: list[ImportedRow] = []
    for record in raw:
        row = ImportedRow.model_validate(record)
        if row.is_blank():
            continue
        rows.append(row)
    logger.info("importer.read format=%s rows=%d skipped=%d", fmt.value, len(rows), len(raw) - len(rows))
    return rows
