from __future__ import annotations

import datetime as dt
import logging
import zipfile
from pathlib import Path
from typing import Any, NamedTuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from clipsheet.errors import SpreadsheetError

logger = logging.getLogger(__name__)

SHEET_SUFFIX = ".xlsx"


class SheetRow(NamedTuple):
    start: str
    end: str
    link: str
    row_number: int | None = None


def resolve_sheet_path(name: str, sheet_dir: str | Path = ".") -> Path:
    """Map the CLI sheet name (no extension) to the workbook path."""

    if not name.strip():
        raise SpreadsheetError("No spreadsheet name provided.")
    file_name = name if name.lower().endswith(SHEET_SUFFIX) else f"{name}{SHEET_SUFFIX}"
    return Path(sheet_dir).expanduser() / file_name


def read_rows(path: str | Path, sheet_name: str = "Sheet1") -> list[SheetRow]:
    """Read (start, end, link) text triples from columns A-C, top to bottom."""

    workbook_path = Path(path)
    if not workbook_path.exists():
        raise SpreadsheetError(f"Spreadsheet not found: {workbook_path}")

    try:
        workbook = load_workbook(workbook_path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
        raise SpreadsheetError(f"Cannot open spreadsheet {workbook_path}: {exc}") from exc

    try:
        if sheet_name:
            if sheet_name not in workbook.sheetnames:
                raise SpreadsheetError(f"No sheet named {sheet_name!r} in {workbook_path}")
            worksheet = workbook[sheet_name]
        else:
            worksheet = workbook.active

        rows: list[SheetRow] = []
        for row_number, values in enumerate(worksheet.iter_rows(max_col=3, values_only=True), start=1):
            cells = [cell_to_text(value) for value in values]
            cells.extend([""] * (3 - len(cells)))
            if not any(cells):
                continue
            if not all(cells):
                raise SpreadsheetError(
                    f"Row {row_number} of {workbook_path} must have start, end and link values."
                )
            rows.append(SheetRow(cells[0], cells[1], cells[2], row_number))
    finally:
        workbook.close()

    if not rows:
        raise SpreadsheetError(f"No data found in {workbook_path}")

    logger.debug("Read %d rows from %s", len(rows), workbook_path)
    return rows


def cell_to_text(value: Any) -> str:
    """Render a cell value the way it reads in the sheet."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dt.datetime):
        value = value.time()
    if isinstance(value, dt.time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, dt.timedelta):
        total = int(value.total_seconds())
        return f"{total // 3600:02d}:{total % 3600 // 60:02d}:{total % 60:02d}"
    return str(value).strip()
