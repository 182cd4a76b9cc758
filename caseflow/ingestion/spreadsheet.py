"""Read spreadsheet uploads (Excel workbooks or CSV files) into row dictionaries."""
from __future__ import annotations

import csv
import logging
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from caseflow.core.errors import ImportRejected, LocalValidationError
from caseflow.core.models import RowError

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".xlsx", ".xlsm", ".csv"}


def _cell_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip()
    return value


def _is_empty_row(values: List[Any]) -> bool:
    return all(value is None or value == "" for value in values)


def read_workbook_rows(path: Path) -> List[Dict[str, Any]]:
    """Read the first worksheet, using its first row as the header."""

    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            return []
        headers = [str(cell).strip() if cell is not None else None for cell in header_row]

        records: List[Dict[str, Any]] = []
        for values in rows:
            values = [_cell_value(value) for value in values]
            if _is_empty_row(values):
                continue
            records.append(
                {header: value for header, value in zip(headers, values) if header}
            )
        return records
    finally:
        workbook.close()


def read_csv_rows(path: Path) -> List[Dict[str, Any]]:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        records = []
        for row in reader:
            cleaned = {
                (key or "").strip(): _cell_value(value)
                for key, value in row.items()
                if key
            }
            if _is_empty_row(list(cleaned.values())):
                continue
            records.append(cleaned)
        return records


def read_rows(path: Path) -> List[Dict[str, Any]]:
    """Dispatch on file extension and return the data rows of an upload."""

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise LocalValidationError(f"Unsupported file type {suffix or '(none)'}; use Excel or CSV files")
    if not path.exists():
        raise LocalValidationError(f"File not found: {path}")

    logger.info("Reading rows from %s", path)
    try:
        rows = read_csv_rows(path) if suffix == ".csv" else read_workbook_rows(path)
    except (OSError, UnicodeDecodeError, csv.Error, zipfile.BadZipFile, InvalidFileException, KeyError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        raise ImportRejected([RowError(0, "System", f"Failed to process file: {exc}")]) from exc
    logger.info("Read %d data row(s) from %s", len(rows), path.name)
    return rows
