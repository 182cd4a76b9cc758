"""Output sinks for exported record rows: CSV, Excel, Google Sheets and text reports."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


def ensure_output_dir(output_path: Path) -> None:
    """Create parent folders for sink outputs when missing."""

    output_path.parent.mkdir(parents=True, exist_ok=True)


def _headers(rows: List[Dict[str, Any]], headers: Optional[Sequence[str]]) -> List[str]:
    if headers:
        return list(headers)
    return list(rows[0].keys()) if rows else []


def write_csv(
    rows: Iterable[Dict[str, Any]],
    output_path: Path,
    headers: Optional[Sequence[str]] = None,
) -> Path:
    """Write rows as delimited text; free text with commas or quotes is double-quoted."""

    rows = list(rows)
    ensure_output_dir(output_path)
    fieldnames = _headers(rows, headers)
    with output_path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(
            csvfile, fieldnames=fieldnames, extrasaction="ignore", quoting=csv.QUOTE_MINIMAL
        )
        writer.writeheader()
        writer.writerows(rows)
    return output_path


def write_excel(
    rows: Iterable[Dict[str, Any]],
    output_path: Path,
    headers: Optional[Sequence[str]] = None,
    sheet_title: str = "records",
) -> Path:
    """Write rows to an Excel workbook using openpyxl; the header row is always written."""

    from openpyxl import Workbook

    rows = list(rows)
    ensure_output_dir(output_path)
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title
    fieldnames = _headers(rows, headers)
    sheet.append(fieldnames)
    for row in rows:
        sheet.append([row.get(header, "") for header in fieldnames])
    workbook.save(output_path)
    return output_path


def push_to_google_sheets(
    rows: Iterable[Dict[str, Any]],
    spreadsheet_id: str,
    worksheet_title: str = "Sheet1",
    service_account_path: Path | None = None,
    headers: Optional[Sequence[str]] = None,
) -> int:
    """Replace a worksheet's contents with ``rows`` using a service account.

    The worksheet is always cleared; with no rows only the header row is written.
    """

    import gspread

    rows = list(rows)
    client = (
        gspread.service_account(filename=str(service_account_path))
        if service_account_path
        else gspread.service_account()
    )
    worksheet = client.open_by_key(spreadsheet_id).worksheet(worksheet_title)
    worksheet.clear()
    fieldnames = _headers(rows, headers)
    if fieldnames:
        worksheet.append_rows([fieldnames] + [[row.get(h, "") for h in fieldnames] for row in rows])
    logger.info(
        "Pushed %d rows to Google Sheets document %s (worksheet %s)",
        len(rows),
        spreadsheet_id,
        worksheet_title,
    )
    return len(rows)


def write_text(content: str, output_path: Path) -> Path:
    ensure_output_dir(output_path)
    output_path.write_text(content + "\n", encoding="utf-8")
    return output_path
