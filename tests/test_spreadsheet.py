"""Reading uploaded workbooks and CSV files into row dictionaries."""
from datetime import datetime
from pathlib import Path

import pytest

from caseflow.core.errors import ImportRejected, LocalValidationError
from caseflow.ingestion.spreadsheet import read_rows


def test_reads_first_sheet_and_skips_blank_rows(write_workbook):
    path = write_workbook(
        ["Claim ID", "Date Processed", "Amount Paid"],
        [["CLM-1", datetime(2025, 1, 5), 10], [None, None, None], ["  CLM-2 ", "2025-02-01", 20.5]],
    )
    rows = read_rows(path)
    assert rows == [
        {"Claim ID": "CLM-1", "Date Processed": "2025-01-05", "Amount Paid": 10},
        {"Claim ID": "CLM-2", "Date Processed": "2025-02-01", "Amount Paid": 20.5},
    ]


def test_reads_csv_with_bom(tmp_path: Path):
    path = tmp_path / "claims.csv"
    path.write_text('﻿Claim ID,Employer\nCLM-1,"Acme, Ltd"\n,\n', encoding="utf-8")
    assert read_rows(path) == [{"Claim ID": "CLM-1", "Employer": "Acme, Ltd"}]


def test_rejects_unsupported_and_missing_files(tmp_path: Path):
    with pytest.raises(LocalValidationError, match="Unsupported file type"):
        read_rows(tmp_path / "claims.pdf")
    with pytest.raises(LocalValidationError, match="File not found"):
        read_rows(tmp_path / "absent.xlsx")


def test_header_only_workbook_has_no_rows(write_workbook):
    assert read_rows(write_workbook(["Claim ID"], [])) == []


def test_corrupt_workbook_is_rejected_as_a_file_error(tmp_path: Path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip archive")
    with pytest.raises(ImportRejected) as excinfo:
        read_rows(path)
    error = excinfo.value.errors[0]
    assert (error.row, error.column) == (0, "System")
    assert error.message.startswith("Failed to process file")


def test_non_utf8_csv_is_rejected_as_a_file_error(tmp_path: Path):
    path = tmp_path / "claims.csv"
    path.write_bytes(b"\xff\xfeC\x00l\x00")
    with pytest.raises(ImportRejected) as excinfo:
        read_rows(path)
    assert excinfo.value.errors[0].column == "System"
