"""Export rows, the text claim report and the file sinks."""
import csv
import sys
import types
from pathlib import Path

from openpyxl import load_workbook

from caseflow.core.models import CaseRecord, Classification, Financial, Timeline
from caseflow.export.sinks import push_to_google_sheets, write_csv, write_excel
from caseflow.export.templates import (
    CLAIMS_EXPORT_HEADERS,
    LEGAL_EXPORT_HEADERS,
    format_currency,
    record_to_export_row,
    render_claim_report,
)


def _claim() -> CaseRecord:
    return CaseRecord(
        id="1",
        display_id="CLM-001",
        employer='Acme "Holdings", Ltd',
        claimant="Ada\nObi",
        type="Disability",
        status="Paid",
        financial=Financial(100000, 80000, 20000, 20),
        timeline=Timeline("2025-01-10", "2025-01-20", 10),
        classification=Classification(sector="Oil"),
    )


def test_claim_row_follows_export_headers():
    row = record_to_export_row(_claim())
    assert list(row) == CLAIMS_EXPORT_HEADERS
    assert row["Amount Requested"] == "100000.00"
    assert row["Claimant"] == "Ada Obi"


def test_legal_row_headers():
    row = record_to_export_row(CaseRecord(kind="legal", display_id="ECS-1", sectors=["Oil", "Gas"]))
    assert list(row) == LEGAL_EXPORT_HEADERS
    assert row["Sectors"] == "Oil, Gas"
    assert row["Cases Won"] == 0


def test_csv_quotes_free_text(tmp_path: Path):
    output = tmp_path / "nested" / "claims.csv"
    write_csv([record_to_export_row(_claim())], output, headers=CLAIMS_EXPORT_HEADERS)
    text = output.read_text(encoding="utf-8")
    assert '"Acme ""Holdings"", Ltd"' in text
    (row,) = csv.DictReader(text.splitlines())
    assert row["Employer"] == 'Acme "Holdings", Ltd'


def test_csv_with_no_rows_still_has_header(tmp_path: Path):
    output = write_csv([], tmp_path / "empty.csv", headers=["Claim ID", "Employer"])
    assert output.read_text(encoding="utf-8").strip() == "Claim ID,Employer"


def test_excel_sink(tmp_path: Path):
    output = tmp_path / "claims.xlsx"
    write_excel([record_to_export_row(_claim())], output, headers=CLAIMS_EXPORT_HEADERS, sheet_title="claims")
    sheet = load_workbook(output).active
    assert sheet.title == "claims"
    assert [cell.value for cell in sheet[1]] == CLAIMS_EXPORT_HEADERS
    assert sheet["A2"].value == "CLM-001"


def test_google_sheets_sink_replaces_worksheet(monkeypatch, tmp_path: Path):
    calls = {}

    class Worksheet:
        def clear(self):
            calls["cleared"] = True

        def append_rows(self, rows):
            calls["rows"] = rows

    class Spreadsheet:
        def worksheet(self, title):
            calls["worksheet"] = title
            return Worksheet()

    class Client:
        def open_by_key(self, key):
            calls["key"] = key
            return Spreadsheet()

    def service_account(filename=None):
        calls["filename"] = filename
        return Client()

    monkeypatch.setitem(sys.modules, "gspread", types.SimpleNamespace(service_account=service_account))
    account = tmp_path / "sa.json"

    pushed = push_to_google_sheets([{"A": 1, "B": 2}], "sheet-id", "Claims", account)

    assert pushed == 1
    assert calls["filename"] == str(account)
    assert calls["cleared"]
    assert calls["rows"] == [["A", "B"], [1, 2]]


def test_claim_report_layout():
    report = render_claim_report(_claim())
    assert report.startswith("CLAIM DETAILS\n=============")
    assert "Amount Requested: ₦100,000" in report
    assert "Difference: ₦20,000 (20.00%)" in report
    assert "Date Processed: 10 January 2025" in report
    assert "Processing Time: 10 days" in report
    assert "Class: N/A" in report


def test_currency_credit_is_negative():
    assert format_currency(-5000) == "-₦5,000"


def test_google_sheets_sink_clears_worksheet_when_nothing_matches(monkeypatch):
    calls = []

    class Worksheet:
        def clear(self):
            calls.append("clear")

        def append_rows(self, rows):
            calls.append(rows)

    spreadsheet = types.SimpleNamespace(worksheet=lambda title: Worksheet())
    client = types.SimpleNamespace(open_by_key=lambda key: spreadsheet)
    monkeypatch.setitem(sys.modules, "gspread", types.SimpleNamespace(service_account=lambda filename=None: client))

    pushed = push_to_google_sheets([], "sheet-id", "Claims", headers=["Claim ID", "Employer"])

    assert pushed == 0
    assert calls == ["clear", [["Claim ID", "Employer"]]]
