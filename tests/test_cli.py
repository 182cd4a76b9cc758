"""Integration-style tests that exercise the CLI entrypoint."""
import csv
from pathlib import Path

import pytest
import requests
from openpyxl import load_workbook

from caseflow.ingestion.validator import CLAIMS_SCHEMA

VALID_CLAIM = ["CLM-1", "Acme", "Ada", "Disability", 1000, 800, "Paid", "2025-01-01", "", "Oil", "A", "Q1"]


@pytest.fixture
def patched_session(monkeypatch: pytest.MonkeyPatch, fake_session):
    """Route every client the CLI builds through the shared fake session."""

    monkeypatch.setattr(requests, "Session", lambda: fake_session)
    return fake_session


def test_validate_lists_row_errors(run_cli, write_workbook, capsys) -> None:
    invalid = list(VALID_CLAIM)
    invalid[4] = "lots"
    path = write_workbook(list(CLAIMS_SCHEMA.headers), [VALID_CLAIM, invalid])

    assert run_cli(["validate", str(path)]) == 1

    out = capsys.readouterr().out
    assert "Validation failed with 1 error(s)" in out
    assert "Row 3, Amount Requested" in out


def test_validate_accepts_clean_file(run_cli, write_workbook, capsys) -> None:
    path = write_workbook(list(CLAIMS_SCHEMA.headers), [VALID_CLAIM])
    assert run_cli(["validate", str(path)]) == 0
    assert "1 row(s) are valid" in capsys.readouterr().out


def test_export_writes_filtered_csv(run_cli, patched_session, claim_payload, tmp_path: Path) -> None:
    patched_session.queue(claim_payload)
    output = tmp_path / "claims.csv"

    assert run_cli(["export", str(output), "--record-status", "pending", "--region-id", "r1"]) == 0

    with output.open(encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert [row["Claim ID"] for row in rows] == ["CLM-001"]
    assert patched_session.calls[0]["params"]["record_status"] == "pending"


def test_export_excel_sink(run_cli, patched_session, claim_payload, tmp_path: Path) -> None:
    patched_session.queue(claim_payload)
    output = tmp_path / "claims.xlsx"

    assert run_cli(["export", str(output), "--sink", "excel"]) == 0

    sheet = load_workbook(output).active
    assert sheet.max_row - 1 == 2


def test_export_rejects_inverted_period(run_cli, patched_session, tmp_path: Path, capsys) -> None:
    code = run_cli(["export", str(tmp_path / "x.csv"), "--period-from", "2025-05", "--period-to", "2025-01"])
    assert code == 1
    assert "Period range start" in capsys.readouterr().out
    assert patched_session.calls == []


def test_review_reports_partial_failure(run_cli, patched_session, capsys) -> None:
    patched_session.queue({"data": {"updated": ["1"], "missing": ["2"], "errors": []}})

    assert run_cli(["review", "1", "2", "--role", "regional_manager"]) == 1

    call = patched_session.calls[0]
    assert call["method"] == "POST"
    assert call["url"].endswith("/api/claims/manage-claims")
    assert call["json"] == {"ids": ["1", "2"], "action": "review"}
    assert "Some records failed: 0 errors, 1 not found" in capsys.readouterr().out


def test_approve_is_refused_for_reviewer_role(run_cli, patched_session, capsys) -> None:
    assert run_cli(["approve", "1", "--role", "regional_manager"]) == 1
    assert "not allowed to approve" in capsys.readouterr().out
    assert patched_session.calls == []


def test_access_token_from_environment(run_cli, patched_session, monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CASEFLOW_ACCESS_TOKEN", "env-token")
    patched_session.queue({"data": {"updated": ["1"], "missing": [], "errors": []}})

    assert run_cli(["approve", "1", "--role", "admin"]) == 0
    assert patched_session.calls[0]["headers"]["Authorization"] == "Bearer env-token"


def test_env_token_is_not_written_to_disk(run_cli, patched_session, monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CASEFLOW_ACCESS_TOKEN", "env-token")
    patched_session.queue({"data": {"updated": ["1"], "missing": [], "errors": []}})

    assert run_cli(["review", "1", "--role", "admin"]) == 0
    assert not (tmp_path / "credentials.json").exists()


def test_validate_reports_unreadable_file(run_cli, tmp_path: Path, capsys) -> None:
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"garbage")

    assert run_cli(["validate", str(path)]) == 1
    assert "File, System: Failed to process file" in capsys.readouterr().out


def test_export_branch_without_region_is_rejected(run_cli, patched_session, tmp_path: Path, capsys) -> None:
    assert run_cli(["export", str(tmp_path / "o.csv"), "--branch-id", "b1"]) == 1
    assert "Select a region before choosing a branch" in capsys.readouterr().out
    assert patched_session.calls == []


def test_export_checks_branch_belongs_to_region(run_cli, patched_session, tmp_path: Path, capsys) -> None:
    patched_session.queue({"data": [{"id": "b2", "name": "Garki", "region_id": "r2"}]})

    assert run_cli(["export", str(tmp_path / "o.csv"), "--region-id", "r1", "--branch-id", "b2"]) == 1

    assert "does not belong to the selected region" in capsys.readouterr().out
    assert len(patched_session.calls) == 1
    assert patched_session.calls[0]["url"].endswith("/api/admin/branches")
    assert patched_session.calls[0]["params"] == {"region_id": "r1"}


def test_export_with_region_and_branch(run_cli, patched_session, claim_payload, tmp_path: Path) -> None:
    patched_session.queue({"data": [{"id": "b1", "name": "Ikeja"}]}, claim_payload)

    assert run_cli(["export", str(tmp_path / "o.csv"), "--region-id", "r1", "--branch-id", "b1"]) == 0

    params = patched_session.calls[1]["params"]
    assert (params["region_id"], params["branch_id"]) == ("r1", "b1")


def test_malformed_page_size_is_reported(run_cli, patched_session, monkeypatch, tmp_path: Path, capsys) -> None:
    monkeypatch.setenv("CASEFLOW_PER_PAGE", "twenty")

    assert run_cli(["export", str(tmp_path / "o.csv")]) == 1
    assert "CASEFLOW_PER_PAGE must be a number" in capsys.readouterr().out
    assert patched_session.calls == []
