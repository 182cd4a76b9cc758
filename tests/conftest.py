"""Pytest configuration and shared doubles for the caseflow tests."""
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import requests

# Ensure repository root is on sys.path for module resolution
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from caseflow.api.client import ApiClient
from caseflow.api.credentials import InMemoryCredentialStore
from caseflow.cli import main as cli_main


class FakeResponse:
    """Just enough of :class:`requests.Response` for the client."""

    def __init__(self, payload: Any = None, status_code: int = 200, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is not None:
            self.content = text.encode("utf-8")
        else:
            self.content = b"" if payload is None else json.dumps(payload).encode("utf-8")

    def json(self) -> Any:
        if not self.content:
            raise ValueError("No JSON body")
        return json.loads(self.content)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error for url", response=self)


class FakeSession:
    """Records every request and replies from a queue of responses."""

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected request {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, FakeResponse):
            return response
        return FakeResponse(response)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from real env files, credentials and API hosts."""

    monkeypatch.setenv("CASEFLOW_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("CASEFLOW_CREDENTIALS_FILE", str(tmp_path / "credentials.json"))
    monkeypatch.setenv("CASEFLOW_API_URL", "http://api.test")
    for key in (
        "CASEFLOW_ACCESS_TOKEN",
        "CASEFLOW_TIMEOUT",
        "CASEFLOW_PER_PAGE",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "GOOGLE_SHEETS_WORKSHEET",
        "GOOGLE_SHEETS_SERVICE_ACCOUNT",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def credentials() -> InMemoryCredentialStore:
    return InMemoryCredentialStore(
        accessToken="token-123",
        refreshToken="refresh-456",
        user={"id": "u1", "role": "admin"},
    )


@pytest.fixture
def api_client(fake_session: FakeSession, credentials: InMemoryCredentialStore) -> ApiClient:
    return ApiClient(base_url="http://api.test", credentials=credentials, session=fake_session)


@pytest.fixture
def claim_payload() -> Dict[str, Any]:
    """A manage-claims listing as the API returns it."""

    return {
        "message": "Claims retrieved",
        "data": [
            {
                "id": "1",
                "claim_id": "CLM-001",
                "employer": "Acme Ltd",
                "claimant": "Ada Obi",
                "type": "medical_refund",
                "status": "paid",
                "amount_requested": "100000",
                "amount_paid": 80000,
                "date_processed": "2025-01-10",
                "date_paid": "2025-01-20",
                "record_status": "pending",
                "region": {"id": "r1", "name": "Lagos"},
                "branch": {"id": "b1", "name": "Ikeja"},
                "period": "2025-01",
            },
            {
                "id": "2",
                "claim_id": "CLM-002",
                "employer": "Beta Foods",
                "claimant": "Musa Bello",
                "type": "Disability",
                "status": "under_review",
                "amount_requested": 50000,
                "amount_paid": 50000,
                "date_processed": "2025-02-01",
                "record_status": "reviewed",
                "region_id": "r2",
                "region": "Abuja",
                "branch_id": "b2",
                "branch": "Garki",
                "period": "2025-02",
            },
        ],
    }


@pytest.fixture
def write_workbook(tmp_path: Path):
    """Build an .xlsx file from a header row and data rows."""

    from openpyxl import Workbook

    def _write(headers: List[str], rows: List[List[Any]], name: str = "upload.xlsx") -> Path:
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(headers)
        for row in rows:
            sheet.append(row)
        path = tmp_path / name
        workbook.save(path)
        return path

    return _write


@pytest.fixture
def run_cli(monkeypatch: pytest.MonkeyPatch):
    """Helper to invoke the CLI with custom arguments inside tests."""

    def _run(args: List[str]) -> int:
        monkeypatch.setattr(sys, "argv", ["caseflow", *args])
        return cli_main()

    return _run


@pytest.fixture
def fake_response():
    """Factory for canned HTTP responses (status codes, raw bodies)."""

    return FakeResponse
