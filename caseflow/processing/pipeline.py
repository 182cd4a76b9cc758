"""Import and export pipelines wiring reading, validation, the API and the sinks."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from caseflow.api.client import ApiClient
from caseflow.core.errors import CaseflowError, ImportRejected, LocalValidationError, TransportError
from caseflow.core.models import RECORD_KINDS, RECORD_STATUSES, CaseRecord, Period, UploadResult
from caseflow.core.utils import get_config_value, to_number
from caseflow.export.sinks import push_to_google_sheets, write_csv, write_excel, write_text
from caseflow.export.templates import (
    EXPORT_HEADERS,
    claim_report_filename,
    records_to_export_rows,
    render_claim_report,
)
from caseflow.ingestion.normalizer import (
    METRIC_KEYS,
    NORMALIZERS,
    extract_pagination,
    extract_records,
    normalize_claim,
    normalize_claim_detail,
    normalize_upload_response,
    record_to_wire,
)
from caseflow.ingestion.spreadsheet import read_rows
from caseflow.ingestion.validator import SCHEMAS, check_batch
from caseflow.processing.metrics import calculate_achievement
from caseflow.review.filters import FilterState, filter_records
from caseflow.review.lookups import check_branch_filter

DEFAULT_SERVICE_ACCOUNT_PATHS = [
    Path("secrets/service_account.json"),
    Path("credentials/service_account.json"),
]
MAX_EXPORT_PAGES = 500

ProgressCallback = Callable[[str, int, str], None]

logger = logging.getLogger(__name__)


def _report(progress_callback: Optional[ProgressCallback], stage: str, percentage: int, message: str) -> None:
    if progress_callback:
        progress_callback(stage, percentage, message)


def validate_file(path: Path, kind: str = "claims") -> List[Mapping[str, Any]]:
    """Read a spreadsheet and accept it only if every row passes validation."""

    if kind not in SCHEMAS:
        raise LocalValidationError(f"Unknown import kind {kind!r}; expected one of: {', '.join(SCHEMAS)}")
    rows = read_rows(Path(path))
    return check_batch(rows, SCHEMAS[kind])


def upload_claims(
    path: Path,
    client: ApiClient,
    progress_callback: Optional[ProgressCallback] = None,
) -> UploadResult:
    """Validate a claims workbook locally, then hand the whole file to the server.

    The server attributes the upload to the caller's region; nothing is sent
    when any row is invalid.
    """

    path = Path(path)
    _report(progress_callback, "validating", 10, "Validating file...")
    try:
        rows = validate_file(path, "claims")
        _report(progress_callback, "uploading", 50, f"Uploading {len(rows)} claim(s)...")
        result = normalize_upload_response(client.upload_claims_report(path))
    except ImportRejected as exc:
        _report(progress_callback, "error", 100, str(exc))
        raise
    except CaseflowError:
        _report(progress_callback, "error", 100, "Upload failed")
        raise

    logger.info("Uploaded %d claim(s) for region %s", result.uploaded_records, result.region or "unknown")
    _report(
        progress_callback,
        "complete",
        100,
        result.message or f"Successfully uploaded {result.uploaded_records} claims",
    )
    return result


def build_compliance_entries(
    rows: Sequence[Mapping[str, Any]],
    region: Optional[str],
    region_id: Optional[str] = None,
) -> List[CaseRecord]:
    """Turn validated compliance rows into local entries for the selected region."""

    if not region:
        raise LocalValidationError("Please select a region and upload a file")

    timestamp = datetime.now(timezone.utc).isoformat()
    entries: List[CaseRecord] = []
    for row in rows:
        collected = to_number(row.get("Contribution Collected"))
        target = to_number(row.get("Target"))
        entries.append(
            CaseRecord(
                id=uuid.uuid4().hex,
                kind="compliance",
                display_id=str(row.get("Branch") or ""),
                region=region,
                region_id=region_id,
                branch=str(row.get("Branch") or "") or None,
                period=Period(value=str(row.get("Period") or "") or None),
                metrics={
                    "contribution_collected": collected,
                    "target": target,
                    "achievement": round(calculate_achievement(collected, target), 2),
                    "employers_registered": to_number(row.get("Employers Registered")),
                    "employees": to_number(row.get("Employees")),
                    "registration_fees": to_number(row.get("Registration Fees")),
                    "certificate_fees": to_number(row.get("Certificate Fees")),
                },
                created_at=timestamp,
                updated_at=timestamp,
            )
        )
    return entries


def import_compliance(
    path: Path,
    region: Optional[str],
    region_id: Optional[str] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> List[CaseRecord]:
    if not region:
        raise LocalValidationError("Please select a region and upload a file")
    _report(progress_callback, "validating", 50, "Validating data...")
    try:
        rows = validate_file(path, "compliance")
    except ImportRejected as exc:
        _report(progress_callback, "error", 100, str(exc))
        raise
    except CaseflowError:
        _report(progress_callback, "error", 100, "Processing failed")
        raise
    entries = build_compliance_entries(rows, region, region_id)
    logger.info("Imported %d compliance entr(ies) for %s", len(entries), region)
    _report(progress_callback, "complete", 100, f"Successfully imported {len(entries)} records")
    return entries


def new_record(
    kind: str,
    region: Optional[str],
    region_id: Optional[str] = None,
    branch: Optional[str] = None,
    branch_id: Optional[str] = None,
    period: Optional[str] = None,
    target: Optional[float] = None,
) -> CaseRecord:
    """Build the zero-valued record produced by the manual entry form.

    The record has no id until the server stores it, so it cannot be
    selected for bulk actions. Compliance entries need a positive target.
    """

    if kind not in RECORD_KINDS:
        raise LocalValidationError(f"Unknown record kind {kind!r}; expected one of: {', '.join(RECORD_KINDS)}")
    if not (region or "").strip():
        raise LocalValidationError("Region is required")
    if kind == "compliance" and (target is None or target <= 0):
        raise LocalValidationError("Target must be greater than 0")

    metrics = {name: 0.0 for name in METRIC_KEYS[kind]}
    if kind == "compliance":
        metrics["target"] = float(target)

    timestamp = datetime.now(timezone.utc).isoformat()
    return CaseRecord(
        kind=kind,
        display_id=(branch or "").strip(),
        region=region.strip(),
        region_id=region_id,
        branch=(branch or "").strip() or None,
        branch_id=branch_id,
        period=Period.from_parts(period),
        metrics=metrics,
        created_at=timestamp,
        updated_at=timestamp,
    )


def persist_record(client: ApiClient, record: CaseRecord) -> CaseRecord:
    """Send a locally built record to the API and return the stored version."""

    if record.id:
        raise LocalValidationError("Record has already been saved")
    payload = record_to_wire(record)
    payload.update({"region_id": record.region_id, "branch_id": record.branch_id})
    payload = {key: value for key, value in payload.items() if value is not None}

    body = client.create_record(payload, kind=record.kind)
    stored = body.get("data") if isinstance(body, Mapping) else None
    if not isinstance(stored, Mapping) or not stored.get("id"):
        raise TransportError("Invalid API response")
    saved = NORMALIZERS[record.kind](stored)
    logger.info("Saved new %s record %s", record.kind, saved.id)
    return saved


def fetch_all_claims(client: ApiClient, state: FilterState, per_page: int) -> List[CaseRecord]:
    """Walk every manage-claims page for the server-side part of ``state``."""

    review_status = (state.record_status or "").strip().lower()
    records: List[CaseRecord] = []
    page = 1
    while page <= MAX_EXPORT_PAGES:
        payload = client.fetch_managed(
            "claim",
            page=page,
            per_page=per_page,
            record_status=review_status if review_status in RECORD_STATUSES else None,
            region_id=state.region_id,
            branch_id=state.branch_id,
            period=state.period,
        )
        raw_records = extract_records(payload)
        records.extend(normalize_claim(raw) for raw in raw_records)
        pagination = extract_pagination(payload, page, per_page, len(raw_records))
        logger.info("Fetched page %d/%d (%d record(s))", page, pagination.total_pages, len(raw_records))
        if pagination.degraded or not pagination.can_go_next or not raw_records:
            break
        page += 1
    return records


def _default_service_account_path() -> Optional[Path]:
    for candidate in DEFAULT_SERVICE_ACCOUNT_PATHS:
        if candidate.exists():
            return candidate
    return None


def resolve_sheets_target(
    spreadsheet_id: Optional[str] = None,
    worksheet_title: Optional[str] = None,
    explicit_account_path: Optional[Path] = None,
) -> Dict[str, Any]:
    spreadsheet_id = spreadsheet_id or get_config_value("GOOGLE_SHEETS_SPREADSHEET_ID")
    if not spreadsheet_id:
        raise LocalValidationError("spreadsheet_id is required when sink='sheets'")

    account_env = get_config_value("GOOGLE_SHEETS_SERVICE_ACCOUNT")
    account_path = explicit_account_path or (Path(account_env) if account_env else None)
    account_path = account_path or _default_service_account_path()
    if not account_path:
        raise LocalValidationError(
            "Provide --service-account pointing to your Google credentials or place a file at "
            f"{DEFAULT_SERVICE_ACCOUNT_PATHS[0]}"
        )

    return {
        "spreadsheet_id": spreadsheet_id,
        "worksheet_title": worksheet_title or get_config_value("GOOGLE_SHEETS_WORKSHEET", "Sheet1"),
        "service_account_path": account_path,
    }


def run_export(
    client: ApiClient,
    output_path: Path,
    state: Optional[FilterState] = None,
    sink: str = "csv",
    per_page: int = 20,
    spreadsheet_id: str | None = None,
    worksheet_title: str | None = None,
    service_account_path: Path | None = None,
) -> Path:
    """Fetch claims, apply the filters, and write them to the chosen sink."""

    state = state or FilterState()
    check_branch_filter(client, state.region_id, state.branch_id)
    logger.info("Export starting (sink=%s)", sink)
    records = fetch_all_claims(client, state, per_page)
    logger.info("Fetched %d claim(s)", len(records))
    records = filter_records(records, state)
    logger.info("%d claim(s) left after filtering", len(records))
    if not records:
        logger.warning("No claims matched the export filters; writing headers only")

    headers = EXPORT_HEADERS["claim"]
    rows = records_to_export_rows(records)
    if sink == "excel":
        write_excel(rows, output_path, headers=headers, sheet_title="claims")
        logger.info("Wrote Excel output to %s", output_path)
    elif sink == "sheets":
        target = resolve_sheets_target(spreadsheet_id, worksheet_title, service_account_path)
        push_to_google_sheets(
            rows,
            spreadsheet_id=target["spreadsheet_id"],
            worksheet_title=target["worksheet_title"],
            service_account_path=target["service_account_path"],
            headers=headers,
        )
        write_csv(rows, output_path, headers=headers)
    else:
        write_csv(rows, output_path, headers=headers)
        logger.info("Wrote CSV output to %s", output_path)
    return output_path


def export_claim_report(client: ApiClient, claim_id: str, output_dir: Path) -> Path:
    """Fetch one claim's detail and save it as a plain-text report."""

    record = normalize_claim_detail(client.fetch_claim_detail(claim_id))
    output_path = Path(output_dir) / claim_report_filename(record)
    write_text(render_claim_report(record), output_path)
    logger.info("Wrote claim report to %s", output_path)
    return output_path
