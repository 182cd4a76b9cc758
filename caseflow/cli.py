"""Command line entry point for validating, uploading, exporting and reviewing records."""
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from caseflow.api.client import ApiClient
from caseflow.api.credentials import ACCESS_TOKEN, USER, CredentialStore, FileCredentialStore, InMemoryCredentialStore
from caseflow.core.errors import CaseflowError, ImportRejected, LocalValidationError
from caseflow.core.logging import configure_logging
from caseflow.core.models import Period
from caseflow.core.utils import get_config_number, get_config_value
from caseflow.ingestion.validator import SCHEMAS
from caseflow.processing.pipeline import export_claim_report, run_export, upload_claims, validate_file
from caseflow.review.bulk import BulkActionCoordinator
from caseflow.review.filters import FilterState

DEFAULT_CREDENTIALS_FILE = "~/.caseflow/credentials.json"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with one sub-command per workflow."""

    parser = argparse.ArgumentParser(prog="caseflow", description="Manage claims records against the agency API")
    parser.add_argument("--log-level", help="Override LOG_LEVEL for this run")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Check a spreadsheet without uploading it")
    validate.add_argument("file", type=Path, help="Excel or CSV file to validate")
    validate.add_argument("--kind", choices=sorted(SCHEMAS), default="claims", help="Spreadsheet template")

    upload = subparsers.add_parser("upload", help="Validate and upload a claims report")
    upload.add_argument("file", type=Path, help="Excel or CSV claims report")

    export = subparsers.add_parser("export", help="Export filtered claims")
    export.add_argument("output", type=Path, help="File to write (CSV or Excel)")
    export.add_argument("--status", default="all", help="Claim display status (Paid, Pending, ...); 'all' disables")
    export.add_argument(
        "--record-status",
        choices=["all", "pending", "reviewed", "approved"],
        default="all",
        help="Review status, filtered on the server",
    )
    export.add_argument("--type", default="all", help="Claim type; 'all' disables")
    export.add_argument("--region-id", help="Only claims from this region")
    export.add_argument("--branch-id", help="Only claims from this branch (requires --region-id)")
    period = export.add_mutually_exclusive_group()
    period.add_argument("--period", help="Single period (YYYY-MM)")
    period.add_argument("--period-from", help="Range start (YYYY-MM)")
    export.add_argument("--period-to", help="Range end (YYYY-MM)")
    export.add_argument("--search", default="", help="Match claim id, employer or claimant")
    export.add_argument("--sink", choices=["csv", "excel", "sheets"], default="csv")
    export.add_argument("--per-page", type=int, help="Page size used while fetching")
    export.add_argument("--spreadsheet-id", help="Google Sheets spreadsheet ID for the sheets sink")
    export.add_argument("--worksheet", help="Worksheet title inside the Google Sheets document")
    export.add_argument(
        "--service-account",
        type=Path,
        help="Path to a Google service account JSON key used for Sheets pushes",
    )

    report = subparsers.add_parser("report", help="Save one claim's detail as a text report")
    report.add_argument("claim_id")
    report.add_argument("--output-dir", type=Path, default=Path("output"))

    for action in ("review", "approve"):
        command = subparsers.add_parser(action, help=f"Bulk {action} claims by id")
        command.add_argument("ids", nargs="+", help="Claim ids")
        command.add_argument("--role", help="Acting role; defaults to the stored user's role")
    return parser


def build_credentials() -> CredentialStore:
    store = FileCredentialStore(Path(get_config_value("CASEFLOW_CREDENTIALS_FILE", DEFAULT_CREDENTIALS_FILE)))
    token = get_config_value("CASEFLOW_ACCESS_TOKEN")
    if token:
        # keep the role of the stored user but never write the token to disk
        return InMemoryCredentialStore(**{ACCESS_TOKEN: token, USER: store.user})
    return store


def _per_page(value: Optional[int]) -> int:
    per_page = value or int(get_config_number("CASEFLOW_PER_PAGE", 20))
    if per_page < 1:
        raise LocalValidationError(f"Page size must be 1 or greater, got {per_page}")
    return per_page


def _print_rejection(exc: ImportRejected) -> None:
    print(str(exc))
    for error in exc.errors:
        location = f"Row {error.row}" if error.row else "File"
        value = f' (value: "{error.value}")' if error.value else ""
        print(f"  {location}, {error.column}: {error.message}{value}")


def _run(args: argparse.Namespace) -> int:
    if args.command == "validate":
        rows = validate_file(args.file, args.kind)
        print(f"{len(rows)} row(s) are valid")
        return 0

    client = ApiClient.from_config(credentials=build_credentials())

    if args.command == "upload":
        result = upload_claims(
            args.file,
            client,
            progress_callback=lambda stage, percentage, message: logger.info("[%s %d%%] %s", stage, percentage, message),
        )
        print(f"Uploaded {result.uploaded_records} claim(s) for region {result.region or 'unknown'}")
        return 0

    if args.command == "export":
        state = FilterState(
            search=args.search,
            status=args.status,
            record_status=args.record_status,
            type=args.type,
            region_id=args.region_id,
            branch_id=args.branch_id,
            period=Period.from_parts(args.period, args.period_from, args.period_to),
        )
        output_path = run_export(
            client,
            args.output,
            state=state,
            sink=args.sink,
            per_page=_per_page(args.per_page),
            spreadsheet_id=args.spreadsheet_id,
            worksheet_title=args.worksheet,
            service_account_path=args.service_account,
        )
        print(f"Wrote {output_path}")
        return 0

    if args.command == "report":
        output_path = export_claim_report(client, args.claim_id, args.output_dir)
        print(f"Wrote {output_path}")
        return 0

    coordinator = BulkActionCoordinator(client, role=args.role or client.credentials.role)
    outcome = coordinator.run(args.ids, args.command)
    if outcome.ok:
        print(outcome.result.summary())
        return 0
    print(outcome.error or "No claims were updated")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Entrypoint for the ``caseflow`` command."""

    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        return _run(args)
    except ImportRejected as exc:
        _print_rejection(exc)
        return 1
    except CaseflowError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
