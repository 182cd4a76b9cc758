"""Row and report layouts for exported records."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from caseflow.core.models import CaseRecord
from caseflow.ingestion.validator import CLAIMS_SCHEMA, COMPLIANCE_SCHEMA
from caseflow.processing.metrics import parse_date

CLAIMS_EXPORT_HEADERS = list(CLAIMS_SCHEMA.headers) + ["Record Status", "Region", "Branch", "Period"]
COMPLIANCE_EXPORT_HEADERS = ["Region"] + list(COMPLIANCE_SCHEMA.headers) + ["Achievement", "Record Status"]
LEGAL_EXPORT_HEADERS = [
    "ECS Number",
    "Region",
    "Branch",
    "Period",
    "Recalcitrant Employers",
    "Defaulting Employers",
    "Plan Issued",
    "ADR",
    "Cases Instituted",
    "Cases Won",
    "Sectors",
    "Record Status",
]
INSPECTION_EXPORT_HEADERS = [
    "Branch",
    "Period",
    "Inspections Conducted",
    "Debt Established",
    "Debt Recovered",
    "Performance Rate",
    "Demand Notice",
    "Record Status",
]

EXPORT_HEADERS = {
    "claim": CLAIMS_EXPORT_HEADERS,
    "compliance": COMPLIANCE_EXPORT_HEADERS,
    "legal": LEGAL_EXPORT_HEADERS,
    "inspection": INSPECTION_EXPORT_HEADERS,
}


def _text(value: Optional[Any]) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def _amount(value: float) -> str:
    return f"{value:.2f}"


def _count(value: float) -> Any:
    return int(value) if float(value).is_integer() else value


def record_to_export_row(record: CaseRecord) -> Dict[str, Any]:
    """Convert a record into the spreadsheet row for its kind."""

    period = _text(record.period.value)
    if record.kind == "claim":
        return {
            "Claim ID": _text(record.display_id),
            "Employer": _text(record.employer),
            "Claimant": _text(record.claimant),
            "Type": record.type,
            "Amount Requested": _amount(record.financial.amount_requested),
            "Amount Paid": _amount(record.financial.amount_paid),
            "Status": record.status,
            "Date Processed": _text(record.timeline.date_processed),
            "Date Paid": _text(record.timeline.date_paid),
            "Sector": _text(record.classification.sector),
            "Class": _text(record.classification.claim_class),
            "Payment Period": _text(record.classification.payment_period),
            "Record Status": record.record_status,
            "Region": _text(record.region),
            "Branch": _text(record.branch),
            "Period": period,
        }

    metrics = record.metrics
    if record.kind == "compliance":
        return {
            "Region": _text(record.region),
            "Branch": _text(record.branch),
            "Contribution Collected": _amount(metrics.get("contribution_collected", 0.0)),
            "Target": _amount(metrics.get("target", 0.0)),
            "Employers Registered": _count(metrics.get("employers_registered", 0.0)),
            "Employees": _count(metrics.get("employees", 0.0)),
            "Registration Fees": _amount(metrics.get("registration_fees", 0.0)),
            "Certificate Fees": _amount(metrics.get("certificate_fees", 0.0)),
            "Period": period,
            "Achievement": f"{metrics.get('achievement', 0.0):.2f}",
            "Record Status": record.record_status,
        }
    if record.kind == "legal":
        return {
            "ECS Number": _text(record.display_id),
            "Region": _text(record.region),
            "Branch": _text(record.branch),
            "Period": period,
            "Recalcitrant Employers": _count(metrics.get("recalcitrant_employers", 0.0)),
            "Defaulting Employers": _count(metrics.get("defaulting_employers", 0.0)),
            "Plan Issued": _count(metrics.get("plan_issued", 0.0)),
            "ADR": _count(metrics.get("alternate_dispute_resolution", 0.0)),
            "Cases Instituted": _count(metrics.get("cases_instituted_in_court", 0.0)),
            "Cases Won": _count(metrics.get("cases_won", 0.0)),
            "Sectors": ", ".join(record.sectors),
            "Record Status": record.record_status,
        }
    return {
        "Branch": _text(record.branch),
        "Period": period,
        "Inspections Conducted": _count(metrics.get("inspections_conducted", 0.0)),
        "Debt Established": _amount(metrics.get("debt_established", 0.0)),
        "Debt Recovered": _amount(metrics.get("debt_recovered", 0.0)),
        "Performance Rate": f"{metrics.get('performance_rate', 0.0):.1f}",
        "Demand Notice": _count(metrics.get("demand_notice", 0.0)),
        "Record Status": record.record_status,
    }


def records_to_export_rows(records: Iterable[CaseRecord]) -> List[Dict[str, Any]]:
    return [record_to_export_row(record) for record in records]


def format_currency(amount: float) -> str:
    """Naira amounts without decimals, e.g. ``₦100,000`` or ``-₦5,000``."""

    sign = "-" if amount < 0 else ""
    return f"{sign}₦{abs(amount):,.0f}"


def format_report_date(raw: Optional[str]) -> str:
    if not raw:
        return "Not available"
    parsed = parse_date(raw)
    return parsed.strftime("%d %B %Y") if parsed else raw


def render_claim_report(record: CaseRecord) -> str:
    """Plain-text summary of one claim, saved as ``claim-<id>.txt``."""

    financial = record.financial
    timeline = record.timeline
    classification = record.classification
    processing = (
        f"{timeline.processing_time_days} days" if timeline.processing_time_days is not None else "N/A"
    )
    lines = [
        "CLAIM DETAILS",
        "=============",
        "",
        f"Claim ID: {record.display_id}",
        f"Employer: {record.employer}",
        f"Claimant: {record.claimant}",
        f"Type: {record.type}",
        f"Status: {record.status}",
        "",
        "FINANCIAL INFORMATION",
        "=====================",
        f"Amount Requested: {format_currency(financial.amount_requested)}",
        f"Amount Paid: {format_currency(financial.amount_paid)}",
        f"Difference: {format_currency(financial.difference)} ({financial.difference_percent:.2f}%)",
        "",
        "TIMELINE",
        "========",
        f"Date Processed: {format_report_date(timeline.date_processed)}",
        f"Date Paid: {format_report_date(timeline.date_paid)}",
        f"Processing Time: {processing}",
        "",
        "CLASSIFICATION",
        "==============",
        f"Sector: {classification.sector or 'N/A'}",
        f"Class: {classification.claim_class or 'N/A'}",
        f"Payment Period: {classification.payment_period or 'N/A'}",
    ]
    return "\n".join(lines)


def claim_report_filename(record: CaseRecord) -> str:
    return f"claim-{record.display_id or record.id}.txt"
