"""Derived values and collection aggregates computed on normalized records."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, Optional, Tuple

from caseflow.core.models import CaseRecord

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
]


def parse_date(raw: Optional[str]) -> Optional[date]:
    """Parse the date formats the API and spreadsheets use; ``None`` otherwise."""

    if not raw:
        return None
    text = str(raw).strip()
    if "T" in text and len(text.split("T", 1)[0]) == 10:
        text = text.split("T", 1)[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def financial_difference(amount_requested: float, amount_paid: float) -> Tuple[float, float]:
    """Return ``(difference, difference_percent)``.

    A negative difference means more was paid than requested (a credit).
    The percentage is ``0`` when nothing was requested.
    """

    difference = amount_requested - amount_paid
    if not amount_requested:
        return difference, 0.0
    return difference, difference / amount_requested * 100


def processing_time_days(date_processed: Optional[str], date_paid: Optional[str]) -> Optional[int]:
    processed = parse_date(date_processed)
    paid = parse_date(date_paid)
    if processed is None or paid is None:
        return None
    return (paid - processed).days


def calculate_achievement(collected: float, target: float) -> float:
    return collected / target * 100 if target > 0 else 0.0


def recovery_rate(established: float, recovered: float) -> float:
    if not established:
        return 0.0
    return round(recovered / established * 100, 1)


def compliance_metrics(records: Iterable[CaseRecord]) -> Dict[str, float]:
    """Totals and overall performance rate across compliance entries."""

    collected = target = employers = employees = 0.0
    for record in records:
        collected += record.metrics.get("contribution_collected", 0.0)
        target += record.metrics.get("target", 0.0)
        employers += record.metrics.get("employers_registered", 0.0)
        employees += record.metrics.get("employees", 0.0)

    return {
        "total_actual_contributions": collected,
        "contributions_target": target,
        "performance_rate": calculate_achievement(collected, target),
        "total_employers": employers,
        "total_employees": employees,
    }


def legal_totals(records: Iterable[CaseRecord]) -> Dict[str, float]:
    totals = {
        "total_recalcitrant": 0.0,
        "total_defaulting": 0.0,
        "total_cases_instituted": 0.0,
    }
    for record in records:
        totals["total_recalcitrant"] += record.metrics.get("recalcitrant_employers", 0.0)
        totals["total_defaulting"] += record.metrics.get("defaulting_employers", 0.0)
        totals["total_cases_instituted"] += record.metrics.get("cases_instituted_in_court", 0.0)
    return totals


def claim_totals(records: Iterable[CaseRecord]) -> Dict[str, float]:
    requested = paid = 0.0
    count = 0
    for record in records:
        requested += record.financial.amount_requested
        paid += record.financial.amount_paid
        count += 1
    difference, percent = financial_difference(requested, paid)
    return {
        "count": count,
        "amount_requested": requested,
        "amount_paid": paid,
        "difference": difference,
        "difference_percent": percent,
    }
