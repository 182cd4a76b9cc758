"""Map wire-format API payloads onto canonical :class:`CaseRecord` objects.

This module is the single boundary where raw response shapes are inspected.
Every function here is pure and total: missing or malformed optional fields
become ``None``, ``0`` or empty collections instead of raising.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from caseflow.core.models import (
    CLAIM_STATUSES,
    CLAIM_TYPES,
    RECORD_STATUSES,
    Branch,
    CaseRecord,
    Classification,
    Financial,
    PaginationState,
    Period,
    Region,
    Timeline,
    UploadResult,
)
from caseflow.core.utils import clean_text, to_number
from caseflow.processing.metrics import (
    calculate_achievement,
    financial_difference,
    processing_time_days,
)

logger = logging.getLogger(__name__)

COLLECTION_KEYS = (
    "results",
    "records",
    "summary_table",
    "inspection_summary",
    "regional_summary",
)

COMPLIANCE_METRICS = (
    "contribution_collected",
    "target",
    "achievement",
    "employers_registered",
    "employees",
    "registration_fees",
    "certificate_fees",
)
LEGAL_METRICS = (
    "recalcitrant_employers",
    "defaulting_employers",
    "plan_issued",
    "alternate_dispute_resolution",
    "cases_instituted_in_court",
    "cases_won",
)
INSPECTION_METRICS = (
    "inspections_conducted",
    "debt_established",
    "debt_recovered",
    "performance_rate",
    "demand_notice",
)
METRIC_KEYS = {
    "claim": (),
    "compliance": COMPLIANCE_METRICS,
    "legal": LEGAL_METRICS,
    "inspection": INSPECTION_METRICS,
}

_CLAIM_STATUS_MAP = {
    "paid": "Paid",
    "pending": "Pending",
    "rejected": "Rejected",
    "under_review": "Under Review",
    "under review": "Under Review",
}

_CLAIM_TYPE_MAP = {
    "medical refund": "Medical Refund",
    "medical_refund": "Medical Refund",
    "disability": "Disability",
    "death claim": "Death Claim",
    "death_claim": "Death Claim",
    "loss of productivity": "Loss of Productivity",
    "loss_of_productivity": "Loss of Productivity",
}


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among alternative wire names."""

    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _identifier(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _text(value: Any) -> str:
    return clean_text(value) or ""


def _location(raw: Mapping[str, Any], name: str) -> tuple[Optional[str], Optional[str]]:
    """Return ``(label, id)`` for a region or branch given flat or nested wire shapes."""

    value = raw.get(name)
    if isinstance(value, Mapping):
        label = clean_text(_first(value, "name", "title"))
        identifier = _identifier(_first(value, "id", f"{name}_id"))
        return label, _identifier(raw.get(f"{name}_id")) or identifier
    return clean_text(value), _identifier(raw.get(f"{name}_id"))


def _sectors(value: Any) -> List[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, Iterable) and not isinstance(value, Mapping):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return []


def normalize_record_status(value: Any) -> str:
    lowered = str(value or "").strip().lower()
    return lowered if lowered in RECORD_STATUSES else "pending"


def normalize_claim_status(value: Any) -> str:
    lowered = str(value or "").strip().lower()
    if lowered in _CLAIM_STATUS_MAP:
        return _CLAIM_STATUS_MAP[lowered]
    for label in CLAIM_STATUSES:
        if label.lower() == lowered:
            return label
    return "Pending"


def normalize_claim_type(value: Any) -> str:
    lowered = str(value or "").strip().lower()
    return _CLAIM_TYPE_MAP.get(lowered, CLAIM_TYPES[0])


def _audit_fields(raw: Mapping[str, Any]) -> Dict[str, Optional[str]]:
    return {
        "record_status": normalize_record_status(raw.get("record_status")),
        "reviewed_by": clean_text(raw.get("reviewed_by")),
        "approved_by": clean_text(raw.get("approved_by")),
        "created_at": clean_text(raw.get("created_at")),
        "updated_at": clean_text(raw.get("updated_at")),
    }


def _base_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    region, region_id = _location(raw, "region")
    branch, branch_id = _location(raw, "branch")
    fields: Dict[str, Any] = {
        "id": _identifier(raw.get("id")),
        "region": region,
        "region_id": region_id,
        "branch": branch,
        "branch_id": branch_id,
        "period": Period(value=clean_text(_first(raw, "period", "activities_period"))),
    }
    fields.update(_audit_fields(raw))
    return fields


def normalize_claim(raw: Any) -> CaseRecord:
    """Normalize one claim row from the dashboard or manage-claims endpoints."""

    raw = _mapping(raw)
    amount_requested = to_number(raw.get("amount_requested"))
    amount_paid = to_number(raw.get("amount_paid"))
    difference, difference_percent = financial_difference(amount_requested, amount_paid)
    date_processed = clean_text(raw.get("date_processed"))
    date_paid = clean_text(raw.get("date_paid"))

    return CaseRecord(
        kind="claim",
        display_id=_text(_first(raw, "claim_id", "claim_number", "ecs_number", "id")),
        status=normalize_claim_status(raw.get("status")),
        type=normalize_claim_type(raw.get("type")),
        employer=_text(_first(raw, "employer", "employer_name")),
        claimant=_text(_first(raw, "claimant", "claimant_name")),
        financial=Financial(
            amount_requested=amount_requested,
            amount_paid=amount_paid,
            difference=difference,
            difference_percent=difference_percent,
        ),
        classification=Classification(
            sector=clean_text(raw.get("sector")),
            claim_class=clean_text(raw.get("class")),
            payment_period=clean_text(raw.get("payment_period")),
        ),
        timeline=Timeline(
            date_processed=date_processed,
            date_paid=date_paid,
            processing_time_days=processing_time_days(date_processed, date_paid),
        ),
        **_base_fields(raw),
    )


def normalize_claim_detail(payload: Any) -> CaseRecord:
    """Normalize either detail endpoint into a claim record.

    The dashboard detail endpoint nests ``financial``, ``timeline`` and
    ``classification`` blocks and reports derived values itself; those are
    kept when present and computed from the raw amounts otherwise. The
    manage-claims detail endpoint returns a flat record.
    """

    body = _mapping(payload)
    if isinstance(body.get("data"), Mapping):
        body = body["data"]

    if not any(isinstance(body.get(key), Mapping) for key in ("financial", "timeline", "classification")):
        return normalize_claim(body)

    financial_raw = _mapping(body.get("financial"))
    timeline_raw = _mapping(body.get("timeline"))
    classification_raw = _mapping(body.get("classification"))

    blocks = ("financial", "timeline", "classification")
    flat = {key: value for key, value in body.items() if key not in blocks}
    flat.update(
        {
            "amount_requested": financial_raw.get("amount_requested"),
            "amount_paid": financial_raw.get("amount_paid"),
            "date_processed": timeline_raw.get("date_processed"),
            "date_paid": timeline_raw.get("date_paid"),
            "sector": classification_raw.get("sector"),
            "class": classification_raw.get("class"),
            "payment_period": classification_raw.get("payment_period"),
        }
    )
    record = normalize_claim(flat)

    if financial_raw.get("difference") is not None:
        record.financial.difference = to_number(financial_raw["difference"])
    if financial_raw.get("difference_pct") is not None:
        record.financial.difference_percent = to_number(financial_raw["difference_pct"])
    if timeline_raw.get("processing_time_days") is not None:
        record.timeline.processing_time_days = int(to_number(timeline_raw["processing_time_days"]))
    return record


def normalize_compliance_entry(raw: Any) -> CaseRecord:
    raw = _mapping(raw)
    collected = to_number(_first(raw, "contribution_collected", "collected"))
    target = to_number(raw.get("target"))
    achievement_raw = _first(raw, "achievement", "performance_rate")
    achievement = (
        to_number(achievement_raw)
        if achievement_raw is not None
        else round(calculate_achievement(collected, target), 2)
    )

    metrics = {
        "contribution_collected": collected,
        "target": target,
        "achievement": achievement,
        "employers_registered": to_number(_first(raw, "employers_registered", "employers")),
        "employees": to_number(raw.get("employees")),
        "registration_fees": to_number(raw.get("registration_fees")),
        "certificate_fees": to_number(raw.get("certificate_fees")),
    }
    fields = _base_fields(raw)
    return CaseRecord(
        kind="compliance",
        display_id=_text(_first(raw, "id", "branch")),
        metrics=metrics,
        **fields,
    )


def normalize_legal_record(raw: Any) -> CaseRecord:
    raw = _mapping(raw)
    metrics = {
        "recalcitrant_employers": to_number(raw.get("recalcitrant_employers")),
        "defaulting_employers": to_number(raw.get("defaulting_employers")),
        "plan_issued": to_number(raw.get("plan_issued")),
        "alternate_dispute_resolution": to_number(_first(raw, "alternate_dispute_resolution", "adr")),
        "cases_instituted_in_court": to_number(_first(raw, "cases_instituted_in_court", "cases_instituted")),
        "cases_won": to_number(raw.get("cases_won")),
    }
    return CaseRecord(
        kind="legal",
        display_id=_text(_first(raw, "ecs_number", "id")),
        metrics=metrics,
        sectors=_sectors(_first(raw, "sector", "sectors")),
        **_base_fields(raw),
    )


def normalize_inspection_record(raw: Any) -> CaseRecord:
    raw = _mapping(raw)
    metrics = {name: to_number(raw.get(name)) for name in INSPECTION_METRICS}
    return CaseRecord(
        kind="inspection",
        display_id=_text(_first(raw, "id", "branch")),
        metrics=metrics,
        **_base_fields(raw),
    )


NORMALIZERS: Dict[str, Callable[[Any], CaseRecord]] = {
    "claim": normalize_claim,
    "compliance": normalize_compliance_entry,
    "legal": normalize_legal_record,
    "inspection": normalize_inspection_record,
}


def extract_records(payload: Any) -> List[Mapping[str, Any]]:
    """Unwrap the list of raw records from any of the envelope shapes the API uses."""

    candidate = payload
    for _ in range(3):
        if isinstance(candidate, list):
            return [item for item in candidate if isinstance(item, Mapping)]
        if not isinstance(candidate, Mapping):
            break
        nested = next((candidate[key] for key in COLLECTION_KEYS if key in candidate), None)
        if nested is None and "claims_table" in candidate:
            nested = candidate["claims_table"]
        if nested is None:
            nested = candidate.get("data")
        candidate = nested
    if isinstance(candidate, list):
        return [item for item in candidate if isinstance(item, Mapping)]
    logger.warning("No record collection found in payload of type %s", type(payload).__name__)
    return []


def normalize_records(payload: Any, kind: str = "claim") -> List[CaseRecord]:
    normalizer = NORMALIZERS[kind]
    return [normalizer(raw) for raw in extract_records(payload)]


def extract_pagination(payload: Any, page: int, per_page: int, returned: int) -> PaginationState:
    """Trust backend paging metadata; fall back to a single page holding everything."""

    candidates = [_mapping(payload)]
    data = _mapping(payload).get("data")
    if isinstance(data, Mapping):
        candidates.append(data)
        candidates.append(_mapping(data.get("claims_table")))

    for meta in candidates:
        total_pages = _first(meta, "total_pages", "totalPages")
        total_count = _first(meta, "count", "total_count", "totalCount")
        if total_pages is not None or total_count is not None:
            count = int(to_number(total_count)) if total_count is not None else returned
            pages = int(to_number(total_pages)) if total_pages is not None else max(
                1, -(-count // max(per_page, 1))
            )
            return PaginationState(
                page=int(to_number(_first(meta, "page") or page)),
                per_page=int(to_number(_first(meta, "per_page") or per_page)),
                total_pages=max(pages, 1),
                total_count=count,
            )

    return PaginationState(page=page, per_page=per_page, total_pages=1, total_count=returned, degraded=True)


def normalize_region(raw: Any) -> Region:
    raw = _mapping(raw)
    return Region(
        id=_identifier(raw.get("id")) or "",
        name=_text(_first(raw, "name", "region")),
        code=clean_text(raw.get("code")),
    )


def normalize_branch(raw: Any) -> Branch:
    raw = _mapping(raw)
    region_id = _identifier(raw.get("region_id"))
    if region_id is None and isinstance(raw.get("region"), Mapping):
        region_id = _identifier(raw["region"].get("id"))
    return Branch(
        id=_identifier(raw.get("id")) or "",
        name=_text(_first(raw, "name", "branch")),
        region_id=region_id,
    )


def normalize_upload_response(payload: Any) -> UploadResult:
    body = _mapping(payload)
    if isinstance(body.get("data"), Mapping) and "uploaded_records" not in body:
        body = body["data"]
    return UploadResult(
        uploaded_records=int(to_number(body.get("uploaded_records"))),
        region=_text(body.get("region")),
        message=_text(body.get("message")),
    )


def record_to_wire(record: CaseRecord) -> Dict[str, Any]:
    """Serialize the editable fields of a record back to the API's snake_case shape."""

    if record.kind == "claim":
        return {
            "claim_id": record.display_id,
            "employer": record.employer,
            "claimant": record.claimant,
            "type": record.type,
            "amount_requested": record.financial.amount_requested,
            "amount_paid": record.financial.amount_paid,
            "date_processed": record.timeline.date_processed,
            "date_paid": record.timeline.date_paid,
            "sector": record.classification.sector,
            "class": record.classification.claim_class,
            "payment_period": record.classification.payment_period,
        }
    payload: Dict[str, Any] = dict(record.metrics)
    if record.kind == "legal":
        payload["ecs_number"] = record.display_id
        payload["sector"] = list(record.sectors)
    if record.period.value:
        payload["period"] = record.period.value
    return payload
