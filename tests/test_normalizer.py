"""Normalization of loosely-typed API payloads into case records."""
import math
from dataclasses import fields

import pytest

from caseflow.core.models import CaseRecord
from caseflow.ingestion.normalizer import (
    COMPLIANCE_METRICS,
    INSPECTION_METRICS,
    LEGAL_METRICS,
    extract_pagination,
    extract_records,
    normalize_branch,
    normalize_claim,
    normalize_claim_detail,
    normalize_compliance_entry,
    normalize_inspection_record,
    normalize_legal_record,
    normalize_records,
    normalize_upload_response,
    record_to_wire,
)


@pytest.mark.parametrize("raw", [{}, None, "garbage", {"amount_requested": None, "region": None}])
def test_normalize_claim_is_total(raw):
    record = normalize_claim(raw)
    assert isinstance(record, CaseRecord)
    for item in fields(CaseRecord):
        assert hasattr(record, item.name)
    assert record.id is None
    assert record.record_status == "pending"
    assert record.status == "Pending"
    assert record.type == "Medical Refund"
    assert record.financial.amount_requested == 0
    assert record.financial.difference_percent == 0
    assert record.timeline.processing_time_days is None
    assert record.sectors == []
    assert not record.selectable


def test_malformed_numbers_become_zero():
    record = normalize_claim({"amount_requested": "abc", "amount_paid": float("nan")})
    assert record.financial.amount_requested == 0.0
    assert record.financial.amount_paid == 0.0
    assert not math.isnan(record.financial.difference)


def test_normalize_claim_maps_wire_fields(claim_payload):
    record = normalize_claim(claim_payload["data"][0])
    assert record.id == "1"
    assert record.display_id == "CLM-001"
    assert record.status == "Paid"
    assert record.type == "Medical Refund"
    assert record.region == "Lagos"
    assert record.region_id == "r1"
    assert record.branch_id == "b1"
    assert record.period.value == "2025-01"
    assert record.financial.difference == 20000
    assert record.financial.difference_percent == pytest.approx(20.0)
    assert record.timeline.processing_time_days == 10


def test_overpayment_shows_as_negative_difference():
    record = normalize_claim({"amount_requested": 1000, "amount_paid": 1500})
    assert record.financial.difference == -500
    assert record.financial.difference_percent == pytest.approx(-50.0)


def test_unknown_statuses_fall_back():
    record = normalize_claim({"status": "weird", "type": "other", "record_status": "archived"})
    assert record.status == "Pending"
    assert record.type == "Medical Refund"
    assert record.record_status == "pending"


@pytest.mark.parametrize(
    "payload",
    [
        [{"id": "1"}, {"id": "2"}],
        {"message": "ok", "data": [{"id": "1"}, {"id": "2"}]},
        {"data": {"data": [{"id": "1"}, {"id": "2"}]}},
        {"data": {"results": [{"id": "1"}, {"id": "2"}]}},
        {"data": {"claims_table": {"data": [{"id": "1"}, {"id": "2"}]}}},
    ],
)
def test_extract_records_unwraps_envelopes(payload):
    assert [raw["id"] for raw in extract_records(payload)] == ["1", "2"]


def test_extract_records_logs_unknown_shapes(caplog):
    caplog.set_level("WARNING")
    assert extract_records({"message": "nothing here"}) == []
    assert "No record collection found" in caplog.text


def test_detail_uses_server_reported_values():
    payload = {
        "data": {
            "id": "9",
            "claim_id": "CLM-009",
            "financial": {
                "amount_requested": 100000,
                "amount_paid": 80000,
                "difference": 20000,
                "difference_pct": 20,
            },
            "timeline": {"date_processed": "2025-01-01", "date_paid": "2025-01-31", "processing_time_days": 30},
            "classification": {"sector": "Oil", "class": "A", "payment_period": "Q1"},
        }
    }
    record = normalize_claim_detail(payload)
    assert record.id == "9"
    assert record.classification.claim_class == "A"
    assert record.timeline.processing_time_days == 30
    # locally derived values agree with the server's
    recomputed = normalize_claim({"amount_requested": 100000, "amount_paid": 80000})
    assert recomputed.financial.difference == pytest.approx(record.financial.difference)
    assert recomputed.financial.difference_percent == pytest.approx(record.financial.difference_percent)


def test_flat_detail_is_treated_as_a_claim_row(claim_payload):
    record = normalize_claim_detail({"data": claim_payload["data"][1]})
    assert record.display_id == "CLM-002"
    assert record.status == "Under Review"


def test_kind_specific_metrics_are_default_filled():
    assert set(normalize_compliance_entry({}).metrics) == set(COMPLIANCE_METRICS)
    assert set(normalize_legal_record({}).metrics) == set(LEGAL_METRICS)
    assert set(normalize_inspection_record({}).metrics) == set(INSPECTION_METRICS)


def test_compliance_achievement_is_computed_when_missing():
    record = normalize_compliance_entry({"contribution_collected": 75, "target": 200})
    assert record.metrics["achievement"] == 37.5
    assert normalize_compliance_entry({"contribution_collected": 5, "target": 0}).metrics["achievement"] == 0


def test_legal_record_accepts_aliases_and_sector_lists():
    record = normalize_legal_record({"ecs_number": "ECS-1", "adr": "3", "sector": "Oil, Gas"})
    assert record.display_id == "ECS-1"
    assert record.metrics["alternate_dispute_resolution"] == 3
    assert record.sectors == ["Oil", "Gas"]


def test_normalize_records_uses_kind():
    records = normalize_records({"data": [{"id": "x", "debt_established": "10"}]}, kind="inspection")
    assert records[0].kind == "inspection"
    assert records[0].metrics["debt_established"] == 10


def test_pagination_trusts_backend_metadata():
    state = extract_pagination({"data": [], "total_pages": 4, "count": 80}, page=2, per_page=20, returned=20)
    assert (state.total_pages, state.total_count, state.degraded) == (4, 80, False)
    assert state.can_go_next and state.can_go_prev


def test_pagination_degrades_to_single_page():
    state = extract_pagination({"data": [{}, {}, {}]}, page=1, per_page=20, returned=3)
    assert state.degraded
    assert (state.page, state.per_page, state.total_pages, state.total_count) == (1, 20, 1, 3)


def test_branch_region_comes_from_nested_region():
    branch = normalize_branch({"id": 7, "name": "Ikeja", "region": {"id": "r1"}})
    assert branch.id == "7"
    assert branch.region_id == "r1"


def test_upload_response_shape():
    result = normalize_upload_response({"message": "done", "uploaded_records": "12", "region": "Lagos"})
    assert (result.uploaded_records, result.region, result.message) == (12, "Lagos", "done")


def test_record_to_wire_for_claims(claim_payload):
    wire = record_to_wire(normalize_claim(claim_payload["data"][0]))
    assert wire["claim_id"] == "CLM-001"
    assert wire["amount_requested"] == 100000
    assert wire["class"] is None
