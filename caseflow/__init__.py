"""Record lifecycle tooling for the agency claims, compliance and legal dashboards."""
from caseflow.core import (
    CaseRecord,
    ImportRejected,
    LocalValidationError,
    Period,
    TransitionError,
    TransportError,
    configure_logging,
)
from caseflow.ingestion import check_batch, normalize_claim, normalize_records, validate_row
from caseflow.review import BulkActionCoordinator, FilterState, filter_records

__all__ = [
    "BulkActionCoordinator",
    "CaseRecord",
    "FilterState",
    "ImportRejected",
    "LocalValidationError",
    "Period",
    "TransitionError",
    "TransportError",
    "check_batch",
    "configure_logging",
    "filter_records",
    "normalize_claim",
    "normalize_records",
    "validate_row",
]
