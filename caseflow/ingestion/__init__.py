"""Reading, normalizing and validating incoming records."""
from caseflow.ingestion.normalizer import (
    extract_records,
    normalize_claim,
    normalize_claim_detail,
    normalize_records,
)
from caseflow.ingestion.spreadsheet import read_rows
from caseflow.ingestion.validator import SCHEMAS, check_batch, validate_row, validate_rows

__all__ = [
    "SCHEMAS",
    "check_batch",
    "extract_records",
    "normalize_claim",
    "normalize_claim_detail",
    "normalize_records",
    "read_rows",
    "validate_row",
    "validate_rows",
]
