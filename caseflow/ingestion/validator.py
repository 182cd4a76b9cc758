"""Row validation for spreadsheet imports.

Imports are all-or-nothing: every row is checked, every error is collected,
and a single failing row rejects the whole batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from caseflow.core.errors import ImportRejected
from caseflow.core.models import CLAIM_STATUSES, CLAIM_TYPES, RowError
from caseflow.core.utils import parse_number

logger = logging.getLogger(__name__)

# Data starts on spreadsheet line 2: lines are 1-indexed and line 1 is the header.
HEADER_OFFSET = 2


@dataclass(frozen=True)
class ImportSchema:
    """Column rules for one spreadsheet template."""

    name: str
    headers: Tuple[str, ...]
    required: Tuple[str, ...]
    enums: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    numeric: Tuple[str, ...] = ()
    case_insensitive_enums: bool = False


CLAIMS_SCHEMA = ImportSchema(
    name="claims",
    headers=(
        "Claim ID",
        "Employer",
        "Claimant",
        "Type",
        "Amount Requested",
        "Amount Paid",
        "Status",
        "Date Processed",
        "Date Paid",
        "Sector",
        "Class",
        "Payment Period",
    ),
    required=(
        "Claim ID",
        "Employer",
        "Claimant",
        "Type",
        "Amount Requested",
        "Amount Paid",
        "Status",
        "Date Processed",
    ),
    enums={"Status": CLAIM_STATUSES, "Type": CLAIM_TYPES},
    numeric=("Amount Requested", "Amount Paid"),
)

COMPLIANCE_SCHEMA = ImportSchema(
    name="compliance",
    headers=(
        "Branch",
        "Contribution Collected",
        "Target",
        "Employers Registered",
        "Employees",
        "Registration Fees",
        "Certificate Fees",
        "Period",
    ),
    required=(
        "Branch",
        "Contribution Collected",
        "Target",
        "Employers Registered",
        "Employees",
        "Certificate Fees",
        "Period",
    ),
    numeric=(
        "Contribution Collected",
        "Target",
        "Employers Registered",
        "Employees",
        "Registration Fees",
        "Certificate Fees",
    ),
)

LEGAL_SCHEMA = ImportSchema(
    name="legal",
    headers=(
        "Title",
        "Description",
        "Created",
        "Filed",
        "Amount Claimed",
        "Status",
        "Next Hearing",
        "Outcome",
    ),
    required=("Title", "Description", "Created", "Filed", "Amount Claimed", "Status"),
    enums={"Status": ("pending", "closed", "assigned-obtained")},
    case_insensitive_enums=True,
)

SCHEMAS = {schema.name: schema for schema in (CLAIMS_SCHEMA, COMPLIANCE_SCHEMA, LEGAL_SCHEMA)}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def validate_row(row: Mapping[str, Any], index: int, schema: ImportSchema = CLAIMS_SCHEMA) -> List[RowError]:
    """Return every problem found in one row; an empty list means the row is valid.

    ``index`` is the 0-based position of the row among the data rows.
    """

    line = index + HEADER_OFFSET
    errors: List[RowError] = []

    for column in schema.required:
        value = row.get(column)
        if _is_blank(value):
            errors.append(RowError(line, column, "Missing required field", _display(value)))

    for column, allowed in schema.enums.items():
        value = row.get(column)
        if _is_blank(value):
            continue
        text = str(value).strip()
        if schema.case_insensitive_enums:
            valid = text.lower() in {option.lower() for option in allowed}
        else:
            valid = text in allowed
        if not valid:
            errors.append(
                RowError(
                    line,
                    column,
                    f"Invalid {column.lower()}. Must be one of: {', '.join(allowed)}",
                    str(value),
                )
            )

    for column in schema.numeric:
        value = row.get(column)
        if _is_blank(value):
            continue
        number = parse_number(value)
        if number is None:
            errors.append(RowError(line, column, f'Expected number, got "{value}"', _display(value)))
        elif number < 0:
            errors.append(RowError(line, column, "Value must be positive", _display(value)))

    return errors


def validate_rows(rows: Iterable[Mapping[str, Any]], schema: ImportSchema = CLAIMS_SCHEMA) -> List[RowError]:
    """Validate every row and return the complete error list (never stops early)."""

    errors: List[RowError] = []
    for index, row in enumerate(rows):
        errors.extend(validate_row(row, index, schema))
    return errors


def check_batch(rows: Sequence[Mapping[str, Any]], schema: ImportSchema = CLAIMS_SCHEMA) -> List[Mapping[str, Any]]:
    """Accept the batch only if every row is valid; raise :class:`ImportRejected` otherwise."""

    rows = list(rows)
    if not rows:
        raise ImportRejected([RowError(0, "System", "The file contains no data rows")])

    errors = validate_rows(rows, schema)
    if errors:
        logger.warning(
            "Rejected %s import: %d error(s) across %d row(s)",
            schema.name,
            len(errors),
            len({error.row for error in errors}),
        )
        raise ImportRejected(errors)

    logger.info("Validated %d %s row(s)", len(rows), schema.name)
    return rows
