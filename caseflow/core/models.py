"""Data models for case records normalized from the agency API."""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from caseflow.core.errors import LocalValidationError

RECORD_STATUSES = ("pending", "reviewed", "approved")
RECORD_KINDS = ("claim", "compliance", "legal", "inspection")

CLAIM_STATUSES = ("Paid", "Pending", "Rejected", "Under Review")
CLAIM_TYPES = ("Medical Refund", "Disability", "Death Claim", "Loss of Productivity")

PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@dataclass(frozen=True)
class Period:
    """A reporting period: either a single ``YYYY-MM`` value or a range."""

    value: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None

    @classmethod
    def from_parts(
        cls,
        period: Optional[str] = None,
        period_from: Optional[str] = None,
        period_to: Optional[str] = None,
    ) -> "Period":
        """Build a filter period, rejecting mixed or inverted selections."""

        period = (period or "").strip() or None
        period_from = (period_from or "").strip() or None
        period_to = (period_to or "").strip() or None

        if period and (period_from or period_to):
            raise LocalValidationError("Choose either a single period or a period range, not both")
        for raw in (period, period_from, period_to):
            if raw and not PERIOD_PATTERN.match(raw):
                raise LocalValidationError(f"Invalid period {raw!r}; expected YYYY-MM")
        if period_from and period_to and period_from > period_to:
            raise LocalValidationError("Period range start must not be after its end")
        return cls(value=period, start=period_from, end=period_to)

    @property
    def is_empty(self) -> bool:
        return not (self.value or self.start or self.end)

    @property
    def is_range(self) -> bool:
        return self.value is None and bool(self.start or self.end)

    def contains(self, other: "Period") -> bool:
        """Return whether a record's period falls inside this filter period."""

        if self.is_empty:
            return True
        if not other.value:
            return False
        if self.value:
            return other.value == self.value
        if not PERIOD_PATTERN.match(other.value):
            return False
        if self.start and other.value < self.start:
            return False
        if self.end and other.value > self.end:
            return False
        return True

    def to_query(self) -> Dict[str, str]:
        if self.value:
            return {"period": self.value}
        query: Dict[str, str] = {}
        if self.start:
            query["period_from"] = self.start
        if self.end:
            query["period_to"] = self.end
        return query


@dataclass
class Financial:
    amount_requested: float = 0.0
    amount_paid: float = 0.0
    difference: float = 0.0
    difference_percent: float = 0.0


@dataclass
class Classification:
    sector: Optional[str] = None
    claim_class: Optional[str] = None
    payment_period: Optional[str] = None


@dataclass
class Timeline:
    date_processed: Optional[str] = None
    date_paid: Optional[str] = None
    processing_time_days: Optional[int] = None


@dataclass
class CaseRecord:
    """Canonical shape shared by claims, compliance, legal and inspection records.

    Every attribute is always present; the normalizer fills absent wire fields
    with ``None``, ``0`` or empty collections.
    """

    id: Optional[str] = None
    kind: str = "claim"
    display_id: str = ""
    record_status: str = "pending"
    status: str = "Pending"
    type: str = ""
    employer: str = ""
    claimant: str = ""
    region: Optional[str] = None
    region_id: Optional[str] = None
    branch: Optional[str] = None
    branch_id: Optional[str] = None
    period: Period = field(default_factory=Period)
    financial: Financial = field(default_factory=Financial)
    classification: Classification = field(default_factory=Classification)
    timeline: Timeline = field(default_factory=Timeline)
    metrics: Dict[str, float] = field(default_factory=dict)
    sectors: List[str] = field(default_factory=list)
    reviewed_by: Optional[str] = None
    approved_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def selectable(self) -> bool:
        """Records without an id cannot take part in bulk actions."""

        return bool(self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dictionary representation for tabular rendering."""

        return asdict(self)


@dataclass
class Region:
    id: str
    name: str
    code: Optional[str] = None


@dataclass
class Branch:
    id: str
    name: str
    region_id: Optional[str] = None


@dataclass
class RowError:
    """A single spreadsheet validation failure.

    ``row`` is the line number the user sees in the spreadsheet (header on
    line 1); ``0`` marks a file-level problem reported under ``System``.
    """

    row: int
    column: str
    message: str
    value: str = ""


@dataclass
class BulkActionResult:
    """Server verdict for a bulk transition, split into three buckets."""

    action: str
    requested: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return not self.missing and not self.errors and bool(self.updated)

    @property
    def unaccounted(self) -> List[str]:
        """Requested identifiers the server placed in no bucket."""

        seen = set(self.updated) | set(self.missing) | set(self.errors)
        return [identifier for identifier in self.requested if identifier not in seen]

    @property
    def is_partition(self) -> bool:
        """True when every requested id lands in exactly one bucket."""

        buckets = self.updated + self.missing + self.errors
        return sorted(buckets) == sorted(self.requested) and len(set(buckets)) == len(buckets)

    def summary(self) -> str:
        if self.succeeded:
            text = f"{len(self.updated)} record(s) updated"
        else:
            text = f"Some records failed: {len(self.errors)} errors, {len(self.missing)} not found"
        unaccounted = self.unaccounted
        if unaccounted:
            text += f" ({len(unaccounted)} not reported by the server)"
        return text


@dataclass
class PaginationState:
    page: int = 1
    per_page: int = 20
    total_pages: int = 1
    total_count: int = 0
    degraded: bool = False

    @property
    def can_go_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def can_go_prev(self) -> bool:
        return self.page > 1


@dataclass
class UploadResult:
    uploaded_records: int = 0
    region: str = ""
    message: str = ""
