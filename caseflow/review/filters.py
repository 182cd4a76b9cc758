"""Client-side filtering over an in-memory record collection.

Every predicate composes with AND, and results keep the input order. Clearing
the branch when the region changes is the caller's job (see
:meth:`FilterState.with_region`); :func:`filter_records` never does it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from caseflow.core.models import CaseRecord, Period

logger = logging.getLogger(__name__)

ALL = "all"

SEARCH_FIELDS: Dict[str, Tuple[str, ...]] = {
    "claim": ("display_id", "employer", "claimant"),
    "compliance": ("region", "branch", "period"),
    "legal": ("display_id", "region", "branch", "period"),
    "inspection": ("branch", "period"),
}


def _is_disabled(value: Optional[str]) -> bool:
    return value is None or not value.strip() or value.strip().lower() == ALL


def _field_text(record: CaseRecord, name: str) -> str:
    value = getattr(record, name, None)
    if isinstance(value, Period):
        value = value.value
    return "" if value is None else str(value)


def _shown_status(record: CaseRecord) -> str:
    return record.status if record.kind == "claim" else record.record_status


@dataclass(frozen=True)
class FilterState:
    """Filter inputs; ``"all"`` or an empty string disables a field.

    ``status`` is the status a record shows: the display status for claims and
    the review status for every other kind. ``record_status`` always filters on
    the review status.
    """

    search: str = ""
    status: str = ALL
    record_status: str = ALL
    type: str = ALL
    region_id: Optional[str] = None
    branch_id: Optional[str] = None
    period: Period = field(default_factory=Period)
    min_recalcitrant: Optional[float] = None
    fields: Optional[Tuple[str, ...]] = None

    def with_region(self, region_id: Optional[str]) -> "FilterState":
        """Select a region and drop the branch picked under the previous one."""

        if region_id == self.region_id:
            return self
        return replace(self, region_id=region_id, branch_id=None)

    def search_fields(self, kind: str) -> Tuple[str, ...]:
        return self.fields or SEARCH_FIELDS.get(kind, SEARCH_FIELDS["claim"])


def _predicates(state: FilterState) -> List[Callable[[CaseRecord], bool]]:
    predicates: List[Callable[[CaseRecord], bool]] = []

    term = state.search.strip().lower()
    if term:
        def matches_search(record: CaseRecord) -> bool:
            return any(
                term in _field_text(record, name).lower()
                for name in state.search_fields(record.kind)
            )
        predicates.append(matches_search)

    if not _is_disabled(state.status):
        wanted = state.status.strip().lower()
        predicates.append(lambda record: _shown_status(record).lower() == wanted)

    if not _is_disabled(state.record_status):
        wanted_review = state.record_status.strip().lower()
        predicates.append(lambda record: record.record_status.lower() == wanted_review)

    if not _is_disabled(state.type):
        wanted_type = state.type
        predicates.append(lambda record: record.type == wanted_type)

    if not _is_disabled(state.region_id):
        predicates.append(lambda record: record.region_id == state.region_id)

    if not _is_disabled(state.branch_id):
        predicates.append(lambda record: record.branch_id == state.branch_id)

    if not state.period.is_empty:
        predicates.append(lambda record: state.period.contains(record.period))

    if state.min_recalcitrant is not None:
        threshold = state.min_recalcitrant
        predicates.append(
            lambda record: record.metrics.get("recalcitrant_employers", 0.0) >= threshold
        )

    return predicates


def filter_records(records: Sequence[CaseRecord], state: FilterState) -> List[CaseRecord]:
    """Return the records matching every active filter, in input order."""

    predicates = _predicates(state)
    if not predicates:
        return list(records)
    return [record for record in records if all(check(record) for check in predicates)]


class RecordFilter:
    """Memoized view: recomputes only when the collection or the state changes."""

    def __init__(self) -> None:
        self._records: Optional[Sequence[CaseRecord]] = None
        self._state: Optional[FilterState] = None
        self._result: List[CaseRecord] = []
        self.computations = 0

    def apply(self, records: Sequence[CaseRecord], state: FilterState) -> List[CaseRecord]:
        if records is self._records and state == self._state:
            return self._result
        self._records = records
        self._state = state
        self._result = filter_records(records, state)
        self.computations += 1
        logger.debug("Filtered %d record(s) down to %d", len(records), len(self._result))
        return self._result
