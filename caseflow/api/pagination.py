"""Page tracking and collection loading for manage-* listings.

Each fetch carries a generation stamp; only the newest request may write its
result, so a slow response to an old filter never overwrites a newer one.
Nothing is cached: returning to a page already seen fetches it again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Optional

from caseflow.core.errors import CaseflowError, LocalValidationError
from caseflow.core.models import CaseRecord, PaginationState, Period
from caseflow.ingestion.normalizer import NORMALIZERS, extract_pagination, extract_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionQuery:
    """Server-side query for one listing page."""

    page: int = 1
    per_page: int = 20
    record_status: Optional[str] = None
    region_id: Optional[str] = None
    branch_id: Optional[str] = None
    period: Period = field(default_factory=Period)


class PaginationController:
    """Holds the current page; changing it notifies ``on_change``."""

    def __init__(self, per_page: int = 20, on_change: Optional[Callable[[int], None]] = None) -> None:
        self.page = 1
        self.per_page = per_page
        self.state = PaginationState(page=1, per_page=per_page)
        self._on_change = on_change

    def set_page(self, page: int) -> bool:
        """Move to ``page``. Setting the current page again does nothing."""

        if page < 1:
            raise LocalValidationError(f"Page must be 1 or greater, got {page}")
        if page == self.page:
            return False
        self.page = page
        if self._on_change is not None:
            self._on_change(page)
        return True

    def next_page(self) -> bool:
        if not self.state.can_go_next:
            return False
        return self.set_page(self.page + 1)

    def prev_page(self) -> bool:
        if self.page <= 1:
            return False
        return self.set_page(self.page - 1)

    def update(self, state: PaginationState) -> None:
        self.state = state


class CollectionLoader:
    """Owns one fetched collection and is the only writer of its records.

    ``fetch`` receives a :class:`CollectionQuery` and returns the raw payload.
    """

    def __init__(
        self,
        fetch: Callable[[CollectionQuery], Any],
        kind: str = "claim",
        per_page: int = 20,
    ) -> None:
        self.fetch = fetch
        self.kind = kind
        self.query = CollectionQuery(per_page=per_page)
        self.pagination = PaginationController(per_page=per_page, on_change=self._page_changed)
        self.records: List[CaseRecord] = []
        self.error: Optional[str] = None
        self.loading = False
        self.generation = 0

    def _page_changed(self, page: int) -> None:
        self.query = replace(self.query, page=page)
        self.refresh()

    def set_page(self, page: int) -> bool:
        return self.pagination.set_page(page)

    def set_filters(self, **changes: Any) -> None:
        """Change server-side filters; the listing restarts at page 1."""

        if "page" in changes:
            raise LocalValidationError("Use set_page to change pages")
        query = replace(self.query, page=1, **changes)
        if query == self.query:
            return
        self.query = query
        self.pagination.page = 1
        self.refresh()

    def begin(self) -> int:
        self.generation += 1
        self.loading = True
        return self.generation

    def is_current(self, stamp: int) -> bool:
        return stamp == self.generation

    def apply(self, stamp: int, payload: Any) -> bool:
        """Store a response if it belongs to the newest request."""

        if not self.is_current(stamp):
            logger.debug("Discarding stale response %d (current %d)", stamp, self.generation)
            return False
        raw_records = extract_records(payload)
        normalizer = NORMALIZERS[self.kind]
        self.records = [normalizer(raw) for raw in raw_records]
        self.pagination.update(
            extract_pagination(payload, self.query.page, self.query.per_page, len(raw_records))
        )
        self.error = None
        self.loading = False
        return True

    def fail(self, stamp: int, message: str) -> bool:
        """Record a failure; previously loaded records stay visible."""

        if not self.is_current(stamp):
            return False
        self.error = message
        self.loading = False
        return True

    def refresh(self) -> bool:
        stamp = self.begin()
        try:
            payload = self.fetch(self.query)
        except CaseflowError as exc:
            logger.error("Loading %s records failed: %s", self.kind, exc)
            self.fail(stamp, str(exc) or f"Failed to fetch {self.kind} records")
            return False
        return self.apply(stamp, payload)
