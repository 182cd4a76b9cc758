"""Exception types raised across the caseflow package."""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from caseflow.core.models import RowError


class CaseflowError(Exception):
    """Base class for every error raised by caseflow."""


class LocalValidationError(CaseflowError):
    """Input rejected before any request was made (empty selection, bad range)."""


class TransportError(CaseflowError):
    """The API could not be reached, answered non-2xx, or sent a malformed body."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(TransportError):
    """The API rejected the stored credentials (HTTP 401)."""


class TransitionError(CaseflowError):
    """A status transition is not allowed from the current state or for the role."""


class LookupInUseError(CaseflowError):
    """A region or branch cannot be deleted while records reference it."""


class ImportRejected(CaseflowError):
    """At least one spreadsheet row failed validation; nothing was imported."""

    def __init__(self, errors: Iterable["RowError"]) -> None:
        self.errors = list(errors)
        super().__init__(f"Validation failed with {len(self.errors)} error(s)")
