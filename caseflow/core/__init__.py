"""Core building blocks for the caseflow package."""
from caseflow.core.errors import (
    AuthenticationError,
    CaseflowError,
    ImportRejected,
    LocalValidationError,
    LookupInUseError,
    TransitionError,
    TransportError,
)
from caseflow.core.logging import configure_logging
from caseflow.core.models import BulkActionResult, CaseRecord, PaginationState, Period, RowError

__all__ = [
    "AuthenticationError",
    "BulkActionResult",
    "CaseRecord",
    "CaseflowError",
    "ImportRejected",
    "LocalValidationError",
    "LookupInUseError",
    "PaginationState",
    "Period",
    "RowError",
    "TransitionError",
    "TransportError",
    "configure_logging",
]
