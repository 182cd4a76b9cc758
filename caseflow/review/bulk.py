"""Coordinate review/approve transitions against the API.

The coordinator never touches local records. A caller that gets ``ok=True``
back refetches its collection; anything else comes back as a message.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from caseflow.core.errors import CaseflowError, LocalValidationError, TransportError
from caseflow.core.models import BulkActionResult, CaseRecord
from caseflow.ingestion.normalizer import record_to_wire
from caseflow.review.workflow import APPROVED, can_edit, check_action, check_transition

logger = logging.getLogger(__name__)

_NOUNS = {"claim": "claims", "legal": "legal records", "compliance": "entries", "inspection": "inspections"}


@dataclass
class ActionOutcome:
    ok: bool
    error: Optional[str] = None
    result: Optional[BulkActionResult] = None


def _identifiers(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    identifiers = []
    for value in values:
        if isinstance(value, Mapping):
            value = value.get("id")
        if value is not None:
            identifiers.append(str(value))
    return identifiers


def interpret_bulk_response(payload: Any, action: str, requested: Iterable[str]) -> BulkActionResult:
    """Split a bulk response into its ``updated``/``missing``/``errors`` buckets.

    Both ``{data: {...}}`` and flat bodies are accepted.
    """

    if not isinstance(payload, Mapping):
        raise TransportError("Invalid response from server")
    body = payload.get("data") if isinstance(payload.get("data"), Mapping) else payload
    return BulkActionResult(
        action=action,
        requested=[str(identifier) for identifier in requested],
        updated=_identifiers(body.get("updated")),
        missing=_identifiers(body.get("missing")),
        errors=_identifiers(body.get("errors")),
        message=str(payload.get("message") or body.get("message") or ""),
    )


def extract_error_message(exc: BaseException, fallback: str) -> str:
    """Server message first (carried by TransportError), then the error text, then ``fallback``."""

    if isinstance(exc, TransportError):
        return exc.message or fallback
    return str(exc) or fallback


class BulkActionCoordinator:
    """Runs one transition request at a time and reports a single outcome."""

    def __init__(
        self,
        client,
        kind: str = "claim",
        role: Optional[str] = None,
        backend_permissions: Optional[Iterable[str]] = None,
    ) -> None:
        self.client = client
        self.kind = kind
        self.role = role
        self.backend_permissions = list(backend_permissions) if backend_permissions is not None else None
        self.in_flight = False
        self.error: Optional[str] = None

    def _fallback(self, action: str) -> str:
        return f"Failed to {action} {_NOUNS.get(self.kind, 'records')}"

    def _begin(self) -> None:
        if self.in_flight:
            raise LocalValidationError("Another action is still in progress")
        self.in_flight = True
        self.error = None

    def _fail(self, message: str) -> ActionOutcome:
        self.error = message
        return ActionOutcome(ok=False, error=message)

    def run(self, ids: Iterable[str], action: str) -> ActionOutcome:
        """Apply ``action`` to every id in one request.

        Success means every id was updated: any ``missing`` or ``errors``
        entry turns the outcome into a failure even if others went through.
        """

        ids = [str(identifier) for identifier in ids if identifier]
        try:
            self._begin()
        except LocalValidationError as exc:
            return self._fail(str(exc))

        try:
            if not ids:
                raise LocalValidationError(f"No {self.kind} IDs provided")
            check_action(action, self.role)

            payload = self.client.bulk_action(ids, action, kind=self.kind)
            result = interpret_bulk_response(payload, action, ids)
            if result.errors or result.missing:
                message = result.summary()
                logger.warning("Bulk %s of %d id(s): %s", action, len(ids), message)
                self.error = message
                return ActionOutcome(ok=False, error=message, result=result)
            if not result.updated:
                message = result.message or "No records were updated"
                self.error = message
                return ActionOutcome(ok=False, error=message, result=result)

            if result.unaccounted:
                logger.warning(
                    "Bulk %s: server did not report %d id(s): %s",
                    action,
                    len(result.unaccounted),
                    ", ".join(result.unaccounted),
                )
            logger.info("Bulk %s updated %d id(s)", action, len(result.updated))
            return ActionOutcome(ok=True, result=result)
        except CaseflowError as exc:
            logger.error("Bulk %s failed: %s", action, exc)
            return self._fail(extract_error_message(exc, self._fallback(action)))
        finally:
            self.in_flight = False

    def review(self, ids: Iterable[str]) -> ActionOutcome:
        return self.run(ids, "review")

    def approve(self, ids: Iterable[str]) -> ActionOutcome:
        return self.run(ids, "approve")

    def transition_one(self, record: CaseRecord, target: str) -> ActionOutcome:
        """Move a single record one step forward; confirmed or failed as a whole."""

        try:
            self._begin()
        except LocalValidationError as exc:
            return self._fail(str(exc))

        action = "review" if target == "reviewed" else "approve"
        try:
            if not record.id:
                raise LocalValidationError("Record ID is required")
            action = check_transition(record.record_status, target, self.role)
            body = {"action": action} if self.kind == "claim" else {"record_status": target}
            self.client.update_record(record.id, body, kind=self.kind)
            logger.info("Record %s moved to %s", record.id, target)
            return ActionOutcome(ok=True)
        except CaseflowError as exc:
            logger.error("Transition of %s to %s failed: %s", record.id, target, exc)
            return self._fail(extract_error_message(exc, f"Failed to {action} record"))
        finally:
            self.in_flight = False

    def save_edits(self, record: CaseRecord) -> ActionOutcome:
        """Send the editable fields of ``record``; approved records are locked."""

        try:
            self._begin()
        except LocalValidationError as exc:
            return self._fail(str(exc))

        try:
            if not record.id:
                raise LocalValidationError("Record ID is required")
            if record.record_status == APPROVED:
                raise LocalValidationError("This record can no longer be edited")
            if self.role is not None and not can_edit(self.role, record, self.backend_permissions):
                noun = _NOUNS.get(self.kind, "records")
                raise LocalValidationError(f"Role {self.role!r} is not allowed to edit {noun}")
            self.client.update_record(record.id, record_to_wire(record), kind=self.kind)
            return ActionOutcome(ok=True)
        except CaseflowError as exc:
            logger.error("Saving %s failed: %s", record.id, exc)
            return self._fail(extract_error_message(exc, "Failed to update record"))
        finally:
            self.in_flight = False
