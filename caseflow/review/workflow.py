"""Review status state machine and the role checks that gate it.

Records move forward only: ``pending -> reviewed -> approved``. Approved is
terminal. A single UI step never skips ``reviewed`` even though the backend
PATCH endpoint would accept ``approved`` from ``pending``; callers go through
:func:`check_transition` before issuing any request.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional, Tuple

from caseflow.core.errors import TransitionError
from caseflow.core.models import CaseRecord
from caseflow.review.permissions import can_manage

PENDING = "pending"
REVIEWED = "reviewed"
APPROVED = "approved"

# action -> (required current status, resulting status)
ACTIONS = {
    "review": (PENDING, REVIEWED),
    "approve": (REVIEWED, APPROVED),
}
ACTION_FOR_TARGET = {target: action for action, (_, target) in ACTIONS.items()}

REVIEWER_ROLES = frozenset({"regional_manager", "regional officer"})
APPROVER_ROLES = frozenset({"admin", "manager"})

# record kind -> permission module
MODULES = {"claim": "claims", "compliance": "compliance", "legal": "legal", "inspection": "inspection"}


def normalize_role(role: Optional[str]) -> str:
    return (role or "").strip().lower()


def can_review(role: Optional[str]) -> bool:
    """Regional roles review; approvers may review as well."""

    normalized = normalize_role(role)
    return normalized in REVIEWER_ROLES or normalized in APPROVER_ROLES


def can_approve(role: Optional[str]) -> bool:
    return normalize_role(role) in APPROVER_ROLES


def can_edit(
    role: Optional[str],
    record: CaseRecord,
    backend_permissions: Optional[Iterable[str]] = None,
) -> bool:
    """Field edits stay open until a record is approved.

    Reviewers and approvers may edit any record. Other roles need the
    ``manage_*`` permission of the record's module, from the static role
    table or from the backend grants.
    """

    if record.record_status == APPROVED:
        return False
    module = MODULES.get(record.kind, record.kind)
    return can_review(role) or can_manage(role, module, backend_permissions)


def next_status(status: str) -> Optional[str]:
    for current, target in ACTIONS.values():
        if current == status:
            return target
    return None


def allowed_actions(status: str, role: Optional[str] = None) -> List[str]:
    """Actions to offer for a record in ``status``; at most one forward step."""

    actions: List[str] = []
    for action, (current, _) in ACTIONS.items():
        if current != status:
            continue
        if role is not None and not _role_permits(action, role):
            continue
        actions.append(action)
    return actions


def _role_permits(action: str, role: Optional[str]) -> bool:
    if action == "review":
        return can_review(role)
    if action == "approve":
        return can_approve(role)
    return False


def check_action(action: str, role: Optional[str] = None) -> Tuple[str, str]:
    """Validate an action tag (and the caller's role when given)."""

    if action not in ACTIONS:
        raise TransitionError(f"Unknown action {action!r}; expected one of: {', '.join(ACTIONS)}")
    if role is not None and not _role_permits(action, role):
        raise TransitionError(f"Role {role!r} is not allowed to {action} records")
    return ACTIONS[action]


def check_transition(current: str, target: str, role: Optional[str] = None) -> str:
    """Return the action tag that moves ``current`` to ``target`` or raise.

    Rejects anything out of ``approved``, backward moves, and skips such as
    ``pending -> approved``.
    """

    if current == APPROVED:
        raise TransitionError("Approved records cannot change status")
    action = ACTION_FOR_TARGET.get(target)
    if action is None or ACTIONS[action][0] != current:
        raise TransitionError(f"Cannot move a record from {current!r} to {target!r}")
    check_action(action, role)
    return action


def mark_status(record: CaseRecord, target: str, actor: Optional[str] = None) -> CaseRecord:
    """Return a copy of ``record`` in the ``target`` status once the server confirmed it."""

    check_transition(record.record_status, target)
    updates = {"record_status": target}
    if actor:
        updates["reviewed_by" if target == REVIEWED else "approved_by"] = actor
    return replace(record, **updates)


def partition_eligible(records: Iterable[CaseRecord], action: str) -> Tuple[List[str], List[str]]:
    """Split selectable records into ids eligible for ``action`` and ids that are not."""

    required, _ = check_action(action)
    eligible: List[str] = []
    ineligible: List[str] = []
    for record in records:
        if not record.selectable:
            continue
        (eligible if record.record_status == required else ineligible).append(record.id)
    return eligible, ineligible
