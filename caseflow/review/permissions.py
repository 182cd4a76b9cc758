"""Module-level permissions per user role, with backend overrides."""
from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Optional, Tuple

_VIEW_ALL = ("view_dashboard", "view_claims", "view_compliance", "view_legal", "view_inspection")

ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    "admin": frozenset(
        _VIEW_ALL
        + ("manage_users", "manage_claims", "manage_compliance", "manage_legal", "manage_inspection")
    ),
    "manager": frozenset(_VIEW_ALL + ("view_users", "manage_users")),
    "regional_manager": frozenset(_VIEW_ALL + ("manage_claims",)),
    "user": frozenset(("view_dashboard", "view_claims", "view_inspection")),
    "claims_officer": frozenset(_VIEW_ALL + ("manage_claims",)),
    "compliance_officer": frozenset(
        _VIEW_ALL + ("manage_compliance", "manage_claims", "manage_legal", "manage_inspection")
    ),
    "legal_officer": frozenset(_VIEW_ALL + ("manage_legal",)),
    "inspection_officer": frozenset(_VIEW_ALL + ("manage_inspection",)),
    "actuary_officer": frozenset(_VIEW_ALL + ("can_review",)),
}
# The API reports some roles with display spellings.
ROLE_PERMISSIONS["Actuary"] = ROLE_PERMISSIONS["actuary_officer"]

# Local permission -> backend ``can_*`` grants that imply it.
BACKEND_PERMISSIONS: Dict[str, Tuple[str, ...]] = {
    "view_dashboard": ("can_view_dashboard",),
    "view_claims": ("can_view_claims", "can_view_claim"),
    "view_legal": ("can_view_legal", "can_view_legal_case"),
    "view_inspection": ("can_view_inspection", "can_view_inspection_record"),
    "view_compliance": ("can_view_compliance", "can_view_compliance_record"),
    "manage_claims": (
        "can_upload_claims",
        "can_create_claim",
        "can_create_claims_record",
        "can_edit_claim",
        "can_edit_claims_record",
        "can_approve_claim",
        "can_delete_claim",
        "can_process_claim",
    ),
    "manage_legal": (
        "can_upload_legal",
        "can_create_legal_case",
        "can_create_legal_record",
        "can_edit_legal_case",
        "can_edit_legal_record",
        "can_update_legal_status",
        "can_delete_legal_case",
    ),
    "manage_inspection": (
        "can_upload_inspection",
        "can_create_inspection_record",
        "can_edit_inspection_record",
        "can_upload_inspection_report",
        "can_delete_inspection",
        "can_update_inspection",
    ),
    "manage_compliance": (
        "can_upload_compliance",
        "can_create_compliance_record",
        "can_edit_compliance_record",
        "can_delete_compliance_record",
        "can_generate_compliance_report",
    ),
}


def has_permission(
    role: Optional[str],
    permission: str,
    backend_permissions: Optional[Iterable[str]] = None,
) -> bool:
    """Return whether ``role`` holds ``permission``.

    A backend permission list, when supplied, is consulted first: any mapped
    ``can_*`` grant or the literal permission name is enough. Otherwise the
    static role table decides.
    """

    if backend_permissions is not None:
        granted = set(backend_permissions)
        if permission in granted or granted.intersection(BACKEND_PERMISSIONS.get(permission, ())):
            return True
    return permission in ROLE_PERMISSIONS.get(role or "", frozenset())


def can_manage(role: Optional[str], module: str, backend_permissions: Optional[Iterable[str]] = None) -> bool:
    return has_permission(role, f"manage_{module}", backend_permissions)
