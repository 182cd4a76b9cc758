"""Review utilities: status transitions, role checks, filtering and lookups."""
from caseflow.review.bulk import ActionOutcome, BulkActionCoordinator
from caseflow.review.filters import FilterState, RecordFilter, filter_records
from caseflow.review.lookups import (
    add_branch,
    add_region,
    branches_for_region,
    check_branch_filter,
    check_branch_region_consistency,
    delete_lookup,
    edit_branch,
    edit_region,
)
from caseflow.review.permissions import can_manage, has_permission
from caseflow.review.workflow import (
    allowed_actions,
    can_approve,
    can_edit,
    can_review,
    check_transition,
    mark_status,
)

__all__ = [
    "ActionOutcome",
    "BulkActionCoordinator",
    "FilterState",
    "RecordFilter",
    "add_branch",
    "add_region",
    "allowed_actions",
    "branches_for_region",
    "can_approve",
    "can_edit",
    "can_manage",
    "can_review",
    "check_branch_filter",
    "check_branch_region_consistency",
    "check_transition",
    "delete_lookup",
    "edit_branch",
    "edit_region",
    "filter_records",
    "has_permission",
    "mark_status",
]
