"""Region and branch lookups: cascading consistency, mutations and the in-use deletion guard."""
from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from caseflow.core.errors import LocalValidationError, LookupInUseError, TransportError
from caseflow.core.models import Branch, CaseRecord, Period, Region
from caseflow.ingestion.normalizer import extract_records, normalize_branch, normalize_region

logger = logging.getLogger(__name__)


def branches_for_region(branches: Iterable[Branch], region_id: Optional[str]) -> List[Branch]:
    """Branches offered once ``region_id`` is chosen; none without a region."""

    if not region_id:
        return []
    return [branch for branch in branches if branch.region_id == region_id]


def check_branch_region_consistency(
    region_id: Optional[str],
    branch_id: Optional[str],
    branches: Sequence[Branch],
) -> None:
    """Raise when ``branch_id`` does not belong to ``region_id``."""

    if not branch_id:
        return
    if not region_id:
        raise LocalValidationError("Select a region before choosing a branch")
    branch = next((item for item in branches if item.id == branch_id), None)
    if branch is None:
        raise LocalValidationError(f"Unknown branch {branch_id!r}")
    if branch.region_id != region_id:
        raise LocalValidationError(f"Branch {branch.name!r} does not belong to the selected region")


def fetch_branches(client, region_id: str) -> List[Branch]:
    """Branches listed under ``region_id``; rows without a region id inherit it."""

    branches = [normalize_branch(raw) for raw in extract_records(client.list_branches(region_id))]
    for branch in branches:
        if branch.region_id is None:
            branch.region_id = region_id
    return branches


def check_branch_filter(client, region_id: Optional[str], branch_id: Optional[str]) -> None:
    """Validate a region/branch filter pair before any listing is requested.

    A branch without a region is rejected locally; otherwise the region's
    branches are fetched and the pairing checked.
    """

    if not branch_id:
        return
    if not region_id:
        raise LocalValidationError("Select a region before choosing a branch")
    check_branch_region_consistency(region_id, branch_id, fetch_branches(client, region_id))


def records_using(entity: Region | Branch, records: Iterable[CaseRecord]) -> List[CaseRecord]:
    if isinstance(entity, Region):
        return [record for record in records if record.region_id == entity.id]
    return [record for record in records if record.branch_id == entity.id]


def ensure_deletable(entity: Region | Branch, records: Iterable[CaseRecord]) -> None:
    """Refuse to delete a region or branch that any record still references."""

    in_use = records_using(entity, records)
    if in_use:
        label = "Region" if isinstance(entity, Region) else "Branch"
        logger.warning("%s %s is referenced by %d record(s)", label, entity.id, len(in_use))
        raise LookupInUseError(
            f"{label} {entity.name!r} is used by {len(in_use)} record(s) and cannot be deleted"
        )


def delete_lookup(client, entity: Region | Branch, records: Iterable[CaseRecord]) -> None:
    """Check usage locally, then delete through the API."""

    ensure_deletable(entity, records)
    if isinstance(entity, Region):
        client.delete_region(entity.id)
    else:
        client.delete_branch(entity.id)
    logger.info("Deleted %s %s", type(entity).__name__.lower(), entity.id)


def _unwrap(payload, action: str):
    data = payload.get("data") if isinstance(payload, Mapping) else None
    if not data:
        raise TransportError(f"Invalid API response while trying to {action}")
    return data


def _check_region_known(region_id: Optional[str], regions: Optional[Sequence[Region]]) -> None:
    if not region_id:
        raise LocalValidationError("Region is required")
    if regions is not None and not any(region.id == region_id for region in regions):
        raise LocalValidationError(f"Unknown region {region_id!r}")


def add_region(client, name: str) -> Region:
    name = (name or "").strip()
    if not name:
        raise LocalValidationError("Region name is required")
    region = normalize_region(_unwrap(client.create_region(name), "create region"))
    logger.info("Created region %s (%s)", region.name or name, region.id)
    return region


def edit_region(
    client,
    region: Region,
    code: Optional[str] = None,
    description: Optional[str] = None,
    target_amount: Optional[float] = None,
    period: Optional[str] = None,
) -> Region:
    """Update a region's code, description and monthly target."""

    if target_amount is not None and target_amount < 0:
        raise LocalValidationError("Target must not be negative")
    if period:
        Period.from_parts(period)
    fields = {
        "code": code,
        "description": description,
        "target_amount": target_amount,
        "period": period,
    }
    updated = normalize_region(_unwrap(client.update_region(region.id, fields), "update region"))
    logger.info("Updated region %s", region.id)
    return updated


def add_branch(
    client,
    name: str,
    region_id: Optional[str],
    regions: Optional[Sequence[Region]] = None,
    code: Optional[str] = None,
) -> Branch:
    name = (name or "").strip()
    if not name:
        raise LocalValidationError("Branch name is required")
    _check_region_known(region_id, regions)
    branch = normalize_branch(_unwrap(client.create_branch(name, region_id, code), "create branch"))
    if branch.region_id is None:
        branch.region_id = region_id
    logger.info("Created branch %s under region %s", branch.id, region_id)
    return branch


def edit_branch(
    client,
    branch: Branch,
    branches: Sequence[Branch],
    regions: Optional[Sequence[Region]] = None,
    name: Optional[str] = None,
    region_id: Optional[str] = None,
    code: Optional[str] = None,
) -> Branch:
    """Rename a branch or move it to another region."""

    target_region = region_id or branch.region_id
    _check_region_known(target_region, regions)
    if region_id is None:
        check_branch_region_consistency(target_region, branch.id, branches)

    fields = {"region_id": target_region}
    if name is not None:
        if not name.strip():
            raise LocalValidationError("Branch name is required")
        fields["name"] = name.strip()
    if code is not None:
        fields["code"] = code
    updated = normalize_branch(_unwrap(client.update_branch(branch.id, fields), "update branch"))
    if updated.region_id is None:
        updated.region_id = target_region
    logger.info("Updated branch %s", branch.id)
    return updated
