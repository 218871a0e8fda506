"""AutoAssignmentPolicy — fill uncovered practices from historical SA-to-AM mappings."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from intake.domain.entities.assignment import Assignment
from intake.domain.entities.directory_user import DirectoryUser
from intake.domain.entities.sa_mapping import SAToAMMapping
from intake.domain.value_objects.enums import AssignmentStatus
from intake.domain.value_objects.practice import (
    PENDING_PRACTICE,
    is_unclassified,
    normalize_practice,
    same_practice,
)

ANGLE_EMAIL_RE = re.compile(r"<\s*([^<>\s]+@[^<>\s]+)\s*>")
BARE_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")


@dataclass(frozen=True)
class AutoAssignmentPlan:
    """Outcome of the policy; ``ok=False`` plans are informational, never errors."""

    ok: bool
    message: str
    assignees: list[str] = field(default_factory=list)
    new_assignees: list[str] = field(default_factory=list)
    practice_assignments: dict[str, list[str]] = field(default_factory=dict)
    region: str | None = None
    status: AssignmentStatus | None = None


def find_user(identifier: str | None, users: Iterable[DirectoryUser]) -> DirectoryUser | None:
    """Directory lookup by email, or by case-insensitive name."""
    if not identifier or not identifier.strip():
        return None
    key = " ".join(identifier.split()).casefold()
    for user in users:
        if user.email.strip().casefold() == key or " ".join(user.name.split()).casefold() == key:
            return user
    return None


def resolve_owner_email(owner: str | None, users: Iterable[DirectoryUser]) -> str | None:
    """``Name <email>`` → email; bare email → itself; plain name → directory email."""
    if not owner or not owner.strip():
        return None

    match = ANGLE_EMAIL_RE.search(owner)
    if match:
        return match.group(1).strip()

    match = BARE_EMAIL_RE.fullmatch(owner.strip())
    if match:
        return match.group(0)

    user = find_user(owner, users)
    return user.email if user else None


def covered_practices(assignees: Iterable[str], users: Iterable[DirectoryUser]) -> set[str]:
    """Normalized practice keys covered by the assignees' directory entries."""
    users = list(users)
    covered: set[str] = set()
    for assignee in assignees:
        user = find_user(assignee, users)
        if user:
            covered.update(normalize_practice(p) for p in user.practices)
    return covered


def uncovered_practices(practices: Iterable[str], covered: set[str]) -> list[str]:
    return [
        p
        for p in practices
        if not same_practice(p, PENDING_PRACTICE) and normalize_practice(p) not in covered
    ]


def matching_mappings(
    mappings: Iterable[SAToAMMapping],
    owner_email: str,
    uncovered: Iterable[str],
) -> list[SAToAMMapping]:
    """Rows for this owner that declare at least one uncovered practice."""
    owner_key = owner_email.strip().casefold()
    wanted = {normalize_practice(p) for p in uncovered}
    return [
        row
        for row in mappings
        if (row.owner_email or "").strip().casefold() == owner_key
        and wanted.intersection(normalize_practice(p) for p in row.practices)
    ]


def determine_region(rows: Iterable[SAToAMMapping]) -> str | None:
    """Shared region of the rows; lexicographically smallest when they disagree."""
    regions = sorted({row.region.strip() for row in rows if row.region and row.region.strip()})
    return regions[0] if regions else None


def plan_auto_assignment(
    assignment: Assignment,
    mappings: Iterable[SAToAMMapping],
    users: Iterable[DirectoryUser],
) -> AutoAssignmentPlan:
    """Pure function: decide which specialists to add and where.

    Business rules:
      1. An assignment without an owner or with only the "Pending" practice
         cannot be auto-assigned yet.
      2. Only practices no existing assignee covers (per the directory) are filled.
      3. New specialists come from rows owned by the same account manager and
         are placed under the uncovered practices their row declares.
      4. Assigned only when every declared practice is covered afterwards.
    """
    users = list(users)

    if not assignment.owner:
        return AutoAssignmentPlan(ok=False, message="Cannot auto-assign yet: no account manager")
    if is_unclassified(assignment.practices):
        return AutoAssignmentPlan(ok=False, message="Cannot auto-assign yet: practice is pending")

    owner_email = resolve_owner_email(assignment.owner, users)
    if not owner_email:
        return AutoAssignmentPlan(
            ok=False, message=f"Cannot auto-assign yet: no email for owner {assignment.owner!r}"
        )

    existing = assignment.all_assignees()
    uncovered = uncovered_practices(assignment.practices, covered_practices(existing, users))
    practice_map = {p: list(names) for p, names in assignment.practice_assignments.items()}

    if not uncovered:
        return AutoAssignmentPlan(
            ok=True,
            message="All practices already covered",
            assignees=existing,
            practice_assignments=practice_map,
            region=assignment.region,
            status=AssignmentStatus.ASSIGNED,
        )

    rows = matching_mappings(mappings, owner_email, uncovered)
    if not rows:
        return AutoAssignmentPlan(
            ok=False, message=f"No SA mappings for {owner_email} covering {', '.join(uncovered)}"
        )

    new_assignees: list[str] = []
    for row in rows:
        name = row.specialist_name.strip()
        if not name or name in existing or name in new_assignees:
            continue
        new_assignees.append(name)

        for practice in uncovered:
            if not any(same_practice(practice, p) for p in row.practices):
                continue
            key = next((k for k in practice_map if same_practice(k, practice)), practice)
            bucket = practice_map.setdefault(key, [])
            if name not in bucket:
                bucket.append(name)

    assignees = existing + new_assignees
    still_uncovered = uncovered_practices(assignment.practices, covered_practices(assignees, users))
    status = AssignmentStatus.UNASSIGNED if still_uncovered else AssignmentStatus.ASSIGNED

    if still_uncovered:
        message = f"Assigned {len(new_assignees)} specialist(s); uncovered: {', '.join(still_uncovered)}"
    else:
        message = f"Assigned {len(new_assignees)} specialist(s); all practices covered"

    return AutoAssignmentPlan(
        ok=True,
        message=message,
        assignees=assignees,
        new_assignees=new_assignees,
        practice_assignments=practice_map,
        region=determine_region(rows) or assignment.region,
        status=status,
    )
