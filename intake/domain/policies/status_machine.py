"""AssignmentStatusPolicy — closed state machine plus per-pair completion bookkeeping.

Overall status is never stored independently: every mutation recomputes it
from the practice map and the completion map.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

from intake.domain.entities.assignment import Assignment, lookup_completion
from intake.domain.value_objects.completion import Completion, CompletionKey
from intake.domain.value_objects.enums import AssignmentStatus, PairStatus
from intake.domain.value_objects.practice import PENDING_PRACTICE, same_practice

ORDER = [
    AssignmentStatus.PENDING,
    AssignmentStatus.UNASSIGNED,
    AssignmentStatus.ASSIGNED,
    AssignmentStatus.PENDING_APPROVAL,
    AssignmentStatus.COMPLETE,
]

TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    AssignmentStatus.PENDING: frozenset({AssignmentStatus.UNASSIGNED}),
    AssignmentStatus.UNASSIGNED: frozenset(
        {AssignmentStatus.ASSIGNED, AssignmentStatus.PENDING_APPROVAL, AssignmentStatus.COMPLETE}
    ),
    AssignmentStatus.ASSIGNED: frozenset(
        {AssignmentStatus.UNASSIGNED, AssignmentStatus.PENDING_APPROVAL, AssignmentStatus.COMPLETE}
    ),
    AssignmentStatus.PENDING_APPROVAL: frozenset(
        {AssignmentStatus.UNASSIGNED, AssignmentStatus.ASSIGNED, AssignmentStatus.COMPLETE}
    ),
    AssignmentStatus.COMPLETE: frozenset(
        {AssignmentStatus.UNASSIGNED, AssignmentStatus.ASSIGNED, AssignmentStatus.PENDING_APPROVAL}
    ),
}

# Timestamp stamped when a status is entered moving forward
_ENTERED_AT = {
    AssignmentStatus.UNASSIGNED: "unassigned_at",
    AssignmentStatus.ASSIGNED: "assigned_at",
    AssignmentStatus.PENDING_APPROVAL: "pending_approval_at",
    AssignmentStatus.COMPLETE: "completed_at",
}


class InvalidTransitionError(ValueError):
    pass


class UnknownPairError(ValueError):
    pass


@dataclass(frozen=True)
class StatusChange:
    """One status change. Pair-level changes carry the assignee and practice."""

    from_status: Union[AssignmentStatus, PairStatus]
    to_status: Union[AssignmentStatus, PairStatus]
    at: datetime
    practice: str | None = None
    assignee: str | None = None

    @property
    def is_overall(self) -> bool:
        return self.assignee is None


@dataclass
class ApprovalOutcome:
    changes: list[StatusChange] = field(default_factory=list)
    advanced: list[tuple[str, str]] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)


def can_transition(current: AssignmentStatus, target: AssignmentStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def transition(assignment: Assignment, target: AssignmentStatus, at: datetime) -> StatusChange:
    """Move the overall status, stamping the entry timestamp on forward moves."""
    current = assignment.status
    if not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot move assignment from {current.value} to {target.value}")

    if current == AssignmentStatus.PENDING_APPROVAL and assignment.pending_approval_at:
        assignment.approval_wait_hours += (at - assignment.pending_approval_at).total_seconds() / 3600

    if ORDER.index(target) > ORDER.index(current):
        setattr(assignment, _ENTERED_AT[target], at)
        if target == AssignmentStatus.ASSIGNED:
            assignment.approval_wait_hours = 0.0
    if target == AssignmentStatus.PENDING_APPROVAL:
        # Start of the current wait, also on re-entry from Complete
        assignment.pending_approval_at = at
    if current == AssignmentStatus.COMPLETE:
        assignment.completed_at = None

    assignment.status = target
    return StatusChange(from_status=current, to_status=target, at=at)


def overall_status(
    practice_assignments: dict[str, list[str]],
    completions: dict[CompletionKey, Completion],
) -> AssignmentStatus:
    """Pure function of the practice map and the completion map.

    No pairs → Unassigned; all pairs Approved/Complete → Complete; all pairs
    Pending Approval → Pending Approval; anything else → Assigned.
    """
    statuses = set()
    for practice, assignees in practice_assignments.items():
        for assignee in assignees:
            completion = lookup_completion(completions, assignee, practice)
            statuses.add(completion.status if completion else PairStatus.IN_PROGRESS)

    if not statuses:
        return AssignmentStatus.UNASSIGNED
    if statuses == {PairStatus.APPROVED_COMPLETE}:
        return AssignmentStatus.COMPLETE
    if statuses == {PairStatus.PENDING_APPROVAL}:
        return AssignmentStatus.PENDING_APPROVAL
    return AssignmentStatus.ASSIGNED


def recompute_status(assignment: Assignment, at: datetime) -> list[StatusChange]:
    """Align the stored status with ``overall_status``.

    A Pending assignment waits for classification, and an Unassigned one only
    becomes Assigned through the coverage check of auto-assignment.
    """
    current = assignment.status
    if current == AssignmentStatus.PENDING:
        return []

    target = overall_status(assignment.practice_assignments, assignment.completions)
    if target == current:
        return []
    if current == AssignmentStatus.UNASSIGNED and target == AssignmentStatus.ASSIGNED:
        return []
    return [transition(assignment, target, at)]


def _declared(assignment: Assignment, practice: str) -> str:
    declared = assignment.declared_practice(practice)
    if declared is None or same_practice(declared, PENDING_PRACTICE):
        raise UnknownPairError(f"Practice {practice!r} is not declared on assignment {assignment.id}")
    return declared


def _store(assignment: Assignment, assignee: str, practice: str, completion: Completion) -> None:
    stale = [
        key
        for key in assignment.completions
        if key.assignee == assignee and key.practice and same_practice(key.practice, practice)
    ]
    for key in stale:
        del assignment.completions[key]
    assignment.completions[assignment.completion_key(assignee, practice)] = completion


def request_approval(
    assignment: Assignment, practice: str, revision: str | None, at: datetime
) -> list[StatusChange]:
    """Move every assignee of ``practice`` to Pending Approval in one batch.

    Pairs already approved or already waiting under the same revision are left
    alone, so re-delivered requests are no-ops.
    """
    declared = _declared(assignment, practice)
    changes: list[StatusChange] = []

    for assignee in assignment.assignees_for(declared):
        existing = assignment.completion_for(assignee, declared)
        if (
            existing
            and existing.revision_number == revision
            and existing.status in (PairStatus.APPROVED_COMPLETE, PairStatus.PENDING_APPROVAL)
        ):
            continue

        old = existing.status if existing else PairStatus.IN_PROGRESS
        _store(
            assignment,
            assignee,
            declared,
            Completion(status=PairStatus.PENDING_APPROVAL, revision_number=revision, requested_at=at),
        )
        changes.append(
            StatusChange(old, PairStatus.PENDING_APPROVAL, at, practice=declared, assignee=assignee)
        )

    if changes:
        changes.extend(recompute_status(assignment, at))
    return changes


def approve(
    assignment: Assignment,
    practice: str | None,
    revision: str | None,
    at: datetime,
    approved_by: str | None = None,
) -> ApprovalOutcome:
    """Advance Pending Approval pairs whose stored revision allows it.

    A pair advances when it stores no revision or the stored revision equals
    ``revision``; mismatching pairs stay Pending Approval and are reported as
    skipped. ``practice=None`` covers every pair on the assignment.
    """
    if practice is None:
        targets = assignment.pairs()
    else:
        declared = _declared(assignment, practice)
        targets = [(a, declared) for a in assignment.assignees_for(declared)]

    outcome = ApprovalOutcome()
    for assignee, pair_practice in targets:
        existing = assignment.completion_for(assignee, pair_practice)
        if not existing or existing.status != PairStatus.PENDING_APPROVAL:
            continue

        if existing.revision_number is not None and existing.revision_number != revision:
            outcome.skipped.append((assignee, pair_practice))
            continue

        _store(
            assignment,
            assignee,
            pair_practice,
            Completion(
                status=PairStatus.APPROVED_COMPLETE,
                revision_number=existing.revision_number or revision,
                requested_at=existing.requested_at,
                completed_at=at,
                approved_by=approved_by,
            ),
        )
        outcome.advanced.append((assignee, pair_practice))
        outcome.changes.append(
            StatusChange(
                PairStatus.PENDING_APPROVAL,
                PairStatus.APPROVED_COMPLETE,
                at,
                practice=pair_practice,
                assignee=assignee,
            )
        )

    if outcome.advanced:
        outcome.changes.extend(recompute_status(assignment, at))
    return outcome


def toggle_completion(
    assignment: Assignment, assignee: str, practice: str, at: datetime
) -> list[StatusChange]:
    """Flip one pair between Approved/Complete and In Progress."""
    declared = _declared(assignment, practice)
    if assignee not in assignment.assignees_for(declared):
        raise UnknownPairError(f"{assignee!r} is not assigned to {declared!r}")

    existing = assignment.completion_for(assignee, declared)
    old = existing.status if existing else PairStatus.IN_PROGRESS
    if old == PairStatus.APPROVED_COMPLETE:
        new = Completion(
            status=PairStatus.IN_PROGRESS,
            revision_number=existing.revision_number,
            requested_at=existing.requested_at,
        )
    else:
        new = Completion(
            status=PairStatus.APPROVED_COMPLETE,
            revision_number=existing.revision_number if existing else None,
            requested_at=existing.requested_at if existing else None,
            completed_at=at,
        )

    _store(assignment, assignee, declared, new)
    changes = [StatusChange(old, new.status, at, practice=declared, assignee=assignee)]
    changes.extend(recompute_status(assignment, at))
    return changes


def remove_practice(assignment: Assignment, practice: str, at: datetime) -> list[StatusChange]:
    """Drop a practice, its assignees' placement and every completion scoped to it."""
    declared = _declared(assignment, practice)
    removed_assignees = assignment.assignees_for(declared)

    assignment.practices = [p for p in assignment.practices if not same_practice(p, declared)]
    if not assignment.practices:
        assignment.practices = [PENDING_PRACTICE]
    assignment.practice_assignments = {
        p: names for p, names in assignment.practice_assignments.items() if not same_practice(p, declared)
    }

    remaining = set(assignment.all_assignees())
    assignment.completions = {
        key: completion
        for key, completion in assignment.completions.items()
        if not (key.practice and same_practice(key.practice, declared))
        and not (key.practice is None and key.assignee in removed_assignees and key.assignee not in remaining)
    }

    return recompute_status(assignment, at)
