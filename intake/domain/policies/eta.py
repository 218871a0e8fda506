"""EtaPolicy — classify overall status changes and measure how long each stage took."""

from __future__ import annotations

from datetime import datetime

from intake.domain.entities.assignment import Assignment
from intake.domain.entities.eta import StatusTransitionEvent
from intake.domain.value_objects.enums import AssignmentStatus, TransitionKind
from intake.domain.value_objects.practice import PENDING_PRACTICE, same_practice

_KINDS: dict[tuple[AssignmentStatus, AssignmentStatus], TransitionKind] = {
    (AssignmentStatus.PENDING, AssignmentStatus.UNASSIGNED): TransitionKind.PENDING_TO_UNASSIGNED,
    (AssignmentStatus.UNASSIGNED, AssignmentStatus.ASSIGNED): TransitionKind.UNASSIGNED_TO_ASSIGNED,
    (AssignmentStatus.ASSIGNED, AssignmentStatus.PENDING_APPROVAL): TransitionKind.ASSIGNED_TO_PENDING_APPROVAL,
    (AssignmentStatus.ASSIGNED, AssignmentStatus.COMPLETE): TransitionKind.ASSIGNED_TO_COMPLETED,
    (AssignmentStatus.PENDING_APPROVAL, AssignmentStatus.COMPLETE): TransitionKind.ASSIGNED_TO_COMPLETED,
}


def classify(old: AssignmentStatus, new: AssignmentStatus) -> TransitionKind | None:
    return _KINDS.get((old, new))


def _stage_start(assignment: Assignment, kind: TransitionKind) -> datetime | None:
    if kind == TransitionKind.PENDING_TO_UNASSIGNED:
        start = assignment.created_at
    elif kind == TransitionKind.UNASSIGNED_TO_ASSIGNED:
        start = assignment.unassigned_at
    else:
        start = assignment.assigned_at
    return start or assignment.created_at


def approval_wait_hours(assignment: Assignment, at: datetime) -> float:
    """Closed approval waits plus the stretch still open at ``at``."""
    hours = assignment.approval_wait_hours
    if assignment.status == AssignmentStatus.PENDING_APPROVAL and assignment.pending_approval_at:
        hours += (at - assignment.pending_approval_at).total_seconds() / 3600
    return hours


def duration_hours(assignment: Assignment, kind: TransitionKind, at: datetime) -> float | None:
    """Hours spent in the prior stage, or None when not measurable.

    Completion excludes the time spent waiting in Pending Approval.
    """
    start = _stage_start(assignment, kind)
    if start is None:
        return None

    hours = (at - start).total_seconds() / 3600
    if kind == TransitionKind.ASSIGNED_TO_COMPLETED:
        hours -= approval_wait_hours(assignment, at)
    return hours if hours > 0 else None


def build_events(
    assignment: Assignment,
    old: AssignmentStatus,
    new: AssignmentStatus,
    at: datetime,
) -> list[StatusTransitionEvent]:
    """One event per declared practice; empty for untracked or non-positive transitions."""
    kind = classify(old, new)
    if kind is None or assignment.id is None:
        return []

    hours = duration_hours(assignment, kind, at)
    if hours is None:
        return []

    return [
        StatusTransitionEvent(
            assignment_id=assignment.id,
            practice=practice,
            from_status=old,
            to_status=new,
            kind=kind,
            duration_hours=round(hours, 4),
            occurred_at=at,
        )
        for practice in assignment.practices
        if not same_practice(practice, PENDING_PRACTICE)
    ]
