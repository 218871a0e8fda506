"""Assignment entity — a request for practice specialists created from an email."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from intake.domain.value_objects.completion import Completion, CompletionKey
from intake.domain.value_objects.enums import AssignmentKind, AssignmentStatus, PairStatus
from intake.domain.value_objects.practice import (
    PENDING_PRACTICE,
    normalize_practice,
    same_practice,
)
from intake.domain.value_objects.recipient import Recipient


@dataclass
class Assignment:
    id: int | None
    kind: AssignmentKind
    opportunity_id: str
    status: AssignmentStatus = AssignmentStatus.PENDING
    practices: list[str] = field(default_factory=lambda: [PENDING_PRACTICE])
    practice_assignments: dict[str, list[str]] = field(default_factory=dict)
    completions: dict[CompletionKey, Completion] = field(default_factory=dict)
    owner: str | None = None
    isr: str | None = None
    pm: str | None = None
    customer_name: str | None = None
    opportunity_name: str | None = None
    region: str | None = None
    eta: str | None = None
    notes: str | None = None
    opportunity_url: str | None = None
    submitted_by: str | None = None
    notification_users: list[Recipient] = field(default_factory=list)
    source_email_id: str | None = None
    details: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None
    unassigned_at: datetime | None = None
    assigned_at: datetime | None = None
    pending_approval_at: datetime | None = None
    completed_at: datetime | None = None
    # Closed Pending Approval stretches since the assignment was last assigned
    approval_wait_hours: float = 0.0
    version: int = 0

    def declared_practice(self, practice: str) -> str | None:
        """Return the declared spelling of ``practice`` (case-insensitive), if any."""
        return next((p for p in self.practices if same_practice(p, practice)), None)

    def assignees_for(self, practice: str) -> list[str]:
        key = normalize_practice(practice)
        for name, assignees in self.practice_assignments.items():
            if normalize_practice(name) == key:
                return list(assignees)
        return []

    def all_assignees(self) -> list[str]:
        seen: list[str] = []
        for assignees in self.practice_assignments.values():
            for assignee in assignees:
                if assignee not in seen:
                    seen.append(assignee)
        return seen

    def pairs(self) -> list[tuple[str, str]]:
        """Every declared (assignee, practice) pair, in practice order."""
        return [
            (assignee, practice)
            for practice, assignees in self.practice_assignments.items()
            for assignee in assignees
        ]

    def completion_key(self, assignee: str, practice: str) -> CompletionKey:
        return completion_key_for(self.practice_assignments, assignee, practice)

    def completion_for(self, assignee: str, practice: str) -> Completion | None:
        return lookup_completion(self.completions, assignee, practice)

    def pair_status(self, assignee: str, practice: str) -> PairStatus:
        completion = self.completion_for(assignee, practice)
        return completion.status if completion else PairStatus.IN_PROGRESS

    def practice_status(self, practice: str) -> PairStatus:
        """Aggregate status of one practice group."""
        assignees = self.assignees_for(practice)
        if not assignees:
            return PairStatus.IN_PROGRESS
        statuses = {self.pair_status(a, practice) for a in assignees}
        if statuses == {PairStatus.APPROVED_COMPLETE}:
            return PairStatus.APPROVED_COMPLETE
        if statuses == {PairStatus.PENDING_APPROVAL}:
            return PairStatus.PENDING_APPROVAL
        return PairStatus.IN_PROGRESS


def completion_key_for(
    practice_assignments: dict[str, list[str]], assignee: str, practice: str
) -> CompletionKey:
    """Scope the key by practice only when the assignee serves several practices."""
    served = sum(1 for assignees in practice_assignments.values() if assignee in assignees)
    if served > 1:
        return CompletionKey(assignee=assignee, practice=practice)
    return CompletionKey(assignee=assignee)


def lookup_completion(
    completions: dict[CompletionKey, Completion], assignee: str, practice: str
) -> Completion | None:
    """Scoped key first, then the bare assignee key."""
    for key, completion in completions.items():
        if key.assignee == assignee and key.practice and same_practice(key.practice, practice):
            return completion
    return completions.get(CompletionKey(assignee=assignee))
