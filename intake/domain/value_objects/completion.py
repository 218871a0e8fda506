"""Completion bookkeeping value objects — typed replacement for the completion blob."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from intake.domain.value_objects.enums import PairStatus

KEY_SEPARATOR = "::"


@dataclass(frozen=True)
class CompletionKey:
    """Identifies one assignee/practice pair.

    ``practice`` is only set when the assignee covers more than one practice
    on the same assignment; otherwise the bare assignee identifies the pair.
    """

    assignee: str
    practice: str | None = None

    def encode(self) -> str:
        if self.practice:
            return f"{self.assignee}{KEY_SEPARATOR}{self.practice}"
        return self.assignee

    @classmethod
    def decode(cls, raw: str) -> CompletionKey:
        if KEY_SEPARATOR in raw:
            assignee, practice = raw.split(KEY_SEPARATOR, 1)
            return cls(assignee=assignee.strip(), practice=practice.strip() or None)
        return cls(assignee=raw.strip())


@dataclass
class Completion:
    status: PairStatus = PairStatus.IN_PROGRESS
    revision_number: str | None = None
    requested_at: datetime | None = None
    completed_at: datetime | None = None
    approved_by: str | None = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "revision_number": self.revision_number,
            "requested_at": self.requested_at.isoformat() if self.requested_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "approved_by": self.approved_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Completion:
        return cls(
            status=PairStatus(data.get("status") or PairStatus.IN_PROGRESS.value),
            revision_number=data.get("revision_number"),
            requested_at=_parse_dt(data.get("requested_at")),
            completed_at=_parse_dt(data.get("completed_at")),
            approved_by=data.get("approved_by"),
        )


def _parse_dt(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None
