"""ETA entities — transition samples and their rolling per-practice aggregate."""

from dataclasses import dataclass
from datetime import datetime

from intake.domain.value_objects.enums import AssignmentStatus, TransitionKind


@dataclass(frozen=True)
class StatusTransitionEvent:
    assignment_id: int
    practice: str
    from_status: AssignmentStatus
    to_status: AssignmentStatus
    kind: TransitionKind
    duration_hours: float
    occurred_at: datetime


@dataclass
class PracticeEta:
    practice: str
    transition: TransitionKind
    avg_duration_hours: float = 0.0
    sample_count: int = 0

    def absorb(self, duration_hours: float) -> None:
        """Fold one sample into the rolling mean."""
        total = self.avg_duration_hours * self.sample_count + duration_hours
        self.sample_count += 1
        self.avg_duration_hours = total / self.sample_count
