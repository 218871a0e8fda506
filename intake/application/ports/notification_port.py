"""Port interface for outbound notifications."""

from abc import ABC, abstractmethod

from intake.domain.entities.assignment import Assignment
from intake.domain.policies.status_machine import StatusChange
from intake.domain.value_objects.enums import NotificationTemplate


class NotificationPort(ABC):
    @abstractmethod
    async def send_status_changes(
        self,
        assignment: Assignment,
        changes: list[StatusChange],
        channel: str | None = None,
    ) -> None:
        ...

    @abstractmethod
    async def send_template(self, assignment: Assignment, template: NotificationTemplate) -> None:
        ...
