"""Fire-and-forget notification delivery.

Sends run as background tasks so a slow or failing channel never holds up a
status transition. ``drain()`` waits for whatever is still in flight.
"""

from __future__ import annotations

import asyncio
import copy
import logging

from intake.application.collaborators import DEFAULT_TIMEOUT_SECONDS, call
from intake.application.ports.notification_port import NotificationPort
from intake.domain.entities.assignment import Assignment
from intake.domain.policies.status_machine import StatusChange
from intake.domain.value_objects.enums import NotificationTemplate

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, notifier: NotificationPort, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self._notifier = notifier
        self._timeout = timeout
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch_changes(
        self,
        assignment: Assignment,
        changes: list[StatusChange],
        channel: str | None = None,
    ) -> None:
        if not changes:
            return
        snapshot = copy.deepcopy(assignment)
        self._spawn(
            f"notify status changes for assignment {assignment.id}",
            self._notifier.send_status_changes(snapshot, list(changes), channel),
        )

    def dispatch_template(self, assignment: Assignment, template: NotificationTemplate) -> None:
        snapshot = copy.deepcopy(assignment)
        self._spawn(
            f"notify {template.value} for assignment {assignment.id}",
            self._notifier.send_template(snapshot, template),
        )

    async def drain(self) -> None:
        if self._tasks:
            logger.info("Waiting for %d notification(s) in flight", len(self._tasks))
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _spawn(self, operation: str, coro) -> None:
        # call() logs and folds failures; the task result is never inspected
        task = asyncio.create_task(call(operation, coro, self._timeout))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
