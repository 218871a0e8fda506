"""UpdateCompletionUseCase — every completion-map mutation of a stored assignment.

Each mutation runs under the assignment's in-process lock, is persisted with a
version-conditional update and is re-applied to a fresh copy when another
writer won the race.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from intake.application.collaborators import DEFAULT_TIMEOUT_SECONDS, call
from intake.application.ports.assignment_repo import AssignmentRepository
from intake.application.services.assignment_locks import AssignmentLocks
from intake.application.services.notification_dispatcher import NotificationDispatcher
from intake.application.use_cases.track_eta import TrackEtaUseCase
from intake.domain.entities.assignment import Assignment
from intake.domain.policies import status_machine
from intake.domain.policies.status_machine import StatusChange, UnknownPairError
from intake.domain.value_objects.enums import AssignmentStatus, ErrorKind, NotificationTemplate
from intake.domain.value_objects.result import Result

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


@dataclass
class CompletionUpdate:
    """Summary of one applied mutation."""

    assignment: Assignment
    changes: list[StatusChange] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    # Persist even without status changes (practice removal)
    modified: bool = False


Mutation = Callable[[Assignment, datetime], CompletionUpdate]


class UpdateCompletionUseCase:
    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        dispatcher: NotificationDispatcher,
        eta: TrackEtaUseCase,
        locks: AssignmentLocks,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._assignments = assignment_repo
        self._dispatcher = dispatcher
        self._eta = eta
        self._locks = locks
        self._timeout = timeout

    async def toggle(self, assignment_id: int, assignee: str, practice: str) -> Result:
        def mutate(assignment: Assignment, now: datetime) -> CompletionUpdate:
            changes = status_machine.toggle_completion(assignment, assignee, practice, now)
            return CompletionUpdate(assignment, changes)

        return await self._mutate(assignment_id, f"toggle {assignee}/{practice}", mutate)

    async def remove_practice(self, assignment_id: int, practice: str) -> Result:
        def mutate(assignment: Assignment, now: datetime) -> CompletionUpdate:
            changes = status_machine.remove_practice(assignment, practice, now)
            return CompletionUpdate(assignment, changes, modified=True)

        return await self._mutate(assignment_id, f"remove practice {practice}", mutate)

    async def request_approval(
        self, assignment_id: int, practices: list[str], revision: str | None
    ) -> Result:
        """Move every pair of ``practices`` to Pending Approval in one write."""

        def mutate(assignment: Assignment, now: datetime) -> CompletionUpdate:
            changes: list[StatusChange] = []
            for practice in practices:
                changes.extend(status_machine.request_approval(assignment, practice, revision, now))
            return CompletionUpdate(assignment, changes)

        result = await self._mutate(assignment_id, "request approval", mutate)
        if result.ok and result.value.changes:
            self._dispatcher.dispatch_template(result.value.assignment, NotificationTemplate.SA_APPROVAL_REQUESTED)
        return result

    async def approve(
        self,
        assignment_id: int,
        practice: str | None,
        revision: str | None,
        approved_by: str | None = None,
    ) -> Result:
        """Advance Pending Approval pairs; all eligible pairs land in one write."""

        def mutate(assignment: Assignment, now: datetime) -> CompletionUpdate:
            outcome = status_machine.approve(assignment, practice, revision, now, approved_by)
            return CompletionUpdate(assignment, outcome.changes, outcome.skipped)

        result = await self._mutate(assignment_id, "approve", mutate)
        if result.ok:
            update = result.value
            if update.skipped:
                logger.warning(
                    "Assignment %s: revision %s did not match for %s",
                    assignment_id, revision,
                    ", ".join(f"{a}/{p}" for a, p in update.skipped),
                )
            if update.assignment.status == AssignmentStatus.COMPLETE and update.changes:
                self._dispatcher.dispatch_template(update.assignment, NotificationTemplate.SA_COMPLETED)
        return result

    async def _mutate(self, assignment_id: int, label: str, mutate: Mutation) -> Result:
        async with self._locks.lock_for(assignment_id):
            for attempt in range(1, MAX_ATTEMPTS + 1):
                loaded = await call(
                    f"load assignment {assignment_id}",
                    self._assignments.get_by_id(assignment_id),
                    self._timeout,
                )
                if not loaded.ok:
                    return loaded
                if loaded.value is None:
                    return Result.failure(f"Assignment {assignment_id} not found", kind=ErrorKind.NOT_FOUND)

                try:
                    update = mutate(loaded.value, datetime.now(timezone.utc))
                except UnknownPairError as exc:
                    return Result.failure(str(exc), kind=ErrorKind.NOT_FOUND)

                if not update.changes and not update.modified:
                    return Result.success(update)

                saved = await call(
                    f"update assignment {assignment_id}",
                    self._assignments.update(update.assignment),
                    self._timeout,
                )
                if saved.ok:
                    update.assignment = saved.value
                    logger.info(
                        "Assignment %s: %s → %d change(s), status=%s",
                        assignment_id, label, len(update.changes), update.assignment.status.value,
                    )
                    await self._eta.execute(update.assignment, update.changes)
                    self._dispatcher.dispatch_changes(update.assignment, update.changes)
                    return Result.success(update)

                if saved.kind != ErrorKind.CONCURRENT_UPDATE:
                    return saved
                logger.info("Assignment %s: %s conflicted (attempt %d), reloading", assignment_id, label, attempt)

        return Result.failure(
            f"Assignment {assignment_id}: gave up after {MAX_ATTEMPTS} conflicting updates",
            kind=ErrorKind.CONCURRENT_UPDATE,
        )
