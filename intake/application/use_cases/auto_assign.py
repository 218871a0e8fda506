"""AutoAssignUseCase — load, plan, persist and announce an auto-assignment."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from intake.application.collaborators import DEFAULT_TIMEOUT_SECONDS, call
from intake.application.ports.assignment_repo import AssignmentRepository
from intake.application.ports.directory_port import DirectoryPort
from intake.application.ports.mapping_repo import MappingRepository
from intake.application.services.assignment_locks import AssignmentLocks
from intake.application.services.notification_dispatcher import NotificationDispatcher
from intake.application.use_cases.track_eta import TrackEtaUseCase
from intake.domain.entities.assignment import Assignment
from intake.domain.policies.auto_assignment import AutoAssignmentPlan, plan_auto_assignment
from intake.domain.policies.status_machine import StatusChange, transition
from intake.domain.value_objects.enums import AssignmentStatus, ErrorKind, NotificationTemplate
from intake.domain.value_objects.practice import is_unclassified
from intake.domain.value_objects.result import Result

logger = logging.getLogger(__name__)


def apply_plan(assignment: Assignment, plan: AutoAssignmentPlan, now: datetime) -> list[StatusChange]:
    """Copy the plan onto the assignment and advance its status if coverage passed."""
    changes: list[StatusChange] = []
    assignment.practice_assignments = {p: list(names) for p, names in plan.practice_assignments.items()}
    assignment.region = plan.region

    if assignment.status == AssignmentStatus.PENDING and not is_unclassified(assignment.practices):
        changes.append(transition(assignment, AssignmentStatus.UNASSIGNED, now))
    if plan.status == AssignmentStatus.ASSIGNED and assignment.status == AssignmentStatus.UNASSIGNED:
        changes.append(transition(assignment, AssignmentStatus.ASSIGNED, now))
    return changes


class AutoAssignUseCase:
    """Fills uncovered practices of an SA assignment from SA-to-AM mapping history."""

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        mapping_repo: MappingRepository,
        directory: DirectoryPort,
        dispatcher: NotificationDispatcher,
        eta: TrackEtaUseCase,
        locks: AssignmentLocks,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._assignments = assignment_repo
        self._mappings = mapping_repo
        self._directory = directory
        self._dispatcher = dispatcher
        self._eta = eta
        self._locks = locks
        self._timeout = timeout

    async def execute(self, assignment_id: int) -> Result:
        """Auto-assign one stored assignment.

        A plan that cannot proceed yet (no owner, practice still pending, no
        mapping rows) is a success carrying that plan; only collaborator
        failures and a missing assignment are failures.
        """
        async with self._locks.lock_for(assignment_id):
            loaded = await call(
                f"load assignment {assignment_id}", self._assignments.get_by_id(assignment_id), self._timeout
            )
            if not loaded.ok:
                return loaded
            assignment = loaded.value
            if assignment is None:
                return Result.failure(f"Assignment {assignment_id} not found", kind=ErrorKind.NOT_FOUND)

            users = await call("load directory users", self._directory.get_all_users(), self._timeout)
            if not users.ok:
                return users
            mappings = await call("load SA mappings", self._mappings.get_all(), self._timeout)
            if not mappings.ok:
                return mappings

            plan = plan_auto_assignment(assignment, mappings.value, users.value)
            if not plan.ok:
                logger.info("Assignment %s: %s", assignment_id, plan.message)
                return Result.success(plan)

            region_before = assignment.region
            changes = apply_plan(assignment, plan, datetime.now(timezone.utc))
            if not plan.new_assignees and not changes and assignment.region == region_before:
                return Result.success(plan)

            saved = await call(
                f"update assignment {assignment_id}", self._assignments.update(assignment), self._timeout
            )
            if not saved.ok:
                return saved
            assignment = saved.value

        logger.info(
            "Assignment %s auto-assigned: +%s → %s (%s)",
            assignment_id, plan.new_assignees, assignment.status.value, plan.message,
        )
        await self._eta.execute(assignment, changes)
        self._dispatcher.dispatch_changes(assignment, changes)
        if plan.new_assignees:
            self._dispatcher.dispatch_template(assignment, NotificationTemplate.SA_AUTO_ASSIGNED)
        return Result.success(plan)
