"""TrackEtaUseCase — turn overall status changes into ETA samples."""

from __future__ import annotations

import logging

from intake.application.collaborators import DEFAULT_TIMEOUT_SECONDS, call
from intake.application.ports.eta_sink import EtaSink
from intake.domain.entities.assignment import Assignment
from intake.domain.policies.eta import build_events
from intake.domain.policies.status_machine import StatusChange
from intake.domain.value_objects.result import Result

logger = logging.getLogger(__name__)


class TrackEtaUseCase:
    def __init__(self, sink: EtaSink, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self._sink = sink
        self._timeout = timeout

    async def execute(self, assignment: Assignment, changes: list[StatusChange]) -> Result:
        """Record one event per practice for every tracked overall transition.

        Sink failures are logged and reported, never raised; the transition
        itself has already been persisted.
        """
        recorded = 0
        failures: list[str] = []

        for change in changes:
            if not change.is_overall:
                continue
            for event in build_events(assignment, change.from_status, change.to_status, change.at):
                result = await call(
                    f"record ETA {event.kind.value} for assignment {assignment.id}",
                    self._sink.record(event),
                    self._timeout,
                )
                if result.ok:
                    recorded += 1
                else:
                    failures.append(result.error)

        if recorded:
            logger.info("Assignment %s: recorded %d ETA sample(s)", assignment.id, recorded)
        if failures:
            return Result.failure("; ".join(failures))
        return Result.success(recorded)

    async def estimates(self, practice: str | None = None) -> Result:
        """Rolling aggregates as a Result carrying list[PracticeEta]."""
        return await call("load ETA estimates", self._sink.get_estimates(practice), self._timeout)
