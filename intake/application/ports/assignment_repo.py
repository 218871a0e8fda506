"""Port interface for assignment persistence."""

from abc import ABC, abstractmethod

from intake.domain.entities.assignment import Assignment
from intake.domain.value_objects.enums import AssignmentKind


class ConcurrentUpdateError(Exception):
    """The stored version moved on since the assignment was loaded."""


class AssignmentRepository(ABC):
    @abstractmethod
    async def create(self, assignment: Assignment) -> Assignment:
        ...

    @abstractmethod
    async def get_by_id(self, assignment_id: int) -> Assignment | None:
        ...

    @abstractmethod
    async def get_by_opportunity(self, kind: AssignmentKind, opportunity_id: str) -> Assignment | None:
        ...

    @abstractmethod
    async def update(self, assignment: Assignment) -> Assignment:
        """Persist only if the stored version still equals ``assignment.version``.

        Returns the assignment with its version bumped.

        Raises:
            ConcurrentUpdateError: if another writer got there first.
        """
        ...

    @abstractmethod
    async def get_all(self) -> list[Assignment]:
        ...
