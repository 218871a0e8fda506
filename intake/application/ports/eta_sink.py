"""Port interface for ETA samples and their aggregates."""

from abc import ABC, abstractmethod

from intake.domain.entities.eta import PracticeEta, StatusTransitionEvent


class EtaSink(ABC):
    @abstractmethod
    async def record(self, event: StatusTransitionEvent) -> None:
        """Append the event and fold it into the practice aggregate."""
        ...

    @abstractmethod
    async def get_estimates(self, practice: str | None = None) -> list[PracticeEta]:
        ...
