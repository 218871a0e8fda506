"""Port interface for historical SA-to-AM mapping rows."""

from abc import ABC, abstractmethod

from intake.domain.entities.sa_mapping import SAToAMMapping


class MappingRepository(ABC):
    @abstractmethod
    async def get_all(self) -> list[SAToAMMapping]:
        ...
