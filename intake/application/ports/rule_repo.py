"""Port interface for processing rules."""

from abc import ABC, abstractmethod

from intake.domain.entities.processing_rule import ProcessingRule


class RuleRepository(ABC):
    @abstractmethod
    async def get_rules(self) -> list[ProcessingRule]:
        """All rules in configured evaluation order."""
        ...
