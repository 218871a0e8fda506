"""Port interface for the user directory."""

from abc import ABC, abstractmethod

from intake.domain.entities.directory_user import DirectoryUser


class DirectoryPort(ABC):
    @abstractmethod
    async def get_all_users(self) -> list[DirectoryUser]:
        ...

    @abstractmethod
    async def get_user(self, email: str) -> DirectoryUser | None:
        ...
