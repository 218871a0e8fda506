"""Port interface for the intake mailbox."""

from abc import ABC, abstractmethod
from datetime import datetime

from intake.domain.entities.inbound_email import InboundEmail


class MailPort(ABC):
    @abstractmethod
    async def check_new_mail(self, since: datetime) -> list[InboundEmail]:
        """Unread messages received at or after ``since``, oldest first."""
        ...

    @abstractmethod
    async def mark_as_read(self, email_id: str) -> None:
        ...
