"""InboundEmail entity — one message fetched from the intake mailbox."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class InboundEmail:
    id: str
    subject: str
    body: str
    sender: str
    received_at: datetime

    def content(self) -> str:
        """Subject and body as one searchable text."""
        return f"{self.subject}\n{self.body}"
