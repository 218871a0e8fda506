"""SAToAMMapping entity — historical specialist/account-owner pairing."""

from dataclasses import dataclass, field


@dataclass
class SAToAMMapping:
    id: int | None
    specialist_name: str
    owner_email: str
    specialist_email: str | None = None
    owner_name: str | None = None
    region: str | None = None
    practices: list[str] = field(default_factory=list)
