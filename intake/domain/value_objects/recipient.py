"""Recipient value object — a {name, email} pair parsed from a mail header."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Recipient:
    name: str
    email: str

    def formatted(self) -> str:
        return f"{self.name} <{self.email}>"
