"""DirectoryUser entity — a person known to the user directory."""

from dataclasses import dataclass, field

from intake.domain.value_objects.practice import normalize_practice


@dataclass
class DirectoryUser:
    name: str
    email: str
    role: str | None = None
    practices: list[str] = field(default_factory=list)

    def covers(self, practice: str) -> bool:
        key = normalize_practice(practice)
        return any(normalize_practice(p) == key for p in self.practices)
